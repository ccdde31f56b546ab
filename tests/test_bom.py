# tests/test_bom.py
from __future__ import annotations

import pytest

from csvprobe.encoding import EncodingInfo, get_info, has_bom, strip_bom
from csvprobe.enums import BomType


def test_utf8_bom():
    assert BomType.detect(b"\xef\xbb\xbfHello") is BomType.UTF8


def test_utf16_le_bom():
    assert BomType.detect(b"\xff\xfeH\x00e\x00") is BomType.UTF16_LE


def test_utf16_be_bom():
    assert BomType.detect(b"\xfe\xff\x00H\x00e") is BomType.UTF16_BE


def test_utf32_le_bom_wins_over_utf16_le():
    assert BomType.detect(b"\xff\xfe\x00\x00H\x00\x00\x00") is BomType.UTF32_LE


def test_utf32_be_bom():
    assert BomType.detect(b"\x00\x00\xfe\xff\x00\x00\x00H") is BomType.UTF32_BE


def test_no_bom():
    assert BomType.detect(b"Hello, world!") is None


@pytest.mark.parametrize("data", [b"", b"\xef", b"\xef\xbb"])
def test_too_short_for_any_bom(data: bytes):
    assert BomType.detect(data) is None
    assert get_info(data) == EncodingInfo()


@pytest.mark.parametrize(
    ("bom_type", "length"),
    [
        (BomType.UTF8, 3),
        (BomType.UTF16_LE, 2),
        (BomType.UTF16_BE, 2),
        (BomType.UTF32_LE, 4),
        (BomType.UTF32_BE, 4),
    ],
)
def test_bom_lengths(bom_type: BomType, length: int):
    assert bom_type.length == length
    assert len(bom_type.signature) == length


def test_get_info_with_bom():
    info = get_info(b"\xff\xfea\x00")
    assert info.bom is BomType.UTF16_LE
    assert info.bom_length == 2
    assert info.charset == "UTF-16LE"


def test_get_info_only_looks_at_prefix():
    assert get_info(b"abcd\xef\xbb\xbf").bom is None


def test_get_info_defaults():
    info = get_info(b"a;b;c")
    assert info.bom is None
    assert info.bom_length == 0
    assert info.charset == "UTF-8"


def test_encoding_info_to_dict():
    assert get_info(b"\xef\xbb\xbfx").to_dict() == {
        "bom": "UTF-8",
        "bom_length": 3,
        "charset": "UTF-8",
    }
    assert EncodingInfo().to_dict() == {"bom": None, "bom_length": 0, "charset": "UTF-8"}


def test_has_bom():
    assert has_bom(b"\xfe\xff\x00a")
    assert not has_bom(b"abc")


def test_strip_bom_is_idempotent():
    data = b"\xef\xbb\xbfid;name"
    once = strip_bom(data)
    assert once == b"id;name"
    assert strip_bom(once) == once
