# tests/test_charset.py
from __future__ import annotations

import pytest

from csvprobe.detectors.charset import CharsetDetector, is_valid_utf8
from csvprobe.errors import BinaryContentError


def _detect(path):
    detector = CharsetDetector(path)
    return detector.detect(), detector.confidence


def test_utf16_bom_is_not_binary(write_csv):
    path = write_csv(b"\xff\xfe" + "id;name\r\n1;Zoë\r\n".encode("utf-16-le"))
    assert _detect(path) == ("UTF-16LE", 100)


def test_utf32_be_bom(write_csv):
    path = write_csv(b"\x00\x00\xfe\xff" + "a;b\n".encode("utf-32-be"))
    assert _detect(path) == ("UTF-32BE", 100)


def test_utf8_bom(write_csv):
    path = write_csv(b"\xef\xbb\xbfa;b\n")
    assert _detect(path) == ("UTF-8", 100)


def test_ascii_reported_as_utf8(write_csv):
    assert _detect(write_csv("a;b;c\n1;2;3\n")) == ("UTF-8", 95)


def test_valid_utf8(write_csv):
    assert _detect(write_csv("city;name\nKöln;José\n")) == ("UTF-8", 90)


def test_latin1_fallback(write_csv):
    path = write_csv("city;name\nKöln;José\n", encoding="latin-1")
    assert _detect(path) == ("ISO-8859-1", 70)


def test_empty_file(write_csv):
    assert _detect(write_csv(b"")) == ("UTF-8", 50)


def test_binary_content_rejected(write_csv):
    path = write_csv(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")
    with pytest.raises(BinaryContentError, match="Binary data"):
        CharsetDetector(path).detect()


def test_charset_is_none_before_detection(write_csv):
    detector = CharsetDetector(write_csv("a;b\n"))
    assert detector.charset is None
    assert detector.confidence == 0
    detector.detect()
    assert detector.charset == "UTF-8"


def test_is_valid_utf8_accepts_truncated_tail():
    assert is_valid_utf8("abcé".encode()[:-1])


def test_is_valid_utf8_rejects_bad_continuation():
    assert not is_valid_utf8(b"\xc3A")


def test_is_valid_utf8_rejects_surrogates():
    assert not is_valid_utf8(b"\xed\xa0\x80")


def test_is_valid_utf8_rejects_overlong():
    assert not is_valid_utf8(b"\xc0\xaf")
    assert not is_valid_utf8(b"\xe0\x80\xaf")


def test_is_valid_utf8_rejects_latin1():
    assert not is_valid_utf8("Köln".encode("latin-1"))
