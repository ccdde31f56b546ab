# tests/test_encoding.py
from __future__ import annotations

import pytest

from csvprobe.encoding import is_utf8, python_codec
from csvprobe.errors import ConfigurationError


def test_python_codec_resolves_labels():
    assert python_codec("UTF-8") == "utf-8"
    assert python_codec("UTF-16LE") == "utf-16-le"
    assert python_codec("UTF-32BE") == "utf-32-be"
    assert python_codec("ISO-8859-1") == python_codec("latin-1")


def test_python_codec_unknown_label():
    with pytest.raises(ConfigurationError, match="Unknown charset"):
        python_codec("not-a-charset")


def test_unknown_label_is_a_value_error():
    with pytest.raises(ValueError):
        python_codec("not-a-charset")


def test_is_utf8():
    assert is_utf8("UTF-8")
    assert is_utf8("utf8")
    assert not is_utf8("UTF-16LE")
    assert not is_utf8("ISO-8859-1")
