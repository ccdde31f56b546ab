# tests/test_api.py
from __future__ import annotations

import pytest

import csvprobe


def test_detect_returns_dict(write_csv):
    result = csvprobe.detect(write_csv("a;b;c\n1;2;3\n"))
    assert isinstance(result, dict)
    assert result["delimiter"] == ";"
    assert result["enclosure"] == csvprobe.ENCLOSURE_NONE
    assert result["charset"] == "UTF-8"
    assert isinstance(result["confidence"], dict)


def test_detect_latin1(write_csv):
    path = write_csv("nom;ville\nRené;Orléans\nZoé;Besançon\n", encoding="latin-1")
    result = csvprobe.detect(path)
    assert result["charset"] == "ISO-8859-1"
    assert result["delimiter"] == ";"


def test_detect_missing_file(tmp_path):
    with pytest.raises(csvprobe.FileAccessError):
        csvprobe.detect(tmp_path / "missing.csv")


def test_detect_empty_file(write_csv):
    with pytest.raises(csvprobe.EmptyInputError):
        csvprobe.detect(write_csv(b""))


def test_detect_binary_file(write_csv):
    with pytest.raises(csvprobe.BinaryContentError):
        csvprobe.detect(write_csv(b"\x00\x01\x02\x03" * 64))


def test_detect_low_confidence(write_csv):
    with pytest.raises(csvprobe.LowConfidenceError) as exc_info:
        csvprobe.detect(write_csv("alpha\nbeta\n"), min_confidence=90)
    assert exc_info.value.threshold == 90


def test_errors_share_a_base_class():
    for error in (
        csvprobe.FileAccessError,
        csvprobe.EmptyInputError,
        csvprobe.LowConfidenceError,
        csvprobe.BinaryContentError,
        csvprobe.ConfigurationError,
    ):
        assert issubclass(error, csvprobe.CsvProbeError)
    assert issubclass(csvprobe.FileAccessError, OSError)
    assert issubclass(csvprobe.ConfigurationError, ValueError)


def test_invalid_max_sample_lines(write_csv):
    with pytest.raises(ValueError, match="max_sample_lines"):
        csvprobe.detect(write_csv("a;b\n"), max_sample_lines=0)


def test_version():
    assert csvprobe.__version__ == "1.0.0"
