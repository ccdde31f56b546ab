# tests/test_autodetect.py
from __future__ import annotations

import gzip

import pytest

from csvprobe.autodetect import FormatAutoDetector, FormatDescriptor
from csvprobe.detectors.enclosure import ENCLOSURE_NONE
from csvprobe.errors import ConfigurationError, LowConfidenceError
from csvprobe.reader import StreamFilter


def test_detect_quoted_semicolon_file(write_csv):
    path = write_csv('"a";"b";"c"\n"1";"2";"3"\n"4";"5";"6"\n')
    fmt = FormatAutoDetector(path).detect()
    assert fmt.delimiter == ";"
    assert fmt.enclosure == '"'
    assert fmt.escape_char == "\\"
    assert fmt.charset == "UTF-8"
    assert set(fmt.confidence) == {"charset", "delimiter", "enclosure", "escapeChar"}
    assert fmt.confidence["charset"] == 95


def test_detect_plain_comma_file(write_csv):
    path = write_csv("name,age,city\nJohn,30,NYC\nJane,25,LA\n")
    fmt = FormatAutoDetector(path).detect()
    assert fmt.delimiter == ","
    assert fmt.enclosure == ENCLOSURE_NONE
    assert fmt.escape_char == "\\"
    assert fmt.confidence["escapeChar"] == 0


def test_detect_utf16_file(write_csv):
    content = "id;name;city\r\n1;Zoë;Köln\r\n2;Ana;Oslo\r\n"
    path = write_csv(b"\xff\xfe" + content.encode("utf-16-le"))
    fmt = FormatAutoDetector(path).detect()
    assert fmt.charset == "UTF-16LE"
    assert fmt.delimiter == ";"


def test_detect_through_stream_filter(tmp_path):
    path = tmp_path / "data.csv.gz"
    path.write_bytes(gzip.compress(b"a|b|c\n1|2|3\n"))
    fmt = FormatAutoDetector(path, stream_filters=[StreamFilter("gzip")]).detect()
    assert fmt.delimiter == "|"


def test_each_stage_runs_its_dependencies_once(write_csv):
    detector = FormatAutoDetector(write_csv("a;b\n1;2\n"))
    assert detector.confidence_scores == {}
    assert detector.detect_escape_char() == "\\"
    assert set(detector.confidence_scores) == {
        "charset",
        "delimiter",
        "enclosure",
        "escapeChar",
    }
    assert detector.detect_delimiter() == ";"


def test_delimiter_confidence_recorded_before_failure(write_csv):
    detector = FormatAutoDetector(write_csv("alpha\nbeta\n"))
    with pytest.raises(LowConfidenceError):
        detector.detect()
    assert detector.confidence_scores["delimiter"] == 50
    assert detector.confidence_scores["charset"] == 95


def test_min_confidence_is_configurable(write_csv):
    fmt = FormatAutoDetector(write_csv("alpha\nbeta\n"), min_confidence=40).detect()
    assert fmt.delimiter == ";"


def test_descriptor_confidence_is_read_only(write_csv):
    fmt = FormatAutoDetector(write_csv("a;b\n1;2\n")).detect()
    with pytest.raises(TypeError):
        fmt.confidence["delimiter"] = 1  # type: ignore[index]


def test_descriptor_dict_round_trip():
    fmt = FormatDescriptor(";", '"', "\\", "UTF-8", {"delimiter": 80})
    data = fmt.to_dict()
    assert data == {
        "delimiter": ";",
        "enclosure": '"',
        "escapeChar": "\\",
        "charset": "UTF-8",
        "confidence": {"delimiter": 80},
    }
    assert FormatDescriptor.from_dict(data) == fmt


def test_descriptor_from_dict_missing_property():
    with pytest.raises(ConfigurationError, match="delimiter"):
        FormatDescriptor.from_dict({"enclosure": '"', "escapeChar": "\\", "charset": "UTF-8"})


def test_descriptor_from_dict_without_confidence():
    fmt = FormatDescriptor.from_dict(
        {"delimiter": ",", "enclosure": "", "escapeChar": "\\", "charset": "UTF-8"}
    )
    assert dict(fmt.confidence) == {}
