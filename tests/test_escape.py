# tests/test_escape.py
from __future__ import annotations

from csvprobe.detectors.enclosure import ENCLOSURE_NONE, ENCLOSURE_TILDES
from csvprobe.detectors.escape import (
    ESCAPE_BACKSLASH,
    ESCAPE_DOUBLE_QUOTE,
    EscapeCharDetector,
)


def test_no_enclosure_means_backslash_without_sampling(tmp_path):
    # The file does not exist: nothing must be read.
    detector = EscapeCharDetector(tmp_path / "missing.csv", ENCLOSURE_NONE)
    assert detector.detect() == ESCAPE_BACKSLASH
    assert detector.confidence == 0


def test_backslash_escapes(write_csv):
    path = write_csv('"say \\"hi\\"";x\n"a\\\\b";y\n')
    detector = EscapeCharDetector(path, '"')
    assert detector.detect() == ESCAPE_BACKSLASH
    assert detector.confidence == 100


def test_doubled_quotes(write_csv):
    path = write_csv('"say ""hi""",x\n"a ""b""",y\n')
    detector = EscapeCharDetector(path, '"')
    assert detector.detect() == ESCAPE_DOUBLE_QUOTE
    assert detector.scores[0].components["patterns"] == 4.0


def test_no_escapes_falls_back_to_backslash(write_csv):
    detector = EscapeCharDetector(write_csv('"a","b"\n"c","d"\n'), '"')
    assert detector.detect() == ESCAPE_BACKSLASH
    assert detector.confidence == 0


def test_doubled_quotes_ignored_for_other_enclosures(write_csv):
    path = write_csv('~a ""b""~;~c~\n')
    detector = EscapeCharDetector(path, ENCLOSURE_TILDES)
    assert detector.detect() == ESCAPE_BACKSLASH
    quote = next(s for s in detector.scores if s.candidate == ESCAPE_DOUBLE_QUOTE)
    assert quote.score == 0.0


def test_empty_file(write_csv):
    assert EscapeCharDetector(write_csv(b""), '"').detect() == ESCAPE_BACKSLASH
