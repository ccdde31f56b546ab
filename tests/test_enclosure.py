# tests/test_enclosure.py
from __future__ import annotations

from csvprobe.detectors.enclosure import (
    ENCLOSURE_NONE,
    ENCLOSURE_QUOTES,
    ENCLOSURE_TILDES,
    EnclosureDetector,
)


def test_double_quotes(write_csv):
    path = write_csv('"a","b"\n"1","2"\n')
    detector = EnclosureDetector(path, ",")
    assert detector.detect() == ENCLOSURE_QUOTES
    assert detector.confidence >= 90


def test_tildes(write_csv):
    path = write_csv("~a~;~b~\n~1~;~2~\n")
    assert EnclosureDetector(path, ";").detect() == ENCLOSURE_TILDES


def test_unquoted_data_has_no_enclosure(write_csv):
    detector = EnclosureDetector(write_csv("a,b\n1,2\n"), ",")
    assert detector.detect() == ENCLOSURE_NONE
    assert detector.confidence == 100


def test_partially_quoted_fields(write_csv):
    path = write_csv('id;name\n1;"Smith; John"\n2;"Doe; Jane"\n')
    assert EnclosureDetector(path, ";").detect() == ENCLOSURE_QUOTES


def test_empty_file_has_no_enclosure(write_csv):
    assert EnclosureDetector(write_csv(b""), ",").detect() == ENCLOSURE_NONE


def test_score_components(write_csv):
    detector = EnclosureDetector(write_csv('"a","b"\n'), ",")
    detector.detect()
    best = detector.scores[0]
    assert best.candidate == ENCLOSURE_QUOTES
    assert best.components["balance"] == 1.0
    assert best.components["positional"] == 0.75
    assert best.components["frequency"] == 1.0


def test_weak_winner_falls_back_to_none(write_csv):
    class QuoteOnlyDetector(EnclosureDetector):
        CANDIDATES = (ENCLOSURE_QUOTES, ENCLOSURE_NONE)

    # One unbalanced quote in the middle of a word on every line.
    path = write_csv('ab"cd,ef\ngh"ij,kl\n')
    detector = QuoteOnlyDetector(path, ",")
    assert detector.detect() == ENCLOSURE_NONE
    assert detector.scores[0].candidate == ENCLOSURE_QUOTES
    assert detector.confidence == 20
