"""Enclosure (field quoting character) detection."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from csvprobe._utils import DEFAULT_MAX_SAMPLE_LINES, LOW_CONFIDENCE_FALLBACK, _validate_max_lines
from csvprobe.detectors import CandidateScore, rank_candidates
from csvprobe.detectors.sampling import mean, normalize_score, read_sample_lines

if TYPE_CHECKING:
    from csvprobe.reader import StreamFilter

logger = logging.getLogger(__name__)

ENCLOSURE_QUOTES = '"'
ENCLOSURE_TILDES = "~"
#: "No enclosure": never equal to a real one-character enclosure.
ENCLOSURE_NONE = ""

_BALANCE_WEIGHT = 0.5
_POSITIONAL_WEIGHT = 0.3
_FREQUENCY_WEIGHT = 0.2

# Enclosures are sparse compared to delimiters.
_FREQUENCY_SCALE = 10.0

# Positional score of a line with no occurrence at all.
_NEUTRAL_POSITIONAL = 0.5


class EnclosureDetector:
    """Score candidate enclosures against a known delimiter.

    Quote-like candidates are scored on pairing balance, on whether they
    sit at field boundaries and on frequency.  The "none" hypothesis scores
    the share of lines that contain the delimiter but no quote-like
    character.  A winner under 30 confidence is replaced by "none".
    """

    CANDIDATES: ClassVar[tuple[str, ...]] = (
        ENCLOSURE_QUOTES,
        ENCLOSURE_TILDES,
        ENCLOSURE_NONE,
    )

    def __init__(
        self,
        path: str | os.PathLike[str],
        delimiter: str,
        max_sample_lines: int = DEFAULT_MAX_SAMPLE_LINES,
        charset: str | None = None,
        stream_filters: Sequence[StreamFilter] = (),
    ) -> None:
        _validate_max_lines(max_sample_lines)
        self._path = path
        self._delimiter = delimiter
        self._max_sample_lines = max_sample_lines
        self._charset = charset
        self._stream_filters = tuple(stream_filters)
        self._scores: list[CandidateScore] = []

    def detect(self) -> str:
        """Return the detected enclosure or :data:`ENCLOSURE_NONE`."""
        lines = read_sample_lines(
            self._path, self._max_sample_lines, self._charset, self._stream_filters
        )
        if not lines:
            return ENCLOSURE_NONE

        self._scores = rank_candidates(
            self._score_none(lines)
            if candidate == ENCLOSURE_NONE
            else self._score_candidate(candidate, lines)
            for candidate in self.CANDIDATES
        )
        best = self._scores[0]
        if best.confidence < LOW_CONFIDENCE_FALLBACK:
            logger.debug(
                "Enclosure %r too weak (confidence %d), assuming none",
                best.candidate,
                best.confidence,
            )
            return ENCLOSURE_NONE
        logger.debug("Enclosure %r (confidence %d)", best.candidate, best.confidence)
        return best.candidate

    def _score_candidate(self, enclosure: str, lines: Sequence[str]) -> CandidateScore:
        counts = [line.count(enclosure) for line in lines]
        balance = mean([1.0 if c % 2 == 0 else 0.0 for c in counts])
        positional = mean([self._positional_correctness(line, enclosure) for line in lines])

        avg_line_length = mean([len(line) for line in lines])
        avg_per_line = sum(counts) / len(lines)
        frequency = min(1.0, avg_per_line / max(avg_line_length, 1.0) * _FREQUENCY_SCALE)

        score = (
            balance * _BALANCE_WEIGHT
            + positional * _POSITIONAL_WEIGHT
            + frequency * _FREQUENCY_WEIGHT
        )
        return CandidateScore(
            enclosure,
            score,
            normalize_score(score),
            MappingProxyType(
                {"balance": balance, "positional": positional, "frequency": frequency}
            ),
        )

    def _score_none(self, lines: Sequence[str]) -> CandidateScore:
        unenclosed = sum(
            1
            for line in lines
            if self._delimiter in line
            and ENCLOSURE_QUOTES not in line
            and ENCLOSURE_TILDES not in line
        )
        score = unenclosed / len(lines)
        return CandidateScore(
            ENCLOSURE_NONE,
            score,
            normalize_score(score),
            MappingProxyType({"balance": 1.0, "positional": score, "frequency": 0.0}),
        )

    def _positional_correctness(self, line: str, enclosure: str) -> float:
        """Share of occurrences at line start or next to the delimiter."""
        positions = [i for i, char in enumerate(line) if char == enclosure]
        if not positions:
            return _NEUTRAL_POSITIONAL

        last = len(line) - 1
        correct = 0
        for pos in positions:
            if (
                pos == 0
                or line[pos - 1] == self._delimiter
                or (pos < last and line[pos + 1] == self._delimiter)
            ):
                correct += 1
        return correct / len(positions)

    @property
    def confidence(self) -> int:
        """Confidence (0-100) of the best candidate, 0 before detection."""
        return self._scores[0].confidence if self._scores else 0

    @property
    def scores(self) -> list[CandidateScore]:
        """All candidate scores from the last detection, best first."""
        return list(self._scores)
