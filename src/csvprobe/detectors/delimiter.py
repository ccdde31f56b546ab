"""Delimiter detection by per-line occurrence statistics."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from csvprobe._utils import (
    DEFAULT_MAX_SAMPLE_LINES,
    DEFAULT_MIN_CONFIDENCE,
    _validate_confidence,
    _validate_max_lines,
)
from csvprobe.detectors import CandidateScore, rank_candidates
from csvprobe.detectors.sampling import (
    mean,
    normalize_score,
    read_sample_lines,
    standard_deviation,
)
from csvprobe.errors import EmptyInputError, LowConfidenceError

if TYPE_CHECKING:
    from csvprobe.reader import StreamFilter

logger = logging.getLogger(__name__)

DELIMITER_SEMICOLON = ";"
DELIMITER_COMMA = ","
DELIMITER_PIPE = "|"
DELIMITER_TAB = "\t"
DELIMITER_CARET = "^"
DELIMITER_AMPERSAND = "&"

_CONSISTENCY_WEIGHT = 0.6
_FREQUENCY_WEIGHT = 0.3
_UNIVERSAL_WEIGHT = 0.1

# A candidate that never occurs may still be right for a one-column file.
_SINGLE_COLUMN_SCORE = 0.5


class DelimiterDetector:
    """Score candidate delimiters over sampled lines.

    Each candidate is scored on how stable its per-line count is
    (consistency), how dense it is relative to line length (frequency) and
    how many lines contain it (universality).
    """

    CANDIDATES: ClassVar[tuple[str, ...]] = (
        DELIMITER_SEMICOLON,
        DELIMITER_COMMA,
        DELIMITER_PIPE,
        DELIMITER_TAB,
        DELIMITER_CARET,
        DELIMITER_AMPERSAND,
    )

    def __init__(
        self,
        path: str | os.PathLike[str],
        max_sample_lines: int = DEFAULT_MAX_SAMPLE_LINES,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        charset: str | None = None,
        stream_filters: Sequence[StreamFilter] = (),
    ) -> None:
        _validate_max_lines(max_sample_lines)
        _validate_confidence(min_confidence)
        self._path = path
        self._max_sample_lines = max_sample_lines
        self._min_confidence = min_confidence
        self._charset = charset
        self._stream_filters = tuple(stream_filters)
        self._scores: list[CandidateScore] = []

    def detect(self) -> str:
        """Return the best-scoring delimiter.

        :raises EmptyInputError: If the file has no non-empty line.
        :raises LowConfidenceError: If the best candidate is under the gate.
        """
        lines = read_sample_lines(
            self._path, self._max_sample_lines, self._charset, self._stream_filters
        )
        if not lines:
            msg = (
                "Unable to detect delimiter: File is empty or unreadable: "
                f"{os.fspath(self._path)}"
            )
            raise EmptyInputError(msg)

        self._scores = rank_candidates(
            self._score_candidate(candidate, lines) for candidate in self.CANDIDATES
        )
        best = self._scores[0]
        logger.debug("Delimiter %r (confidence %d)", best.candidate, best.confidence)
        if best.confidence < self._min_confidence:
            raise LowConfidenceError(
                "delimiter", best.candidate, best.confidence, self._min_confidence
            )
        return best.candidate

    @staticmethod
    def _score_candidate(delimiter: str, lines: Sequence[str]) -> CandidateScore:
        counts = [line.count(delimiter) for line in lines]
        avg_count = mean(counts)

        if avg_count == 0.0:
            return CandidateScore(
                delimiter,
                _SINGLE_COLUMN_SCORE,
                normalize_score(_SINGLE_COLUMN_SCORE),
                MappingProxyType(
                    {"consistency": 1.0, "frequency": 0.0, "universal": 1.0}
                ),
            )

        consistency = 1.0 - min(1.0, standard_deviation(counts) / max(avg_count, 1.0))
        avg_line_length = mean([len(line) for line in lines])
        frequency = min(1.0, avg_count / max(avg_line_length, 1.0))
        universal = sum(1 for c in counts if c > 0) / len(counts)

        score = (
            consistency * _CONSISTENCY_WEIGHT
            + frequency * _FREQUENCY_WEIGHT
            + universal * _UNIVERSAL_WEIGHT
        )
        return CandidateScore(
            delimiter,
            score,
            normalize_score(score),
            MappingProxyType(
                {"consistency": consistency, "frequency": frequency, "universal": universal}
            ),
        )

    @property
    def confidence(self) -> int:
        """Confidence (0-100) of the best candidate, 0 before detection."""
        return self._scores[0].confidence if self._scores else 0

    @property
    def scores(self) -> list[CandidateScore]:
        """All candidate scores from the last detection, best first."""
        return list(self._scores)
