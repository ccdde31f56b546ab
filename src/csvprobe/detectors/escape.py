"""Escape character detection for enclosed fields."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from csvprobe._utils import DEFAULT_MAX_SAMPLE_LINES, LOW_CONFIDENCE_FALLBACK, _validate_max_lines
from csvprobe.detectors import CandidateScore, rank_candidates
from csvprobe.detectors.enclosure import ENCLOSURE_NONE, ENCLOSURE_QUOTES
from csvprobe.detectors.sampling import normalize_score, read_sample_lines

if TYPE_CHECKING:
    from csvprobe.reader import StreamFilter

logger = logging.getLogger(__name__)

ESCAPE_BACKSLASH = "\\"
ESCAPE_DOUBLE_QUOTE = '"'

# Pattern density is tiny next to line length.
_DENSITY_SCALE = 100.0
_BACKSLASH_BOOST = 1.2
_DOUBLE_QUOTE_BOOST = 1.1


class EscapeCharDetector:
    """Score backslash escaping against doubled-quote escaping.

    Without an enclosure there is nothing to escape and backslash is
    returned without sampling; a winner under 30 confidence also yields
    backslash.
    """

    CANDIDATES: ClassVar[tuple[str, ...]] = (ESCAPE_BACKSLASH, ESCAPE_DOUBLE_QUOTE)

    def __init__(
        self,
        path: str | os.PathLike[str],
        enclosure: str,
        max_sample_lines: int = DEFAULT_MAX_SAMPLE_LINES,
        charset: str | None = None,
        stream_filters: Sequence[StreamFilter] = (),
    ) -> None:
        _validate_max_lines(max_sample_lines)
        self._path = path
        self._enclosure = enclosure
        self._max_sample_lines = max_sample_lines
        self._charset = charset
        self._stream_filters = tuple(stream_filters)
        self._scores: list[CandidateScore] = []

    def detect(self) -> str:
        """Return the detected escape character."""
        if self._enclosure == ENCLOSURE_NONE:
            return ESCAPE_BACKSLASH

        lines = read_sample_lines(
            self._path, self._max_sample_lines, self._charset, self._stream_filters
        )
        total_chars = sum(len(line) for line in lines)
        if not total_chars:
            return ESCAPE_BACKSLASH

        self._scores = rank_candidates(
            self._score_candidate(candidate, lines, total_chars)
            for candidate in self.CANDIDATES
        )
        best = self._scores[0]
        if best.confidence < LOW_CONFIDENCE_FALLBACK:
            logger.debug(
                "Escape %r too weak (confidence %d), assuming backslash",
                best.candidate,
                best.confidence,
            )
            return ESCAPE_BACKSLASH
        logger.debug("Escape %r (confidence %d)", best.candidate, best.confidence)
        return best.candidate

    def _score_candidate(
        self, escape_char: str, lines: Sequence[str], total_chars: int
    ) -> CandidateScore:
        occurrences = sum(self._count_patterns(line, escape_char) for line in lines)
        score = min(1.0, occurrences / total_chars * _DENSITY_SCALE)
        if escape_char == ESCAPE_BACKSLASH:
            score *= _BACKSLASH_BOOST
        elif self._enclosure == ENCLOSURE_QUOTES:
            score *= _DOUBLE_QUOTE_BOOST
        score = min(1.0, score)
        return CandidateScore(
            escape_char,
            score,
            normalize_score(score),
            MappingProxyType({"patterns": float(occurrences)}),
        )

    def _count_patterns(self, line: str, escape_char: str) -> int:
        if escape_char == ESCAPE_BACKSLASH:
            patterns = ("\\" + self._enclosure, "\\n", "\\r", "\\t", "\\\\")
            return sum(line.count(pattern) for pattern in patterns)

        if self._enclosure != ENCLOSURE_QUOTES:
            return 0
        # Doubled quotes; the second quote of a pair cannot open another.
        count = 0
        i = 0
        while i < len(line) - 1:
            if line[i] == '"' and line[i + 1] == '"':
                count += 1
                i += 2
            else:
                i += 1
        return count

    @property
    def confidence(self) -> int:
        """Confidence (0-100) of the best candidate, 0 before detection."""
        return self._scores[0].confidence if self._scores else 0

    @property
    def scores(self) -> list[CandidateScore]:
        """All candidate scores from the last detection, best first."""
        return list(self._scores)
