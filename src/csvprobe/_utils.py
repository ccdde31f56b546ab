"""Internal shared defaults and validators for csvprobe."""

from __future__ import annotations

#: Charset assumed when nothing else is known.
BASE_CHARSET: str = "UTF-8"

#: Default number of non-empty lines sampled by the detectors.
DEFAULT_MAX_SAMPLE_LINES: int = 20

#: Default minimum confidence (0-100) the delimiter must reach.
DEFAULT_MIN_CONFIDENCE: int = 70

#: Bytes examined by the binary-content heuristic.
BINARY_SAMPLE_SIZE: int = 8192

#: Bytes examined by the charset heuristics.
CHARSET_SAMPLE_SIZE: int = 8192

#: Enclosure and escape candidates scoring under this fall back to defaults.
LOW_CONFIDENCE_FALLBACK: int = 30

#: Bytes needed to recognise every BOM signature.
BOM_PROBE_SIZE: int = 4


def _validate_max_lines(max_lines: int) -> None:
    """Raise ValueError if *max_lines* is not a positive integer."""
    if isinstance(max_lines, bool) or not isinstance(max_lines, int) or max_lines < 1:
        msg = "max_sample_lines must be a positive integer"
        raise ValueError(msg)


def _validate_confidence(confidence: int) -> None:
    """Raise ValueError if *confidence* is not an integer in 0..100."""
    if (
        isinstance(confidence, bool)
        or not isinstance(confidence, int)
        or not 0 <= confidence <= 100
    ):
        msg = "min_confidence must be an integer between 0 and 100"
        raise ValueError(msg)
