"""Exceptions raised by csvprobe."""

from __future__ import annotations


class CsvProbeError(Exception):
    """Base class for every error raised by csvprobe."""


class FileAccessError(CsvProbeError, OSError):
    """The input could not be opened or read."""


class EmptyInputError(CsvProbeError):
    """A detector was given a file with nothing to sample."""


class BinaryContentError(CsvProbeError):
    """The input does not look like text."""


class LowConfidenceError(CsvProbeError):
    """The best candidate for a property scored below the caller's gate."""

    def __init__(
        self, prop: str, candidate: str | None, confidence: int, threshold: int
    ) -> None:
        self.prop = prop
        self.candidate = candidate
        self.confidence = confidence
        self.threshold = threshold
        super().__init__(
            f"Unable to detect {prop}: best candidate {candidate!r} scored "
            f"{confidence}, below the minimum confidence of {threshold}"
        )


class ConfigurationError(CsvProbeError, ValueError):
    """Invalid reader or field-map configuration."""
