"""FormatAutoDetector: runs every detector in dependency order."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from csvprobe._utils import (
    DEFAULT_MAX_SAMPLE_LINES,
    DEFAULT_MIN_CONFIDENCE,
    _validate_confidence,
    _validate_max_lines,
)
from csvprobe.detectors.charset import CharsetDetector
from csvprobe.detectors.delimiter import DelimiterDetector
from csvprobe.detectors.enclosure import EnclosureDetector
from csvprobe.detectors.escape import EscapeCharDetector
from csvprobe.errors import ConfigurationError, LowConfidenceError

if TYPE_CHECKING:
    from csvprobe.reader import StreamFilter

logger = logging.getLogger(__name__)

_PROPERTIES = ("delimiter", "enclosure", "escapeChar", "charset")


@dataclasses.dataclass(frozen=True, slots=True)
class FormatDescriptor:
    """Structural parameters of a delimited file with per-property confidence."""

    delimiter: str
    enclosure: str
    escape_char: str
    charset: str
    confidence: Mapping[str, int] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        # Freeze a caller-supplied dict as well.
        object.__setattr__(self, "confidence", MappingProxyType(dict(self.confidence)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the plain-dict form used for exchange.

        :returns: A dict with ``'delimiter'``, ``'enclosure'``,
            ``'escapeChar'``, ``'charset'`` and ``'confidence'`` keys.
        """
        return {
            "delimiter": self.delimiter,
            "enclosure": self.enclosure,
            "escapeChar": self.escape_char,
            "charset": self.charset,
            "confidence": dict(self.confidence),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FormatDescriptor:
        """Rebuild a descriptor from :meth:`to_dict` output.

        :raises ConfigurationError: If a property is missing or not a string.
        """
        values = {}
        for key in _PROPERTIES:
            value = data.get(key)
            if not isinstance(value, str):
                msg = f"Invalid format descriptor: {key!r} must be a string, got {value!r}"
                raise ConfigurationError(msg)
            values[key] = value
        confidence = data.get("confidence") or {}
        if not isinstance(confidence, Mapping):
            msg = "Invalid format descriptor: 'confidence' must be a mapping"
            raise ConfigurationError(msg)
        return cls(
            delimiter=values["delimiter"],
            enclosure=values["enclosure"],
            escape_char=values["escapeChar"],
            charset=values["charset"],
            confidence={str(k): int(v) for k, v in confidence.items()},
        )


class FormatAutoDetector:
    """Detect charset, delimiter, enclosure and escape character of a file.

    Each property is detected at most once and its value is memoized, so a
    later stage reuses the values of the stages it depends on instead of
    running them again::

        detector = FormatAutoDetector("export.csv")
        fmt = detector.detect()
        fmt.delimiter, fmt.confidence["delimiter"]

    Only the delimiter stage is gated by *min_confidence*; its confidence is
    recorded before a :class:`LowConfidenceError` propagates.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        max_sample_lines: int = DEFAULT_MAX_SAMPLE_LINES,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        stream_filters: Sequence[StreamFilter] = (),
    ) -> None:
        _validate_max_lines(max_sample_lines)
        _validate_confidence(min_confidence)
        self._path = path
        self._max_sample_lines = max_sample_lines
        self._min_confidence = min_confidence
        self._stream_filters = tuple(stream_filters)
        self._values: dict[str, str] = {}
        self._confidence: dict[str, int] = {}

    def detect(self) -> FormatDescriptor:
        """Detect every property, in dependency order."""
        charset = self.detect_charset()
        delimiter = self.detect_delimiter()
        enclosure = self.detect_enclosure()
        escape_char = self.detect_escape_char()
        return FormatDescriptor(
            delimiter=delimiter,
            enclosure=enclosure,
            escape_char=escape_char,
            charset=charset,
            confidence=self.confidence_scores,
        )

    def detect_charset(self) -> str:
        """Detect (once) and return the charset."""
        if "charset" not in self._values:
            detector = CharsetDetector(self._path, self._stream_filters)
            self._record("charset", detector.detect(), detector.confidence)
        return self._values["charset"]

    def detect_delimiter(self) -> str:
        """Detect (once) and return the delimiter.

        :raises LowConfidenceError: If the delimiter is under the gate.
        """
        if "delimiter" not in self._values:
            detector = DelimiterDetector(
                self._path,
                self._max_sample_lines,
                self._min_confidence,
                self.detect_charset(),
                self._stream_filters,
            )
            try:
                delimiter = detector.detect()
            except LowConfidenceError as e:
                self._confidence["delimiter"] = e.confidence
                raise
            self._record("delimiter", delimiter, detector.confidence)
        return self._values["delimiter"]

    def detect_enclosure(self) -> str:
        """Detect (once) and return the enclosure."""
        if "enclosure" not in self._values:
            detector = EnclosureDetector(
                self._path,
                self.detect_delimiter(),
                self._max_sample_lines,
                self.detect_charset(),
                self._stream_filters,
            )
            self._record("enclosure", detector.detect(), detector.confidence)
        return self._values["enclosure"]

    def detect_escape_char(self) -> str:
        """Detect (once) and return the escape character."""
        if "escapeChar" not in self._values:
            detector = EscapeCharDetector(
                self._path,
                self.detect_enclosure(),
                self._max_sample_lines,
                self.detect_charset(),
                self._stream_filters,
            )
            self._record("escapeChar", detector.detect(), detector.confidence)
        return self._values["escapeChar"]

    def _record(self, prop: str, value: str, confidence: int) -> None:
        self._values[prop] = value
        self._confidence[prop] = confidence
        logger.debug("Detected %s=%r (confidence %d)", prop, value, confidence)

    @property
    def confidence_scores(self) -> dict[str, int]:
        """Confidence recorded so far for each detected property."""
        return dict(self._confidence)
