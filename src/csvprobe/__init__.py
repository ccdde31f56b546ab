"""CSV format detection and streaming reader with typed field maps."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from csvprobe._utils import DEFAULT_MAX_SAMPLE_LINES, DEFAULT_MIN_CONFIDENCE
from csvprobe.autodetect import FormatAutoDetector, FormatDescriptor
from csvprobe.detectors.enclosure import ENCLOSURE_NONE
from csvprobe.encoding import EncodingInfo
from csvprobe.enums import BomType, CoercionKind, RowSignal
from csvprobe.errors import (
    BinaryContentError,
    ConfigurationError,
    CsvProbeError,
    EmptyInputError,
    FileAccessError,
    LowConfidenceError,
)
from csvprobe.fieldmaps import (
    FieldMap,
    Pattern,
    auto_field,
    bool_field,
    decimal_field,
    int_field,
    register_function,
    string_field,
)
from csvprobe.reader import CsvReader, StreamFilter

__version__ = "1.0.0"
__all__ = [
    "ENCLOSURE_NONE",
    "BinaryContentError",
    "BomType",
    "CoercionKind",
    "ConfigurationError",
    "CsvProbeError",
    "CsvReader",
    "EmptyInputError",
    "EncodingInfo",
    "FieldMap",
    "FileAccessError",
    "FormatAutoDetector",
    "FormatDescriptor",
    "LowConfidenceError",
    "Pattern",
    "RowSignal",
    "StreamFilter",
    "auto_field",
    "bool_field",
    "decimal_field",
    "detect",
    "int_field",
    "register_function",
    "string_field",
]


def detect(
    path: str | os.PathLike[str],
    max_sample_lines: int = DEFAULT_MAX_SAMPLE_LINES,
    min_confidence: int = DEFAULT_MIN_CONFIDENCE,
    stream_filters: Sequence[StreamFilter] = (),
) -> dict[str, Any]:
    """Detect the format of the CSV file at *path*.

    :returns: A dict with ``'delimiter'``, ``'enclosure'``, ``'escapeChar'``,
        ``'charset'`` and ``'confidence'`` keys.
    :raises LowConfidenceError: If the delimiter scores below *min_confidence*.
    """
    detector = FormatAutoDetector(path, max_sample_lines, min_confidence, stream_filters)
    return detector.detect().to_dict()
