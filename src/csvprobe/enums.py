"""Enumerations for csvprobe."""

from __future__ import annotations

import enum


class BomType(enum.Enum):
    """Byte-order marks, valued by the charset label they imply."""

    UTF8 = "UTF-8"
    UTF16_LE = "UTF-16LE"
    UTF16_BE = "UTF-16BE"
    UTF32_LE = "UTF-32LE"
    UTF32_BE = "UTF-32BE"

    @property
    def signature(self) -> bytes:
        """The byte sequence that marks this encoding."""
        return _SIGNATURES[self]

    @property
    def length(self) -> int:
        """Number of bytes occupied by the mark."""
        return len(_SIGNATURES[self])

    @classmethod
    def detect(cls, data: bytes) -> BomType | None:
        """Return the BOM type that *data* starts with, or ``None``."""
        for bom_type in _DETECTION_ORDER:
            if data.startswith(_SIGNATURES[bom_type]):
                return bom_type
        return None


_SIGNATURES: dict[BomType, bytes] = {
    BomType.UTF32_BE: b"\x00\x00\xfe\xff",
    BomType.UTF32_LE: b"\xff\xfe\x00\x00",
    BomType.UTF8: b"\xef\xbb\xbf",
    BomType.UTF16_BE: b"\xfe\xff",
    BomType.UTF16_LE: b"\xff\xfe",
}

# Longest first: the UTF-32-LE mark starts with the UTF-16-LE one.
_DETECTION_ORDER: tuple[BomType, ...] = tuple(
    sorted(_SIGNATURES, key=lambda b: len(_SIGNATURES[b]), reverse=True)
)


class CoercionKind(enum.Enum):
    """Final type coercion applied by a field map, valued by its tag."""

    INT = "int"
    DECIMAL = "decimal"
    BOOL = "bool"
    STRING = "string"
    AUTO = "auto"


class RowSignal(enum.Enum):
    """In-band results of reading a row that are not records.

    End of stream is reported as ``None``, never as a signal.
    """

    EMPTY = "empty"
    FILTERED = "filtered"
