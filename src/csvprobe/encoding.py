"""Byte-order-mark inspection and charset label helpers."""

from __future__ import annotations

import codecs
import dataclasses

from csvprobe._utils import BASE_CHARSET, BOM_PROBE_SIZE
from csvprobe.enums import BomType
from csvprobe.errors import ConfigurationError


@dataclasses.dataclass(frozen=True, slots=True)
class EncodingInfo:
    """BOM presence and the charset it implies for a byte prefix."""

    bom: BomType | None = None
    bom_length: int = 0
    charset: str = BASE_CHARSET

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert this info to a plain dict.

        :returns: A dict with ``'bom'``, ``'bom_length'`` and ``'charset'`` keys.
        """
        return {
            "bom": self.bom.value if self.bom is not None else None,
            "bom_length": self.bom_length,
            "charset": self.charset,
        }


def get_info(data: bytes) -> EncodingInfo:
    """Resolve BOM information from the first bytes of a file."""
    bom = BomType.detect(data[:BOM_PROBE_SIZE])
    if bom is None:
        return EncodingInfo()
    return EncodingInfo(bom=bom, bom_length=bom.length, charset=bom.value)


def has_bom(data: bytes) -> bool:
    """Return True if *data* starts with any known BOM."""
    return BomType.detect(data) is not None


def strip_bom(data: bytes) -> bytes:
    """Return *data* without its leading BOM, if it has one."""
    bom = BomType.detect(data)
    if bom is None:
        return data
    return data[bom.length :]


def python_codec(charset: str) -> str:
    """Map a charset label such as ``UTF-16LE`` to a Python codec name.

    :raises ConfigurationError: If the label names no known codec.
    """
    try:
        return codecs.lookup(charset).name
    except LookupError:
        msg = f"Unknown charset: {charset!r}"
        raise ConfigurationError(msg) from None


def is_utf8(charset: str) -> bool:
    """Return True if *charset* is a label for UTF-8."""
    return python_codec(charset) == "utf-8"
