"""Charset detection: BOM, then ASCII/UTF-8 validity, then Latin-1."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import TYPE_CHECKING

from csvprobe._utils import BASE_CHARSET, BOM_PROBE_SIZE, CHARSET_SAMPLE_SIZE
from csvprobe.detectors.sampling import is_binary, open_source
from csvprobe.encoding import get_info
from csvprobe.enums import BomType
from csvprobe.errors import BinaryContentError

if TYPE_CHECKING:
    from csvprobe.reader import StreamFilter

logger = logging.getLogger(__name__)

LATIN1_CHARSET = "ISO-8859-1"

# Confidence per resolution step.
_BOM_CONFIDENCE = 100
_ASCII_CONFIDENCE = 95
_UTF8_CONFIDENCE = 90
_LATIN1_CONFIDENCE = 70
_DEFAULT_CONFIDENCE = 50

# Wide encodings pad code units with null bytes, which the binary
# heuristic would reject; their BOM is proof enough of text.
_WIDE_BOMS: frozenset[BomType] = frozenset(
    {BomType.UTF16_LE, BomType.UTF16_BE, BomType.UTF32_LE, BomType.UTF32_BE}
)


def is_valid_utf8(data: bytes) -> bool:
    """Validate UTF-8 byte structure.

    A multi-byte sequence cut off by the end of *data* is accepted, since
    samples are taken at arbitrary byte offsets.
    """
    i = 0
    length = len(data)

    while i < length:
        byte = data[i]

        if byte < 0x80:
            i += 1
            continue

        # 0xC0-0xC1 are overlong 2-byte encodings of ASCII, so start at 0xC2.
        if 0xC2 <= byte <= 0xDF:
            seq_len = 2
        elif 0xE0 <= byte <= 0xEF:
            seq_len = 3
        elif 0xF0 <= byte <= 0xF4:
            seq_len = 4
        else:
            return False

        if i + seq_len > length:
            # Truncated final sequence: the bytes that are present must
            # still be continuation bytes.
            return all(0x80 <= b <= 0xBF for b in data[i + 1 :])

        for j in range(1, seq_len):
            if not (0x80 <= data[i + j] <= 0xBF):
                return False

        if seq_len == 3:
            # Overlong 3-byte forms and UTF-16 surrogates
            if byte == 0xE0 and data[i + 1] < 0xA0:
                return False
            if byte == 0xED and data[i + 1] > 0x9F:
                return False
        elif seq_len == 4:
            # Overlong 4-byte forms and code points above U+10FFFF
            if byte == 0xF0 and data[i + 1] < 0x90:
                return False
            if byte == 0xF4 and data[i + 1] > 0x8F:
                return False

        i += seq_len

    return True


class CharsetDetector:
    """Resolve the charset of a delimited text file.

    Resolution order: BOM (100), pure ASCII reported as UTF-8 (95), valid
    UTF-8 (90), high bytes that are not UTF-8 as ISO-8859-1 (70), and
    UTF-8 (50) when nothing else applies.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        stream_filters: Sequence[StreamFilter] = (),
    ) -> None:
        self._path = path
        self._stream_filters = tuple(stream_filters)
        self._charset: str | None = None
        self._confidence = 0

    def detect(self) -> str:
        """Detect the charset.

        :raises FileAccessError: If the file cannot be opened.
        :raises BinaryContentError: If the file does not look like text.
        """
        with open_source(self._path, self._stream_filters) as fp:
            head = fp.read(CHARSET_SAMPLE_SIZE)

        info = get_info(head[:BOM_PROBE_SIZE])
        if info.bom not in _WIDE_BOMS and is_binary(
            self._path, stream_filters=self._stream_filters
        ):
            msg = f"Unable to detect charset: Binary data detected in {os.fspath(self._path)}"
            raise BinaryContentError(msg)

        if info.bom is not None:
            charset, confidence = info.charset, _BOM_CONFIDENCE
        else:
            charset, confidence = self._from_heuristics(head)

        self._charset = charset
        self._confidence = confidence
        logger.debug("Charset %s (confidence %d)", charset, confidence)
        return charset

    @staticmethod
    def _from_heuristics(sample: bytes) -> tuple[str, int]:
        if not sample:
            return BASE_CHARSET, _DEFAULT_CONFIDENCE
        if sample.isascii():
            return BASE_CHARSET, _ASCII_CONFIDENCE
        if is_valid_utf8(sample):
            return BASE_CHARSET, _UTF8_CONFIDENCE
        # Not ASCII and not UTF-8, so high bytes are present.
        return LATIN1_CHARSET, _LATIN1_CONFIDENCE

    @property
    def charset(self) -> str | None:
        """The detected charset, or ``None`` before :meth:`detect`."""
        return self._charset

    @property
    def confidence(self) -> int:
        """Confidence (0-100) of the last detection."""
        return self._confidence
