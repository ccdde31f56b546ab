"""Sampling and statistics shared by every detector."""

from __future__ import annotations

import contextlib
import io
import logging
import math
import os
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, BinaryIO

from csvprobe._utils import BINARY_SAMPLE_SIZE, BOM_PROBE_SIZE
from csvprobe.encoding import get_info, python_codec
from csvprobe.errors import FileAccessError

if TYPE_CHECKING:
    from csvprobe.reader import StreamFilter

logger = logging.getLogger(__name__)

# Printable ASCII, tab, LF, CR and every byte >= 0x80 (possible multi-byte
# text).  bytes.translate deletes these; what remains is non-printable.
_PRINTABLE: bytes = bytes([0x09, 0x0A, 0x0D, *range(0x20, 0x7F), *range(0x80, 0x100)])

# Below this printable ratio a sample is treated as binary.
_PRINTABLE_THRESHOLD = 0.85


@contextlib.contextmanager
def open_source(
    path: str | os.PathLike[str],
    stream_filters: Sequence[StreamFilter] = (),
) -> Iterator[BinaryIO]:
    """Open *path* for binary reading with *stream_filters* applied in order.

    Every layer is closed when the block exits, including on error.

    :raises FileAccessError: If the file cannot be opened.
    """
    with contextlib.ExitStack() as stack:
        try:
            fp: BinaryIO = stack.enter_context(open(path, "rb"))  # noqa: SIM115
        except OSError as e:
            msg = f"Unable to read CSV file: {os.fspath(path)} ({e.strerror or e})"
            raise FileAccessError(msg) from e
        for stream_filter in stream_filters:
            fp = stack.enter_context(stream_filter.apply(fp))
        yield fp


def read_sample_lines(
    path: str | os.PathLike[str],
    max_lines: int,
    charset: str | None = None,
    stream_filters: Sequence[StreamFilter] = (),
) -> list[str]:
    """Read up to *max_lines* non-empty lines from the start of *path*.

    Any BOM is skipped.  Lines are decoded with *charset* when given,
    otherwise with the charset implied by the BOM (UTF-8 without one), and
    returned without their line terminators.
    """
    with open_source(path, stream_filters) as fp:
        info = get_info(fp.read(BOM_PROBE_SIZE))
        fp.seek(info.bom_length)
        text = io.TextIOWrapper(
            fp, encoding=python_codec(charset or info.charset), errors="replace", newline=""
        )
        try:
            lines: list[str] = []
            while len(lines) < max_lines:
                line = text.readline()
                if not line:
                    break
                if line.strip():
                    lines.append(line.rstrip("\r\n"))
        finally:
            # The wrapper must not close the stream owned by open_source().
            text.detach()
    logger.debug("Sampled %d line(s) from %s", len(lines), os.fspath(path))
    return lines


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for fewer than two values."""
    if len(values) <= 1:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def normalize_score(score: float) -> int:
    """Turn a 0.0-1.0 score into a 0-100 confidence, rounding half up."""
    return max(0, min(100, math.floor(score * 100 + 0.5)))


def is_binary(
    path: str | os.PathLike[str],
    sample_size: int = BINARY_SAMPLE_SIZE,
    stream_filters: Sequence[StreamFilter] = (),
) -> bool:
    """Return True if the start of *path* does not look like text.

    A null byte is decisive; otherwise fewer than 85% printable bytes is.
    """
    with open_source(path, stream_filters) as fp:
        sample = fp.read(sample_size)
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    non_printable = len(sample.translate(None, _PRINTABLE))
    return (len(sample) - non_printable) / len(sample) < _PRINTABLE_THRESHOLD
