"""Streaming CSV reader with line seeking and per-column field maps.

:class:`CsvReader` owns its byte stream for its whole lifetime.  Rows are
parsed one at a time, so memory use does not grow with the size of the
file.  Every layer between the file and the parser (codec filters, the
text decoder) is opened once, at construction, and released by
:meth:`CsvReader.close`.
"""

from __future__ import annotations

import bz2
import contextlib
import gzip
import io
import logging
import lzma
import os
from collections.abc import Callable, Iterator, Mapping, Sequence
from types import MappingProxyType, TracebackType
from typing import IO, Any, BinaryIO

from csvprobe._utils import (
    BOM_PROBE_SIZE,
    DEFAULT_MAX_SAMPLE_LINES,
    DEFAULT_MIN_CONFIDENCE,
)
from csvprobe.autodetect import FormatAutoDetector, FormatDescriptor
from csvprobe.detectors.delimiter import DELIMITER_SEMICOLON
from csvprobe.detectors.enclosure import ENCLOSURE_NONE, ENCLOSURE_QUOTES
from csvprobe.detectors.escape import ESCAPE_BACKSLASH
from csvprobe.detectors.sampling import open_source
from csvprobe.encoding import EncodingInfo, get_info, python_codec
from csvprobe.enums import CoercionKind, RowSignal
from csvprobe.errors import ConfigurationError
from csvprobe.fieldmaps import FieldMap

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_FIELD = "exclude"

Row = dict[Any, Any]


def _gzip(fp: BinaryIO, **params: Any) -> IO[bytes]:
    return gzip.GzipFile(fileobj=fp, mode="rb", **params)


def _bz2(fp: BinaryIO, **params: Any) -> IO[bytes]:
    return bz2.BZ2File(fp, mode="rb", **params)


def _lzma(fp: BinaryIO, **params: Any) -> IO[bytes]:
    return lzma.LZMAFile(fp, mode="rb", **params)


_NAMED_FILTERS: dict[str, Callable[..., IO[bytes]]] = {
    "gzip": _gzip,
    "bz2": _bz2,
    "bzip2": _bz2,
    "lzma": _lzma,
    "xz": _lzma,
}


class StreamFilter:
    """A byte-stream codec applied between the file and the CSV parser.

    *codec* is one of the names ``gzip``, ``bz2``, ``lzma`` (alias ``xz``)
    or a callable taking a binary file object and returning another one.
    Keyword *params* are passed to the codec on every application.

    The filtered stream must support ``seek(0)`` for line seeking to work;
    the built-in codecs do.
    """

    def __init__(self, codec: str | Callable[..., IO[bytes]], **params: Any) -> None:
        if callable(codec):
            self.name = getattr(codec, "__name__", repr(codec))
            self._factory = codec
        elif isinstance(codec, str) and codec.lower() in _NAMED_FILTERS:
            self.name = codec.lower()
            self._factory = _NAMED_FILTERS[self.name]
        else:
            msg = (
                f"Unknown stream filter {codec!r}; expected one of "
                f"{sorted(_NAMED_FILTERS)} or a callable"
            )
            raise ConfigurationError(msg)
        self.params = params

    def __repr__(self) -> str:
        return f"StreamFilter({self.name!r})"

    def apply(self, fp: BinaryIO) -> contextlib.AbstractContextManager[Any]:
        """Wrap *fp*; the result closes the filter layer on exit."""
        stream = self._factory(fp, **self.params)
        if hasattr(stream, "__exit__"):
            return stream
        return contextlib.closing(stream)


def _strip_eol(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def _split_records(
    lines: Iterator[str], delimiter: str, enclosure: str, escape_char: str
) -> Iterator[list[str]]:
    """Split physical lines into records of cells.

    An enclosure opens only at the start of a cell and may span lines; a
    doubled enclosure inside it is one literal enclosure.  The escape
    character is special only inside an enclosure, where it protects the
    next character and is kept in the value along with it.  A blank line
    is the empty record ``[]``.
    """
    if escape_char == enclosure:
        escape_char = ""
    for line in lines:
        if not enclosure or enclosure not in line:
            text = _strip_eol(line)
            yield text.split(delimiter) if text else []
            continue

        cells: list[str] = []
        cell: list[str] = []
        quoted = was_quoted = False
        i = 0
        while True:
            if i == len(line):
                if not quoted:
                    break
                line = next(lines, "")
                i = 0
                if not line:
                    # Unterminated enclosure at the end of the data.
                    break
                continue
            char = line[i]
            if quoted:
                if escape_char and char == escape_char and i + 1 < len(line):
                    cell.append(line[i : i + 2])
                    i += 2
                elif char == enclosure and line.startswith(enclosure, i + 1):
                    cell.append(enclosure)
                    i += 2
                elif char == enclosure:
                    quoted = False
                    i += 1
                else:
                    cell.append(char)
                    i += 1
                continue
            if char == delimiter:
                cells.append("".join(cell))
                cell = []
                was_quoted = False
            elif char == "\n" or (char == "\r" and line[i + 1 :] == "\n"):
                break
            elif char == enclosure and not cell and not was_quoted:
                quoted = was_quoted = True
            else:
                cell.append(char)
            i += 1
        cells.append("".join(cell))
        yield cells


class CsvReader:
    """Read a delimited file row by row.

    ::

        with CsvReader.open("export.csv") as reader:
            reader.set_automatic_map_fields()
            for row in reader:
                ...

    :param source: A path, or a binary file object positioned at the
        start of the data.  A file object passed in is not closed by the
        reader; the filter layers stacked on it are.
    :param delimiter: Field separator.
    :param enclosure: Quote character, or :data:`ENCLOSURE_NONE`.
    :param charset: Charset of the data.  ``None`` takes it from the BOM,
        falling back to UTF-8.  An explicit value always wins.
    :param escape_char: Escape character inside enclosed fields, or ``""``.
    :param exclude_field: Key set to ``True`` on rows matched by an
        exclusion rule.
    :param stream_filters: Codec filters applied to the raw bytes, in order.
    """

    def __init__(
        self,
        source: str | os.PathLike[str] | BinaryIO,
        delimiter: str = DELIMITER_SEMICOLON,
        enclosure: str = ENCLOSURE_QUOTES,
        charset: str | None = None,
        escape_char: str = ESCAPE_BACKSLASH,
        exclude_field: str = DEFAULT_EXCLUDE_FIELD,
        stream_filters: Sequence[StreamFilter] = (),
    ) -> None:
        if not isinstance(delimiter, str) or len(delimiter) != 1:
            msg = f"delimiter must be a single character, got {delimiter!r}"
            raise ConfigurationError(msg)
        if not isinstance(enclosure, str) or len(enclosure) > 1:
            msg = f"enclosure must be one character or ENCLOSURE_NONE, got {enclosure!r}"
            raise ConfigurationError(msg)
        if not isinstance(escape_char, str) or len(escape_char) > 1:
            msg = f"escape_char must be one character or empty, got {escape_char!r}"
            raise ConfigurationError(msg)

        self._source = source
        self._delimiter = delimiter
        self._enclosure = enclosure
        self._escape_char = escape_char
        self._exclude_field = exclude_field
        self._field_maps: dict[Any, FieldMap] = {}

        self._stack = contextlib.ExitStack()
        try:
            self._raw = self._open(source, stream_filters)
            self._encoding_info = get_info(self._raw.read(BOM_PROBE_SIZE))
            self._charset = charset or self._encoding_info.charset
            # Lines end at "\n" only, whatever the charset.
            self._raw.seek(self._encoding_info.bom_length)
            self._text = io.TextIOWrapper(
                self._raw,
                encoding=python_codec(self._charset),
                errors="replace",
                newline="\n",
            )
            # Runs before the layers below close; they are closed by the stack.
            self._stack.callback(self._text.detach)
            self._start = self._text.tell()
            self._rows: Iterator[list[str]] = iter(())
            self.seek_line(0)
        except BaseException:
            self._stack.close()
            raise
        logger.debug(
            "Opened %s: charset=%s bom=%s delimiter=%r enclosure=%r escape=%r",
            self.name,
            self._charset,
            self._encoding_info.bom.value if self._encoding_info.bom else None,
            delimiter,
            enclosure,
            escape_char,
        )

    def _open(
        self,
        source: str | os.PathLike[str] | BinaryIO,
        stream_filters: Sequence[StreamFilter],
    ) -> BinaryIO:
        if isinstance(source, (str, os.PathLike)):
            return self._stack.enter_context(open_source(source, stream_filters))
        fp = source
        for stream_filter in stream_filters:
            fp = self._stack.enter_context(stream_filter.apply(fp))
        return fp

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        max_sample_lines: int = DEFAULT_MAX_SAMPLE_LINES,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        stream_filters: Sequence[StreamFilter] = (),
        **kwargs: Any,
    ) -> CsvReader:
        """Detect the format of *path* and return a reader configured for it.

        :raises LowConfidenceError: If the delimiter cannot be detected with
            at least *min_confidence*.
        """
        descriptor = FormatAutoDetector(
            path, max_sample_lines, min_confidence, stream_filters
        ).detect()
        return cls.from_format(path, descriptor, stream_filters=stream_filters, **kwargs)

    @classmethod
    def from_format(
        cls,
        source: str | os.PathLike[str] | BinaryIO,
        descriptor: FormatDescriptor | Mapping[str, Any],
        **kwargs: Any,
    ) -> CsvReader:
        """Build a reader from a known format, skipping detection."""
        if not isinstance(descriptor, FormatDescriptor):
            descriptor = FormatDescriptor.from_dict(descriptor)
        return cls(
            source,
            delimiter=descriptor.delimiter,
            enclosure=descriptor.enclosure,
            charset=descriptor.charset,
            escape_char=descriptor.escape_char,
            **kwargs,
        )

    # -- lifecycle --

    def close(self) -> None:
        """Release every layer the reader opened."""
        self._stack.close()

    def __enter__(self) -> CsvReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- configuration --

    @property
    def name(self) -> str:
        if isinstance(self._source, (str, os.PathLike)):
            return os.fspath(self._source)
        return str(getattr(self._source, "name", "<stream>"))

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @property
    def enclosure(self) -> str:
        return self._enclosure

    @property
    def escape_char(self) -> str:
        return self._escape_char

    @property
    def charset(self) -> str:
        return self._charset

    @property
    def exclude_field(self) -> str:
        return self._exclude_field

    @property
    def encoding_info(self) -> EncodingInfo:
        return self._encoding_info

    def info(self) -> dict[str, Any]:
        """Describe the encoding in use and the underlying file.

        :returns: ``{"encoding": {...}, "file": {...}}``.  File size and
            timestamps are present when the source is a real file.
        """
        encoding = self._encoding_info.to_dict()
        encoding["charset"] = self._charset
        file_info: dict[str, Any] = {"name": self.name}
        try:
            if isinstance(self._source, (str, os.PathLike)):
                st = os.stat(self._source)
            else:
                st = os.fstat(self._source.fileno())
        except (AttributeError, OSError):
            logger.debug("No file status available for %s", self.name)
        else:
            file_info.update(size=st.st_size, mtime=st.st_mtime, mode=st.st_mode)
        return {"encoding": encoding, "file": file_info}

    # -- positioning --

    def seek_line(self, line: int) -> bool:
        """Position the reader at the start of line *line* (0-based).

        The stream is rewound and *line* physical lines are discarded, so
        the cost is linear in *line*.

        :returns: False if the data has fewer than *line* lines.
        """
        if line < 0:
            msg = f"line must be >= 0, got {line}"
            raise ValueError(msg)
        # The start position lies after the BOM.
        self._text.seek(self._start)
        found = True
        for _ in range(line):
            if not self._text.readline():
                found = False
                break
        self._rows = _split_records(
            self._text_lines(), self._delimiter, self._enclosure, self._escape_char
        )
        return found

    def tell_position(self) -> int:
        """Byte offset of the underlying (filtered, undecoded) stream.

        Decoders read ahead, so for transcoded data this can be past the
        last row returned.
        """
        return self._raw.tell()

    def _text_lines(self) -> Iterator[str]:
        while True:
            line = self._text.readline()
            if not line:
                return
            yield line

    # -- field maps --

    @property
    def field_maps(self) -> Mapping[Any, FieldMap]:
        return MappingProxyType(self._field_maps)

    def set_map_fields(
        self, fields: Mapping[Any, FieldMap], header_row: int | None = 0
    ) -> CsvReader:
        """Map output keys to columns.

        Field maps whose source is a header name are resolved against the
        cells of *header_row*; names not found there are dropped.  When that
        row has fewer than two non-empty cells it is not a header and the
        mapping is cleared.  With *header_row* ``None`` no row is read and
        only integer sources are kept.  The reader is left on the line after
        the header.

        :raises ConfigurationError: If a value is not a :class:`FieldMap`.
        """
        for key, field in fields.items():
            if not isinstance(field, FieldMap):
                msg = (
                    f"Invalid field mapping for {key!r}: expected a FieldMap, "
                    f"got {type(field).__name__}"
                )
                raise ConfigurationError(msg)

        self._field_maps = {}
        positions: dict[str, int] = {}
        if header_row is not None:
            self.seek_line(header_row)
            header = next(self._rows, None) or []
            if sum(1 for cell in header if cell) < 2:
                logger.debug("Row %d is not a header row, field mapping cleared", header_row)
                return self
            for index, cell in enumerate(header):
                positions.setdefault(cell, index)

        resolved: dict[Any, FieldMap] = {}
        for key, field in fields.items():
            if isinstance(field.src_field, int):
                resolved[key] = field
            elif field.src_field in positions:
                resolved[key] = field.with_source(positions[field.src_field])
            else:
                logger.debug("Dropped field %r: column %r not in header", key, field.src_field)
        self._field_maps = resolved
        return self

    def set_automatic_map_fields(
        self, header_row: int = 0, kind: CoercionKind | str = CoercionKind.STRING
    ) -> CsvReader:
        """Map every non-empty header cell to a field of the same name."""
        self.seek_line(header_row)
        header = next(self._rows, None) or []
        fields = {cell: FieldMap(cell, kind) for cell in header if cell}
        return self.set_map_fields(fields, header_row)

    def export_field_maps(self) -> dict[Any, dict[str, Any]]:
        """Export the resolved field maps as plain dicts."""
        return {key: field.to_dict() for key, field in self._field_maps.items()}

    def import_field_maps(
        self, maps: Mapping[Any, Mapping[str, Any]], header_row: int | None = 0
    ) -> CsvReader:
        """Rebuild field maps from :meth:`export_field_maps` output.

        :raises ConfigurationError: If a descriptor is invalid.
        """
        if not isinstance(maps, Mapping):
            msg = f"Invalid field mapping: expected a mapping, got {type(maps).__name__}"
            raise ConfigurationError(msg)
        fields = {key: FieldMap.from_dict(data) for key, data in maps.items()}
        return self.set_map_fields(fields, header_row)

    # -- reading --

    def read_line(self) -> Row | RowSignal | None:
        """Read the next row.

        :returns: The record, :attr:`RowSignal.EMPTY` for a row without
            content, :attr:`RowSignal.FILTERED` for a row discarded by a
            filter rule, or ``None`` at the end of the data.
        """
        columns = next(self._rows, None)
        if columns is None:
            return None
        if not any(columns):
            return RowSignal.EMPTY
        if not self._field_maps:
            return dict(enumerate(columns))

        row: Row = {}
        for key, field in self._field_maps.items():
            index = field.src_field
            if not isinstance(index, int) or index >= len(columns):
                continue
            value = field.transform(columns[index])
            if field.should_be_filtered(value):
                logger.debug("Row filtered on field %r: %r", key, value)
                return RowSignal.FILTERED
            row[key] = value
            if field.should_be_excluded(value):
                row[self._exclude_field] = True
        return row

    def read_more(self, start_line: int = 1, skip_empty: bool = True) -> Iterator[Row | RowSignal]:
        """Yield rows from *start_line* on.

        Filtered rows are never yielded; empty rows are yielded as
        :attr:`RowSignal.EMPTY` unless *skip_empty* is set.
        """
        self.seek_line(start_line)
        while True:
            row = self.read_line()
            if row is None:
                return
            if row is RowSignal.FILTERED or (skip_empty and row is RowSignal.EMPTY):
                continue
            yield row

    def read_all(self, start_line: int = 1) -> list[Row]:
        """Read every non-empty, unfiltered row from *start_line* on.

        Loads the whole file in memory; prefer :meth:`read_more` for large
        files.
        """
        return [row for row in self.read_more(start_line) if isinstance(row, dict)]

    def __iter__(self) -> Iterator[Row]:
        """Iterate over the remaining records from the current position."""
        while True:
            row = self.read_line()
            if row is None:
                return
            if isinstance(row, dict):
                yield row
