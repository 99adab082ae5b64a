"""Sequential reading of the records of a .shp file."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Iterator
from os import PathLike
from pathlib import Path
from types import TracebackType
from typing import IO, Any

from .exceptions import ConversionError, ShapefileFormatError, StreamClosedError
from .identity import IdSource
from .models import FeatureRecord, ShapefileHeader, ShapeRecord
from .reader import ByteCursor, PointConverter, ShapeRecordReader, UnknownShapeHandler

logger = logging.getLogger(__name__)

HEADER_SIZE = 100
FILE_CODE = 9994

ProgressCallback = Callable[[float], None]


def read_header(cursor: ByteCursor) -> ShapefileHeader:
    """Parse the 100-byte main file header."""
    file_code = cursor.read_int32_be()
    if file_code != FILE_CODE:
        raise ShapefileFormatError(f"Not a shapefile: file code {file_code}, expected {FILE_CODE}")
    cursor.skip(20)  # unused
    file_length = cursor.read_int32_be() * 2
    version = cursor.read_int32_le()
    shape_type = cursor.read_int32_le()
    bbox = cursor.read_bbox()
    cursor.skip(32)  # z and m ranges
    return ShapefileHeader(
        file_code=file_code,
        file_length=file_length,
        version=version,
        shape_type=shape_type,
        bbox=bbox,
    )


class FeatureStream:
    """Forward-only iteration over the records of one .shp file.

    A stream owns its file position and must not be shared between callers.
    When the end of the data is reached :meth:`next_feature` returns ``None``
    and the stream closes itself; any further use raises
    :class:`StreamClosedError`. A conversion error raised by the point hook
    closes the stream the same way before it propagates.

    Args:
        source: Path to a ``.shp`` file, or a seekable binary file object.
        point_converter: Point hook handed to the record reader.
        unknown_shape_handler: Unknown shape hook handed to the record reader.
        id_source: Geometry token source handed to the record reader.
        on_progress: Called with the consumed byte ratio after records are read.
        notify_after: Call ``on_progress`` every this many records (0: every record).
    """

    def __init__(
        self,
        source: str | PathLike[Any] | IO[bytes],
        *,
        point_converter: PointConverter | None = None,
        unknown_shape_handler: UnknownShapeHandler | None = None,
        id_source: IdSource | None = None,
        on_progress: ProgressCallback | None = None,
        notify_after: int = 0,
    ):
        if isinstance(source, (str, PathLike)):
            path = Path(source)
            if path.suffix.lower() != ".shp":
                raise ValueError(f"The filename must point to the .shp file of the shapefile: {path}")
            self.path: Path | None = path
            self._file: IO[bytes] = open(path, "rb")
            self._owns_file = True
        else:
            self.path = None
            self._file = source
            self._owns_file = False

        self._reader = ShapeRecordReader(
            point_converter=point_converter,
            unknown_shape_handler=unknown_shape_handler,
            id_source=id_source,
        )
        self.on_progress = on_progress
        self.notify_after = notify_after
        self._closed = False

        try:
            self._size = self._file.seek(0, io.SEEK_END)
            self._file.seek(0)
            self.header = read_header(ByteCursor(self._file))
        except Exception:
            self.close()
            raise
        if self.header.file_length != self._size:
            logger.warning(
                "Header declares %d bytes but the file holds %d", self.header.file_length, self._size
            )
        self._start()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{self.progress:.0%}"
        return f"FeatureStream({self.path or self._file!r}, {state})"

    def __enter__(self) -> FeatureStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __iter__(self) -> Iterator[FeatureRecord]:
        while (feature := self.next_feature()) is not None:
            yield feature

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def progress(self) -> float:
        """Fraction of the file consumed so far, between 0 and 1."""
        if self._size == 0:
            return 0.0
        return min(self._position / self._size, 1.0)

    def reset(self) -> None:
        """Go back to the first record."""
        self._check_open()
        self._file.seek(HEADER_SIZE)
        self._start()

    def next_feature(self) -> FeatureRecord | None:
        """Read the next record, or return ``None`` and close at end of data."""
        self._check_open()
        if self._position >= self._size:
            logger.debug("End of shape data after %d records", self._index)
            self.close()
            return None

        before = self._cursor.consumed
        try:
            shape = self._reader.read_record(self._cursor)
        except ConversionError:
            # The cursor is left inside the record; nothing after it can be read.
            self.close()
            raise
        used = self._cursor.consumed - before
        self._position += used

        feature = FeatureRecord(
            index=self._index,
            shape=shape,
            progress=self.progress,
            streamed_bytes_ratio=used / self._size,
        )
        self._index += 1
        self._notify()
        return feature

    def read_all(self) -> list[ShapeRecord]:
        """Read every record from the start of the data, then close."""
        self.reset()
        return [feature.shape for feature in self]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_file:
            self._file.close()

    def _start(self) -> None:
        self._cursor = ByteCursor(self._file)
        self._position = HEADER_SIZE
        self._index = 0

    def _check_open(self) -> None:
        if self._closed:
            raise StreamClosedError("Feature stream is closed")

    def _notify(self) -> None:
        if self.on_progress is None:
            return
        if self.notify_after <= 0 or self._index % self.notify_after == 0:
            self.on_progress(self.progress)
