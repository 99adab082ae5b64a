"""Binary decoding of .shp records."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from struct import Struct
from typing import Protocol

from .assembler import PartKind, assemble
from .exceptions import ConversionError, ShapefileFormatError
from .identity import IdSource, SequentialIds
from .models import BoundingBox, Coordinate, Geometry, PointGeometry, ShapeRecord, ShapeType

logger = logging.getLogger(__name__)

# Point hook: raw (x, y) in, (longitude, latitude) out.
PointConverter = Callable[[float, float], tuple[float, float]]
# Unknown shape hook: (type code, byte length, raw content) in, geometries out.
UnknownShapeHandler = Callable[[int, int, bytes], Iterable[Geometry] | None]

_INT32_BE = Struct(">i")
_INT32_LE = Struct("<i")
_DOUBLE_LE = Struct("<d")
_BBOX = Struct("<4d")

RECORD_HEADER_SIZE = 8
SHAPE_TYPE_SIZE = 4


class ReadableBinStream(Protocol):
    def read(self, size: int = -1) -> bytes: ...


class ByteCursor:
    """Forward-only reader over a binary stream that counts the bytes it consumed."""

    def __init__(self, stream: ReadableBinStream):
        self._stream = stream
        self.consumed = 0

    def read_bytes(self, size: int) -> bytes:
        if size < 0:
            raise ShapefileFormatError(f"Cannot read a negative number of bytes ({size})")
        data = self._stream.read(size)
        self.consumed += len(data)
        if len(data) != size:
            raise ShapefileFormatError(
                f"Unexpected end of data: expected {size} bytes, got {len(data)}"
            )
        return data

    def read_int32_be(self) -> int:
        return _INT32_BE.unpack(self.read_bytes(4))[0]

    def read_int32_le(self) -> int:
        return _INT32_LE.unpack(self.read_bytes(4))[0]

    def read_double(self) -> float:
        return _DOUBLE_LE.unpack(self.read_bytes(8))[0]

    def read_bbox(self) -> BoundingBox:
        min_x, min_y, max_x, max_y = _BBOX.unpack(self.read_bytes(_BBOX.size))
        return BoundingBox(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)

    def skip(self, size: int) -> None:
        self.read_bytes(size)


def _read_count(cursor: ByteCursor, what: str) -> int:
    count = cursor.read_int32_le()
    if count < 0:
        raise ShapefileFormatError(f"Negative {what} count: {count}")
    return count


class ShapeRecordReader:
    """Decodes one record at a time from a :class:`ByteCursor`.

    Args:
        point_converter: Applied to every raw coordinate pair. Without it the
            raw values are kept as longitude/latitude.
        unknown_shape_handler: Interprets records whose shape type has no
            decoder. Without it such records carry no geometry.
        id_source: Supplies geometry identity tokens. Defaults to a counter
            private to this reader.
    """

    def __init__(
        self,
        point_converter: PointConverter | None = None,
        unknown_shape_handler: UnknownShapeHandler | None = None,
        id_source: IdSource | None = None,
    ):
        self.point_converter = point_converter
        self.unknown_shape_handler = unknown_shape_handler
        self.id_source = id_source or SequentialIds()

    def read_record(self, cursor: ByteCursor) -> ShapeRecord:
        """Consume exactly one record.

        Decoding problems do not raise: the returned record carries the
        message in ``error`` and the cursor is moved to the declared end of
        the record whenever the header could be read. Conversion errors from
        the point hook are not decoding problems and propagate.
        """
        start = cursor.consumed
        record_number = 0
        content_length: int | None = None
        shape_type = int(ShapeType.NULL)
        bbox: BoundingBox | None = None
        geometries: list[Geometry] = []
        error: str | None = None

        try:
            record_number = cursor.read_int32_be()
            # Content length is stored in 16-bit words.
            content_length = cursor.read_int32_be() * 2
            shape_type = cursor.read_int32_le()
            bbox, geometries = self._decode(cursor, shape_type, content_length)
        except ConversionError:
            raise
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.warning("Failed to read record %d: %s", record_number, error)

        if content_length is not None:
            try:
                self._realign(cursor, start + RECORD_HEADER_SIZE + content_length, record_number)
            except ShapefileFormatError as exc:
                error = error or str(exc)
                logger.warning("Record %d is truncated: %s", record_number, exc)

        return ShapeRecord(
            record_number=record_number,
            content_length=content_length or 0,
            shape_type=shape_type,
            bbox=bbox,
            geometries=geometries,
            error=error,
        )

    def _decode(
        self, cursor: ByteCursor, shape_type: int, content_length: int
    ) -> tuple[BoundingBox | None, list[Geometry]]:
        match shape_type:
            case ShapeType.NULL:
                # Some writers pad null records with a placeholder int32.
                if content_length >= SHAPE_TYPE_SIZE + 4:
                    cursor.read_int32_le()
                return None, []
            case ShapeType.POINT:
                return None, [self._read_point(cursor)]
            case ShapeType.MULTIPOINT:
                return self._read_multipoint(cursor)
            case ShapeType.POLYLINE:
                return self._read_parts(cursor, "line")
            case ShapeType.POLYGON:
                return self._read_parts(cursor, "polygon")
            case _:
                return None, self._read_unknown(cursor, shape_type, content_length)

    def _read_coordinate(self, cursor: ByteCursor) -> Coordinate:
        x = cursor.read_double()
        y = cursor.read_double()
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ShapefileFormatError(f"Non-finite coordinate ({x}, {y})")
        if self.point_converter is not None:
            x, y = self.point_converter(x, y)
        return Coordinate(longitude=x, latitude=y)

    def _read_point(self, cursor: ByteCursor) -> PointGeometry:
        return PointGeometry(id=self.id_source(), coordinate=self._read_coordinate(cursor))

    def _read_multipoint(self, cursor: ByteCursor) -> tuple[BoundingBox, list[Geometry]]:
        bbox = cursor.read_bbox()
        count = _read_count(cursor, "point")
        return bbox, [self._read_point(cursor) for _ in range(count)]

    def _read_parts(self, cursor: ByteCursor, kind: PartKind) -> tuple[BoundingBox, list[Geometry]]:
        # Polygons share the polyline layout; only the geometry kind differs.
        bbox = cursor.read_bbox()
        num_parts = _read_count(cursor, "part")
        num_points = _read_count(cursor, "point")
        parts = [cursor.read_int32_le() for _ in range(num_parts)]
        points = [self._read_coordinate(cursor) for _ in range(num_points)]
        return bbox, list(assemble(kind, points, parts, self.id_source))

    def _read_unknown(self, cursor: ByteCursor, shape_type: int, content_length: int) -> list[Geometry]:
        raw = cursor.read_bytes(content_length - SHAPE_TYPE_SIZE)
        if self.unknown_shape_handler is None:
            logger.debug("Skipping %d bytes of unknown shape type %d", len(raw), shape_type)
            return []
        return list(self.unknown_shape_handler(shape_type, len(raw), raw) or [])

    def _realign(self, cursor: ByteCursor, end: int, record_number: int) -> None:
        remaining = end - cursor.consumed
        if remaining > 0:
            logger.debug("Skipping %d unread bytes at the end of record %d", remaining, record_number)
            cursor.skip(remaining)
        elif remaining < 0:
            logger.warning(
                "Record %d read %d bytes past its declared content length", record_number, -remaining
            )
