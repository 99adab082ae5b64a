import io
import struct

import pytest
import shapefile

from shapefile_lambert import SequentialIds


def _record(record_number: int, shape_type: int, body: bytes = b"", content_length: int | None = None) -> bytes:
    """Build one record; ``content_length`` is in 16-bit words like on disk."""
    if content_length is None:
        content_length = (4 + len(body)) // 2
    return struct.pack(">2i", record_number, content_length) + struct.pack("<i", shape_type) + body


def _bbox(points) -> bytes:
    if not points:
        return struct.pack("<4d", 0, 0, 0, 0)
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return struct.pack("<4d", min(xs), min(ys), max(xs), max(ys))


def _point_body(x: float, y: float) -> bytes:
    return struct.pack("<2d", x, y)


def _multipoint_body(points) -> bytes:
    body = _bbox(points) + struct.pack("<i", len(points))
    return body + b"".join(_point_body(x, y) for x, y in points)


def _parts_body(parts, points) -> bytes:
    body = _bbox(points) + struct.pack("<2i", len(parts), len(points))
    body += struct.pack(f"<{len(parts)}i", *parts)
    return body + b"".join(_point_body(x, y) for x, y in points)


def _shp(records: list[bytes], shape_type: int = 3) -> bytes:
    """Wrap records in a 100-byte main file header."""
    data = b"".join(records)
    header = struct.pack(">7i", 9994, 0, 0, 0, 0, 0, (100 + len(data)) // 2)
    header += struct.pack("<2i", 1000, shape_type)
    header += struct.pack("<8d", 0, 0, 10, 10, 0, 0, 0, 0)
    return header + data


class ShpBuilder:
    """Hand-built .shp bytes for layouts a regular writer will not produce."""

    record = staticmethod(_record)
    bbox = staticmethod(_bbox)
    point_body = staticmethod(_point_body)
    multipoint_body = staticmethod(_multipoint_body)
    parts_body = staticmethod(_parts_body)
    shp = staticmethod(_shp)


@pytest.fixture
def builder():
    return ShpBuilder


@pytest.fixture
def ids():
    return SequentialIds(prefix="g")


def _write(shape_type: int, draw) -> io.BytesIO:
    shp, shx = io.BytesIO(), io.BytesIO()
    with shapefile.Writer(shp=shp, shx=shx, shapeType=shape_type) as w:
        draw(w)
    return io.BytesIO(shp.getvalue())


@pytest.fixture
def polyline_shp():
    """Two polyline records: two parts (3 + 2 points), then one part (2 points)."""

    def draw(w):
        w.line([[[0, 0], [1, 1], [2, 2]], [[3, 3], [4, 4]]])
        w.line([[[5, 5], [6, 6]]])

    return _write(shapefile.POLYLINE, draw)


@pytest.fixture
def point_shp():
    def draw(w):
        w.point(1.5, 2.5)
        w.null()
        w.point(3.5, 4.5)

    return _write(shapefile.POINT, draw)


@pytest.fixture
def multipoint_shp():
    def draw(w):
        w.multipoint([[1, 1], [2, 2], [3, 3]])

    return _write(shapefile.MULTIPOINT, draw)


@pytest.fixture
def polygon_shp():
    """One polygon with an outer ring and a hole."""

    def draw(w):
        w.poly(
            [
                [[0, 0], [0, 10], [10, 10], [10, 0], [0, 0]],
                [[2, 2], [4, 2], [4, 4], [2, 4], [2, 2]],
            ]
        )

    return _write(shapefile.POLYGON, draw)


@pytest.fixture
def lambert93_shp():
    """Points around Paris in Lambert-93."""

    def draw(w):
        w.point(652469.02, 6862035.26)
        w.point(700000.0, 6600000.0)

    return _write(shapefile.POINT, draw)
