"""Tests for record decoding and part assembly."""

import io
import logging
import struct

import pytest

from shapefile_lambert import (
    ByteCursor,
    ConvergenceError,
    Coordinate,
    LineGeometry,
    PointGeometry,
    PolygonGeometry,
    SequentialIds,
    ShapefileFormatError,
    ShapeRecordReader,
    assemble,
    split_parts,
)
from shapefile_lambert.stream import HEADER_SIZE


def _cursor(data: bytes) -> ByteCursor:
    return ByteCursor(io.BytesIO(data))


def _coords(n: int) -> list[Coordinate]:
    return [Coordinate(longitude=float(i), latitude=float(-i)) for i in range(n)]


def _records(source: io.BytesIO, reader: ShapeRecordReader):
    cursor = _cursor(source.getvalue()[HEADER_SIZE:])
    size = len(source.getvalue()) - HEADER_SIZE
    records = []
    while cursor.consumed < size:
        records.append(reader.read_record(cursor))
    return records


class TestSplitParts:
    def test_spans_follow_part_starts(self):
        spans = split_parts(_coords(9), [0, 3, 7])
        assert [len(s) for s in spans] == [3, 4, 2]
        assert spans[1][0].longitude == 3.0

    def test_single_part_takes_everything(self):
        assert split_parts(_coords(4), [0]) == [_coords(4)]

    def test_no_parts(self):
        assert split_parts(_coords(4), []) == []

    def test_out_of_range_start_raises(self):
        with pytest.raises(IndexError):
            split_parts(_coords(3), [0, 5])

    def test_decreasing_starts_raise(self):
        with pytest.raises(IndexError):
            split_parts(_coords(6), [0, 4, 2])

    def test_assemble_assigns_one_token_per_part(self):
        geometries = assemble("polygon", _coords(9), [0, 3, 7], SequentialIds("r"))
        assert [g.id for g in geometries] == ["r1", "r2", "r3"]
        assert all(isinstance(g, PolygonGeometry) for g in geometries)

    def test_assemble_lines(self):
        geometries = assemble("line", _coords(4), [0, 2], SequentialIds())
        assert [type(g) for g in geometries] == [LineGeometry, LineGeometry]


class TestByteCursor:
    def test_counts_bytes(self):
        cursor = _cursor(struct.pack(">i", 7) + struct.pack("<d", 1.25))
        assert cursor.read_int32_be() == 7
        assert cursor.read_double() == 1.25
        assert cursor.consumed == 12

    def test_short_read_raises_and_counts(self):
        cursor = _cursor(b"\x00\x01")
        with pytest.raises(ShapefileFormatError):
            cursor.read_int32_le()
        assert cursor.consumed == 2


class TestShapeTypes:
    def test_point(self, builder, ids):
        data = builder.record(1, 1, builder.point_body(1.5, 2.5))
        cursor = _cursor(data)
        record = ShapeRecordReader(id_source=ids).read_record(cursor)
        assert record.ok
        assert record.type_name == "POINT"
        assert record.geometries == [PointGeometry(id="g1", coordinate=Coordinate(longitude=1.5, latitude=2.5))]
        assert record.bbox is None
        assert cursor.consumed == len(data)

    def test_null_without_placeholder(self, builder):
        data = builder.record(4, 0)
        cursor = _cursor(data)
        record = ShapeRecordReader().read_record(cursor)
        assert record.ok and record.geometries == []
        assert (record.record_number, record.content_length) == (4, 4)
        assert cursor.consumed == 12

    def test_null_with_placeholder(self, builder):
        data = builder.record(1, 0, struct.pack("<i", 0))
        cursor = _cursor(data)
        record = ShapeRecordReader().read_record(cursor)
        assert record.ok and record.geometries == []
        assert cursor.consumed == 16

    def test_null_realigns_to_declared_length(self, builder):
        data = builder.record(1, 0, bytes(12)) + builder.record(2, 1, builder.point_body(1, 2))
        cursor = _cursor(data)
        reader = ShapeRecordReader()
        assert reader.read_record(cursor).ok
        assert cursor.consumed == 24
        assert reader.read_record(cursor).geometries[0].coordinate.latitude == 2.0

    def test_multipoint_one_geometry_per_point(self, multipoint_shp, ids):
        (record,) = _records(multipoint_shp, ShapeRecordReader(id_source=ids))
        assert record.type_name == "MULTIPOINT"
        assert [g.id for g in record.geometries] == ["g1", "g2", "g3"]
        assert [g.coordinate.longitude for g in record.geometries] == [1.0, 2.0, 3.0]
        assert (record.bbox.min_x, record.bbox.max_y) == (1.0, 3.0)

    def test_multipoint_zero_count_reads_no_points(self, builder):
        data = builder.record(1, 8, builder.multipoint_body([]))
        cursor = _cursor(data)
        record = ShapeRecordReader().read_record(cursor)
        assert record.ok and record.geometries == []
        assert cursor.consumed == 8 + 4 + 32 + 4

    def test_polyline_parts(self, polyline_shp, ids):
        first, second = _records(polyline_shp, ShapeRecordReader(id_source=ids))
        assert [len(g.coordinates) for g in first.geometries] == [3, 2]
        assert [len(g.coordinates) for g in second.geometries] == [2]
        assert [g.id for g in first.geometries + second.geometries] == ["g1", "g2", "g3"]
        assert all(g.kind == "line" for g in first.geometries)
        assert first.kml_geometry_type == "LineString"

    def test_polyline_three_parts(self, builder):
        points = [(float(i), float(i)) for i in range(9)]
        data = builder.record(1, 3, builder.parts_body([0, 3, 7], points))
        record = ShapeRecordReader().read_record(_cursor(data))
        assert [len(g.coordinates) for g in record.geometries] == [3, 4, 2]

    def test_polygon_rings(self, polygon_shp):
        (record,) = _records(polygon_shp, ShapeRecordReader())
        assert record.type_name == "POLYGON"
        assert [g.kind for g in record.geometries] == ["polygon", "polygon"]
        assert [len(g.coordinates) for g in record.geometries] == [5, 5]
        assert record.kml_geometry_type == "Polygon"

    def test_null_records_between_points(self, point_shp):
        records = _records(point_shp, ShapeRecordReader())
        assert [r.type_name for r in records] == ["POINT", "NULL", "POINT"]
        assert [len(r.geometries) for r in records] == [1, 0, 1]
        assert [r.record_number for r in records] == [1, 2, 3]


class TestUnknownShapes:
    @pytest.mark.parametrize("code, name", [(2, "UNDEFINED2"), (11, "UNKNOWN11")])
    def test_skipped_without_handler(self, builder, code, name):
        data = builder.record(1, code, bytes(36)) + builder.record(2, 1, builder.point_body(5, 6))
        cursor = _cursor(data)
        reader = ShapeRecordReader()
        record = reader.read_record(cursor)
        assert record.ok
        assert record.geometries == []
        assert record.type_name == name
        assert record.kml_geometry_type is None
        assert cursor.consumed == 8 + 4 + 36
        assert reader.read_record(cursor).geometries[0].coordinate.longitude == 5.0

    def test_handler_receives_raw_content(self, builder):
        body = struct.pack("<3d", 1.0, 2.0, 3.0)
        calls = []

        def handler(code, length, raw):
            calls.append((code, length, raw))
            x, y, _ = struct.unpack("<3d", raw)
            return [PointGeometry(id="z", coordinate=Coordinate(longitude=x, latitude=y))]

        record = ShapeRecordReader(unknown_shape_handler=handler).read_record(_cursor(builder.record(1, 11, body)))
        assert calls == [(11, 24, body)]
        assert record.geometries[0].coordinate == Coordinate(longitude=1.0, latitude=2.0)

    def test_handler_may_return_nothing(self, builder):
        reader = ShapeRecordReader(unknown_shape_handler=lambda code, length, raw: None)
        assert reader.read_record(_cursor(builder.record(1, 31, bytes(8)))).geometries == []


class TestRecordErrors:
    def test_bad_part_index_is_stored_and_skipped(self, builder, caplog):
        points = [(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)]
        data = builder.record(1, 3, builder.parts_body([0, 5], points))
        data += builder.record(2, 1, builder.point_body(7, 8))
        cursor = _cursor(data)
        reader = ShapeRecordReader()
        with caplog.at_level(logging.WARNING, logger="shapefile_lambert.reader"):
            bad = reader.read_record(cursor)
        assert not bad.ok
        assert "outside" in bad.error
        assert bad.geometries == []
        good = reader.read_record(cursor)
        assert good.ok
        assert good.geometries[0].coordinate == Coordinate(longitude=7.0, latitude=8.0)

    def test_truncated_record(self, builder):
        data = builder.record(1, 3, builder.parts_body([0], [(0, 0), (1, 1)]))[:-10]
        cursor = _cursor(data)
        record = ShapeRecordReader().read_record(cursor)
        assert not record.ok
        assert "Unexpected end of data" in record.error
        assert cursor.consumed == len(data)

    def test_negative_count(self, builder):
        body = builder.bbox([]) + struct.pack("<i", -1)
        record = ShapeRecordReader().read_record(_cursor(builder.record(1, 8, body)))
        assert record.error == "Negative point count: -1"

    def test_empty_input(self):
        record = ShapeRecordReader().read_record(_cursor(b""))
        assert not record.ok
        assert record.content_length == 0


class TestHooks:
    def test_point_converter_applies_to_every_point(self, polyline_shp):
        reader = ShapeRecordReader(point_converter=lambda x, y: (x + 100, y * 2))
        first, _ = _records(polyline_shp, reader)
        assert [c.longitude for c in first.geometries[0].coordinates] == [100.0, 101.0, 102.0]
        assert [c.latitude for c in first.geometries[1].coordinates] == [6.0, 8.0]

    def test_point_converter_leaves_bbox_raw(self, polyline_shp):
        reader = ShapeRecordReader(point_converter=lambda x, y: (x + 100, y))
        first, _ = _records(polyline_shp, reader)
        assert first.bbox.max_x == 4.0

    def test_conversion_errors_propagate(self, builder):
        def failing(x, y):
            raise ConvergenceError("latitude_from_isometric", 100, 1e-3)

        data = builder.record(1, 1, builder.point_body(0, 0))
        with pytest.raises(ConvergenceError):
            ShapeRecordReader(point_converter=failing).read_record(_cursor(data))

    def test_same_input_same_tokens(self, polygon_shp):
        first = _records(polygon_shp, ShapeRecordReader(id_source=SequentialIds("p")))
        second = _records(polygon_shp, ShapeRecordReader(id_source=SequentialIds("p")))
        assert first == second

    def test_default_tokens_are_unique(self, polyline_shp):
        records = _records(polyline_shp, ShapeRecordReader())
        tokens = [g.id for r in records for g in r.geometries]
        assert len(set(tokens)) == len(tokens)

    def test_non_finite_coordinate_skips_the_hook(self, builder):
        calls = []

        def hook(x, y):
            calls.append((x, y))
            return x, y

        data = builder.record(1, 1, builder.point_body(float("nan"), 1.0))
        record = ShapeRecordReader(point_converter=hook).read_record(_cursor(data))
        assert not record.ok
        assert calls == []
