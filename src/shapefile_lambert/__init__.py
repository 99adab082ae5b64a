"""Shapefile record reader with French Lambert to WGS84 reprojection."""

from .assembler import assemble, split_parts
from .crs import detect_profile
from .exceptions import (
    ConversionCancelled,
    ConversionError,
    ConvergenceError,
    ShapefileFormatError,
    ShapefileLambertError,
    StreamClosedError,
    UnknownProfileError,
)
from .identity import SequentialIds, uuid_ids
from .models import (
    BoundingBox,
    Coordinate,
    FeatureRecord,
    GeodeticPosition,
    Geometry,
    LineGeometry,
    PointGeometry,
    PolygonGeometry,
    ProjectionProfile,
    ShapefileHeader,
    ShapeRecord,
    ShapeType,
)
from .profiles import DEFAULT_PROFILE, PROFILES, resolve
from .projection import LambertConverter, convert, point_converter
from .reader import ByteCursor, ShapeRecordReader
from .stream import FeatureStream

__all__ = [
    "BoundingBox",
    "ByteCursor",
    "ConversionCancelled",
    "ConversionError",
    "ConvergenceError",
    "Coordinate",
    "DEFAULT_PROFILE",
    "FeatureRecord",
    "FeatureStream",
    "GeodeticPosition",
    "Geometry",
    "LambertConverter",
    "LineGeometry",
    "PROFILES",
    "PointGeometry",
    "PolygonGeometry",
    "ProjectionProfile",
    "SequentialIds",
    "ShapeRecord",
    "ShapeRecordReader",
    "ShapeType",
    "ShapefileFormatError",
    "ShapefileHeader",
    "ShapefileLambertError",
    "StreamClosedError",
    "UnknownProfileError",
    "assemble",
    "convert",
    "detect_profile",
    "point_converter",
    "resolve",
    "split_parts",
    "uuid_ids",
]
