"""Pydantic data models for shapefile records and projection profiles."""

from __future__ import annotations

from enum import IntEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ShapeType(IntEnum):
    """On-disk shape type codes handled by the record reader."""

    NULL = 0
    POINT = 1
    UNDEFINED2 = 2
    POLYLINE = 3
    UNDEFINED4 = 4
    POLYGON = 5
    UNDEFINED6 = 6
    UNDEFINED7 = 7
    MULTIPOINT = 8


class BoundingBox(BaseModel):
    """Record or file extent, min/max longitude then min/max latitude."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float


class Coordinate(BaseModel):
    """A longitude/latitude pair, or raw projected X/Y before reprojection."""

    model_config = ConfigDict(frozen=True)

    longitude: float
    latitude: float


class PointGeometry(BaseModel):
    """A single marker."""

    kind: Literal["point"] = "point"
    id: str
    coordinate: Coordinate


class LineGeometry(BaseModel):
    """One part of a polyline record."""

    kind: Literal["line"] = "line"
    id: str
    coordinates: list[Coordinate]


class PolygonGeometry(BaseModel):
    """One ring of a polygon record. Orientation is kept as stored."""

    kind: Literal["polygon"] = "polygon"
    id: str
    coordinates: list[Coordinate]


Geometry = Annotated[
    Union[PointGeometry, LineGeometry, PolygonGeometry],
    Field(discriminator="kind"),
]

_KML_GEOMETRY_TYPES = {
    ShapeType.POINT: "Point",
    ShapeType.MULTIPOINT: "Point",
    ShapeType.POLYLINE: "LineString",
    ShapeType.POLYGON: "Polygon",
}


class ShapeRecord(BaseModel):
    """One parsed record of a .shp file."""

    model_config = ConfigDict(frozen=True)

    record_number: int = 0
    content_length: int = 0
    shape_type: int = ShapeType.NULL
    bbox: BoundingBox | None = None
    geometries: list[Geometry] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def type_name(self) -> str:
        try:
            return ShapeType(self.shape_type).name
        except ValueError:
            return f"UNKNOWN{self.shape_type}"

    @property
    def kml_geometry_type(self) -> str | None:
        """KML geometry element name for the record's shape type, if any."""
        try:
            return _KML_GEOMETRY_TYPES.get(ShapeType(self.shape_type))
        except ValueError:
            return None


class FeatureRecord(BaseModel):
    """A shape record as produced by a feature stream, with progress data."""

    index: int
    shape: ShapeRecord
    progress: float
    streamed_bytes_ratio: float


class ShapefileHeader(BaseModel):
    """The fixed 100-byte header of a .shp file."""

    file_code: int
    file_length: int
    version: int
    shape_type: int
    bbox: BoundingBox


class ProjectionProfile(BaseModel):
    """Lambert conformal conic constants plus the datum shift to WGS84.

    Attributes:
        e: First eccentricity of the source ellipsoid.
        n: Cone constant.
        c: Projection constant.
        xs: False easting of the cone apex.
        ys: False northing of the cone apex.
        lambdac: Central meridian longitude (radians, Greenwich).
        a: Semi-major axis of the source ellipsoid (m).
        he: Ellipsoidal height assumed for planar points (m).
        tx, ty, tz: Helmert translations (m).
        d: Helmert scale difference.
        rx, ry, rz: Helmert rotations (radians, small-angle).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    e: float
    n: float
    c: float
    xs: float
    ys: float
    lambdac: float
    a: float
    he: float = 0.0
    tx: float = 0.0
    ty: float = 0.0
    tz: float = 0.0
    d: float = 0.0
    rx: float = 0.0
    ry: float = 0.0
    rz: float = 0.0

    @property
    def helmert_parameters(self) -> tuple[float, float, float, float, float, float, float]:
        return (self.tx, self.ty, self.tz, self.d, self.rx, self.ry, self.rz)


class GeodeticPosition(BaseModel):
    """A WGS84 position in degrees with its ellipsoidal height."""

    longitude: float
    latitude: float
    height: float
