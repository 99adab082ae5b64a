"""Reprojection from French Lambert coordinates to WGS84 and back."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Iterable

from .config import Settings
from .exceptions import ConversionCancelled
from .geodesy import (
    EPSILON,
    MAX_ITERATIONS,
    WGS84_A,
    WGS84_E,
    atan_ratio,
    cartesian_to_geodetic,
    geodetic_to_cartesian,
    helmert,
    inverse_helmert,
    isometric_latitude,
    latitude_from_isometric,
)
from .models import GeodeticPosition, ProjectionProfile
from .profiles import DEFAULT_PROFILE, resolve

logger = logging.getLogger(__name__)


def lambert_to_geographic(
    profile: ProjectionProfile,
    x: float,
    y: float,
    *,
    epsilon: float = EPSILON,
    max_iterations: int = MAX_ITERATIONS,
) -> tuple[float, float]:
    """Inverse Lambert projection onto the profile's own ellipsoid.

    Returns ``(lambda, phi)`` in radians. The cone apex ``(xs, ys)`` maps to
    the pole on the central meridian.
    """
    dx = x - profile.xs
    dy = profile.ys - y
    r = math.hypot(dx, dy)
    gamma = atan_ratio(dx, dy)
    lam = profile.lambdac + gamma / profile.n
    if r == 0:
        iso = math.copysign(math.inf, profile.n)
    else:
        iso = -1 / profile.n * math.log(abs(r / profile.c))
    phi = latitude_from_isometric(iso, profile.e, epsilon, max_iterations)
    return lam, phi


def geographic_to_lambert(profile: ProjectionProfile, lam: float, phi: float) -> tuple[float, float]:
    """Forward Lambert projection of ``(lambda, phi)`` radians on the profile's ellipsoid."""
    r = profile.c * math.exp(-profile.n * isometric_latitude(phi, profile.e))
    gamma = profile.n * (lam - profile.lambdac)
    return profile.xs + r * math.sin(gamma), profile.ys - r * math.cos(gamma)


class LambertConverter:
    """Converts planar coordinates of one profile to WGS84 degrees.

    Instances are immutable and hold no per-call state, so one converter can
    be shared between threads. Calling the instance gives the ``(x, y) ->
    (longitude, latitude)`` shape expected by the record reader's point hook.
    """

    def __init__(
        self,
        profile: ProjectionProfile,
        *,
        epsilon: float = EPSILON,
        max_iterations: int = MAX_ITERATIONS,
    ):
        self.profile = profile
        self.epsilon = epsilon
        self.max_iterations = max_iterations

    @classmethod
    def from_name(
        cls,
        name: str,
        *,
        strict: bool = False,
        default: str = DEFAULT_PROFILE,
        epsilon: float = EPSILON,
        max_iterations: int = MAX_ITERATIONS,
    ) -> LambertConverter:
        profile = resolve(name, strict=strict, default=default)
        return cls(profile, epsilon=epsilon, max_iterations=max_iterations)

    @classmethod
    def from_settings(cls, name: str | None, settings: Settings) -> LambertConverter:
        """Build a converter honouring the configured default, strictness and tolerances."""
        return cls.from_name(
            name or settings.default_profile,
            strict=settings.strict_profiles,
            default=settings.default_profile,
            epsilon=settings.epsilon,
            max_iterations=settings.max_iterations,
        )

    def __repr__(self) -> str:
        return f"LambertConverter({self.profile.name!r})"

    def __call__(self, x: float, y: float) -> tuple[float, float]:
        lam, phi, _ = self._to_wgs84(x, y)
        return math.degrees(lam), math.degrees(phi)

    def position(self, x: float, y: float) -> GeodeticPosition:
        """Like calling the converter, but keeps the WGS84 ellipsoidal height."""
        lam, phi, h = self._to_wgs84(x, y)
        return GeodeticPosition(longitude=math.degrees(lam), latitude=math.degrees(phi), height=h)

    def to_lambert(self, longitude: float, latitude: float, height: float | None = None) -> tuple[float, float]:
        """Project WGS84 degrees back to the profile's planar coordinates.

        ``height`` is the WGS84 ellipsoidal height; it defaults to the
        profile's assumed height.
        """
        p = self.profile
        if height is None:
            height = p.he
        v = geodetic_to_cartesian(math.radians(longitude), math.radians(latitude), height, WGS84_A, WGS84_E)
        u = inverse_helmert(*p.helmert_parameters, v)
        lam, phi, _ = cartesian_to_geodetic(*u, p.a, p.e, self.epsilon, self.max_iterations)
        return geographic_to_lambert(p, lam, phi)

    def convert_many(
        self,
        points: Iterable[tuple[float, float]],
        *,
        cancel: threading.Event | None = None,
    ) -> list[tuple[float, float]]:
        """Convert a batch of ``(x, y)`` pairs.

        Raises:
            ConversionCancelled: if ``cancel`` is set before the batch completes.
        """
        converted: list[tuple[float, float]] = []
        for x, y in points:
            if cancel is not None and cancel.is_set():
                logger.info("Conversion cancelled after %d points", len(converted))
                raise ConversionCancelled(f"Cancelled after {len(converted)} points")
            converted.append(self(x, y))
        return converted

    def _to_wgs84(self, x: float, y: float) -> tuple[float, float, float]:
        p = self.profile
        lam, phi = lambert_to_geographic(p, x, y, epsilon=self.epsilon, max_iterations=self.max_iterations)
        u = geodetic_to_cartesian(lam, phi, p.he, p.a, p.e)
        v = helmert(*p.helmert_parameters, u)
        return cartesian_to_geodetic(*v, WGS84_A, WGS84_E, self.epsilon, self.max_iterations)


def convert(profile_name: str, x: float, y: float) -> tuple[float, float]:
    """Convert Lambert ``(x, y)`` to WGS84 ``(longitude, latitude)`` in degrees.

    An unrecognized ``profile_name`` uses the default profile.
    """
    return LambertConverter.from_name(profile_name)(x, y)


def point_converter(profile_name: str, **kwargs) -> LambertConverter:
    """Point hook for :class:`~shapefile_lambert.reader.ShapeRecordReader`."""
    return LambertConverter.from_name(profile_name, **kwargs)
