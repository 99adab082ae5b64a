"""Lambert projection presets and the formulas that derive their constants."""

from __future__ import annotations

import logging
import math

from .exceptions import UnknownProfileError
from .geodesy import isometric_latitude, prime_vertical_radius
from .models import ProjectionProfile

logger = logging.getLogger(__name__)

# Paris meridian, 2°20'14.025" east of Greenwich
PARIS_MERIDIAN = 0.04079234433

CLARKE_1880_IGN_A = 6378249.2
CLARKE_1880_IGN_E = 0.08248325676
GRS80_A = 6378137.0
GRS80_E = 0.0818191910428158

# NTF to WGS84 three-parameter shift
NTF_TO_WGS84 = {"tx": -168.0, "ty": -60.0, "tz": 320.0}

ASSUMED_HEIGHT = 100.0

PROFILES: dict[str, ProjectionProfile] = {
    # RGF93 / Lambert-93, secant at 44°N and 49°N; RGF93 is WGS84 at this precision.
    # IGN definition (GRS80, 3°E meridian), not the older Clarke/Paris L93 table.
    "L93": ProjectionProfile(
        name="L93",
        e=GRS80_E,
        n=0.7256077650532670,
        c=11754255.426096,
        xs=700000.0,
        ys=12655612.049876,
        lambdac=math.radians(3.0),
        a=GRS80_A,
        he=ASSUMED_HEIGHT,
    ),
    # NTF (Paris) / Lambert zone II, tangent at 52 grads.
    "LII": ProjectionProfile(
        name="LII",
        e=CLARKE_1880_IGN_E,
        n=0.7289686274,
        c=11745793.39,
        xs=600000.0,
        ys=6199695.768,
        lambdac=PARIS_MERIDIAN,
        a=CLARKE_1880_IGN_A,
        he=ASSUMED_HEIGHT,
        **NTF_TO_WGS84,
    ),
}

DEFAULT_PROFILE = "LII"


def resolve(name: str, *, strict: bool = False, default: str = DEFAULT_PROFILE) -> ProjectionProfile:
    """Return the preset called ``name``.

    Unknown names fall back to the ``default`` preset, unless ``strict`` is
    set, in which case :class:`UnknownProfileError` is raised.
    """
    try:
        return PROFILES[name]
    except KeyError:
        if strict:
            raise UnknownProfileError(name) from None
    logger.warning("Unknown projection profile %r, using %r", name, default)
    return PROFILES[default]


def derive_secant(
    lambda0: float,
    phi0: float,
    x0: float,
    y0: float,
    phi1: float,
    phi2: float,
    a: float,
    e: float,
) -> tuple[float, float, float, float]:
    """Constants of a Lambert projection secant to the parallels ``phi1`` and ``phi2``.

    Returns ``(n, c, xs, ys)``. The northing is moved from the origin
    ``(lambda0, phi0)`` to the cone apex unless the origin is the pole.
    Parallels at ±90° make the formula undefined.
    """
    n1 = prime_vertical_radius(phi1, a, e) * math.cos(phi1)
    n2 = prime_vertical_radius(phi2, a, e) * math.cos(phi2)
    n = math.log(n2 / n1) / (isometric_latitude(phi1, e) - isometric_latitude(phi2, e))
    c = n1 / n * math.exp(n * isometric_latitude(phi1, e))
    ys = y0
    if phi0 != math.pi / 2:
        ys = y0 + c * math.exp(-n * isometric_latitude(phi0, e))
    return n, c, x0, ys


def derive_tangent(
    lambda0: float,
    phi0: float,
    k0: float,
    x0: float,
    y0: float,
    a: float,
    e: float,
) -> tuple[float, float, float, float]:
    """Constants of a Lambert projection tangent at ``phi0`` with scale factor ``k0``.

    Returns ``(n, c, xs, ys)``.
    """
    n = math.sin(phi0)
    radius = k0 * prime_vertical_radius(phi0, a, e) * math.tan(math.pi / 2 - phi0)
    c = radius * math.exp(n * isometric_latitude(phi0, e))
    return n, c, x0, y0 + radius


def profile_from_secant(
    name: str,
    lambda0: float,
    phi0: float,
    x0: float,
    y0: float,
    phi1: float,
    phi2: float,
    a: float,
    e: float,
    **datum: float,
) -> ProjectionProfile:
    """Build a profile from standard parallels; ``datum`` takes ``he`` and Helmert terms."""
    n, c, xs, ys = derive_secant(lambda0, phi0, x0, y0, phi1, phi2, a, e)
    return ProjectionProfile(name=name, e=e, n=n, c=c, xs=xs, ys=ys, lambdac=lambda0, a=a, **datum)


def profile_from_tangent(
    name: str,
    lambda0: float,
    phi0: float,
    k0: float,
    x0: float,
    y0: float,
    a: float,
    e: float,
    **datum: float,
) -> ProjectionProfile:
    """Build a profile from a tangent latitude and scale factor."""
    n, c, xs, ys = derive_tangent(lambda0, phi0, k0, x0, y0, a, e)
    return ProjectionProfile(name=name, e=e, n=n, c=c, xs=xs, ys=ys, lambdac=lambda0, a=a, **datum)
