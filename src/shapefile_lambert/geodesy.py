"""Geodetic math used by the Lambert to WGS84 pipeline.

Every function here is pure: results depend only on the arguments, so the
routines are safe to call from several threads or worker processes.
Angles are in radians, lengths in metres.
"""

from __future__ import annotations

import math

from .exceptions import ConvergenceError

EPSILON = 1e-11
MAX_ITERATIONS = 100

WGS84_A = 6378137.0
WGS84_F = 1 / 298.257223563

Vector3 = tuple[float, float, float]


def eccentricity(a: float, f: float) -> float:
    """First eccentricity of an ellipsoid given its semi-major axis and flattening."""
    b = a * (1 - f)
    return math.sqrt((a * a - b * b) / (a * a))


WGS84_E = eccentricity(WGS84_A, WGS84_F)


def atan_ratio(num: float, den: float) -> float:
    """``atan(num / den)`` with IEEE handling of a zero denominator.

    Deliberately not ``atan2``: the result stays in ``(-pi/2, pi/2)``.
    ``0 / 0`` resolves to 0.
    """
    if den == 0:
        if num == 0:
            return 0.0
        return math.copysign(math.pi / 2, num) * math.copysign(1.0, den)
    return math.atan(num / den)


def _gudermannian(x: float) -> float:
    # 2 * atan(exp(x)) - pi/2, without overflowing for large |x|
    return 2 * math.atan(math.tanh(x / 2))


def isometric_latitude(phi: float, e: float) -> float:
    """Isometric latitude of ``phi`` on an ellipsoid of eccentricity ``e``."""
    e_sin = e * math.sin(phi)
    return math.log(math.tan(math.pi / 4 + phi / 2) * ((1 - e_sin) / (1 + e_sin)) ** (e / 2))


def latitude_from_isometric(
    iso: float, e: float, epsilon: float = EPSILON, max_iterations: int = MAX_ITERATIONS
) -> float:
    """Invert :func:`isometric_latitude` by fixed-point iteration.

    The iteration is ``phi = 2 atan(((1 + e sin phi) / (1 - e sin phi))^(e/2) exp(L)) - pi/2``
    seeded with the spherical latitude ``2 atan(exp(L)) - pi/2``. Both are
    evaluated through the Gudermannian function, since
    ``((1 + x) / (1 - x))^(e/2) exp(L) == exp(L + e atanh(x))``.

    Raises:
        ConvergenceError: when consecutive estimates are still ``epsilon`` or
            more apart after ``max_iterations`` steps.
    """
    phi = _gudermannian(iso)
    step = math.inf
    for _ in range(max_iterations):
        next_phi = _gudermannian(iso + e * math.atanh(e * math.sin(phi)))
        step = abs(next_phi - phi)
        phi = next_phi
        if step < epsilon:
            return phi
    raise ConvergenceError("latitude_from_isometric", max_iterations, step)


def prime_vertical_radius(phi: float, a: float, e: float) -> float:
    """Radius of curvature in the prime vertical, N(phi)."""
    sin_phi = math.sin(phi)
    return a / math.sqrt(1 - e * e * sin_phi * sin_phi)


def geodetic_to_cartesian(lam: float, phi: float, h: float, a: float, e: float) -> Vector3:
    """Convert longitude, latitude and ellipsoidal height to earth-centered X, Y, Z."""
    n = prime_vertical_radius(phi, a, e)
    x = (n + h) * math.cos(phi) * math.cos(lam)
    y = (n + h) * math.cos(phi) * math.sin(lam)
    z = (n * (1 - e * e) + h) * math.sin(phi)
    return x, y, z


def cartesian_to_geodetic(
    x: float,
    y: float,
    z: float,
    a: float,
    e: float,
    epsilon: float = EPSILON,
    max_iterations: int = MAX_ITERATIONS,
) -> Vector3:
    """Convert earth-centered X, Y, Z to ``(longitude, latitude, height)``.

    Longitude comes from ``atan(Y / X)`` and so only covers the half space
    ``X > 0`` correctly. Latitude is refined by fixed-point iteration until
    two estimates differ by less than ``epsilon``.

    Raises:
        ConvergenceError: if the latitude has not settled after ``max_iterations``.
    """
    lam = atan_ratio(y, x)
    e2 = e * e
    p = math.hypot(x, y)

    if p == 0:
        # On the polar axis the iteration is undefined; the answer is exact.
        phi = math.copysign(math.pi / 2, z)
        return lam, phi, abs(z) - a * math.sqrt(1 - e2)

    r = math.sqrt(x * x + y * y + z * z)
    phi = math.atan(z / (p * (1 - a * e2 / r)))
    step = math.inf
    for _ in range(max_iterations):
        sin_phi = math.sin(phi)
        denom = 1 - a * e2 * math.cos(phi) / (p * math.sqrt(1 - e2 * sin_phi * sin_phi))
        next_phi = math.atan(z / p / denom)
        step = abs(next_phi - phi)
        phi = next_phi
        if step < epsilon:
            break
    else:
        raise ConvergenceError("cartesian_to_geodetic", max_iterations, step)

    sin_phi = math.sin(phi)
    h = p / math.cos(phi) - a / math.sqrt(1 - e2 * sin_phi * sin_phi)
    return lam, phi, h


def helmert(
    tx: float,
    ty: float,
    tz: float,
    d: float,
    rx: float,
    ry: float,
    rz: float,
    u: Vector3,
) -> Vector3:
    """Seven-parameter similarity transform, linearized for small rotations.

    ``V = T + (1 + D) U + R x U``
    """
    ux, uy, uz = u
    return (
        tx + ux * (1 + d) + uz * ry - uy * rz,
        ty + uy * (1 + d) + ux * rz - uz * rx,
        tz + uz * (1 + d) + uy * rx - ux * ry,
    )


def inverse_helmert(
    tx: float,
    ty: float,
    tz: float,
    d: float,
    rx: float,
    ry: float,
    rz: float,
    v: Vector3,
) -> Vector3:
    """Solve :func:`helmert` for ``U`` given ``V``.

    The linearized transform is an affine map, so this is an exact 3x3
    solve rather than the usual sign-flip approximation.
    """
    s = 1 + d
    m = (
        (s, -rz, ry),
        (rz, s, -rx),
        (-ry, rx, s),
    )
    b = (v[0] - tx, v[1] - ty, v[2] - tz)
    return _solve3(m, b)


def _det3(m) -> float:
    return (
        m[0][0] * (m[1][1] * m[2][2] - m[1][2] * m[2][1])
        - m[0][1] * (m[1][0] * m[2][2] - m[1][2] * m[2][0])
        + m[0][2] * (m[1][0] * m[2][1] - m[1][1] * m[2][0])
    )


def _solve3(m, b) -> Vector3:
    det = _det3(m)
    result = []
    for col in range(3):
        replaced = [list(row) for row in m]
        for row in range(3):
            replaced[row][col] = b[row]
        result.append(_det3(replaced) / det)
    return result[0], result[1], result[2]
