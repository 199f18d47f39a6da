"""
ECEF Conversion and Helmert Datum Shifts.

A datum is an ellipsoid together with an origin and an orientation, so
moving a position between datums is a rigid-body motion (plus a small
scale change) of 3D space. Positions are lifted from geographic form to
Earth-Centered Earth-Fixed (ECEF) Cartesian coordinates, shifted there, and
brought back.

Scientific Context
------------------
Domain: Geodesy, datum transformation
Model: WGS84 reference ellipsoid (a = 6,378,137 m, e² = 0.00669437999014)

The inverse conversion is Bowring's closed-form solution through the
parametric latitude. Near the ellipsoid surface its error is far below a
millimetre, so no iteration is performed.

References
----------
- NIMA TR8350.2: WGS84 parameters
- Bowring, B.R. (1976). Transformation from spatial to geographical
  coordinates. Survey Review, 23(181), 323-327.
"""

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray

from common.constants import GeodeticConstants
from common.types import CartesianPoint

ArrayLike = Union[float, NDArray[np.float64]]

# Below this distance (m) from the polar axis longitude is undefined
_POLAR_AXIS_TOLERANCE_M = 1e-10


@dataclass(frozen=True)
class Ellipsoid:
    """Reference ellipsoid given by its semi-major axis and eccentricity.

    Attributes
    ----------
    a : float
        Equatorial radius in meters.
    e2 : float
        First eccentricity squared.
    name : str
        Identifier, e.g. 'WGS84'.
    """
    a: float
    e2: float
    name: str

    @property
    def b(self) -> float:
        """Polar radius in meters."""
        return self.a * np.sqrt(1 - self.e2)

    @property
    def ep2(self) -> float:
        """Second eccentricity squared, e'² = e² / (1 - e²)."""
        return self.e2 / (1 - self.e2)


WGS84 = Ellipsoid(
    a=GeodeticConstants.EARTH_SEMI_MAJOR_AXIS.value,
    e2=GeodeticConstants.EARTH_ECCENTRICITY_SQUARED.value,
    name="WGS84",
)


def prime_vertical_radius(latitude_rad: ArrayLike, ellipsoid: Ellipsoid = WGS84) -> ArrayLike:
    """N(φ) = a / sqrt(1 - e² sin²φ), in meters. Accepts scalars or arrays."""
    return ellipsoid.a / np.sqrt(1 - ellipsoid.e2 * np.sin(latitude_rad) ** 2)


def _to_ecef(
    latitude_rad: ArrayLike,
    longitude_rad: ArrayLike,
    height_m: ArrayLike,
    ellipsoid: Ellipsoid
) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
    n = prime_vertical_radius(latitude_rad, ellipsoid)
    horizontal = (n + height_m) * np.cos(latitude_rad)
    return (
        horizontal * np.cos(longitude_rad),
        horizontal * np.sin(longitude_rad),
        (n * (1 - ellipsoid.e2) + height_m) * np.sin(latitude_rad),
    )


def geodetic_to_ecef(
    latitude_rad: float,
    longitude_rad: float,
    height_m: float = 0.0,
    ellipsoid: Ellipsoid = WGS84
) -> CartesianPoint:
    """Geodetic position to ECEF (X, Y, Z) in meters.

    X points through (0°, 0°), Y through (0°, 90°E) and Z through the
    north pole.
    """
    x, y, z = _to_ecef(latitude_rad, longitude_rad, height_m, ellipsoid)
    return CartesianPoint(float(x), float(y), float(z))


def geodetic_to_ecef_batch(
    latitudes_rad: NDArray[np.float64],
    longitudes_rad: NDArray[np.float64],
    heights_m: NDArray[np.float64],
    ellipsoid: Ellipsoid = WGS84
) -> NDArray[np.float64]:
    """Vectorized `geodetic_to_ecef`; returns an (n, 3) array in meters."""
    return np.column_stack(_to_ecef(
        np.asarray(latitudes_rad, dtype=np.float64),
        np.asarray(longitudes_rad, dtype=np.float64),
        np.asarray(heights_m, dtype=np.float64),
        ellipsoid,
    ))


def ecef_to_geodetic(
    x: float,
    y: float,
    z: float,
    ellipsoid: Ellipsoid = WGS84
) -> Tuple[float, float, float]:
    """ECEF position to (latitude_rad, longitude_rad, height_m).

    Notes
    -----
    With p = sqrt(X² + Y²) and the parametric latitude θ = atan2(Z·a, p·b):

        φ = atan2(Z + e'²·b·sin³θ, p - e²·a·cos³θ)
        h = p / cos φ - N(φ)

    Near the poles the height is taken from Z instead, since cos φ → 0.
    """
    a = ellipsoid.a
    b = ellipsoid.b

    longitude_rad = float(np.arctan2(y, x))
    p = float(np.hypot(x, y))

    if p < _POLAR_AXIS_TOLERANCE_M:
        latitude_rad = float(np.copysign(np.pi / 2, z)) if z != 0 else 0.0
        return latitude_rad, longitude_rad, float(abs(z) - b)

    theta = np.arctan2(z * a, p * b)
    latitude_rad = np.arctan2(
        z + ellipsoid.ep2 * b * np.sin(theta) ** 3,
        p - ellipsoid.e2 * a * np.cos(theta) ** 3,
    )

    n = prime_vertical_radius(latitude_rad, ellipsoid)
    cos_lat = np.cos(latitude_rad)
    if abs(cos_lat) > _POLAR_AXIS_TOLERANCE_M:
        height_m = p / cos_lat - n
    else:
        height_m = abs(z) / abs(np.sin(latitude_rad)) - n * (1 - ellipsoid.e2)

    return float(latitude_rad), longitude_rad, float(height_m)


def apply_helmert(
    point: CartesianPoint,
    translation_m: Tuple[float, float, float],
    rotation_rad: Tuple[float, float, float],
    scale: float
) -> CartesianPoint:
    """Seven-parameter Helmert similarity transform of an ECEF point.

    Parameters
    ----------
    point : CartesianPoint
        Source position in meters.
    translation_m : tuple of float
        (dx, dy, dz) in meters.
    rotation_rad : tuple of float
        (rx, ry, rz) in radians; assumed small.
    scale : float
        Scale difference as a bare factor (1 ppm = 1e-6).

    Returns
    -------
    CartesianPoint
        Shifted position in meters.

    Notes
    -----
    Small-angle position-vector form::

        | x' |            |  1   rz  -ry | | x |   | dx |
        | y' | = (1 + s)  | -rz   1   rx | | y | + | dy |
        | z' |            |  ry  -rx   1 | | z |   | dz |

    Negating all seven parameters inverts the transform to first order.
    """
    rx, ry, rz = rotation_rad
    rotation = np.array([
        [1.0, rz, -ry],
        [-rz, 1.0, rx],
        [ry, -rx, 1.0],
    ])
    shifted = (1.0 + scale) * rotation @ np.asarray(point, dtype=np.float64)
    shifted += np.asarray(translation_m, dtype=np.float64)
    return CartesianPoint(*(float(v) for v in shifted))
