"""
Spherical and Geodesic Distance Calculations.

This module provides the great-circle primitives the geometry engine is
built from: distance, initial bearing, destination point, midpoint and the
spherical excess of a triangle. Inputs and outputs are in DEGREES and
METERS.

Scientific Context
------------------
Domain: Spherical trigonometry, geodesy
Model: Sphere of radius 6,371 km; WGS84 ellipsoid for `geodesic_inverse`

Survey sketches are measured against web maps that use the spherical
model, so the spherical formulas are the default. They differ from the
ellipsoidal geodesic by up to 0.5%; `geodesic_inverse` wraps the
GeographicLib solver in `pyproj` for callers that need the ellipsoidal
value.

Formulas
--------
- Haversine distance (numerically stable for short baselines)
- Forward azimuth: atan2(sin Δλ cos φ2, cos φ1 sin φ2 - sin φ1 cos φ2 cos Δλ)
- L'Huilier's theorem for the spherical excess of a triangle

References
----------
- Sinnott, R.W. (1984). Virtues of the Haversine. Sky and Telescope, 68(2), 159.
- Karney, C.F.F. (2013). Algorithms for geodesics. Journal of Geodesy, 87(1), 43-55.
- Todhunter, I. (1886). Spherical Trigonometry, §101 (L'Huilier).
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import Geod

from common.constants import GeodeticConstants

EARTH_RADIUS_M = GeodeticConstants.EARTH_MEAN_RADIUS.value

# Create the geodesic calculator for WGS84
_wgs84_geod = Geod(ellps='WGS84')


@dataclass
class GeodesicResult:
    """Result of an ellipsoidal geodesic calculation.

    Attributes
    ----------
    distance_m : float
        Geodesic (shortest path) distance in meters.
    azimuth_forward_deg : float
        Forward azimuth from point 1 to point 2 in [0, 360).
    azimuth_back_deg : float
        Back azimuth from point 2 to point 1 in [0, 360).
    """
    distance_m: float
    azimuth_forward_deg: float
    azimuth_back_deg: float


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Angle subtended at the sphere's centre by two points, in radians."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = np.radians(lng2 - lng1)

    h = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    h = min(max(h, 0.0), 1.0)
    return float(2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h)))


def haversine_distance(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
    radius_m: float = EARTH_RADIUS_M
) -> float:
    """Great-circle distance between two points in meters.

    Examples
    --------
    >>> round(haversine_distance(0.0, 0.0, 0.0, 1.0))
    111195
    """
    return central_angle(lat1, lng1, lat2, lng2) * radius_m


def initial_bearing(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2.

    Returns
    -------
    float
        Bearing in degrees clockwise from north, in [0, 360).
    """
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    d_lambda = np.radians(lng2 - lng1)

    y = np.sin(d_lambda) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(d_lambda)

    bearing = (np.degrees(np.arctan2(y, x)) + 360.0) % 360.0
    # -0.0 % 360 and tiny negatives can round up to exactly 360
    return float(bearing) if bearing < 360.0 else 0.0


def destination_point(
    lat: float,
    lng: float,
    distance_m: float,
    bearing_deg: float,
    radius_m: float = EARTH_RADIUS_M
) -> Tuple[float, float]:
    """Point reached by travelling `distance_m` along `bearing_deg`.

    Returns
    -------
    Tuple[float, float]
        (lat, lng) in degrees; longitude normalized to [-180, 180).
    """
    delta = distance_m / radius_m
    theta = np.radians(bearing_deg)
    phi1 = np.radians(lat)
    lambda1 = np.radians(lng)

    sin_phi2 = np.sin(phi1) * np.cos(delta) + np.cos(phi1) * np.sin(delta) * np.cos(theta)
    phi2 = np.arcsin(np.clip(sin_phi2, -1.0, 1.0))
    lambda2 = lambda1 + np.arctan2(
        np.sin(theta) * np.sin(delta) * np.cos(phi1),
        np.cos(delta) - np.sin(phi1) * np.sin(phi2)
    )

    new_lng = (np.degrees(lambda2) + 540.0) % 360.0 - 180.0
    return float(np.degrees(phi2)), float(new_lng)


def spherical_midpoint(lat1: float, lng1: float, lat2: float, lng2: float) -> Tuple[float, float]:
    """Midpoint of the great-circle arc between two points, in degrees."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    lambda1 = np.radians(lng1)
    d_lambda = np.radians(lng2 - lng1)

    bx = np.cos(phi2) * np.cos(d_lambda)
    by = np.cos(phi2) * np.sin(d_lambda)

    phi_m = np.arctan2(
        np.sin(phi1) + np.sin(phi2),
        np.sqrt((np.cos(phi1) + bx) ** 2 + by ** 2)
    )
    lambda_m = lambda1 + np.arctan2(by, np.cos(phi1) + bx)
    return float(np.degrees(phi_m)), float(np.degrees(lambda_m))


def unit_vector(lat: float, lng: float) -> NDArray[np.float64]:
    """Unit position vector of a point on the sphere."""
    phi, lam = np.radians(lat), np.radians(lng)
    return np.array([np.cos(phi) * np.cos(lam), np.cos(phi) * np.sin(lam), np.sin(phi)])


def spherical_triangle_excess(
    p1: Tuple[float, float],
    p2: Tuple[float, float],
    p3: Tuple[float, float]
) -> float:
    """Signed spherical excess of a triangle given as (lat, lng) vertices.

    Parameters
    ----------
    p1, p2, p3 : tuple of float
        Vertices in degrees.

    Returns
    -------
    float
        Excess E in steradians on the unit sphere. Positive for
        counter-clockwise vertex order (seen from outside the sphere),
        negative for clockwise. Area on a sphere of radius R is |E|·R².

    Notes
    -----
    L'Huilier's theorem:

        tan(E/4) = sqrt(tan(s/2) tan((s-a)/2) tan((s-b)/2) tan((s-c)/2))

    with a, b, c the side arcs and s the semi-perimeter. This form stays
    accurate for the small triangles a survey produces, where Girard's
    angle sum loses all precision.
    """
    a = central_angle(p2[0], p2[1], p3[0], p3[1])
    b = central_angle(p1[0], p1[1], p3[0], p3[1])
    c = central_angle(p1[0], p1[1], p2[0], p2[1])
    s = (a + b + c) / 2

    product = (
        np.tan(s / 2)
        * np.tan((s - a) / 2)
        * np.tan((s - b) / 2)
        * np.tan((s - c) / 2)
    )
    excess = 4 * np.arctan(np.sqrt(max(product, 0.0)))

    orientation = np.dot(
        unit_vector(*p1),
        np.cross(unit_vector(*p2), unit_vector(*p3))
    )
    return float(excess if orientation >= 0 else -excess)


def geodesic_inverse(lat1: float, lng1: float, lat2: float, lng2: float) -> GeodesicResult:
    """Solve the inverse geodesic problem on the WGS84 ellipsoid.

    Parameters
    ----------
    lat1, lng1 : float
        First point in degrees.
    lat2, lng2 : float
        Second point in degrees.

    Returns
    -------
    GeodesicResult
        Distance in meters, forward and back azimuths in degrees.

    Examples
    --------
    >>> # New York to London
    >>> result = geodesic_inverse(40.7128, -74.0060, 51.5074, -0.1278)
    >>> print(f"Distance: {result.distance_m / 1000:.1f} km")
    Distance: 5570.2 km
    """
    az_forward, az_back, distance_m = _wgs84_geod.inv(lng1, lat1, lng2, lat2)
    return GeodesicResult(
        distance_m=float(distance_m),
        azimuth_forward_deg=float(az_forward % 360.0),
        azimuth_back_deg=float(az_back % 360.0),
    )
