"""
Geodetic Constants for Survey Geometry.

This module provides the reference-ellipsoid and Earth-model constants used
by the coordinate, transformation and geometry modules. All constants are
defined in SI units and traceable to authoritative sources.

References
----------
- WGS84 parameters: NIMA TR8350.2, Third Edition, 2000
- Mean Earth radius: IUGG
"""

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class Constant:
    """A physical constant with uncertainty and provenance.

    Attributes
    ----------
    value : float
        The nominal value of the constant.
    uncertainty : float
        The standard uncertainty (1-sigma) of the constant.
    unit : str
        The SI unit of the constant.
    source : str
        Reference for the constant value.
    description : str
        Human-readable description of the constant.
    """
    value: float
    uncertainty: float
    unit: str
    source: str
    description: str


class GeodeticConstants:
    """Registry of geodetic constants used throughout the system.

    Earth Geometry (WGS84)
    ----------------------
    These constants define the reference ellipsoid used for ECEF
    conversions and Helmert datum shifts. The WGS84 ellipsoid is the
    standard for GPS and global applications.

    Spherical Earth Model
    ---------------------
    Great-circle distances, bearings, destination points and spherical
    areas use a sphere of radius 6,371 km. This matches the radius
    used by common web-mapping tools so survey measurements agree with
    what users see on the map.
    """

    # =========================================================================
    # WGS84 Ellipsoid Parameters
    # Reference: NIMA TR8350.2, Third Edition, 2000
    # =========================================================================

    EARTH_SEMI_MAJOR_AXIS: Final[Constant] = Constant(
        value=6_378_137.0,
        uncertainty=0.0,  # Defined exactly
        unit="m",
        source="WGS84, NIMA TR8350.2",
        description="Semi-major axis (equatorial radius) of WGS84 ellipsoid"
    )

    EARTH_SEMI_MINOR_AXIS: Final[Constant] = Constant(
        value=6_356_752.314245,
        uncertainty=0.0001,
        unit="m",
        source="WGS84, NIMA TR8350.2",
        description="Semi-minor axis (polar radius) of WGS84 ellipsoid"
    )

    EARTH_FLATTENING: Final[Constant] = Constant(
        value=1.0 / 298.257223563,
        uncertainty=0.0,  # Defined exactly
        unit="dimensionless",
        source="WGS84, NIMA TR8350.2",
        description="Flattening of WGS84 ellipsoid: f = (a - b) / a"
    )

    EARTH_ECCENTRICITY_SQUARED: Final[Constant] = Constant(
        value=0.00669437999014,
        uncertainty=1e-14,
        unit="dimensionless",
        source="WGS84, NIMA TR8350.2 (derived)",
        description="First eccentricity squared: e² = (a² - b²) / a²"
    )

    # =========================================================================
    # Spherical Earth Model
    # =========================================================================

    EARTH_MEAN_RADIUS: Final[Constant] = Constant(
        value=6_371_000.0,
        uncertainty=10.0,
        unit="m",
        source="IUGG mean radius (rounded)",
        description="Sphere radius for Haversine, bearing and spherical-excess formulas"
    )

    # =========================================================================
    # Angular Conventions
    # =========================================================================

    DATE_LINE_THRESHOLD_DEG: Final[Constant] = Constant(
        value=170.0,
        uncertainty=0.0,
        unit="degree",
        source="Transformer convention",
        description="Absolute longitude beyond which a transform is routed around the antimeridian"
    )

    # Continental US box used by the approximate geoid model:
    # (min_lat, max_lat, min_lng, max_lng) in degrees
    CONUS_BOUNDS_DEG: Final[tuple] = (24.0, 50.0, -125.0, -66.0)
