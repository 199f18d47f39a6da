"""
Common utilities and infrastructure for the survey geodesy core.

This package provides foundational components used across all modules:
- Geodetic constants with provenance
- Unit registry for angular and scale conversions
- Interchange record types
- Logging infrastructure
"""

from common.constants import Constant, GeodeticConstants
from common.units import (
    UnitRegistry,
    validate_units,
    arcseconds_to_radians,
    ppm_to_scale,
)
from common.types import CoordinateRecord, GeoJSONPoint, CartesianPoint
from common.logging_config import get_logger, set_package_level

__all__ = [
    "Constant",
    "GeodeticConstants",
    "UnitRegistry",
    "validate_units",
    "arcseconds_to_radians",
    "ppm_to_scale",
    "CoordinateRecord",
    "GeoJSONPoint",
    "CartesianPoint",
    "get_logger",
    "set_package_level",
]
