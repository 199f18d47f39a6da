"""
Survey Geodesy Core.

All position arithmetic for the survey tooling goes through this package.
Map adapters, drawing tools and feature import/export call it and receive
Coordinates or plain records back; none of them implement geometry of
their own.

This package provides:
- The `Coordinate` value type with explicit datum and height reference
- WGS84/NAD83/NAD27 datum transformation (Helmert via ECEF)
- An approximate geoid model for ellipsoidal <-> orthometric heights
- A transformer registry scoped to a `GeodesyContext`
- Survey geometry: distance, area, perimeter, centroids, offsets, arcs
"""

from geosurvey.config import GeodesyConfig, InputPolicy

from geosurvey.errors import (
    GeodesyError,
    InvalidCoordinateError,
    InvalidElevationError,
    HeightReferenceError,
    UnsupportedProjectionError,
    UnsupportedDatumError,
    ProjectionNotImplementedError,
    TransformationError,
    TransformationNotImplementedError,
    GeoidDomainError,
    InsufficientPointsError,
    UnknownTransformerError,
    TransformerNotImplementedError,
)

from geosurvey.coordinate import (
    COORDINATE_ALIASES,
    Coordinate,
    HeightReference,
    normalize_coordinate,
    record_elevation,
)

from geosurvey.geoid_model import GeoidModel

from geosurvey.transformer import CoordinateTransformer, GeoidCache, TransformCache

from geosurvey.datum_transformer import (
    DatumShiftParameters,
    ProjectionDefinition,
    ProjectionType,
    SimpleWGS84Transformer,
    describe_datum_shifts,
)

from geosurvey.registry import TransformerRegistry, TransformerType

from geosurvey.context import (
    GeodesyContext,
    get_default_context,
    initialize_core,
    set_default_context,
)

from geosurvey import geometry_engine

__all__ = [
    # Configuration
    "GeodesyConfig",
    "InputPolicy",
    # Errors
    "GeodesyError",
    "InvalidCoordinateError",
    "InvalidElevationError",
    "HeightReferenceError",
    "UnsupportedProjectionError",
    "UnsupportedDatumError",
    "ProjectionNotImplementedError",
    "TransformationError",
    "TransformationNotImplementedError",
    "GeoidDomainError",
    "InsufficientPointsError",
    "UnknownTransformerError",
    "TransformerNotImplementedError",
    # Coordinates
    "COORDINATE_ALIASES",
    "Coordinate",
    "HeightReference",
    "normalize_coordinate",
    "record_elevation",
    # Transformation
    "GeoidModel",
    "CoordinateTransformer",
    "GeoidCache",
    "TransformCache",
    "DatumShiftParameters",
    "ProjectionDefinition",
    "ProjectionType",
    "SimpleWGS84Transformer",
    "describe_datum_shifts",
    "TransformerRegistry",
    "TransformerType",
    # Context
    "GeodesyContext",
    "get_default_context",
    "initialize_core",
    "set_default_context",
    # Geometry
    "geometry_engine",
]
