"""
Error Hierarchy for the Survey Geodesy Core.

Hard failures are reserved for operations that are mathematically
undefined (too few points, unsupported height-reference pair, geoid query
outside its domain) or that hit a registered-but-unimplemented code path
(UTM, State Plane, extension transformers). Malformed input elsewhere is
coerced and logged instead of raised.

Every class also derives from the closest builtin so callers that only
know about `ValueError` or `NotImplementedError` still catch them.
"""

from typing import Iterable


class GeodesyError(Exception):
    """Base error for survey geodesy operations."""


class InvalidCoordinateError(GeodesyError, ValueError):
    """Coordinate input rejected under the strict input policy."""


class InvalidElevationError(InvalidCoordinateError):
    """Elevation is not a finite number."""


class HeightReferenceError(GeodesyError, ValueError):
    """Requested height-reference conversion is not supported."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(
            f"Unsupported height reference conversion: {source} to {target}"
        )


class UnsupportedProjectionError(GeodesyError, ValueError):
    """Projection identifier is not in the transformer's registry."""

    def __init__(self, projection: str, supported: Iterable[str]) -> None:
        self.projection = projection
        self.supported = list(supported)
        super().__init__(
            f"Unsupported projection: {projection}. "
            f"Supported projections are: {', '.join(self.supported)}"
        )


class UnsupportedDatumError(GeodesyError, ValueError):
    """No datum shift path exists between two datums."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Unsupported datum transformation: {source} to {target}")


class ProjectionNotImplementedError(GeodesyError, NotImplementedError):
    """Projection is registered but its conversion is not implemented."""


class TransformationError(GeodesyError, RuntimeError):
    """A coordinate transformation failed.

    Attributes
    ----------
    source : str
        Source projection of the attempted transform.
    target : str
        Target projection of the attempted transform.
    """

    def __init__(self, source: str, target: str, reason: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Transformation failed from {source} to {target}: {reason}")


class TransformationNotImplementedError(TransformationError, NotImplementedError):
    """A transformation failed because it needs an unimplemented conversion."""


class GeoidDomainError(GeodesyError, ValueError):
    """Geoid height requested outside [-90, 90] x [-180, 180]."""

    def __init__(self, lat: float, lng: float) -> None:
        self.lat = lat
        self.lng = lng
        super().__init__(f"Invalid coordinates for geoid lookup: {lat}, {lng}")


class InsufficientPointsError(GeodesyError, ValueError):
    """Geometry operation is undefined for the number of points supplied."""


class UnknownTransformerError(GeodesyError, ValueError):
    """Transformer type is not one of the known types."""


class TransformerNotImplementedError(GeodesyError, NotImplementedError):
    """Transformer type is known but has no implementation."""
