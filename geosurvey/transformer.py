"""
Coordinate Transformer Capability.

Defines the interface every coordinate transformer implements and the
behavior they share: result caching, geoid-height caching, antimeridian
routing and error reporting.

Caching Model
-------------
Both caches are plain in-memory mappings that never expire. They are owned
by a `GeodesyContext` and handed to the transformers it creates, so two
contexts never share cached results. No locking is performed: a context is
meant to be used from one thread at a time.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from common.constants import GeodeticConstants
from common.logging_config import get_logger

if TYPE_CHECKING:
    from geosurvey.coordinate import Coordinate

logger = get_logger(__name__)

TransformKey = Tuple[str, str, str, str, str]
GeoidKey = Tuple[str, str]
TransformedValues = Tuple[float, float, float]


class TransformCache:
    """Transformed (lat, lng, elevation) values keyed by quantized source position and projections.

    Only the values are stored; the caller's height reference and context
    are applied when a result is built from an entry.

    Latitude and longitude are quantized to 9 decimal places (~0.1 mm),
    elevation to 3 (1 mm).
    """

    def __init__(self):
        self._entries: Dict[TransformKey, TransformedValues] = {}

    @staticmethod
    def key(
        lat: float,
        lng: float,
        elevation: float,
        from_projection: str,
        to_projection: str
    ) -> TransformKey:
        return (
            f"{lat:.9f}",
            f"{lng:.9f}",
            f"{elevation:.3f}",
            from_projection,
            to_projection,
        )

    def get(self, key: TransformKey) -> Optional[TransformedValues]:
        return self._entries.get(key)

    def put(self, key: TransformKey, values: TransformedValues) -> None:
        self._entries[key] = values

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class GeoidCache:
    """Geoid heights keyed by latitude/longitude quantized to 4 decimal places."""

    def __init__(self):
        self._entries: Dict[GeoidKey, float] = {}

    @staticmethod
    def key(lat: float, lng: float) -> GeoidKey:
        return f"{lat:.4f}", f"{lng:.4f}"

    def get(self, key: GeoidKey) -> Optional[float]:
        return self._entries.get(key)

    def put(self, key: GeoidKey, height: float) -> None:
        self._entries[key] = height

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class CoordinateTransformer(ABC):
    """Abstract base class for coordinate transformers.

    Subclasses implement the projection/datum pipeline in
    `_transform_values`, which works on raw floats, and expose it through
    `transform`. Routing around the antimeridian happens here so every
    subclass gets the same behavior.

    Parameters
    ----------
    transform_cache : TransformCache, optional
        Cache for transformed coordinates.
    geoid_cache : GeoidCache, optional
        Cache for geoid heights.
    """

    def __init__(
        self,
        transform_cache: Optional[TransformCache] = None,
        geoid_cache: Optional[GeoidCache] = None
    ):
        self._transform_cache = transform_cache if transform_cache is not None else TransformCache()
        self._geoid_cache = geoid_cache if geoid_cache is not None else GeoidCache()
        self._dateline_handled = False

    @abstractmethod
    def transform(
        self,
        coordinate: "Coordinate",
        from_projection: str,
        to_projection: str
    ) -> "Coordinate":
        """Transform a coordinate from one projection to another.

        Returns
        -------
        Coordinate
            A new coordinate tagged with `to_projection`.
        """
        pass

    @abstractmethod
    def get_supported_projections(self) -> List[str]:
        """Identifiers of the projections this transformer accepts."""
        pass

    @abstractmethod
    def convert_ellipsoidal_to_orthometric(self, coordinate: "Coordinate") -> "Coordinate":
        """Convert height above the ellipsoid to height above the geoid."""
        pass

    @abstractmethod
    def convert_orthometric_to_ellipsoidal(self, coordinate: "Coordinate") -> "Coordinate":
        """Convert height above the geoid to height above the ellipsoid."""
        pass

    @abstractmethod
    def _transform_values(
        self,
        lat: float,
        lng: float,
        elevation: float,
        from_projection: str,
        to_projection: str
    ) -> Tuple[float, float, float]:
        """Run the projection/datum pipeline on raw values (degrees, meters)."""
        pass

    @property
    def transform_cache(self) -> TransformCache:
        return self._transform_cache

    @property
    def geoid_cache(self) -> GeoidCache:
        return self._geoid_cache

    def clear_cache(self) -> None:
        """Clear the transformation and geoid caches."""
        self._transform_cache.clear()
        self._geoid_cache.clear()

    def _crosses_date_line(self, lng: float, from_projection: str, to_projection: str) -> bool:
        """Whether a transform at this longitude should be routed around the antimeridian."""
        return abs(lng) > GeodeticConstants.DATE_LINE_THRESHOLD_DEG.value

    def _route(
        self,
        lat: float,
        lng: float,
        elevation: float,
        from_projection: str,
        to_projection: str
    ) -> Tuple[float, float, float]:
        if self._crosses_date_line(lng, from_projection, to_projection):
            return self._handle_date_line_crossing(
                lat, lng, elevation, from_projection, to_projection
            )
        return self._transform_values(lat, lng, elevation, from_projection, to_projection)

    def _handle_date_line_crossing(
        self,
        lat: float,
        lng: float,
        elevation: float,
        from_projection: str,
        to_projection: str
    ) -> Tuple[float, float, float]:
        """Transform in a frame shifted by a full turn, then wrap back.

        The shifted longitude lies outside [-180, 180], so it is carried as
        a raw float rather than a Coordinate (which would clamp it).
        """
        # Single flight: the shifted longitude also looks like a crossing
        if self._dateline_handled:
            return self._transform_values(lat, lng, elevation, from_projection, to_projection)

        self._dateline_handled = True
        try:
            shifted_lng = lng - 360.0 if lng > 0 else lng + 360.0
            new_lat, new_lng, new_elevation = self._route(
                lat, shifted_lng, elevation, from_projection, to_projection
            )
        finally:
            self._dateline_handled = False

        if new_lng < -180.0:
            new_lng += 360.0
        elif new_lng > 180.0:
            new_lng -= 360.0

        return new_lat, new_lng, new_elevation

    def _cache_key(
        self,
        coordinate: "Coordinate",
        from_projection: str,
        to_projection: str
    ) -> TransformKey:
        return TransformCache.key(
            coordinate.latitude,
            coordinate.longitude,
            coordinate.elevation,
            from_projection,
            to_projection,
        )

    def _log_transformation_error(
        self,
        error: Exception,
        coordinate: "Coordinate",
        from_projection: str,
        to_projection: str
    ) -> None:
        logger.error(
            f"Transformation error: {error} | "
            f"source=(projection={from_projection}, lat={coordinate.latitude}, "
            f"lng={coordinate.longitude}, elev={coordinate.elevation}) | "
            f"target={to_projection}",
            exc_info=error,
        )
