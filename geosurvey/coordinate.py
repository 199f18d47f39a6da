"""
Survey Coordinate Value Type.

A `Coordinate` is a 3D geographic position with explicit vertical and
horizontal reference frames:

    latitude, longitude : DEGREES on the datum named by `projection`
    elevation           : METERS above the surface named by `height_reference`

Changing frame (projection or height reference) always yields a new
instance; `set_z` is the only in-place mutation.

Input Handling
--------------
Survey data arrives from GPS receivers, spreadsheets, map widgets and
hand-typed forms, so construction is lenient by default: strings are
parsed, missing or unparsable lat/lng become 0 and out-of-range values are
clamped, each with a logged warning. A context configured with
`InputPolicy.STRICT` raises `InvalidCoordinateError` instead.
"""

import math
from enum import Enum
from numbers import Real
from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple, Union

from common.logging_config import get_logger
from common.types import CoordinateRecord, GeoJSONPoint
from geosurvey.config import InputPolicy
from geosurvey.distance_calculations import haversine_distance, initial_bearing, spherical_midpoint
from geosurvey.errors import HeightReferenceError, InvalidCoordinateError, InvalidElevationError

if TYPE_CHECKING:
    from geosurvey.context import GeodesyContext
    from geosurvey.transformer import CoordinateTransformer

logger = get_logger(__name__)


class HeightReference(str, Enum):
    """Vertical reference surface of an elevation."""
    ELLIPSOIDAL = "ellipsoidal"
    ORTHOMETRIC = "orthometric"

    @classmethod
    def coerce(cls, value: Any) -> Optional["HeightReference"]:
        """Resolve a value to a HeightReference, or None if it names none."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# Accepted field names, in lookup order
COORDINATE_ALIASES = {
    "lat": ("lat", "latitude", "y"),
    "lng": ("lng", "longitude", "x"),
    "elevation": ("elevation", "altitude", "alt", "z"),
    "height_reference": ("heightReference", "height_reference"),
    "projection": ("projection",),
}

_MISSING = object()


def _lookup(record: Any, names: Tuple[str, ...]) -> Any:
    for name in names:
        if isinstance(record, Mapping):
            if name in record:
                return record[name]
        else:
            value = getattr(record, name, _MISSING)
            if value is not _MISSING:
                return value
    return _MISSING


def _resolve_context(context: Optional["GeodesyContext"]) -> "GeodesyContext":
    if context is not None:
        return context
    from geosurvey.context import get_default_context
    return get_default_context()


class Coordinate:
    """A 3D geographic coordinate.

    Parameters
    ----------
    lat : float or str
        Latitude in degrees, clamped to [-90, 90].
    lng : float or str
        Longitude in degrees, clamped to [-180, 180].
    elevation : float or str, optional
        Elevation in meters; invalid values become 0.
    height_reference : HeightReference or str, optional
        'ellipsoidal' (default) or 'orthometric'.
    projection : str, optional
        Projection identifier, default 'WGS84'.
    context : GeodesyContext, optional
        Supplies the transformer and input policy. Defaults to the
        process default context.

    Raises
    ------
    InvalidCoordinateError
        Only under `InputPolicy.STRICT`, for input the lenient policy
        would coerce.

    Examples
    --------
    >>> c = Coordinate("39.7392", -104.9903, 1609.3)
    >>> c.latitude
    39.7392
    >>> Coordinate(95, -200).latitude
    90.0
    """

    __slots__ = ("_latitude", "_longitude", "_elevation", "_height_reference",
                 "_projection", "_context")

    def __init__(
        self,
        lat: Any,
        lng: Any,
        elevation: Any = 0.0,
        height_reference: Union[HeightReference, str] = HeightReference.ELLIPSOIDAL,
        projection: Optional[str] = "WGS84",
        context: Optional["GeodesyContext"] = None
    ):
        self._context = _resolve_context(context)
        strict = self._context.input_policy is InputPolicy.STRICT

        try:
            self._latitude = self._parse_angle(lat, "latitude", 90.0, strict)
            self._longitude = self._parse_angle(lng, "longitude", 180.0, strict)
            self._elevation = self._parse_elevation(elevation, strict)
            self._height_reference = self._parse_height_reference(height_reference, strict)
            self._projection = projection or "WGS84"
        except InvalidCoordinateError:
            raise
        except Exception as e:
            logger.error(f"Error creating Coordinate, using defaults: {e}", exc_info=e)
            self._latitude = 0.0
            self._longitude = 0.0
            self._elevation = 0.0
            self._height_reference = HeightReference.ELLIPSOIDAL
            self._projection = "WGS84"

    # ------------------------------------------------------------------
    # Input parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip()
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if not math.isnan(number) else None

    @classmethod
    def _parse_angle(cls, value: Any, name: str, limit: float, strict: bool) -> float:
        number = cls._to_float(value)
        if number is None:
            if strict:
                raise InvalidCoordinateError(f"Invalid {name}: {value!r}")
            logger.warning(f"Invalid {name}: {value!r}, defaulting to 0")
            return 0.0

        if number < -limit or number > limit:
            if strict:
                raise InvalidCoordinateError(f"{name.capitalize()} out of range: {number}")
            clamped = max(-limit, min(limit, number))
            logger.warning(f"{name.capitalize()} out of range: {number}, clamping to {clamped}")
            return clamped

        return number

    @classmethod
    def _parse_elevation(cls, value: Any, strict: bool) -> float:
        number = cls._to_float(value)
        if number is None or not math.isfinite(number):
            if strict and value is not None:
                raise InvalidElevationError(f"Invalid elevation: {value!r}")
            return 0.0
        return number

    @staticmethod
    def _parse_height_reference(value: Any, strict: bool) -> HeightReference:
        reference = HeightReference.coerce(value)
        if reference is None:
            if strict:
                raise InvalidCoordinateError(f"Invalid height reference: {value!r}")
            logger.warning(f"Invalid height reference: {value!r}, defaulting to ellipsoidal")
            return HeightReference.ELLIPSOIDAL
        return reference

    # ------------------------------------------------------------------
    # Construction from records
    # ------------------------------------------------------------------

    @classmethod
    def from_record(cls, record: Any, context: Optional["GeodesyContext"] = None) -> "Coordinate":
        """Build a Coordinate from a mapping or attribute-style object.

        Recognised names are listed in `COORDINATE_ALIASES`. Objects whose
        `lat` and `lng` are callables (map-widget LatLng style) are called.

        Examples
        --------
        >>> Coordinate.from_record({"latitude": 40.0, "x": -105.0, "alt": 1600}).elevation
        1600.0
        """
        if record is None or isinstance(record, (str, bytes, Real)):
            logger.warning(f"Invalid coordinate record: {record!r}")
            return cls(0.0, 0.0, 0.0, context=context)

        lat = _lookup(record, COORDINATE_ALIASES["lat"])
        lng = _lookup(record, COORDINATE_ALIASES["lng"])
        elevation = _lookup(record, COORDINATE_ALIASES["elevation"])
        height_reference = _lookup(record, COORDINATE_ALIASES["height_reference"])
        projection = _lookup(record, COORDINATE_ALIASES["projection"])

        if callable(lat) and callable(lng):
            try:
                lat, lng = lat(), lng()
            except Exception as e:
                logger.warning(f"Error calling coordinate accessors: {e}")

        return cls(
            0.0 if lat is _MISSING else lat,
            0.0 if lng is _MISSING else lng,
            0.0 if elevation is _MISSING else elevation,
            HeightReference.ELLIPSOIDAL if height_reference is _MISSING else height_reference,
            "WGS84" if projection is _MISSING else projection,
            context=context,
        )

    def copy_with(self, **changes: Any) -> "Coordinate":
        """Return a new Coordinate with some fields replaced.

        Accepts `latitude`, `longitude`, `elevation`, `height_reference`,
        `projection`; the context is carried over.
        """
        return Coordinate(
            changes.get("latitude", self._latitude),
            changes.get("longitude", self._longitude),
            changes.get("elevation", self._elevation),
            changes.get("height_reference", self._height_reference),
            changes.get("projection", self._projection),
            context=self._context,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def latitude(self) -> float:
        return self._latitude

    @property
    def longitude(self) -> float:
        return self._longitude

    lat = latitude
    lng = longitude

    @property
    def elevation(self) -> float:
        return self._elevation

    @property
    def height_reference(self) -> HeightReference:
        return self._height_reference

    @property
    def projection(self) -> str:
        return self._projection

    @property
    def context(self) -> "GeodesyContext":
        return self._context

    @property
    def transformer(self) -> "CoordinateTransformer":
        return self._context.transformer

    def set_z(self, elevation: Any) -> "Coordinate":
        """Set the elevation in place and return self.

        None means 0.

        Raises
        ------
        InvalidElevationError
            If the value is not a finite number.
        """
        if elevation is None:
            self._elevation = 0.0
            return self

        number = self._to_float(elevation)
        if number is None or not math.isfinite(number):
            raise InvalidElevationError(f"Invalid elevation value: {elevation!r}")
        self._elevation = number
        return self

    # ------------------------------------------------------------------
    # Frame changes
    # ------------------------------------------------------------------

    def clone(self) -> "Coordinate":
        return self.copy_with()

    def to_projection(self, target_projection: str) -> "Coordinate":
        """Return this position expressed in another projection."""
        if target_projection == self._projection:
            return self.clone()
        return self.transformer.transform(self, self._projection, target_projection)

    def to_height_reference(
        self,
        target_reference: Union[HeightReference, str]
    ) -> "Coordinate":
        """Return this position with elevation relative to another surface.

        Raises
        ------
        HeightReferenceError
            If the target is not a supported height reference.
        """
        target = HeightReference.coerce(target_reference)
        if target is None:
            raise HeightReferenceError(self._height_reference.value, str(target_reference))

        if target is self._height_reference:
            return self.clone()

        if target is HeightReference.ORTHOMETRIC:
            return self.transformer.convert_ellipsoidal_to_orthometric(self)
        return self.transformer.convert_orthometric_to_ellipsoidal(self)

    def _in_frame_of(self, other: "Coordinate") -> "Coordinate":
        converted = other
        if converted.projection != self._projection:
            converted = converted.to_projection(self._projection)
        if converted.height_reference is not self._height_reference:
            converted = converted.to_height_reference(self._height_reference)
        return converted

    # ------------------------------------------------------------------
    # Measurements
    # ------------------------------------------------------------------

    def distance_to(self, other: "Coordinate") -> float:
        """3D distance in meters.

        `other` is first brought into this coordinate's projection and
        height reference. The horizontal component is the Haversine
        distance; the elevation difference is added by Pythagoras.
        """
        if not isinstance(other, Coordinate):
            other = Coordinate.from_record(other, context=self._context)
        other = self._in_frame_of(other)

        horizontal = haversine_distance(
            self._latitude, self._longitude, other.latitude, other.longitude
        )
        vertical = other.elevation - self._elevation
        return math.sqrt(horizontal ** 2 + vertical ** 2)

    def bearing_to(self, other: "Coordinate") -> float:
        """Initial bearing to `other` in degrees, in [0, 360)."""
        if not isinstance(other, Coordinate):
            other = Coordinate.from_record(other, context=self._context)
        if other.projection != self._projection:
            other = other.to_projection(self._projection)

        return initial_bearing(self._latitude, self._longitude, other.latitude, other.longitude)

    def midpoint_to(self, other: "Coordinate") -> "Coordinate":
        """Great-circle midpoint with mean elevation, in this coordinate's frame."""
        if not isinstance(other, Coordinate):
            other = Coordinate.from_record(other, context=self._context)
        other = self._in_frame_of(other)

        lat, lng = spherical_midpoint(
            self._latitude, self._longitude, other.latitude, other.longitude
        )
        return self.copy_with(
            latitude=lat,
            longitude=lng,
            elevation=(self._elevation + other.elevation) / 2,
        )

    # ------------------------------------------------------------------
    # Interchange
    # ------------------------------------------------------------------

    def to_record(self) -> CoordinateRecord:
        return {
            "lat": self._latitude,
            "lng": self._longitude,
            "elevation": self._elevation,
            "heightReference": self._height_reference.value,
            "projection": self._projection,
        }

    def to_geojson(self) -> GeoJSONPoint:
        """GeoJSON Point geometry; always WGS84 `[lng, lat, elevation]`."""
        wgs84 = self.to_projection("WGS84")
        return {
            "type": "Point",
            "coordinates": [wgs84.longitude, wgs84.latitude, wgs84.elevation],
        }

    def to_compact_string(self) -> str:
        return f"{self._latitude:.5f},{self._longitude:.5f}"

    def __str__(self) -> str:
        return (
            f"{self._latitude:.7f},{self._longitude:.7f},{self._elevation:.2f} "
            f"({self._projection}, {self._height_reference.value})"
        )

    def __repr__(self) -> str:
        return (
            f"Coordinate(lat={self._latitude!r}, lng={self._longitude!r}, "
            f"elevation={self._elevation!r}, "
            f"height_reference={self._height_reference.value!r}, "
            f"projection={self._projection!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        return (
            self._latitude == other._latitude
            and self._longitude == other._longitude
            and self._elevation == other._elevation
            and self._height_reference is other._height_reference
            and self._projection == other._projection
        )

    __hash__ = None


def normalize_coordinate(
    value: Any,
    context: Optional["GeodesyContext"] = None
) -> Optional[Coordinate]:
    """Turn a Coordinate or coordinate-like record into a Coordinate.

    Returns the input unchanged when it already is a Coordinate, and None
    (with a warning) when no latitude/longitude can be found.
    """
    if isinstance(value, Coordinate):
        return value

    if value is None or isinstance(value, (str, bytes, Real)):
        logger.warning(f"Cannot interpret {value!r} as a coordinate")
        return None

    if (_lookup(value, COORDINATE_ALIASES["lat"]) is _MISSING
            or _lookup(value, COORDINATE_ALIASES["lng"]) is _MISSING):
        logger.warning(f"Coordinate record has no latitude/longitude: {value!r}")
        return None

    return Coordinate.from_record(value, context=context)


def record_elevation(value: Any) -> Optional[float]:
    """Elevation of a Coordinate or coordinate-like record, in meters.

    Returns None when the record carries no elevation, and also (with a
    warning) when the elevation is unparsable or not finite.
    """
    if isinstance(value, Coordinate):
        return value.elevation

    raw = _lookup(value, COORDINATE_ALIASES["elevation"])
    if raw is _MISSING or raw is None:
        return None

    elevation = Coordinate._to_float(raw)
    if elevation is None or not math.isfinite(elevation):
        logger.warning(f"Invalid elevation in coordinate record: {raw!r}, skipping")
        return None
    return elevation
