"""
WGS84-Centred Datum and Projection Transformer.

A lightweight transformer for the coordinate systems North American
civil contractors meet most often, without depending on a full projection
library at runtime.

Supported Systems
-----------------
Geographic : WGS84 (EPSG:4326), NAD83 (EPSG:4269), NAD27 (EPSG:4267)
Registered, not implemented : UTM_NAD83_N, UTM_NAD83_S, StatePlane_NAD83

Requests that need UTM or State Plane fail with an explicit "not
implemented" error. They are never approximated.

Pipeline
--------
1. Source projection -> geographic on the source datum
2. Source datum -> target datum (Helmert, via ECEF)
3. Geographic -> target projection

Datum Shifts
------------
WGS84 <-> NAD83 and NAD83 <-> NAD27 use registered 7-parameter sets (the
reverse direction negates every parameter). WGS84 <-> NAD27 is composed of
two hops through NAD83. The NAD27 parameters are a continental
simplification; regional work would use grid shift files (NADCON).
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Tuple

import numpy as np
from pyproj import CRS

from common.logging_config import get_logger
from common.units import arcseconds_to_radians, ppm_to_scale
from geosurvey.coordinate_models import apply_helmert, ecef_to_geodetic, geodetic_to_ecef
from geosurvey.errors import (
    ProjectionNotImplementedError,
    TransformationError,
    TransformationNotImplementedError,
    UnsupportedDatumError,
    UnsupportedProjectionError,
)
from geosurvey.geoid_model import GeoidModel
from geosurvey.transformer import CoordinateTransformer, GeoidCache, TransformCache

if TYPE_CHECKING:
    from geosurvey.coordinate import Coordinate

logger = get_logger(__name__)


class ProjectionType(str, Enum):
    """Kind of coordinate system a projection identifier denotes."""
    GEOGRAPHIC = "geographic"
    UTM = "utm"
    STATEPLANE = "stateplane"


@dataclass(frozen=True)
class ProjectionDefinition:
    """A registered projection/datum pair.

    Attributes
    ----------
    datum : str
        Datum identifier (e.g. 'NAD83').
    type : ProjectionType
        Geographic, UTM or State Plane.
    epsg : str, optional
        EPSG code for geographic entries.
    params : Mapping
        Type-specific parameters (e.g. {'north': True} for UTM).
    """
    datum: str
    type: ProjectionType
    epsg: Optional[str] = None
    params: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    def crs(self) -> CRS:
        """Resolve the EPSG code into a pyproj CRS.

        Raises
        ------
        ProjectionNotImplementedError
            If the definition carries no EPSG code.
        """
        if self.epsg is None:
            raise ProjectionNotImplementedError(
                f"{self.type.value} projection on {self.datum} has no EPSG definition"
            )
        return CRS.from_epsg(int(self.epsg))


@dataclass(frozen=True)
class DatumShiftParameters:
    """7-parameter Helmert transformation between two datums.

    Attributes
    ----------
    dx, dy, dz : float
        Translation in meters.
    rx, ry, rz : float
        Rotation in arcseconds.
    ds : float
        Scale difference in parts per million.
    """
    dx: float = 0.0
    dy: float = 0.0
    dz: float = 0.0
    rx: float = 0.0
    ry: float = 0.0
    rz: float = 0.0
    ds: float = 0.0

    def inverted(self) -> "DatumShiftParameters":
        """Parameters for the reverse direction (all seven negated)."""
        return DatumShiftParameters(
            dx=-self.dx, dy=-self.dy, dz=-self.dz,
            rx=-self.rx, ry=-self.ry, rz=-self.rz,
            ds=-self.ds,
        )

    @property
    def translation_m(self) -> Tuple[float, float, float]:
        return self.dx, self.dy, self.dz

    @cached_property
    def rotation_rad(self) -> Tuple[float, float, float]:
        return (
            arcseconds_to_radians(self.rx),
            arcseconds_to_radians(self.ry),
            arcseconds_to_radians(self.rz),
        )

    @cached_property
    def scale(self) -> float:
        return ppm_to_scale(self.ds)


PROJECTIONS: Mapping[str, ProjectionDefinition] = MappingProxyType({
    # Standard GPS coordinates
    "WGS84": ProjectionDefinition("WGS84", ProjectionType.GEOGRAPHIC, "4326"),
    "NAD83": ProjectionDefinition("NAD83", ProjectionType.GEOGRAPHIC, "4269"),
    "NAD27": ProjectionDefinition("NAD27", ProjectionType.GEOGRAPHIC, "4267"),
    "UTM_NAD83_N": ProjectionDefinition(
        "NAD83", ProjectionType.UTM, params=MappingProxyType({"north": True})
    ),
    "UTM_NAD83_S": ProjectionDefinition(
        "NAD83", ProjectionType.UTM, params=MappingProxyType({"north": False})
    ),
    "StatePlane_NAD83": ProjectionDefinition("NAD83", ProjectionType.STATEPLANE),
})

DATUM_SHIFTS: Mapping[Tuple[str, str], DatumShiftParameters] = MappingProxyType({
    # Sub-metre shift, relevant for survey-grade work only
    ("WGS84", "NAD83"): DatumShiftParameters(
        dx=0.99343, dy=-1.90331, dz=-0.52655,
        rx=0.025915, ry=0.009426, rz=0.011599,
        ds=-0.00062,
    ),
    # Continental approximation; real transformations use grid files
    ("NAD83", "NAD27"): DatumShiftParameters(dx=-8.0, dy=160.0, dz=176.0),
})

PIVOT_DATUM = "NAD83"


class SimpleWGS84Transformer(CoordinateTransformer):
    """Transformer for WGS84 and common North American datums.

    Parameters
    ----------
    transform_cache : TransformCache, optional
        Cache for transformed coordinates.
    geoid_cache : GeoidCache, optional
        Cache for geoid heights.
    geoid_model : GeoidModel, optional
        Model used for height-reference conversion.
    """

    def __init__(
        self,
        transform_cache: Optional[TransformCache] = None,
        geoid_cache: Optional[GeoidCache] = None,
        geoid_model: Optional[GeoidModel] = None
    ):
        super().__init__(transform_cache, geoid_cache)
        self.projections: Mapping[str, ProjectionDefinition] = PROJECTIONS
        self.datum_shifts: Mapping[Tuple[str, str], DatumShiftParameters] = DATUM_SHIFTS
        self.geoid_model = geoid_model if geoid_model is not None else GeoidModel()

    def get_supported_projections(self) -> List[str]:
        return list(self.projections)

    def get_projection_definition(self, projection: str) -> ProjectionDefinition:
        self._validate_projection(projection)
        return self.projections[projection]

    def transform(
        self,
        coordinate: "Coordinate",
        from_projection: str,
        to_projection: str
    ) -> "Coordinate":
        """Transform a coordinate from one projection to another.

        Raises
        ------
        UnsupportedProjectionError
            If either projection is not registered.
        TransformationNotImplementedError
            If the transform needs a UTM or State Plane conversion.
        TransformationError
            For any other failure inside the pipeline.
        """
        self._validate_projection(from_projection)
        self._validate_projection(to_projection)

        if from_projection == to_projection:
            return coordinate.clone()

        cache_key = self._cache_key(coordinate, from_projection, to_projection)
        values = self._transform_cache.get(cache_key)
        if values is None:
            values = self._compute(coordinate, from_projection, to_projection)
            self._transform_cache.put(cache_key, values)

        lat, lng, elevation = values
        return coordinate.copy_with(
            latitude=lat,
            longitude=lng,
            elevation=elevation,
            projection=to_projection,
        )

    def _compute(
        self,
        coordinate: "Coordinate",
        from_projection: str,
        to_projection: str
    ) -> Tuple[float, float, float]:
        try:
            return self._route(
                coordinate.latitude,
                coordinate.longitude,
                coordinate.elevation,
                from_projection,
                to_projection,
            )
        except ProjectionNotImplementedError as e:
            self._log_transformation_error(e, coordinate, from_projection, to_projection)
            raise TransformationNotImplementedError(from_projection, to_projection, str(e)) from e
        except Exception as e:
            self._log_transformation_error(e, coordinate, from_projection, to_projection)
            raise TransformationError(from_projection, to_projection, str(e)) from e

    def convert_ellipsoidal_to_orthometric(self, coordinate: "Coordinate") -> "Coordinate":
        from geosurvey.coordinate import HeightReference

        geoid_height = self._get_geoid_height(coordinate.latitude, coordinate.longitude)
        return coordinate.copy_with(
            elevation=coordinate.elevation - geoid_height,
            height_reference=HeightReference.ORTHOMETRIC,
        )

    def convert_orthometric_to_ellipsoidal(self, coordinate: "Coordinate") -> "Coordinate":
        from geosurvey.coordinate import HeightReference

        geoid_height = self._get_geoid_height(coordinate.latitude, coordinate.longitude)
        return coordinate.copy_with(
            elevation=coordinate.elevation + geoid_height,
            height_reference=HeightReference.ELLIPSOIDAL,
        )

    def _get_geoid_height(self, lat: float, lng: float) -> float:
        key = GeoidCache.key(lat, lng)
        cached = self._geoid_cache.get(key)
        if cached is not None:
            return cached

        height = self.geoid_model.get_height(lat, lng)
        self._geoid_cache.put(key, height)
        return height

    def _validate_projection(self, projection: str) -> None:
        if projection not in self.projections:
            raise UnsupportedProjectionError(projection, self.get_supported_projections())

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _transform_values(
        self,
        lat: float,
        lng: float,
        elevation: float,
        from_projection: str,
        to_projection: str
    ) -> Tuple[float, float, float]:
        source = self.projections[from_projection]
        target = self.projections[to_projection]

        lat, lng, elevation = self._to_geographic(lat, lng, elevation, source)
        lat, lng, elevation = self._transform_datum(
            lat, lng, elevation, source.datum, target.datum
        )
        return self._from_geographic(lat, lng, elevation, target)

    def _to_geographic(
        self,
        lat: float,
        lng: float,
        elevation: float,
        definition: ProjectionDefinition
    ) -> Tuple[float, float, float]:
        if definition.type is ProjectionType.GEOGRAPHIC:
            return lat, lng, elevation
        if definition.type is ProjectionType.UTM:
            raise ProjectionNotImplementedError(
                "UTM to Geographic conversion not implemented in SimpleWGS84Transformer"
            )
        if definition.type is ProjectionType.STATEPLANE:
            raise ProjectionNotImplementedError(
                "State Plane to Geographic conversion not implemented in SimpleWGS84Transformer"
            )
        raise ValueError(f"Unsupported projection type: {definition.type}")

    def _from_geographic(
        self,
        lat: float,
        lng: float,
        elevation: float,
        definition: ProjectionDefinition
    ) -> Tuple[float, float, float]:
        if definition.type is ProjectionType.GEOGRAPHIC:
            return lat, lng, elevation
        if definition.type is ProjectionType.UTM:
            hemisphere = "north" if definition.params.get("north") else "south"
            raise ProjectionNotImplementedError(
                f"Geographic to UTM ({hemisphere}) conversion not implemented "
                "in SimpleWGS84Transformer"
            )
        if definition.type is ProjectionType.STATEPLANE:
            raise ProjectionNotImplementedError(
                "Geographic to State Plane conversion not implemented in SimpleWGS84Transformer"
            )
        raise ValueError(f"Unsupported projection type: {definition.type}")

    def _transform_datum(
        self,
        lat: float,
        lng: float,
        elevation: float,
        from_datum: str,
        to_datum: str
    ) -> Tuple[float, float, float]:
        if from_datum == to_datum:
            return lat, lng, elevation

        params = self._direct_shift(from_datum, to_datum)
        if params is not None:
            return self._apply_helmert_transformation(lat, lng, elevation, params)

        # Two hops through the pivot datum
        if from_datum != PIVOT_DATUM and to_datum != PIVOT_DATUM:
            first = self._direct_shift(from_datum, PIVOT_DATUM)
            second = self._direct_shift(PIVOT_DATUM, to_datum)
            if first is not None and second is not None:
                lat, lng, elevation = self._apply_helmert_transformation(
                    lat, lng, elevation, first
                )
                return self._apply_helmert_transformation(lat, lng, elevation, second)

        raise UnsupportedDatumError(from_datum, to_datum)

    def _direct_shift(self, from_datum: str, to_datum: str) -> Optional[DatumShiftParameters]:
        if (from_datum, to_datum) in self.datum_shifts:
            return self.datum_shifts[(from_datum, to_datum)]
        if (to_datum, from_datum) in self.datum_shifts:
            return self.datum_shifts[(to_datum, from_datum)].inverted()
        return None

    def _apply_helmert_transformation(
        self,
        lat: float,
        lng: float,
        elevation: float,
        params: DatumShiftParameters
    ) -> Tuple[float, float, float]:
        ecef = geodetic_to_ecef(np.radians(lat), np.radians(lng), elevation)
        shifted = apply_helmert(ecef, params.translation_m, params.rotation_rad, params.scale)
        lat_rad, lng_rad, height = ecef_to_geodetic(*shifted)
        return float(np.degrees(lat_rad)), float(np.degrees(lng_rad)), height


def describe_datum_shifts() -> Dict[str, DatumShiftParameters]:
    """Registered shift parameter sets keyed as 'FROM_to_TO'."""
    return {f"{src}_to_{dst}": params for (src, dst), params in DATUM_SHIFTS.items()}
