"""
Survey Geometry Engine.

Measurements and constructions on lists of Coordinates: distances,
bearings, perimeters, areas, centroids, offsets, arcs and containment.

Scientific Context
------------------
Domain: Spherical trigonometry, plane geometry in ECEF
Model: Sphere of radius 6,371 km for horizontal measures; WGS84 ellipsoid
       for the 3D (elevation-aware) area

Areas
-----
Two models are available:

1. Spherical: the ring is fanned into triangles from its first vertex and
   the signed spherical excesses are summed (A = |ΣE|·R²). Valid for any
   simple ring on the sphere.
2. 3D planar: vertices (with elevation) are lifted to ECEF, projected onto
   the plane of the first non-degenerate triangle and fanned from the first
   projected vertex. This follows sloped terrain, so a tilted parcel has a
   larger area than its map footprint.

Self-intersecting rings have no well-defined area without triangulation;
they fall back to the spherical formula and a warning is logged that the
result is approximate.

Input Handling
--------------
Every function accepts Coordinates or coordinate-like records (mappings or
objects with lat/lng under any of the names in `COORDINATE_ALIASES`).
Distance-like arguments also accept `pint` quantities of length; angles
accept quantities of angle.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from common.constants import GeodeticConstants
from common.logging_config import get_logger
from common.units import validate_units
from geosurvey.coordinate import Coordinate, normalize_coordinate, record_elevation
from geosurvey.coordinate_models import geodetic_to_ecef_batch
from geosurvey.distance_calculations import (
    destination_point,
    geodesic_inverse,
    haversine_distance,
    spherical_triangle_excess,
)
from geosurvey.errors import InsufficientPointsError

logger = get_logger(__name__)

EARTH_RADIUS_M = GeodeticConstants.EARTH_MEAN_RADIUS.value

# Cross products below this (m²) mean the first vertices are collinear
_DEGENERATE_NORMAL_M2 = 1e-9


@dataclass
class OffsetResult:
    """Result of `calculate_perpendicular_offset`.

    Attributes
    ----------
    nearest_point : Coordinate
        Point on the segment at `segment_position`.
    offset_point : Coordinate
        Point `distance` meters to the right of `nearest_point`.
    point_index : int
        Index of the segment's start vertex.
    segment_position : float
        Clamped fraction along the segment, in [0, 1].
    segment_bearing : float
        Bearing of the segment in degrees.
    perpendicular_bearing : float
        Bearing of the offset direction in degrees.
    """
    nearest_point: Coordinate
    offset_point: Coordinate
    point_index: int
    segment_position: float
    segment_bearing: float
    perpendicular_bearing: float


@dataclass
class SegmentProjection:
    """Closest point on a segment to a reference point."""
    point: Coordinate
    distance: float
    fraction: float


# =============================================================================
# Input helpers
# =============================================================================

def _coordinates(values: Optional[Iterable[Any]]) -> List[Coordinate]:
    if values is None:
        return []
    result = []
    for value in values:
        coordinate = normalize_coordinate(value)
        if coordinate is not None:
            result.append(coordinate)
    return result


def _is_closed(coordinates: Sequence[Coordinate]) -> bool:
    first, last = coordinates[0], coordinates[-1]
    return first.latitude == last.latitude and first.longitude == last.longitude


def _closed_ring(coordinates: List[Coordinate]) -> List[Coordinate]:
    return coordinates if _is_closed(coordinates) else coordinates + [coordinates[0]]


def _mean_coordinate(coordinates: Sequence[Coordinate]) -> Coordinate:
    n = len(coordinates)
    return coordinates[0].copy_with(
        latitude=sum(c.latitude for c in coordinates) / n,
        longitude=sum(c.longitude for c in coordinates) / n,
        elevation=sum(c.elevation for c in coordinates) / n,
    )


# =============================================================================
# Distances and bearings
# =============================================================================

def calculate_distance(a: Any, b: Any, include_elevation: bool = True) -> float:
    """Distance between two points in meters.

    Parameters
    ----------
    a, b : Coordinate or coordinate-like
        End points.
    include_elevation : bool
        Combine the elevation difference with the horizontal distance.

    Returns
    -------
    float
        Distance in meters, or 0 if either input is malformed.

    Notes
    -----
    When both inputs are Coordinates and elevation is included, the
    frame-aware `Coordinate.distance_to` is used. Otherwise the Haversine
    distance is taken directly on the given latitudes/longitudes.
    """
    if include_elevation and isinstance(a, Coordinate) and isinstance(b, Coordinate):
        return a.distance_to(b)

    start = normalize_coordinate(a)
    end = normalize_coordinate(b)
    if start is None or end is None:
        logger.error("Invalid coordinate format for distance calculation")
        return 0.0

    distance = haversine_distance(start.latitude, start.longitude, end.latitude, end.longitude)
    if include_elevation:
        distance = math.sqrt(distance ** 2 + (end.elevation - start.elevation) ** 2)
    return distance


def calculate_geodesic_distance(a: Any, b: Any) -> float:
    """Ellipsoidal (WGS84) geodesic distance in meters, ignoring elevation.

    Both points are expressed in WGS84 first. Returns 0 for malformed
    input, like `calculate_distance`.
    """
    start = normalize_coordinate(a)
    end = normalize_coordinate(b)
    if start is None or end is None:
        logger.error("Invalid coordinate format for geodesic distance calculation")
        return 0.0

    start = start.to_projection("WGS84")
    end = end.to_projection("WGS84")
    return geodesic_inverse(
        start.latitude, start.longitude, end.latitude, end.longitude
    ).distance_m


def calculate_bearing(a: Any, b: Any) -> float:
    """Initial bearing from `a` to `b` in degrees, in [0, 360)."""
    start = normalize_coordinate(a)
    end = normalize_coordinate(b)
    if start is None or end is None:
        logger.error("Invalid coordinate format for bearing calculation")
        return 0.0
    return start.bearing_to(end)


def calculate_perimeter(coordinates: Sequence[Any], include_elevation: bool = True) -> float:
    """Perimeter of a ring in meters.

    Rings of three or more points that are not already closed get the
    closing edge from the last point back to the first.
    """
    points = _coordinates(coordinates)
    if len(points) < 2:
        return 0.0

    perimeter = sum(
        calculate_distance(points[i], points[i + 1], include_elevation)
        for i in range(len(points) - 1)
    )
    if len(points) >= 3 and not _is_closed(points):
        perimeter += calculate_distance(points[-1], points[0], include_elevation)
    return perimeter


calculate_path_length = calculate_perimeter


def _open_length(points: Sequence[Coordinate]) -> float:
    return sum(calculate_distance(a, b) for a, b in zip(points, points[1:]))


def calculate_elevation_gain(coordinates: Sequence[Any]) -> float:
    """Sum of positive elevation changes along a path, in meters.

    Pairs where either point has no elevation are skipped.
    """
    return sum(d for d in _elevation_steps(coordinates) if d > 0)


def calculate_elevation_loss(coordinates: Sequence[Any]) -> float:
    """Sum of elevation drops along a path, as a positive number of meters."""
    return -sum(d for d in _elevation_steps(coordinates) if d < 0)


def _elevation_steps(coordinates: Optional[Sequence[Any]]) -> List[float]:
    if not coordinates or len(coordinates) < 2:
        return []

    steps = []
    for prev, curr in zip(coordinates, coordinates[1:]):
        prev_elevation = record_elevation(prev)
        curr_elevation = record_elevation(curr)
        if prev_elevation is None or curr_elevation is None:
            continue
        steps.append(curr_elevation - prev_elevation)
    return steps


# =============================================================================
# Area
# =============================================================================

def calculate_area(coordinates: Sequence[Any], include_elevation: bool = True) -> float:
    """Area of a polygon ring in square meters.

    Parameters
    ----------
    coordinates : sequence of Coordinate or coordinate-like
        Ring vertices; closed automatically if needed.
    include_elevation : bool
        Use the 3D planar model (follows terrain) instead of the
        spherical one.

    Returns
    -------
    float
        Area in square meters.

    Raises
    ------
    InsufficientPointsError
        If fewer than three points are given.
    """
    points = _coordinates(coordinates)
    if len(points) < 3:
        raise InsufficientPointsError(
            f"Cannot calculate area: need at least 3 coordinates, got {len(points)}"
        )

    ring = _closed_ring(points)

    if _is_self_intersecting(ring):
        logger.warning(
            "Self-intersecting polygon detected. Area calculation may be inaccurate."
        )
        return _spherical_area(ring)

    if include_elevation:
        return _planar_area_3d(ring)
    return _spherical_area(ring)


def _spherical_area(ring: Sequence[Coordinate]) -> float:
    vertices = [(c.latitude, c.longitude) for c in ring[:-1]]
    excess = 0.0
    for i in range(1, len(vertices) - 1):
        excess += spherical_triangle_excess(vertices[0], vertices[i], vertices[i + 1])
    return abs(excess) * EARTH_RADIUS_M ** 2


def _plane_normal(points: NDArray[np.float64]) -> Optional[NDArray[np.float64]]:
    """Unit normal of the first non-degenerate triangle fanned from point 0."""
    for i in range(1, len(points) - 1):
        normal = np.cross(points[i] - points[0], points[i + 1] - points[0])
        length = np.linalg.norm(normal)
        if length > _DEGENERATE_NORMAL_M2:
            return normal / length
    return None


def _planar_area_3d(ring: Sequence[Coordinate]) -> float:
    vertices = ring[:-1]
    ecef = geodetic_to_ecef_batch(
        np.radians([c.latitude for c in vertices]),
        np.radians([c.longitude for c in vertices]),
        np.array([c.elevation for c in vertices], dtype=np.float64),
    )

    normal = _plane_normal(ecef)
    if normal is None:
        return 0.0

    # Project onto the plane through the first vertex
    offsets = ecef - ecef[0]
    projected = offsets - np.outer(offsets @ normal, normal)

    signed_area = 0.0
    for i in range(1, len(projected) - 1):
        signed_area += 0.5 * np.dot(np.cross(projected[i], projected[i + 1]), normal)
    return float(abs(signed_area))


def _direction(a: Coordinate, b: Coordinate, c: Coordinate) -> float:
    return ((c.longitude - a.longitude) * (b.latitude - a.latitude)
            - (b.longitude - a.longitude) * (c.latitude - a.latitude))


def _on_segment(a: Coordinate, b: Coordinate, c: Coordinate) -> bool:
    return (min(a.longitude, b.longitude) <= c.longitude <= max(a.longitude, b.longitude)
            and min(a.latitude, b.latitude) <= c.latitude <= max(a.latitude, b.latitude))


def _segments_intersect(p1: Coordinate, p2: Coordinate, p3: Coordinate, p4: Coordinate) -> bool:
    d1 = _direction(p3, p4, p1)
    d2 = _direction(p3, p4, p2)
    d3 = _direction(p1, p2, p3)
    d4 = _direction(p1, p2, p4)

    if ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4)):
        return True

    return ((d1 == 0 and _on_segment(p3, p4, p1))
            or (d2 == 0 and _on_segment(p3, p4, p2))
            or (d3 == 0 and _on_segment(p1, p2, p3))
            or (d4 == 0 and _on_segment(p1, p2, p4)))


def _is_self_intersecting(coordinates: Sequence[Coordinate]) -> bool:
    n = len(coordinates)
    closed = _is_closed(coordinates)
    for i in range(n - 1):
        for j in range(i + 2, n - 1):
            # First and last segments of a ring share a vertex
            if closed and i == 0 and j == n - 2:
                continue
            if _segments_intersect(
                coordinates[i], coordinates[i + 1], coordinates[j], coordinates[j + 1]
            ):
                return True
    return False


def has_self_intersections(coordinates: Sequence[Any]) -> bool:
    """Whether any two non-adjacent segments of a path or ring cross."""
    points = _coordinates(coordinates)
    if len(points) < 4:
        return False
    return _is_self_intersecting(points)


# =============================================================================
# Constructions
# =============================================================================

@validate_units({'distance': 'meter', 'bearing': 'degree'})
def destination_coordinate(start: Any, distance: float, bearing: float) -> Optional[Coordinate]:
    """Coordinate reached by travelling along a great circle.

    Parameters
    ----------
    start : Coordinate or coordinate-like
        Starting point; its elevation and frame are carried over.
    distance : float or pint.Quantity
        Distance in meters.
    bearing : float or pint.Quantity
        Initial bearing in degrees clockwise from north.

    Returns
    -------
    Coordinate or None
        None if `start` is malformed.
    """
    origin = normalize_coordinate(start)
    if origin is None:
        logger.error(f"Invalid starting coordinate for destination calculation: {start!r}")
        return None

    lat, lng = destination_point(origin.latitude, origin.longitude, distance, bearing)
    return origin.copy_with(latitude=lat, longitude=lng)


@validate_units({'radius': 'meter', 'start_angle': 'degree', 'end_angle': 'degree'})
def create_arc(
    center: Any,
    radius: float,
    start_angle: float = 0.0,
    end_angle: float = 360.0,
    segments: int = 32
) -> List[Coordinate]:
    """Points on a circular arc around `center`.

    Returns `segments + 1` points from `start_angle` to `end_angle`
    inclusive (bearings in degrees), so a full circle ends where it
    starts.

    Raises
    ------
    InsufficientPointsError
        If `segments` is less than 1.
    """
    if segments < 1:
        raise InsufficientPointsError(
            f"Cannot create arc: need at least 1 segment, got {segments}"
        )

    origin = normalize_coordinate(center)
    if origin is None:
        logger.error(f"Invalid center for arc: {center!r}")
        return []

    increment = (end_angle - start_angle) / segments
    return [
        destination_coordinate(origin, radius, start_angle + i * increment)
        for i in range(segments + 1)
    ]


@validate_units({'radius': 'meter'})
def create_circle(center: Any, radius: float, segments: int = 32) -> List[Coordinate]:
    """Closed ring of `segments + 1` points at `radius` meters from `center`."""
    return create_arc(center, radius, 0.0, 360.0, segments)


@validate_units({'width': 'meter', 'height': 'meter', 'rotation': 'degree'})
def create_rectangle(
    center: Any,
    width: float,
    height: float,
    rotation: float = 0.0
) -> List[Coordinate]:
    """Closed 5-point rectangle centred on `center`.

    Parameters
    ----------
    center : Coordinate or coordinate-like
        Rectangle centre.
    width : float or pint.Quantity
        East-west extent in meters before rotation.
    height : float or pint.Quantity
        North-south extent in meters before rotation.
    rotation : float or pint.Quantity
        Clockwise rotation in degrees.
    """
    origin = normalize_coordinate(center)
    if origin is None:
        logger.error(f"Invalid center for rectangle: {center!r}")
        return []

    half_width = width / 2
    half_height = height / 2
    corner_distance = math.hypot(half_width, half_height)

    corners = []
    for dx, dy in ((-half_width, -half_height), (half_width, -half_height),
                   (half_width, half_height), (-half_width, half_height)):
        # Bearing is measured clockwise from north
        bearing = math.degrees(math.atan2(dx, dy)) + rotation
        corners.append(destination_coordinate(origin, corner_distance, bearing))

    corners.append(corners[0].clone())
    return corners


@validate_units({'distance': 'meter'})
def calculate_perpendicular_offset(
    coordinates: Sequence[Any],
    point_index: int,
    segment_position: float,
    distance: float,
    enable_3d: bool = True
) -> OffsetResult:
    """Offset a point on a segment perpendicular to the segment.

    Parameters
    ----------
    coordinates : sequence of Coordinate or coordinate-like
        Polyline vertices.
    point_index : int
        Index of the segment's start vertex.
    segment_position : float
        Fraction along the segment, clamped to [0, 1].
    distance : float or pint.Quantity
        Offset in meters; positive is to the right of travel direction.
    enable_3d : bool
        Interpolate elevation along the segment and keep it on the
        offset point.

    Raises
    ------
    InsufficientPointsError
        If there are fewer than two points or `point_index` does not
        start a segment.
    """
    points = _coordinates(coordinates)
    if len(points) < 2 or point_index < 0 or point_index >= len(points) - 1:
        raise InsufficientPointsError(
            "Invalid coordinates or point index for perpendicular offset"
        )

    start = points[point_index]
    end = points[point_index + 1]
    fraction = max(0.0, min(1.0, segment_position))

    elevation = start.elevation + fraction * (end.elevation - start.elevation) if enable_3d else 0.0
    nearest = start.copy_with(
        latitude=start.latitude + fraction * (end.latitude - start.latitude),
        longitude=start.longitude + fraction * (end.longitude - start.longitude),
        elevation=elevation,
    )

    segment_bearing = start.bearing_to(end)
    perpendicular_bearing = (segment_bearing + 90.0) % 360.0

    offset = destination_coordinate(nearest, distance, perpendicular_bearing)
    if enable_3d:
        offset.set_z(nearest.elevation)

    return OffsetResult(
        nearest_point=nearest,
        offset_point=offset,
        point_index=point_index,
        segment_position=fraction,
        segment_bearing=segment_bearing,
        perpendicular_bearing=perpendicular_bearing,
    )


@validate_units({'offset': 'meter'})
def create_offset_line(
    coordinates: Sequence[Any],
    offset: float,
    closed: bool = False
) -> List[Coordinate]:
    """Line parallel to a polyline at `offset` meters.

    Positive offsets are to the right of the travel direction, negative
    to the left. Each vertex is offset perpendicular to the segment that
    starts there; the last vertex uses the final segment.

    Raises
    ------
    InsufficientPointsError
        If fewer than two points are given.
    """
    points = _coordinates(coordinates)
    if len(points) < 2:
        raise InsufficientPointsError("Cannot create offset: need at least 2 coordinates")

    result = []
    for i in range(len(points) - 1):
        start, end = points[i], points[i + 1]
        perpendicular = (start.bearing_to(end) + 90.0) % 360.0

        result.append(destination_coordinate(start, offset, perpendicular))
        if i == len(points) - 2:
            result.append(destination_coordinate(end, offset, perpendicular))

    if closed and len(result) > 2:
        result.append(result[0].clone())
    return result


def nearest_point_on_segment(start: Any, end: Any, point: Any) -> SegmentProjection:
    """Closest point on the segment `start`-`end` to `point`.

    The projection is computed in the lat/lng plane, which is adequate
    for the short segments of a survey sketch. Elevation is interpolated
    linearly and the returned distance is the 3D distance.
    """
    reference = normalize_coordinate(point)
    a = normalize_coordinate(start)
    b = normalize_coordinate(end)
    if reference is None or a is None or b is None:
        raise InsufficientPointsError(
            "Nearest point needs a segment start, a segment end and a reference coordinate"
        )

    x = reference.longitude - a.longitude
    y = reference.latitude - a.latitude
    dx = b.longitude - a.longitude
    dy = b.latitude - a.latitude

    length_squared = dx * dx + dy * dy
    t = max(0.0, min(1.0, (x * dx + y * dy) / length_squared)) if length_squared > 0 else 0.0

    closest = a.copy_with(
        latitude=a.latitude + t * dy,
        longitude=a.longitude + t * dx,
        elevation=a.elevation + t * (b.elevation - a.elevation),
    )
    return SegmentProjection(point=closest, distance=reference.distance_to(closest), fraction=t)


# =============================================================================
# Containment and centres
# =============================================================================

def is_point_in_polygon(point: Any, polygon: Sequence[Any]) -> bool:
    """Ray-casting containment test in the point's projection.

    Polygon vertices in another projection are converted first; the ring
    is closed if needed.
    """
    target = normalize_coordinate(point)
    ring = _coordinates(polygon)
    if target is None or len(ring) < 3:
        return False

    ring = [
        c if c.projection == target.projection else c.to_projection(target.projection)
        for c in _closed_ring(ring)
    ]

    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i].longitude, ring[i].latitude
        xj, yj = ring[j].longitude, ring[j].latitude
        if (yi > target.latitude) != (yj > target.latitude):
            crossing = (xj - xi) * (target.latitude - yi) / (yj - yi) + xi
            if target.longitude < crossing:
                inside = not inside
        j = i
    return inside


point_in_polygon = is_point_in_polygon


def calculate_centroid(coordinates: Sequence[Any]) -> Coordinate:
    """Arithmetic mean of the vertices.

    Raises
    ------
    InsufficientPointsError
        If fewer than three points are given.
    """
    points = _coordinates(coordinates)
    if len(points) < 3:
        raise InsufficientPointsError("Cannot calculate centroid: need at least 3 coordinates")
    return _mean_coordinate(points)


def calculate_polygon_centroid(
    exterior: Sequence[Any],
    holes: Sequence[Sequence[Any]] = ()
) -> Optional[Coordinate]:
    """Centroid of a polygon with holes.

    The vertex-mean centroids of the exterior and of each hole are
    combined, weighted by their (signed) areas. Holes with fewer than
    three points are ignored.

    Returns
    -------
    Coordinate or None
        For an exterior of one or two points, a copy of its first point
        (with a warning); None for an empty exterior.
    """
    ring = _coordinates(exterior)
    if len(ring) < 3:
        logger.warning(
            "Cannot calculate polygon centroid: need at least 3 coordinates for exterior ring"
        )
        return ring[0].clone() if ring else None

    exterior_centroid = _mean_coordinate(ring)
    valid_holes = [points for points in (_coordinates(h) for h in holes or ()) if len(points) >= 3]
    if not valid_holes:
        return exterior_centroid

    exterior_area = calculate_area(ring)
    if exterior_area == 0:
        return exterior_centroid

    total_area = exterior_area
    weighted_lat = exterior_centroid.latitude * exterior_area
    weighted_lng = exterior_centroid.longitude * exterior_area
    weighted_elevation = exterior_centroid.elevation * exterior_area

    for hole in valid_holes:
        hole_centroid = _mean_coordinate(hole)
        hole_area = calculate_area(hole)
        total_area -= hole_area
        weighted_lat -= hole_centroid.latitude * hole_area
        weighted_lng -= hole_centroid.longitude * hole_area
        weighted_elevation -= hole_centroid.elevation * hole_area

    if total_area <= 0:
        return exterior_centroid

    return ring[0].copy_with(
        latitude=weighted_lat / total_area,
        longitude=weighted_lng / total_area,
        elevation=weighted_elevation / total_area,
    )


def calculate_path_center(coordinates: Sequence[Any]) -> Coordinate:
    """Point halfway along a path, measured by 3D length.

    Raises
    ------
    InsufficientPointsError
        If no points are given.
    """
    points = _coordinates(coordinates)
    if not points:
        raise InsufficientPointsError("Cannot calculate path center: no coordinates provided")

    if len(points) == 1:
        return points[0].clone()
    if len(points) == 2:
        return _mean_coordinate(points)

    target = _open_length(points) / 2
    travelled = 0.0

    for start, end in zip(points, points[1:]):
        segment_length = calculate_distance(start, end)
        if segment_length > 0 and travelled + segment_length >= target:
            fraction = (target - travelled) / segment_length
            horizontal = calculate_distance(start, end, include_elevation=False)
            center = destination_coordinate(
                start, horizontal * fraction, start.bearing_to(end)
            )
            return center.set_z(start.elevation + (end.elevation - start.elevation) * fraction)
        travelled += segment_length

    return _mean_coordinate(points)

