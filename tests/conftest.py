"""Shared fixtures for the geodesy core tests."""
import math

import pytest

from geosurvey.context import GeodesyContext, set_default_context
from geosurvey.coordinate import Coordinate

METERS_PER_DEGREE = 6_371_000.0 * math.pi / 180.0


@pytest.fixture(autouse=True)
def context():
    """Fresh default context per test so caches never leak between tests."""
    ctx = GeodesyContext()
    set_default_context(ctx)
    yield ctx
    set_default_context(None)


@pytest.fixture
def denver():
    return Coordinate(39.7392, -104.9903, 1609.3)


def square_ring(center_lat, center_lng, side_m=1000.0, elevations=(0.0, 0.0, 0.0, 0.0)):
    """Unclosed SW, SE, NE, NW square of `side_m` meters on the sphere."""
    half_lat = side_m / 2 / METERS_PER_DEGREE
    half_lng = half_lat / math.cos(math.radians(center_lat))
    corners = [
        (center_lat - half_lat, center_lng - half_lng),
        (center_lat - half_lat, center_lng + half_lng),
        (center_lat + half_lat, center_lng + half_lng),
        (center_lat + half_lat, center_lng - half_lng),
    ]
    return [Coordinate(lat, lng, elev) for (lat, lng), elev in zip(corners, elevations)]


@pytest.fixture
def square():
    return square_ring(40.0, -105.0)
