"""
Interchange Type Definitions for the Survey Geodesy Core.

This module defines the plain record shapes exchanged with collaborators
outside the core (map adapters, drawing tools, feature import/export).
They are deliberately structural: collaborators build dictionaries, the
core hands dictionaries back.
"""

from typing import List, NamedTuple, TypedDict


class CoordinateRecord(TypedDict):
    """Plain record form of a `Coordinate`.

    Attributes
    ----------
    lat : float
        Latitude in DEGREES.
    lng : float
        Longitude in DEGREES.
    elevation : float
        Height in METERS relative to `heightReference`.
    heightReference : str
        'ellipsoidal' or 'orthometric'.
    projection : str
        Projection identifier (e.g. 'WGS84', 'NAD83').
    """
    lat: float
    lng: float
    elevation: float
    heightReference: str
    projection: str


class GeoJSONPoint(TypedDict):
    """GeoJSON Point geometry, always WGS84 `[lng, lat, elevation]`."""
    type: str
    coordinates: List[float]


class CartesianPoint(NamedTuple):
    """Earth-Centered Earth-Fixed position in METERS."""
    x: float
    y: float
    z: float
