"""Small geometry helpers for geofencing and service-area lookup.

Coordinates follow GeoJSON order: ``[longitude, latitude]``.
"""

from __future__ import annotations

import math
from typing import Any, List, Sequence

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import ValidationError

GEOMETRY_TYPES = ("Polygon", "MultiPolygon")


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def point_in_ring(lon: float, lat: float, ring: Sequence[Sequence[float]]) -> bool:
    """Ray casting test against a single linear ring."""
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = float(ring[i][0]), float(ring[i][1])
        xj, yj = float(ring[j][0]), float(ring[j][1])
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lon < x_cross:
                inside = not inside
        j = i
    return inside


def _point_in_polygon_rings(lon: float, lat: float, rings: Sequence[Sequence[Sequence[float]]]) -> bool:
    if not rings or not point_in_ring(lon, lat, rings[0]):
        return False
    # remaining rings are holes
    return not any(point_in_ring(lon, lat, hole) for hole in rings[1:])


def point_in_geometry(lon: float, lat: float, geometry: dict) -> bool:
    gtype = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if gtype == "Polygon":
        return _point_in_polygon_rings(lon, lat, coords)
    if gtype == "MultiPolygon":
        return any(_point_in_polygon_rings(lon, lat, polygon) for polygon in coords)
    return False


def _outer_ring(geometry: dict) -> List[Sequence[float]]:
    coords = geometry.get("coordinates") or []
    if geometry.get("type") == "MultiPolygon":
        coords = coords[0] if coords else []
    return list(coords[0]) if coords else []


def polygon_centroid(geometry: dict) -> List[float]:
    """Mean of the outer ring vertices of the first polygon."""
    ring = _outer_ring(geometry)
    if len(ring) > 1 and list(ring[0]) == list(ring[-1]):
        ring = ring[:-1]
    if not ring:
        raise ValidationError("Geometry has no coordinates")

    lon = sum(float(p[0]) for p in ring) / len(ring)
    lat = sum(float(p[1]) for p in ring) / len(ring)
    return [round(lon, 6), round(lat, 6)]


def _validate_ring(ring: Any) -> None:
    if not isinstance(ring, list) or len(ring) < 4:
        raise ValidationError("Each polygon ring needs at least 4 positions")
    for point in ring:
        if not isinstance(point, (list, tuple)) or len(point) < 2:
            raise ValidationError("Invalid coordinate position")
        lon, lat = float(point[0]), float(point[1])
        if not -180 <= lon <= 180 or not -90 <= lat <= 90:
            raise ValidationError("Coordinates out of range")
    if list(ring[0])[:2] != list(ring[-1])[:2]:
        raise ValidationError("Polygon ring must be closed")


def validate_geometry(geometry: Any) -> dict:
    if not isinstance(geometry, dict) or geometry.get("type") not in GEOMETRY_TYPES:
        raise ValidationError("Geometry must be a GeoJSON Polygon or MultiPolygon")

    coords = geometry.get("coordinates")
    if not isinstance(coords, list) or not coords:
        raise ValidationError("Geometry coordinates are required")

    polygons = coords if geometry["type"] == "MultiPolygon" else [coords]
    for polygon in polygons:
        if not isinstance(polygon, list) or not polygon:
            raise ValidationError("Invalid polygon")
        for ring in polygon:
            _validate_ring(ring)
    return {"type": geometry["type"], "coordinates": coords}


def validate_point(longitude: Any, latitude: Any) -> tuple[float, float]:
    try:
        lon, lat = float(longitude), float(latitude)
    except (TypeError, ValueError):
        raise ValidationError("Longitude and latitude must be numbers")
    if not -180 <= lon <= 180 or not -90 <= lat <= 90:
        raise ValidationError("Coordinates out of range")
    return lon, lat
