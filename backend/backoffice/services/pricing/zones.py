"""
Point-in-zone lookup for delivery zones.

Zone polygons are stored as a list of rings, each ring a list of points.
A point is {"lat": .., "lng": ..} or a [lat, lng] pair.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

Z = TypeVar("Z")

Point = tuple[float, float]


def to_point(value: Any) -> Point:
    """Coerce {"lat", "lng"} or [lat, lng] into a (lat, lng) tuple."""
    if isinstance(value, dict):
        return float(value["lat"]), float(value["lng"])
    lat, lng = value
    return float(lat), float(lng)


def point_in_polygon(point: Point, polygon: Sequence[Any]) -> bool:
    """
    Ray casting test. Polygons with fewer than three vertices never match.
    """
    if len(polygon) < 3:
        return False

    lat, lng = point
    vertices = [to_point(v) for v in polygon]
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        lat_i, lng_i = vertices[i]
        lat_j, lng_j = vertices[j]
        if (lng_i > lng) != (lng_j > lng):
            crossing = (lat_j - lat_i) * (lng - lng_i) / (lng_j - lng_i) + lat_i
            if lat < crossing:
                inside = not inside
        j = i
    return inside


def _is_vertex(value: Any) -> bool:
    if isinstance(value, dict):
        return "lat" in value and "lng" in value
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(isinstance(v, (int, float)) for v in value)
    )


def polygon_rings(polygons: Sequence[Any] | None) -> list[Sequence[Any]]:
    """Accept a single ring of vertices as well as a list of rings."""
    if not polygons:
        return []
    if _is_vertex(polygons[0]):
        return [polygons]
    return list(polygons)


def point_in_zone(point: Point, polygons: Sequence[Any] | None) -> bool:
    return any(point_in_polygon(point, ring) for ring in polygon_rings(polygons))


def find_zone_for_point(point: Point, zones: Iterable[Z]) -> Z | None:
    """First zone (in the given order) whose polygons contain the point."""
    for zone in zones:
        if point_in_zone(point, getattr(zone, "polygons", None)):
            return zone
    return None
