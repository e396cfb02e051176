from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from placecrawl.domain.place import LatLng
from placecrawl.exceptions import SearchConfigError

EARTH_RADIUS_KM = 6371.0088

# A ring is a closed sequence of (lng, lat) vertices, GeoJSON order.
Ring = tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class Polygon:
    outer: Ring
    holes: tuple[Ring, ...] = ()


@dataclass(frozen=True)
class Circle:
    center: LatLng
    radius_km: float


@dataclass(frozen=True)
class Geofence:
    """Region a search is restricted to: any of `polygons`, or `circle`."""

    polygons: tuple[Polygon, ...] = ()
    circle: Optional[Circle] = None

    @classmethod
    def from_geojson(cls, data: dict, *, config_path: str = "<inline>") -> "Geofence":
        """Build a geofence from a GeoJSON-like mapping.

        Supports `Polygon`, `MultiPolygon` and `Point` with `radiusKm`.
        """
        if not isinstance(data, dict):
            raise SearchConfigError(config_path, "geofence must be a mapping")
        geo_type = str(data.get("type", "")).strip().lower()
        coordinates = data.get("coordinates")
        try:
            if geo_type == "polygon":
                return cls(polygons=(_parse_polygon(coordinates),))
            if geo_type == "multipolygon":
                return cls(polygons=tuple(_parse_polygon(p) for p in coordinates))
            if geo_type == "point":
                radius = data.get("radiusKm", data.get("radius_km"))
                if radius is None:
                    raise SearchConfigError(config_path, "geofence Point requires radiusKm")
                lng, lat = coordinates
                return cls(circle=Circle(center=LatLng(lat=float(lat), lng=float(lng)), radius_km=float(radius)))
        except (TypeError, ValueError) as e:
            if isinstance(e, SearchConfigError):
                raise
            raise SearchConfigError(config_path, f"has invalid geofence coordinates: {e}") from e
        raise SearchConfigError(config_path, f"has unsupported geofence type {data.get('type')!r}")

    def contains(self, point: LatLng) -> bool:
        if self.circle is not None and _haversine_km(self.circle.center, point) <= self.circle.radius_km:
            return True
        return any(_in_polygon(polygon, point) for polygon in self.polygons)


def passes(geofence: Optional[Geofence], coordinates: Optional[LatLng]) -> bool:
    """True when there is nothing to check against, or the point is inside the geofence."""
    if geofence is None or coordinates is None:
        return True
    return geofence.contains(coordinates)


def _parse_ring(raw: Sequence) -> Ring:
    ring = tuple((float(vertex[0]), float(vertex[1])) for vertex in raw)
    if len(ring) < 3:
        raise ValueError("a ring needs at least 3 vertices")
    return ring


def _parse_polygon(raw: Sequence) -> Polygon:
    if not raw:
        raise ValueError("polygon has no rings")
    rings = [_parse_ring(r) for r in raw]
    return Polygon(outer=rings[0], holes=tuple(rings[1:]))


def _in_ring(ring: Ring, point: LatLng) -> bool:
    # Ray casting over (x=lng, y=lat)
    x, y = point.lng, point.lat
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def _in_polygon(polygon: Polygon, point: LatLng) -> bool:
    if not _in_ring(polygon.outer, point):
        return False
    return not any(_in_ring(hole, point) for hole in polygon.holes)


def _haversine_km(a: LatLng, b: LatLng) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))
