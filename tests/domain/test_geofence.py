import pytest

from placecrawl.domain.geofence import Geofence, passes
from placecrawl.domain.place import LatLng
from placecrawl.exceptions import SearchConfigError

SQUARE = [[[14.0, 50.0], [15.0, 50.0], [15.0, 51.0], [14.0, 51.0], [14.0, 50.0]]]
HOLE = [[14.4, 50.4], [14.6, 50.4], [14.6, 50.6], [14.4, 50.6], [14.4, 50.4]]


def test_passes_fails_open_without_geofence_or_coordinates():
    geofence = Geofence.from_geojson({"type": "Polygon", "coordinates": SQUARE})
    assert passes(None, LatLng(0.0, 0.0))
    assert passes(geofence, None)


def test_polygon_contains_point_in_lng_lat_order():
    geofence = Geofence.from_geojson({"type": "Polygon", "coordinates": SQUARE})
    assert passes(geofence, LatLng(lat=50.2, lng=14.2))
    assert not passes(geofence, LatLng(lat=14.2, lng=50.2))
    assert not passes(geofence, LatLng(lat=52.0, lng=14.5))


def test_polygon_hole_excludes_point():
    geofence = Geofence.from_geojson({"type": "Polygon", "coordinates": [SQUARE[0], HOLE]})
    assert not passes(geofence, LatLng(lat=50.5, lng=14.5))
    assert passes(geofence, LatLng(lat=50.1, lng=14.1))


def test_multipolygon_any_member_matches():
    far = [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.0, 0.0]]]
    geofence = Geofence.from_geojson({"type": "MultiPolygon", "coordinates": [SQUARE, far]})
    assert passes(geofence, LatLng(lat=0.5, lng=0.5))
    assert passes(geofence, LatLng(lat=50.5, lng=14.9))
    assert not passes(geofence, LatLng(lat=10.0, lng=10.0))


def test_point_with_radius():
    geofence = Geofence.from_geojson({"type": "Point", "coordinates": [14.42, 50.08], "radiusKm": 5})
    assert passes(geofence, LatLng(lat=50.09, lng=14.43))
    assert not passes(geofence, LatLng(lat=50.5, lng=14.42))


def test_point_without_radius_is_rejected():
    with pytest.raises(SearchConfigError):
        Geofence.from_geojson({"type": "Point", "coordinates": [14.42, 50.08]})


@pytest.mark.parametrize("data", [
    {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
    {"type": "Polygon", "coordinates": [[[0, 0], [1, 1]]]},
    {"type": "Polygon", "coordinates": "nope"},
    "not a mapping",
])
def test_invalid_geojson_is_rejected(data):
    with pytest.raises(SearchConfigError):
        Geofence.from_geojson(data)
