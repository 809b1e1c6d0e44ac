"""Unit tests for the spherical geodesy helpers."""

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from runplanner.models.request import GeoPoint
from runplanner.services.geo.geodesy import destination_point, haversine_km, path_length_km


def test_haversine_one_degree_of_longitude_on_equator():
    a = GeoPoint(lat=0.0, lng=0.0)
    b = GeoPoint(lat=0.0, lng=1.0)
    assert haversine_km(a, b) == pytest.approx(111.195, abs=0.01)


def test_haversine_is_symmetric_and_zero_on_same_point():
    a = GeoPoint(lat=40.7128, lng=-74.006)
    b = GeoPoint(lat=40.73, lng=-73.99)
    assert haversine_km(a, a) == 0.0
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


def test_destination_point_zero_distance_returns_origin():
    origin = GeoPoint(lat=51.5, lng=-0.12)
    assert destination_point(origin, 123.0, 0) == origin


def test_destination_point_travels_requested_distance():
    origin = GeoPoint(lat=40.7128, lng=-74.006)
    for bearing in (0, 45, 90, 200, 315):
        dest = destination_point(origin, bearing, 2.5)
        assert haversine_km(origin, dest) == pytest.approx(2.5, rel=1e-6)


def test_destination_point_north_increases_latitude_only():
    origin = GeoPoint(lat=10.0, lng=20.0)
    dest = destination_point(origin, 0, 5)
    assert dest.lat > origin.lat
    assert dest.lng == pytest.approx(origin.lng)


def test_path_length_sums_segments():
    points = [
        GeoPoint(lat=0.0, lng=0.0),
        GeoPoint(lat=0.0, lng=1.0),
        GeoPoint(lat=0.0, lng=2.0),
    ]
    assert path_length_km(points) == pytest.approx(2 * 111.195, abs=0.02)
    assert path_length_km(points[:1]) == 0
