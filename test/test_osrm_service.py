"""Tests for the OSRM router client: conversion, retry and fallback."""

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import asyncio
from urllib.parse import unquote

import httpx
import pytest

from runplanner.models.request import GeoPoint
from runplanner.services.map.osrm_service import OSRMRouterService, coordinates_path

WAYPOINTS = [
    GeoPoint(lat=40.7128, lng=-74.006),
    GeoPoint(lat=40.72, lng=-74.0),
    GeoPoint(lat=40.7128, lng=-74.006),
]

OK_PAYLOAD = {
    "code": "Ok",
    "routes": [
        {
            "distance": 5230.0,
            "duration": 3600.0,
            "geometry": {
                "type": "LineString",
                "coordinates": [[-74.006, 40.7128], [-74.003, 40.716], [-74.0, 40.72]],
            },
        }
    ],
}


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _service(handler, sleep=None) -> OSRMRouterService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OSRMRouterService(
        base_url="https://osrm.test/route/v1/foot/",
        timeout=2.0,
        max_retries=2,
        backoff_s=0.5,
        client=client,
        sleep=sleep or SleepRecorder(),
    )


def test_coordinates_path_is_lng_lat():
    assert coordinates_path(WAYPOINTS[:2]) == "-74.006,40.7128;-74.0,40.72"


def test_successful_route_is_converted():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=OK_PAYLOAD)

    result = asyncio.run(_service(handler).resolve_route(WAYPOINTS))

    assert result is not None
    assert result.distance_km == pytest.approx(5.23)
    assert result.duration_min == pytest.approx(60.0)
    assert result.coordinates[0] == GeoPoint(lat=40.7128, lng=-74.006)
    assert result.coordinates[-1] == GeoPoint(lat=40.72, lng=-74.0)

    request = requests[0]
    assert unquote(request.url.path) == (
        "/route/v1/foot/-74.006,40.7128;-74.0,40.72;-74.006,40.7128"
    )
    assert request.url.params["overview"] == "full"
    assert request.url.params["geometries"] == "geojson"
    assert request.url.params["steps"] == "false"


def test_server_errors_are_retried_with_linear_backoff():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"message": "busy"})

    sleep = SleepRecorder()
    result = asyncio.run(_service(handler, sleep).resolve_route(WAYPOINTS))

    assert result is None
    assert len(calls) == 3
    assert sleep.delays == [0.5, 1.0]


def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, json={"code": "InvalidUrl"})

    sleep = SleepRecorder()
    result = asyncio.run(_service(handler, sleep).resolve_route(WAYPOINTS))

    assert result is None
    assert len(calls) == 1
    assert sleep.delays == []


def test_network_error_then_success():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=OK_PAYLOAD)

    sleep = SleepRecorder()
    result = asyncio.run(_service(handler, sleep).resolve_route(WAYPOINTS))

    assert result is not None
    assert result.distance_km == pytest.approx(5.23)
    assert sleep.delays == [0.5]


@pytest.mark.parametrize(
    "payload",
    [
        {"code": "NoRoute", "routes": []},
        {"code": "Ok", "routes": []},
        {"code": "Ok", "routes": [{"distance": 10.0}]},
    ],
)
def test_unusable_payloads_return_none(payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    assert asyncio.run(_service(handler).resolve_route(WAYPOINTS)) is None


@pytest.mark.parametrize("body", [b"[]", b"null", b"\"Ok\""])
def test_non_object_json_returns_none(body):
    def handler(request):
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    assert asyncio.run(_service(handler).resolve_route(WAYPOINTS)) is None


def test_single_waypoint_skips_the_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert asyncio.run(_service(handler).resolve_route(WAYPOINTS[:1])) is None
