"""Tests for the Overpass feature client against a fake HTTP transport."""

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from runplanner.models.request import GeoPoint
from runplanner.services.map.feature_cache import FeatureCache
from runplanner.services.map.overpass_service import (
    OverpassFeatureService,
    compute_bbox,
    dedupe_points,
    merge_green_space_tiers,
)

POINTS = [GeoPoint(lat=40.0, lng=-75.0), GeoPoint(lat=40.01, lng=-74.99)]
CENTER = GeoPoint(lat=40.0, lng=-75.0)


class FakeOverpass:
    """Records queries and answers every one with the same payload."""

    def __init__(self, payload=None, status_code=200, delay=0.0):
        self.payload = payload if payload is not None else {"elements": []}
        self.status_code = status_code
        self.delay = delay
        self.queries = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.queries.append(parse_qs(request.content.decode())["data"][0])
        if self.delay:
            await asyncio.sleep(self.delay)
        return httpx.Response(self.status_code, json=self.payload)


def _service(handler, **kwargs) -> OverpassFeatureService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("timeout", 2.0)
    return OverpassFeatureService(url="https://overpass.test/api", client=client, **kwargs)


def _way(highway, **extra_tags):
    return {"type": "way", "tags": {"highway": highway, **extra_tags}}


def test_quiet_score_is_share_of_quiet_segments():
    fake = FakeOverpass(
        {"elements": [_way("residential"), _way("residential"), _way("footway"), _way("primary")]}
    )
    service = _service(fake)

    score = asyncio.run(service.fetch_quiet_score(POINTS))

    assert score == pytest.approx(0.75)
    assert len(fake.queries) == 1
    assert "out tags;" in fake.queries[0]
    assert 'way["highway"="trunk_link"]' in fake.queries[0]


def test_quiet_score_neutral_without_roads_or_points():
    fake = FakeOverpass({"elements": []})
    service = _service(fake)

    assert asyncio.run(service.fetch_quiet_score(POINTS)) == 0.5
    assert asyncio.run(service.fetch_quiet_score(POINTS[:1])) == 0.5
    assert len(fake.queries) == 1


def test_repeat_calls_hit_the_cache():
    fake = FakeOverpass({"elements": [_way("primary")]})
    service = _service(fake)

    async def run():
        first = await service.fetch_quiet_score(POINTS)
        second = await service.fetch_quiet_score(list(reversed(POINTS)))
        return first, second

    assert asyncio.run(run()) == (0.0, 0.0)
    assert len(fake.queries) == 1
    assert service.cache.hits == 1


def test_concurrent_calls_share_one_request():
    fake = FakeOverpass({"elements": [_way("residential")]}, delay=0.01)
    service = _service(fake)

    async def run():
        return await asyncio.gather(*(service.fetch_quiet_score(POINTS) for _ in range(3)))

    assert asyncio.run(run()) == [1.0, 1.0, 1.0]
    assert len(fake.queries) == 1


def test_server_error_falls_back_and_is_cached():
    fake = FakeOverpass(status_code=500)
    service = _service(fake)

    async def run():
        return [await service.fetch_quiet_score(POINTS) for _ in range(2)]

    assert asyncio.run(run()) == [0.5, 0.5]
    assert len(fake.queries) == 1


def test_timeout_falls_back_to_neutral():
    fake = FakeOverpass({"elements": [_way("primary")]}, delay=0.5)
    service = _service(fake, timeout=0.01)

    assert asyncio.run(service.fetch_quiet_score(POINTS)) == 0.5


def test_invalid_json_falls_back_to_neutral():
    def handler(request):
        return httpx.Response(200, content=b"<html>busy</html>")

    service = _service(handler)

    assert asyncio.run(service.fetch_scenic_score(POINTS)) == 0.5


@pytest.mark.parametrize("total,expected", [("15", 0.5), ("45", 1.0), ("0", 0.0)])
def test_scenic_score_saturates(total, expected):
    fake = FakeOverpass({"elements": [{"type": "count", "id": 0, "tags": {"total": total}}]})
    service = _service(fake)

    assert asyncio.run(service.fetch_scenic_score(POINTS)) == pytest.approx(expected)
    assert "out count;" in fake.queries[0]
    assert 'node["tourism"="viewpoint"]' in fake.queries[0]


def test_green_spaces_tiered_capped_and_deduped():
    elements = [
        {"type": "way", "center": {"lat": 40.001, "lon": -75.0}, "tags": {"leisure": "park"}},
        # Within 50m of the park
        {"type": "node", "lat": 40.0012, "lon": -75.0, "tags": {"leisure": "garden"}},
        {
            "type": "way",
            "center": {"lat": 40.01, "lon": -75.0},
            "tags": {"highway": "footway", "name": "River Trail"},
        },
        {"type": "way", "tags": {"highway": "path"}},
    ]
    # Unnamed paths, farthest first
    for k in reversed(range(20)):
        elements.append(
            {
                "type": "way",
                "center": {"lat": 40.0 - 0.001 * (k + 1), "lon": -75.0},
                "tags": {"highway": "footway"},
            }
        )
    fake = FakeOverpass({"elements": elements})
    service = _service(fake)

    result = asyncio.run(service.fetch_green_space_locations(CENTER, 3.0))

    assert len(result) == 15
    assert result[0] == GeoPoint(lat=40.001, lng=-75.0)
    assert result[1] == GeoPoint(lat=40.01, lng=-75.0)
    assert [round(p.lat, 3) for p in result[2:]] == [
        round(40.0 - 0.001 * (k + 1), 3) for k in range(13)
    ]
    query = fake.queries[0]
    assert "(around:3000,40.0,-75.0)" in query
    assert 'node["leisure"="nature_reserve"]' in query
    assert "out center tags;" in query


def test_green_spaces_empty_on_network_failure():
    def handler(request):
        raise httpx.ConnectTimeout("unreachable", request=request)

    service = _service(handler)

    assert asyncio.run(service.fetch_green_space_locations(CENTER, 3.0)) == []


def test_compute_bbox_pads_extent():
    south, west, north, east = compute_bbox(POINTS, 0.002)
    assert south == pytest.approx(39.998)
    assert west == pytest.approx(-75.002)
    assert north == pytest.approx(40.012)
    assert east == pytest.approx(-74.988)


def test_dedupe_points_keeps_first_seen():
    a = GeoPoint(lat=40.0, lng=-75.0)
    near_a = GeoPoint(lat=40.0001, lng=-75.0)
    b = GeoPoint(lat=40.01, lng=-75.0)

    assert dedupe_points([a, near_a, b], 0.05) == [a, b]


def test_feature_cache_evicts_least_recently_used():
    cache = FeatureCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1
    cache.set("c", 3)

    assert "a" in cache
    assert "b" not in cache
    assert len(cache) == 2
    assert cache.get("b") is None
    assert (cache.hits, cache.misses) == (1, 1)


def test_feature_cache_rejects_non_positive_size():
    with pytest.raises(ValueError):
        FeatureCache(max_entries=0)


def test_dedupe_is_idempotent():
    points = [GeoPoint(lat=40.0 + 0.0002 * i, lng=-75.0 + 0.0003 * (i % 3)) for i in range(30)]
    once = dedupe_points(points, 0.05)
    assert dedupe_points(once, 0.05) == once


def test_tier_one_is_never_dropped_for_the_cap():
    tier1 = [GeoPoint(lat=40.0 + 0.001 * i, lng=-75.0) for i in range(20)]
    tier2 = [GeoPoint(lat=39.999 - 0.001 * i, lng=-75.0) for i in range(5)]

    merged = merge_green_space_tiers(tier1, tier2, CENTER, cap=15, threshold_km=0.05)

    assert merged == tier1
