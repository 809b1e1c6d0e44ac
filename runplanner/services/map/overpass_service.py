"""
Overpass API client for route enrichment signals.

Every public call has a typed fallback (0.5 for scores, [] for locations)
and never raises for network or payload trouble. Results are cached per
client instance by a key rounded to 3 decimal degrees (~111m), so sibling
candidates of one generation call share a single round trip.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from runplanner.config import settings
from runplanner.config.osm_tags import (
    CAR_FREE_HIGHWAYS,
    GREEN_LEISURE_TYPES,
    QUIET_SCORE_HIGHWAYS,
    SCENIC_FEATURE_FILTERS,
    SCENIC_SATURATION_COUNT,
    is_major_highway,
    is_tier_one_feature,
)
from runplanner.models.request import GeoPoint
from runplanner.services.geo.geodesy import haversine_km
from runplanner.services.map.feature_cache import FeatureCache
from runplanner.services.map.map_service import FeatureQueryService

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5

BBox = Tuple[float, float, float, float]


def compute_bbox(points: List[GeoPoint], buffer_deg: float) -> BBox:
    """(south, west, north, east) around the points, padded by ``buffer_deg``."""
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return (
        min(lats) - buffer_deg,
        min(lngs) - buffer_deg,
        max(lats) + buffer_deg,
        max(lngs) + buffer_deg,
    )


def bbox_key(bbox: BBox) -> str:
    return ",".join(f"{v:.3f}" for v in bbox)


def dedupe_points(points: List[GeoPoint], threshold_km: float) -> List[GeoPoint]:
    """Greedy, order-preserving suppression of points closer than the threshold
    to an already kept point."""
    kept: List[GeoPoint] = []
    for point in points:
        if not any(haversine_km(k, point) < threshold_km for k in kept):
            kept.append(point)
    return kept


def merge_green_space_tiers(
    tier1: List[GeoPoint],
    tier2: List[GeoPoint],
    center: GeoPoint,
    cap: int,
    threshold_km: float,
) -> List[GeoPoint]:
    """All of tier 1, then the nearest tier 2 points up to ``cap`` in total."""
    primary = dedupe_points(tier1, threshold_km)
    secondary = sorted(
        dedupe_points(tier2, threshold_km), key=lambda p: haversine_km(center, p)
    )
    remaining = max(0, cap - len(primary))
    return primary + secondary[:remaining]


def _element_tags(element: Dict[str, Any]) -> Dict[str, Any]:
    tags = element.get("tags")
    return tags if isinstance(tags, dict) else {}


def _element_point(element: Dict[str, Any]) -> Optional[GeoPoint]:
    if element.get("type") == "node":
        lat, lon = element.get("lat"), element.get("lon")
    elif element.get("type") == "way":
        center = element.get("center") or {}
        lat, lon = center.get("lat"), center.get("lon")
    else:
        return None

    if lat is None or lon is None:
        return None
    return GeoPoint(lat=float(lat), lng=float(lon))


class OverpassFeatureService(FeatureQueryService):
    """Overpass API service implementation"""

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional[FeatureCache] = None,
        bbox_buffer_deg: Optional[float] = None,
        green_space_cap: Optional[int] = None,
        dedup_threshold_km: Optional[float] = None,
    ):
        self.url = url or settings.overpass_url
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self._client = client
        self.cache = cache if cache is not None else FeatureCache(settings.feature_cache_max_entries)
        self.bbox_buffer_deg = (
            bbox_buffer_deg if bbox_buffer_deg is not None else settings.bbox_buffer_deg
        )
        self.green_space_cap = green_space_cap or settings.green_space_cap
        self.dedup_threshold_km = (
            dedup_threshold_km if dedup_threshold_km is not None else settings.dedup_threshold_km
        )
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}

    async def fetch_quiet_score(self, points: List[GeoPoint]) -> float:
        """Share of quiet road segments among all road segments near the points.

        Busy classes (primary/secondary/trunk and links) count against the
        score, everything else returned counts for it.
        """
        if len(points) < 2:
            return NEUTRAL_SCORE

        bbox = compute_bbox(points, self.bbox_buffer_deg)
        key = f"quiet:{bbox_key(bbox)}"
        return await self._cached(key, lambda: self._load_quiet_score(bbox))

    async def fetch_scenic_score(self, points: List[GeoPoint]) -> float:
        """Scenic feature count near the points, saturating at 1.0."""
        if len(points) < 2:
            return NEUTRAL_SCORE

        bbox = compute_bbox(points, self.bbox_buffer_deg)
        key = f"scenic:{bbox_key(bbox)}"
        return await self._cached(key, lambda: self._load_scenic_score(bbox))

    async def fetch_green_space_locations(
        self, center: GeoPoint, radius_km: float
    ) -> List[GeoPoint]:
        """Parks and car-free ways around a center.

        Parks, gardens, reserves and named ways form tier 1 and are always
        kept; unnamed paths (tier 2) fill the remaining slots nearest first.
        An empty list means no bias is available, not an error.
        """
        key = f"green:{center.lat:.3f},{center.lng:.3f},{radius_km:.3f}"
        return await self._cached(
            key, lambda: self._load_green_spaces(center, radius_km)
        )

    async def _cached(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Overpass cache hit for %s", key)
            return cached

        # Concurrent callers for the same key share one request
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(loader())
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._inflight.pop(key, None))

        value = await asyncio.shield(task)
        self.cache.set(key, value)
        return value

    async def _load_quiet_score(self, bbox: BBox) -> float:
        bbox_str = ",".join(str(v) for v in bbox)
        clauses = "\n".join(
            f'  way["highway"="{highway}"]({bbox_str});' for highway in QUIET_SCORE_HIGHWAYS
        )
        query = f"[out:json][timeout:5];(\n{clauses}\n);out tags;"

        elements = await self._query_elements(query)
        if not elements:
            return NEUTRAL_SCORE

        major_count = 0
        quiet_count = 0
        for element in elements:
            if is_major_highway(_element_tags(element).get("highway", "")):
                major_count += 1
            else:
                quiet_count += 1

        return quiet_count / (quiet_count + major_count)

    async def _load_scenic_score(self, bbox: BBox) -> float:
        bbox_str = ",".join(str(v) for v in bbox)
        clauses = "\n".join(
            f'  {kind}["{key}"="{value}"]({bbox_str});'
            for kind, key, value in SCENIC_FEATURE_FILTERS
        )
        query = f"[out:json][timeout:5];(\n{clauses}\n);out count;"

        elements = await self._query_elements(query)
        if elements is None:
            return NEUTRAL_SCORE

        count = self._parse_count(elements)
        return min(count / SCENIC_SATURATION_COUNT, 1.0)

    async def _load_green_spaces(self, center: GeoPoint, radius_km: float) -> List[GeoPoint]:
        radius_m = round(radius_km * 1000)
        around = f"(around:{radius_m},{center.lat},{center.lng})"

        clauses = [f'  way["leisure"="{leisure}"]{around};' for leisure in GREEN_LEISURE_TYPES]
        clauses += [f'  node["leisure"="{leisure}"]{around};' for leisure in GREEN_LEISURE_TYPES]
        clauses += [f'  way["highway"="{highway}"]{around};' for highway in CAR_FREE_HIGHWAYS]
        query = "[out:json][timeout:5];(\n" + "\n".join(clauses) + "\n);out center tags;"

        elements = await self._query_elements(query)
        if not elements:
            return []

        tier1: List[GeoPoint] = []
        tier2: List[GeoPoint] = []
        for element in elements:
            try:
                point = _element_point(element)
            except (AttributeError, TypeError, ValueError):
                point = None
            if point is None:
                continue

            if is_tier_one_feature(_element_tags(element)):
                tier1.append(point)
            else:
                tier2.append(point)

        result = merge_green_space_tiers(
            tier1, tier2, center, self.green_space_cap, self.dedup_threshold_km
        )
        logger.info(
            "Found %d green space points (%d tier 1 candidates) within %.1fkm",
            len(result),
            len(tier1),
            radius_km,
        )
        return result

    @staticmethod
    def _parse_count(elements: List[Dict[str, Any]]) -> int:
        if not elements:
            return 0
        first = elements[0]
        if first.get("type") == "count":
            try:
                return int((first.get("tags") or {}).get("total", 0))
            except (TypeError, ValueError):
                return 0
        return len(elements)

    async def _query_elements(self, query: str) -> Optional[List[Dict[str, Any]]]:
        """POST a query and return its element list, or None on any failure."""
        try:
            response = await asyncio.wait_for(self._post(query), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Overpass query timed out after %.1fs", self.timeout)
            return None
        except httpx.HTTPError as e:
            logger.warning("Overpass query failed: %s", e)
            return None

        if not response.is_success:
            logger.warning("Overpass API returned %s", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Overpass API returned invalid JSON")
            return None

        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            logger.warning("Overpass API returned a malformed payload")
            return None

        return [el for el in elements if isinstance(el, dict)]

    async def _post(self, query: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, data={"data": query}, timeout=self.timeout)

        async with httpx.AsyncClient() as client:
            return await client.post(self.url, data={"data": query}, timeout=self.timeout)
