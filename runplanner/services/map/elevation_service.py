"""
Open-Elevation client used to replace the fabricated elevation estimate
when real lookups are enabled.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from runplanner.config import settings
from runplanner.models.request import GeoPoint

logger = logging.getLogger(__name__)

SAMPLE_COUNT = 25


@dataclass(frozen=True)
class ElevationProfile:
    elevations: List[float]
    total_gain_m: int
    total_loss_m: int


def sample_points(points: List[GeoPoint], count: int) -> List[GeoPoint]:
    """Pick ``count`` points spread evenly by index, keeping both ends."""
    if len(points) <= count:
        return list(points)
    if count < 2:
        return list(points[:count])

    step = (len(points) - 1) / (count - 1)
    return [points[min(round(i * step), len(points) - 1)] for i in range(count)]


def compute_gain_loss(elevations: List[float]) -> Tuple[int, int]:
    gain = 0.0
    loss = 0.0
    for previous, current in zip(elevations, elevations[1:]):
        diff = current - previous
        if diff > 0:
            gain += diff
        else:
            loss += -diff
    return round(gain), round(loss)


class OpenElevationService:
    def __init__(
        self,
        *,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        sample_count: int = SAMPLE_COUNT,
    ):
        self.url = url or settings.elevation_url
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self._client = client
        self.sample_count = sample_count

    async def fetch_profile(self, points: List[GeoPoint]) -> Optional[ElevationProfile]:
        """Elevation profile along the route, or None so callers can fall back."""
        if len(points) < 2:
            return None

        sampled = sample_points(points, self.sample_count)
        body = {"locations": [{"latitude": p.lat, "longitude": p.lng} for p in sampled]}

        try:
            response = await asyncio.wait_for(self._post(body), timeout=self.timeout)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning("Elevation fetch failed: %r", e)
            return None

        if not response.is_success:
            logger.warning("Open-Elevation API returned %s", response.status_code)
            return None

        try:
            results = response.json()["results"]
            elevations = [float(r["elevation"]) for r in results]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Open-Elevation API returned a malformed payload: %s", e)
            return None

        if not elevations:
            logger.warning("Open-Elevation API returned empty results")
            return None

        gain, loss = compute_gain_loss(elevations)
        return ElevationProfile(elevations=elevations, total_gain_m=gain, total_loss_m=loss)

    async def _post(self, body: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, json=body, timeout=self.timeout)

        async with httpx.AsyncClient() as client:
            return await client.post(self.url, json=body, timeout=self.timeout)
