import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

from runplanner.config import settings
from runplanner.models.candidate import RouterResult
from runplanner.models.request import GeoPoint
from runplanner.services.map.map_service import RoutingService

logger = logging.getLogger(__name__)


def coordinates_path(points: List[GeoPoint]) -> str:
    """OSRM expects lng,lat pairs joined by semicolons."""
    return ";".join(f"{p.lng},{p.lat}" for p in points)


class OSRMRouterService(RoutingService):
    """OSRM walking-profile route service implementation"""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self.max_retries = max_retries if max_retries is not None else settings.router_max_retries
        self.backoff_s = backoff_s if backoff_s is not None else settings.router_backoff_s
        self._client = client
        self._sleep = sleep

    async def resolve_route(self, waypoints: List[GeoPoint]) -> Optional[RouterResult]:
        """Get a walking route through the waypoints.

        Server errors and network failures are retried with linear backoff;
        client errors are not. Returns None whenever no usable route came
        back, leaving the fallback to the caller.
        """
        if len(waypoints) < 2:
            return None

        url = f"{self.base_url}/{coordinates_path(waypoints)}"
        params = {"overview": "full", "geometries": "geojson", "steps": "false"}

        response = await self._get_with_retry(url, params)
        if response is None:
            return None

        if not response.is_success:
            logger.warning("OSRM returned %s, not retrying", response.status_code)
            return None

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            return self._convert_route_response(data)
        except (ValueError, KeyError, TypeError, IndexError) as e:
            logger.warning("OSRM returned a malformed payload: %s", e)
            return None

    async def _get_with_retry(self, url: str, params: dict) -> Optional[httpx.Response]:
        for attempt in range(self.max_retries + 1):
            is_last = attempt == self.max_retries
            try:
                response = await asyncio.wait_for(
                    self._get(url, params), timeout=self.timeout
                )
            except (httpx.HTTPError, asyncio.TimeoutError) as e:
                logger.warning(
                    "OSRM request failed (attempt %d/%d): %r",
                    attempt + 1,
                    self.max_retries + 1,
                    e,
                )
                if is_last:
                    return None
            else:
                if response.status_code < 500:
                    return response
                logger.warning(
                    "OSRM server error %s (attempt %d/%d)",
                    response.status_code,
                    attempt + 1,
                    self.max_retries + 1,
                )
                if is_last:
                    return None

            await self._sleep(self.backoff_s * (attempt + 1))

        return None

    async def _get(self, url: str, params: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, timeout=self.timeout)

        async with httpx.AsyncClient() as client:
            return await client.get(url, params=params, timeout=self.timeout)

    @staticmethod
    def _convert_route_response(data: dict) -> Optional[RouterResult]:
        """Convert an OSRM response to a RouterResult"""
        if data.get("code") != "Ok" or not data.get("routes"):
            logger.warning("OSRM found no route (code=%s)", data.get("code"))
            return None

        route = data["routes"][0]
        coordinates = [
            GeoPoint(lat=float(lat), lng=float(lng))
            for lng, lat in route["geometry"]["coordinates"]
        ]
        if not coordinates:
            return None

        return RouterResult(
            coordinates=coordinates,
            distance_km=float(route["distance"]) / 1000,
            duration_min=float(route["duration"]) / 60,
        )
