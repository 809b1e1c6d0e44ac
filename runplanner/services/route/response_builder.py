"""
Response builder service - turns ranked candidates into caller-facing routes
"""
import math
import secrets
import time
from typing import Callable, List, Optional

from runplanner.config import settings
from runplanner.config.osm_tags import get_route_name_pool
from runplanner.models.candidate import ResolvedCandidate, ScoredCandidate
from runplanner.models.request import GeoPoint, RoutePreferences, RouteStyle
from runplanner.models.response import GeneratedRoute, RouteResponse


def classify_difficulty(distance_km: float) -> str:
    if distance_km < 5:
        return "easy"
    if distance_km < 10:
        return "moderate"
    return "hard"


def pick_route_name(prefs: RoutePreferences, index: int, start_lat: float) -> str:
    """Same start area reuses the same name slot; sibling candidates still differ.

    Southern latitudes use the absolute value of a truncated remainder.
    """
    pool = get_route_name_pool(prefs.low_traffic)
    slot = int(abs(math.fmod(index + math.floor(start_lat * 10), len(pool))))
    return pool[slot]


def _random_suffix() -> str:
    return secrets.token_hex(2)


class ResponseBuilderService:
    """Response builder service - converts ranked candidates to API response format"""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        suffix: Callable[[], str] = _random_suffix,
        elevation_base_m: Optional[float] = None,
        elevation_per_km_m: Optional[float] = None,
        elevation_per_variant_m: Optional[float] = None,
    ):
        self._clock = clock
        self._suffix = suffix
        self.elevation_base_m = _or_default(elevation_base_m, settings.elevation_base_m)
        self.elevation_per_km_m = _or_default(elevation_per_km_m, settings.elevation_per_km_m)
        self.elevation_per_variant_m = _or_default(
            elevation_per_variant_m, settings.elevation_per_variant_m
        )

    def fabricate_elevation_gain(self, candidate: ResolvedCandidate) -> int:
        """Placeholder gain for when no elevation data is available"""
        return round(
            self.elevation_base_m
            + candidate.distance_km * self.elevation_per_km_m
            + candidate.variant * self.elevation_per_variant_m
        )

    def build_route(
        self,
        scored: ScoredCandidate,
        style: RouteStyle,
        prefs: RoutePreferences,
        center: GeoPoint,
        elevation_gain_m: Optional[int] = None,
    ) -> GeneratedRoute:
        candidate = scored.candidate
        if elevation_gain_m is None:
            elevation_gain_m = self.fabricate_elevation_gain(candidate)

        timestamp_ms = int(self._clock() * 1000)
        return GeneratedRoute(
            id=f"route-{candidate.index}-{timestamp_ms}-{self._suffix()}",
            name=pick_route_name(prefs, candidate.index, center.lat),
            points=list(candidate.points),
            distance_km=round(candidate.distance_km, 2),
            estimated_time_min=candidate.estimated_time_min,
            elevation_gain_m=elevation_gain_m,
            terrain=style.terrain,
            difficulty=classify_difficulty(candidate.distance_km),
        )

    def build_response(self, routes: List[GeneratedRoute]) -> RouteResponse:
        return RouteResponse(
            success=True,
            message=f"Successfully generated {len(routes)} routes",
            routes=routes,
            total_count=len(routes),
        )


def _or_default(value: Optional[float], default: float) -> float:
    return default if value is None else value
