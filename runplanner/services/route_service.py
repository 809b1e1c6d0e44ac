"""
Main route generation service
Integrates synthesis, road routing, enrichment, ranking and response building
"""
import asyncio
import logging
from typing import Any, Awaitable, Iterable, List, Optional, Union

from runplanner.config import settings
from runplanner.models.candidate import ResolvedCandidate, RouterResult, ScoredCandidate
from runplanner.models.request import (
    GeoPoint,
    RouteGenerationRequest,
    RoutePreferences,
    RouteStyle,
)
from runplanner.models.response import GeneratedRoute, RouteResponse
from runplanner.services.geo.geodesy import path_length_km
from runplanner.services.map.elevation_service import OpenElevationService
from runplanner.services.map.map_service import FeatureQueryService, RoutingService
from runplanner.services.map.osrm_service import OSRMRouterService
from runplanner.services.map.overpass_service import NEUTRAL_SCORE, OverpassFeatureService
from runplanner.services.route.cancellation import CancellationToken, GenerationCancelled
from runplanner.services.route.ranking_service import RouteRankingService
from runplanner.services.route.response_builder import ResponseBuilderService
from runplanner.services.route.synthesis_service import (
    calculate_search_radius,
    synthesize_skeleton,
)

logger = logging.getLogger(__name__)


async def settle_all(
    calls: Iterable[Awaitable[Any]], cancel_token: Optional[CancellationToken] = None
) -> List[Any]:
    """Run calls concurrently and wait for every one of them.

    Each slot holds the call's result or the exception it raised; one failure
    never cancels its siblings. If the token fires first, everything still
    outstanding is cancelled and GenerationCancelled is raised.
    """
    tasks = [asyncio.ensure_future(call) for call in calls]
    if not tasks:
        return []

    gathered = asyncio.gather(*tasks, return_exceptions=True)
    if cancel_token is None:
        return await gathered

    waiter = asyncio.ensure_future(cancel_token.wait())
    try:
        await asyncio.wait({gathered, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        # Outer cancellation stops every outstanding call too
        gathered.cancel()
        raise
    finally:
        waiter.cancel()

    if cancel_token.cancelled:
        for task in tasks:
            task.cancel()
        await gathered
        raise GenerationCancelled("Route generation was cancelled")

    return gathered.result()


class RouteService:
    """
    Main route generation service

    Flow: green space prefetch → skeleton synthesis → road routing →
    enrichment → scoring/ranking → response building
    """

    def __init__(
        self,
        *,
        router: Optional[RoutingService] = None,
        feature_service: Optional[FeatureQueryService] = None,
        elevation_service: Optional[OpenElevationService] = None,
        ranking_service: Optional[RouteRankingService] = None,
        response_builder: Optional[ResponseBuilderService] = None,
        candidate_count: Optional[int] = None,
        fallback_minutes_per_km: Optional[float] = None,
        use_elevation_api: Optional[bool] = None,
    ):
        self.router = router or OSRMRouterService()
        self.feature_service = feature_service or OverpassFeatureService()
        self.elevation_service = elevation_service or OpenElevationService()
        self.ranking_service = ranking_service or RouteRankingService()
        self.response_builder = response_builder or ResponseBuilderService()
        self.candidate_count = candidate_count or settings.candidate_count
        self.fallback_minutes_per_km = (
            fallback_minutes_per_km
            if fallback_minutes_per_km is not None
            else settings.fallback_minutes_per_km
        )
        self.use_elevation_api = (
            use_elevation_api if use_elevation_api is not None else settings.use_elevation_api
        )

    async def generate(
        self,
        request: RouteGenerationRequest,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RouteResponse:
        """Generate routes for an API request and wrap them in a response"""
        routes = await self.generate_routes(
            center=request.center,
            target_distance_km=request.distance_km,
            style=request.style,
            count=request.count,
            prefs=request.preferences,
            end=request.end,
            cancel_token=cancel_token,
        )
        return self.response_builder.build_response(routes)

    async def generate_routes(
        self,
        center: GeoPoint,
        target_distance_km: float,
        style: Union[RouteStyle, str] = RouteStyle.LOOP,
        count: Optional[int] = None,
        prefs: Optional[RoutePreferences] = None,
        end: Optional[GeoPoint] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[GeneratedRoute]:
        """
        Generate ranked running routes around ``center``.

        Network trouble never raises here: a failed route falls back to its
        raw skeleton, a failed enrichment to a neutral score, a failed green
        space lookup to no bias. Only bad arguments (ValueError) and
        caller cancellation (GenerationCancelled) escape.
        """
        style = RouteStyle(style)
        count = count if count is not None else settings.default_route_count
        prefs = prefs or RoutePreferences()
        self._validate(target_distance_km, count)

        if end is not None and style is not RouteStyle.POINT_TO_POINT:
            logger.debug("Ignoring end point for %s route", style.value)
            end = None

        # Step 1: Green spaces, shared by every candidate of this call
        green_spaces: List[GeoPoint] = []
        if prefs.low_traffic:
            radius_km = calculate_search_radius(
                style,
                target_distance_km,
                center,
                end,
                min_km=settings.search_radius_min_km,
                max_km=settings.search_radius_max_km,
            )
            (fetched,) = await settle_all(
                [self.feature_service.fetch_green_space_locations(center, radius_km)],
                cancel_token,
            )
            if isinstance(fetched, BaseException):
                logger.warning("Green space lookup failed, skipping bias: %r", fetched)
            else:
                green_spaces = fetched

        # Step 2: Waypoint skeletons
        skeletons = [
            synthesize_skeleton(
                style, center, target_distance_km, prefs, variant, green_spaces, end
            )
            for variant in range(1, self.candidate_count + 1)
        ]

        # Step 3: Road-following geometry
        router_results = await settle_all(
            [self.router.resolve_route(skeleton) for skeleton in skeletons], cancel_token
        )
        resolved = [
            self._resolve_candidate(index, skeleton, result)
            for index, (skeleton, result) in enumerate(zip(skeletons, router_results))
        ]

        # Step 4: Enrichment, only when a preference needs it
        quiet_scores = await self._enrich(
            resolved, prefs.low_traffic, self.feature_service.fetch_quiet_score, cancel_token
        )
        scenic_scores = await self._enrich(
            resolved, prefs.scenic, self.feature_service.fetch_scenic_score, cancel_token
        )

        # Step 5: Score and rank
        scored = self.ranking_service.score_candidates(
            resolved, target_distance_km, prefs, quiet_scores, scenic_scores
        )
        for item in scored:
            logger.info(
                "Candidate %d: dist=%.2fkm, quiet=%.2f, score=%.3f, routed=%s",
                item.candidate.index,
                item.candidate.distance_km,
                item.quiet_score,
                item.score,
                item.candidate.from_external_router,
            )
        top = self.ranking_service.rank_routes(scored)[:count]

        # Step 6: Materialize
        elevation_gains = await self._elevation_gains(top, cancel_token)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        routes = [
            self.response_builder.build_route(item, style, prefs, center, gain)
            for item, gain in zip(top, elevation_gains)
        ]
        logger.info("🎉 Generated %d %s route(s)", len(routes), style.terrain)
        return routes

    def _validate(self, target_distance_km: float, count: int) -> None:
        if target_distance_km <= 0:
            raise ValueError(f"target distance must be positive, got {target_distance_km}")
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")
        if count > self.candidate_count:
            raise ValueError(
                f"count {count} exceeds the {self.candidate_count} candidates generated per call"
            )

    def _resolve_candidate(
        self, index: int, skeleton: List[GeoPoint], result: Any
    ) -> ResolvedCandidate:
        variant = index + 1
        if isinstance(result, RouterResult):
            return ResolvedCandidate(
                index=index,
                variant=variant,
                points=result.coordinates,
                distance_km=result.distance_km,
                estimated_time_min=round(result.duration_min),
                from_external_router=True,
            )

        if isinstance(result, BaseException):
            logger.warning("Router raised for candidate %d: %r", index, result)
        logger.warning("⚠️ Candidate %d falls back to its raw waypoints", index)

        distance_km = path_length_km(skeleton)
        return ResolvedCandidate(
            index=index,
            variant=variant,
            points=skeleton,
            distance_km=distance_km,
            estimated_time_min=round(distance_km * self.fallback_minutes_per_km),
            from_external_router=False,
        )

    async def _enrich(
        self,
        candidates: List[ResolvedCandidate],
        enabled: bool,
        fetch_score,
        cancel_token: Optional[CancellationToken],
    ) -> List[float]:
        if not enabled:
            return [NEUTRAL_SCORE] * len(candidates)

        results = await settle_all(
            [fetch_score(candidate.points) for candidate in candidates], cancel_token
        )
        scores = []
        for candidate, result in zip(candidates, results):
            if isinstance(result, BaseException):
                logger.warning("Enrichment failed for candidate %d: %r", candidate.index, result)
                scores.append(NEUTRAL_SCORE)
            else:
                scores.append(float(result))
        return scores

    async def _elevation_gains(
        self, top: List[ScoredCandidate], cancel_token: Optional[CancellationToken]
    ) -> List[Optional[int]]:
        """Real elevation gain per route when enabled; None means fabricate."""
        if not self.use_elevation_api:
            return [None] * len(top)

        profiles = await settle_all(
            [self.elevation_service.fetch_profile(item.candidate.points) for item in top],
            cancel_token,
        )
        return [
            None if profile is None or isinstance(profile, BaseException) else profile.total_gain_m
            for profile in profiles
        ]
