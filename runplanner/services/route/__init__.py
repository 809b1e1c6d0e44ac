# Route service package
from .cancellation import CancellationToken, GenerationCancelled
from .ranking_service import RouteRankingService, score_route
from .response_builder import ResponseBuilderService
from .synthesis_service import select_waypoint, synthesize_skeleton

__all__ = [
    "CancellationToken",
    "GenerationCancelled",
    "RouteRankingService",
    "ResponseBuilderService",
    "score_route",
    "select_waypoint",
    "synthesize_skeleton",
]
