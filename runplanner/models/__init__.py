from .candidate import ResolvedCandidate, RouterResult, ScoredCandidate
from .request import GeoPoint, RouteGenerationRequest, RoutePreferences, RouteStyle
from .response import GeneratedRoute, RouteResponse

__all__ = [
    "GeoPoint",
    "RoutePreferences",
    "RouteStyle",
    "RouteGenerationRequest",
    "RouterResult",
    "ResolvedCandidate",
    "ScoredCandidate",
    "GeneratedRoute",
    "RouteResponse",
]
