"""
Internal candidate records passed between pipeline stages.
None of these leave the service; callers only ever see GeneratedRoute.
"""
from dataclasses import dataclass
from typing import List

from runplanner.models.request import GeoPoint


@dataclass(frozen=True)
class RouterResult:
    """Road-following geometry as reported by the routing engine."""

    coordinates: List[GeoPoint]
    distance_km: float
    duration_min: float


@dataclass(frozen=True)
class ResolvedCandidate:
    index: int
    variant: int
    points: List[GeoPoint]
    distance_km: float
    estimated_time_min: int
    from_external_router: bool


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: ResolvedCandidate
    quiet_score: float
    score: float
    scenic_score: float = 0.5
