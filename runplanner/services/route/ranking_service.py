"""Weighted preference scoring and ranking of resolved route candidates."""
from __future__ import annotations

from typing import List, Sequence

from runplanner.models.candidate import ResolvedCandidate, ScoredCandidate
from runplanner.models.request import RoutePreferences

QUIET_WEIGHT = 0.4
SCENIC_WEIGHT = 0.3
# Distance fidelity always keeps at least this much weight
MIN_DISTANCE_WEIGHT = 0.2
NEUTRAL_SCORE = 0.5


def distance_fidelity(distance_km: float, target_distance_km: float) -> float:
    """1.0 on target, falling linearly to 0.0 at 50% deviation either way."""
    ratio = distance_km / target_distance_km if target_distance_km > 0 else 1.0
    return max(1.0 - abs(1.0 - ratio) * 2, 0.0)


def score_route(
    distance_km: float,
    target_distance_km: float,
    prefs: RoutePreferences,
    quiet_score: float,
    scenic_score: float = NEUTRAL_SCORE,
) -> float:
    """
    Score a candidate between 0 and 1 (higher is better).

    Weights:
    - low_traffic -> quiet score weight 0.4
    - scenic -> scenic score weight 0.3
    - distance accuracy gets the remaining weight, never less than 0.2

    The weighted sum is normalized by the total weight used.
    """
    total_weight = 0.0
    weighted_sum = 0.0

    if prefs.low_traffic:
        total_weight += QUIET_WEIGHT
        weighted_sum += QUIET_WEIGHT * quiet_score

    if prefs.scenic:
        total_weight += SCENIC_WEIGHT
        weighted_sum += SCENIC_WEIGHT * scenic_score

    distance_weight = max(1.0 - total_weight, MIN_DISTANCE_WEIGHT)
    total_weight += distance_weight
    weighted_sum += distance_weight * distance_fidelity(distance_km, target_distance_km)

    return weighted_sum / total_weight if total_weight > 0 else NEUTRAL_SCORE


class RouteRankingService:
    """Score and rank candidates against the caller's preferences."""

    def score_candidates(
        self,
        candidates: Sequence[ResolvedCandidate],
        target_distance_km: float,
        prefs: RoutePreferences,
        quiet_scores: Sequence[float],
        scenic_scores: Sequence[float],
    ) -> List[ScoredCandidate]:
        return [
            ScoredCandidate(
                candidate=candidate,
                quiet_score=quiet,
                scenic_score=scenic,
                score=score_route(
                    candidate.distance_km, target_distance_km, prefs, quiet, scenic
                ),
            )
            for candidate, quiet, scenic in zip(candidates, quiet_scores, scenic_scores)
        ]

    def rank_routes(self, scored: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
        """Highest score first; ties keep candidate index order."""
        by_index = sorted(scored, key=lambda s: s.candidate.index)
        return sorted(by_index, key=lambda s: s.score, reverse=True)
