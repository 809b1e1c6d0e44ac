"""
Response models for route generation API
"""
from typing import List, Literal

from pydantic import BaseModel

from runplanner.models.request import GeoPoint


class GeneratedRoute(BaseModel):
    """Route handed back to the caller, never mutated afterwards"""

    id: str
    name: str
    points: List[GeoPoint]
    distance_km: float
    estimated_time_min: int
    elevation_gain_m: int
    terrain: Literal["Loop", "Out & Back", "Point to Point"]
    difficulty: Literal["easy", "moderate", "hard"]


class RouteResponse(BaseModel):
    """Route response model"""

    success: bool = True
    message: str = "success"
    routes: List[GeneratedRoute] = []
    total_count: int = 0
