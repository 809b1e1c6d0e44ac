from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    """WGS84 coordinate in degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class RoutePreferences(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    low_traffic: bool = Field(default=False, alias="lowTraffic")
    scenic: bool = False


class RouteStyle(str, Enum):
    LOOP = "loop"
    OUT_AND_BACK = "out-and-back"
    POINT_TO_POINT = "point-to-point"

    @property
    def terrain(self) -> str:
        return _TERRAIN_LABELS[self]


_TERRAIN_LABELS = {
    RouteStyle.LOOP: "Loop",
    RouteStyle.OUT_AND_BACK: "Out & Back",
    RouteStyle.POINT_TO_POINT: "Point to Point",
}


class RouteGenerationRequest(BaseModel):
    center: GeoPoint
    distance_km: float = Field(gt=0)
    style: RouteStyle = RouteStyle.LOOP
    count: Optional[int] = Field(default=None, ge=1)
    preferences: RoutePreferences = RoutePreferences()
    end: Optional[GeoPoint] = None
