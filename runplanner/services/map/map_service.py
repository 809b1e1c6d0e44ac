from abc import ABC, abstractmethod
from typing import List, Optional

from runplanner.models.candidate import RouterResult
from runplanner.models.request import GeoPoint


class RoutingService(ABC):
    """Road router abstract interface"""

    @abstractmethod
    async def resolve_route(self, waypoints: List[GeoPoint]) -> Optional[RouterResult]:
        """Resolve a waypoint skeleton into road-following geometry.

        Returns None when the route cannot be resolved; never raises for
        network trouble.
        """
        pass


class FeatureQueryService(ABC):
    """Map feature service abstract interface"""

    @abstractmethod
    async def fetch_quiet_score(self, points: List[GeoPoint]) -> float:
        """Fraction of low-traffic road segments around the points, in [0, 1]"""
        pass

    @abstractmethod
    async def fetch_scenic_score(self, points: List[GeoPoint]) -> float:
        """Density of scenic features around the points, in [0, 1]"""
        pass

    @abstractmethod
    async def fetch_green_space_locations(
        self, center: GeoPoint, radius_km: float
    ) -> List[GeoPoint]:
        """Parks and car-free paths near a center, best first"""
        pass
