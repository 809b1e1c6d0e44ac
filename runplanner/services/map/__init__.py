# Map service package
from .elevation_service import ElevationProfile, OpenElevationService
from .feature_cache import FeatureCache
from .map_service import FeatureQueryService, RoutingService
from .osrm_service import OSRMRouterService
from .overpass_service import OverpassFeatureService

__all__ = [
    "RoutingService",
    "FeatureQueryService",
    "FeatureCache",
    "OSRMRouterService",
    "OverpassFeatureService",
    "OpenElevationService",
    "ElevationProfile",
]
