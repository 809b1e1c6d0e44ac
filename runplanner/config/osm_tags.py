"""
OpenStreetMap tag configuration for route enrichment.
Road classes for the quiet score, green-space filters and scenic features.
"""

from typing import Dict, List, Tuple


# Busy roads counted against the quiet score
MAJOR_HIGHWAYS = [
    "primary",
    "secondary",
    "trunk",
    "primary_link",
    "trunk_link",
]

# Low-traffic ways counted towards the quiet score
QUIET_HIGHWAYS = [
    "residential",
    "living_street",
    "path",
    "footway",
    "cycleway",
    "pedestrian",
]

# Every road class fetched by the quiet score query
QUIET_SCORE_HIGHWAYS: List[str] = MAJOR_HIGHWAYS + QUIET_HIGHWAYS

# Parks and reserves, queried as both ways and nodes
GREEN_LEISURE_TYPES = ["park", "nature_reserve", "garden"]

# Car-free ways, queried as ways only
CAR_FREE_HIGHWAYS = ["cycleway", "footway", "path", "pedestrian", "track"]

# (element type, key, value) filters for the scenic feature count
SCENIC_FEATURE_FILTERS: List[Tuple[str, str, str]] = [
    ("node", "leisure", "park"),
    ("node", "leisure", "garden"),
    ("node", "leisure", "nature_reserve"),
    ("node", "natural", "water"),
    ("node", "waterway", "river"),
    ("node", "waterway", "stream"),
    ("node", "natural", "coastline"),
    ("node", "tourism", "viewpoint"),
    ("way", "leisure", "park"),
    ("way", "natural", "water"),
    ("way", "waterway", "river"),
]

# Scenic feature count at which the scenic score saturates
SCENIC_SATURATION_COUNT = 30

# Display names for generated routes
ROUTE_NAME_POOLS: Dict[str, List[str]] = {
    "quiet": [
        "Backstreet Run",
        "Quiet Lanes",
        "Residential Circuit",
        "Sidestreet Shuffle",
        "Neighborhood Loop",
        "Peaceful Path",
    ],
    "default": [
        "Downtown Explorer",
        "City Loop",
        "Urban Circuit",
        "Coastal Breeze Route",
        "Bridge Connector",
        "Meadow Circuit",
    ],
}


def is_major_highway(highway: str) -> bool:
    """Check if a highway tag value is a busy road class."""
    return highway in MAJOR_HIGHWAYS


def is_tier_one_feature(tags: Dict[str, str]) -> bool:
    """Parks, gardens and reserves, or any named way, outrank unnamed paths."""
    if tags.get("leisure") in GREEN_LEISURE_TYPES:
        return True
    return bool(tags.get("highway")) and bool(tags.get("name"))


def get_route_name_pool(low_traffic: bool) -> List[str]:
    """Get the display name pool for a preference set."""
    return ROUTE_NAME_POOLS["quiet" if low_traffic else "default"]
