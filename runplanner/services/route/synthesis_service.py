"""
Waypoint skeleton synthesis for the three route styles.

All jitter is a trigonometric function of the variant and point index, so
the same inputs always produce the same skeleton.
"""
import math
from typing import Callable, Dict, List, Optional

from runplanner.models.request import GeoPoint, RoutePreferences, RouteStyle
from runplanner.services.geo.geodesy import destination_point, haversine_km

DEFAULT_GREEN_BLEND = 0.7
TURNAROUND_GREEN_BLEND = 0.8

# Loops and out-and-backs snap within 25% of the target distance,
# point-to-point within 20% of the start-end distance
ROUND_TRIP_SNAP_FRACTION = 0.25
POINT_TO_POINT_SNAP_FRACTION = 0.2

LOOP_RADIUS_SCALE = 0.95
OUT_AND_BACK_LEGS = 3
POINT_TO_POINT_INTERMEDIATES = 2
RETURN_OFFSET_DEG = 0.0003
PERPENDICULAR_OFFSET_SCALE = 0.05


def select_waypoint(
    geometric_point: GeoPoint,
    green_spaces: List[GeoPoint],
    max_snap_distance_km: float,
    green_blend: float = DEFAULT_GREEN_BLEND,
) -> GeoPoint:
    """Pull a raw waypoint toward the nearest green space within range.

    Returns ``green_blend * green + (1 - green_blend) * raw``, or the raw
    point when nothing is close enough.
    """
    if not green_spaces:
        return geometric_point

    nearest = min(green_spaces, key=lambda gs: haversine_km(geometric_point, gs))
    if haversine_km(geometric_point, nearest) > max_snap_distance_km:
        return geometric_point

    return GeoPoint(
        lat=green_blend * nearest.lat + (1 - green_blend) * geometric_point.lat,
        lng=green_blend * nearest.lng + (1 - green_blend) * geometric_point.lng,
    )


def generate_loop_waypoints(
    center: GeoPoint,
    distance_km: float,
    prefs: RoutePreferences,
    variant: int,
    green_spaces: Optional[List[GeoPoint]] = None,
) -> List[GeoPoint]:
    """Waypoints around a circle whose circumference is the target distance.

    Quiet routes rotate the start bearing and jitter bearings more widely
    to drift onto residential streets.
    """
    green_spaces = green_spaces or []
    base_radius = distance_km / (2 * math.pi)
    num_waypoints = 4 + variant
    start_bearing = variant * 73 + (45 if prefs.low_traffic else 0)
    bearing_spread = 20 if prefs.low_traffic else 8
    max_snap_distance = distance_km * ROUND_TRIP_SNAP_FRACTION

    waypoints = [center]
    for i in range(num_waypoints):
        angle = start_bearing + (360 / num_waypoints) * i
        radius_factor = 0.9 + math.sin(variant * 1000 + i * 2.4) * 0.15
        bearing_offset = math.sin(variant * 2000 + i * 3.7) * bearing_spread

        radius = base_radius * radius_factor * LOOP_RADIUS_SCALE
        point = destination_point(center, angle + bearing_offset, radius)
        waypoints.append(select_waypoint(point, green_spaces, max_snap_distance))

    waypoints.append(center)
    return waypoints


def generate_out_and_back_waypoints(
    center: GeoPoint,
    distance_km: float,
    prefs: RoutePreferences,
    variant: int,
    green_spaces: Optional[List[GeoPoint]] = None,
) -> List[GeoPoint]:
    """Three outbound legs, then the same points in reverse, slightly offset."""
    green_spaces = green_spaces or []
    segment_km = (distance_km / 2) / OUT_AND_BACK_LEGS
    main_bearing = variant * 97 + (30 if prefs.low_traffic else 0)
    max_snap_distance = distance_km * ROUND_TRIP_SNAP_FRACTION

    out_points = [center]
    for i in range(1, OUT_AND_BACK_LEGS + 1):
        bearing_offset = math.sin(variant * 3000 + i * 47.7) * 10
        distance_factor = 0.95 + math.sin(variant * 4000 + i * 63.1) * 0.1

        point = destination_point(
            out_points[-1], main_bearing + bearing_offset, segment_km * distance_factor
        )
        blend = TURNAROUND_GREEN_BLEND if i == OUT_AND_BACK_LEGS else DEFAULT_GREEN_BLEND
        out_points.append(select_waypoint(point, green_spaces, max_snap_distance, blend))

    return_points = [
        GeoPoint(
            lat=p.lat + math.sin(variant * 5000 + i * 83.9) * RETURN_OFFSET_DEG,
            lng=p.lng + math.cos(variant * 6000 + i * 91.3) * RETURN_OFFSET_DEG,
        )
        for i, p in enumerate(reversed(out_points[:-1]))
    ]

    return out_points + return_points


def generate_point_to_point_waypoints(
    start: GeoPoint,
    end: GeoPoint,
    prefs: RoutePreferences,
    variant: int,
    green_spaces: Optional[List[GeoPoint]] = None,
) -> List[GeoPoint]:
    """Intermediate points along start->end, bowed off the straight line."""
    green_spaces = green_spaces or []
    max_snap_distance = haversine_km(start, end) * POINT_TO_POINT_SNAP_FRACTION

    d_lat = end.lat - start.lat
    d_lng = end.lng - start.lng
    # Perpendicular to the start->end vector
    perp_lat, perp_lng = -d_lng, d_lat

    waypoints = [start]
    for i in range(1, POINT_TO_POINT_INTERMEDIATES + 1):
        t = i / (POINT_TO_POINT_INTERMEDIATES + 1)
        offset = math.sin(variant * 7000 + i * 123.7) * PERPENDICULAR_OFFSET_SCALE

        point = GeoPoint(
            lat=start.lat + d_lat * t + perp_lat * offset,
            lng=start.lng + d_lng * t + perp_lng * offset,
        )
        waypoints.append(select_waypoint(point, green_spaces, max_snap_distance))

    waypoints.append(end)
    return waypoints


def _loop_skeleton(center, distance_km, prefs, variant, green_spaces, end):
    return generate_loop_waypoints(center, distance_km, prefs, variant, green_spaces)


def _out_and_back_skeleton(center, distance_km, prefs, variant, green_spaces, end):
    return generate_out_and_back_waypoints(center, distance_km, prefs, variant, green_spaces)


def _point_to_point_skeleton(center, distance_km, prefs, variant, green_spaces, end):
    if end is None:
        # Without a destination there is nothing to head for; circle the start
        return generate_loop_waypoints(center, distance_km, prefs, variant, green_spaces)
    return generate_point_to_point_waypoints(center, end, prefs, variant, green_spaces)


SkeletonGenerator = Callable[..., List[GeoPoint]]

_SKELETON_GENERATORS: Dict[RouteStyle, SkeletonGenerator] = {
    RouteStyle.LOOP: _loop_skeleton,
    RouteStyle.OUT_AND_BACK: _out_and_back_skeleton,
    RouteStyle.POINT_TO_POINT: _point_to_point_skeleton,
}


def synthesize_skeleton(
    style: RouteStyle,
    center: GeoPoint,
    distance_km: float,
    prefs: RoutePreferences,
    variant: int,
    green_spaces: Optional[List[GeoPoint]] = None,
    end: Optional[GeoPoint] = None,
) -> List[GeoPoint]:
    """Build the waypoint skeleton for one candidate variant.

    ``end`` is only used by point-to-point routes.
    """
    generator = _SKELETON_GENERATORS[RouteStyle(style)]
    return generator(center, distance_km, prefs, variant, green_spaces or [], end)


def calculate_search_radius(
    style: RouteStyle,
    distance_km: float,
    center: GeoPoint,
    end: Optional[GeoPoint] = None,
    min_km: float = 1.5,
    max_km: float = 10.0,
) -> float:
    """Green space search radius for a route, clamped to [min_km, max_km]."""
    if style is RouteStyle.LOOP:
        radius = distance_km * 0.8
    elif style is RouteStyle.OUT_AND_BACK:
        radius = distance_km * 0.6
    elif end is not None:
        radius = haversine_km(center, end) * 0.6
    else:
        radius = distance_km * 0.6
    return min(max(radius, min_km), max_km)
