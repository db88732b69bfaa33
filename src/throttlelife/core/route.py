"""
Route polyline metrics and point-to-route projection.

A route is the ordered vertex list returned by a routing provider (usually a
simplified "overview path"). Two operations are provided:

- `build_route_metrics()`: walk the polyline once and record cumulative miles at
  every vertex.
- `project_point_to_route()`: find the closest point on the polyline to an
  arbitrary point and report the perpendicular offset plus the distance travelled
  along the route to reach it.

The projection uses a per-segment equirectangular frame rather than exact
geodesics. Errors are far below the sub-mile corridor widths used by callers for
routes of regional scale (tens to low hundreds of miles).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from throttlelife.core.geo import METERS_PER_MILE, LatLng, haversine_miles

M_PER_DEG_LAT = 111_132.0
M_PER_DEG_LNG_EQUATOR = 111_320.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMetrics:
    """Cumulative along-route distance at each vertex (miles), plus the total."""

    cumulative_miles: tuple[float, ...]
    total_miles: float


@dataclass(frozen=True)
class RouteProjection:
    """Closest point on a route to a query point."""

    distance_to_route_miles: float
    route_distance_miles: float
    segment_index: int
    projected_point: LatLng


def build_route_metrics(path: Sequence[LatLng]) -> RouteMetrics:
    """Precompute cumulative miles along a route polyline.

    An empty path yields no cumulative entries; a single point yields `(0.0,)`.
    Both report a total of zero.

    Non-finite vertices are bridged: they repeat the previous cumulative value and
    the next finite vertex is measured from the last finite one, so one corrupt
    vertex neither zeroes nor poisons the totals.
    """
    if not path:
        return RouteMetrics(cumulative_miles=(), total_miles=0.0)

    cumulative = [0.0]
    total = 0.0
    last_finite = path[0] if path[0].is_finite() else None
    bridged = 0 if last_finite is not None else 1
    for cur in path[1:]:
        if not cur.is_finite():
            bridged += 1
        else:
            if last_finite is not None:
                total += haversine_miles(last_finite, cur)
            last_finite = cur
        cumulative.append(total)

    if bridged:
        logger.warning("Route has %d non-finite vertex(es); bridged over them in cumulative miles.", bridged)
    return RouteMetrics(cumulative_miles=tuple(cumulative), total_miles=total)



def project_point_to_route(
    path: Sequence[LatLng],
    cumulative_miles: Sequence[float],
    point: LatLng,
) -> RouteProjection:
    """Project `point` onto the nearest segment of `path`.

    Routes with fewer than two vertices have nothing to project onto; the result
    then carries an infinite offset so corridor checks exclude the point naturally.

    Ties between segments keep the first segment encountered.
    Non-finite vertices are skipped; the neighbouring finite vertices form the segment.
    """
    if len(path) < 2:
        return RouteProjection(
            distance_to_route_miles=math.inf,
            route_distance_miles=0.0,
            segment_index=0,
            projected_point=path[0] if path else point,
        )

    best_distance_m = math.inf
    best_route_miles = 0.0
    best_index = 0
    best_projected = path[0]

    finite = [i for i, vertex in enumerate(path) if vertex.is_finite()]
    for start_index, end_index in zip(finite, finite[1:]):
        start = path[start_index]
        end = path[end_index]

        # Local frame for this segment only; scale follows the segment's mean latitude.
        mean_lat = math.radians((start.lat + end.lat) / 2)
        m_per_deg_lng = M_PER_DEG_LNG_EQUATOR * math.cos(mean_lat)

        ax, ay = start.lng * m_per_deg_lng, start.lat * M_PER_DEG_LAT
        bx, by = end.lng * m_per_deg_lng, end.lat * M_PER_DEG_LAT
        px, py = point.lng * m_per_deg_lng, point.lat * M_PER_DEG_LAT

        vx, vy = bx - ax, by - ay
        wx, wy = px - ax, py - ay

        seg_len_sq = vx * vx + vy * vy
        t = 0.0 if seg_len_sq == 0 else max(0.0, min(1.0, (wx * vx + wy * vy) / seg_len_sq))

        proj_x = ax + t * vx
        proj_y = ay + t * vy
        distance_m = math.hypot(px - proj_x, py - proj_y)

        if distance_m < best_distance_m:
            best_distance_m = distance_m
            segment_miles = math.sqrt(seg_len_sq) / METERS_PER_MILE
            start_miles = cumulative_miles[start_index] if start_index < len(cumulative_miles) else 0.0
            best_route_miles = start_miles + segment_miles * t
            best_index = start_index
            best_projected = LatLng(
                lat=proj_y / M_PER_DEG_LAT,
                lng=proj_x / m_per_deg_lng if m_per_deg_lng else start.lng,
            )

    return RouteProjection(
        distance_to_route_miles=best_distance_m / METERS_PER_MILE,
        route_distance_miles=best_route_miles,
        segment_index=best_index,
        projected_point=best_projected,
    )
