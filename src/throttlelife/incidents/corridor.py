"""
Route corridor filtering.

Given a route and a batch of traffic events, keep the events whose perpendicular
offset from the route is within a caller-chosen corridor width and rank them by
how far along the route they sit ("what will I reach first").

Corridor widths are always parameters. Typical values are 0.3 mi for hazard
lookahead on a planned trip and a tighter 0.15 mi for "is this rider on the
route" checks; see `corridor.*` in the packaged defaults.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from throttlelife.core.geo import LatLng
from throttlelife.core.route import build_route_metrics, project_point_to_route
from throttlelife.domain.models import RiderRouteStatus, RouteCheckResult, RouteIncident, TrafficEvent
from throttlelife.incidents.classify import get_event_type, is_critical

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorridorMatch:
    incidents: list[RouteIncident]
    skipped_count: int
    unique_count: int = 0


def _validate_corridor(corridor_miles: float) -> float:
    value = float(corridor_miles)
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"corridor_miles must be a finite, non-negative number (got {corridor_miles!r})")
    return value


def dedupe_events(events: Iterable[TrafficEvent]) -> list[TrafficEvent]:
    """Drop repeated ids, keeping the first occurrence (input order preserved)."""
    seen: set[str] = set()
    unique: list[TrafficEvent] = []
    for event in events:
        if event.id in seen:
            continue
        seen.add(event.id)
        unique.append(event)
    return unique


def find_route_incidents(
    path: Sequence[LatLng],
    cumulative_miles: Sequence[float],
    events: Iterable[TrafficEvent],
    *,
    corridor_miles: float,
) -> CorridorMatch:
    """Project every unique event onto the route and keep those inside the corridor.

    Events with a missing or non-finite coordinate are skipped and counted; they
    never abort the batch. The result is sorted by along-route distance.
    """
    corridor = _validate_corridor(corridor_miles)

    incidents: list[RouteIncident] = []
    skipped = 0
    unique = dedupe_events(events)
    for event in unique:
        point = event.location()
        if point is None or not point.is_finite():
            skipped += 1
            logger.warning("Skipping event %s: missing or invalid coordinates.", event.id)
            continue

        projection = project_point_to_route(path, cumulative_miles, point)
        if projection.distance_to_route_miles <= corridor:
            incidents.append(
                RouteIncident(
                    **event.model_dump(include=set(TrafficEvent.model_fields)),
                    distance_to_route_miles=projection.distance_to_route_miles,
                    route_distance_miles=projection.route_distance_miles,
                    event_type=get_event_type(event),
                )
            )

    incidents.sort(key=lambda incident: incident.route_distance_miles)
    if skipped:
        logger.info("Corridor filter skipped %d event(s) with unusable coordinates.", skipped)
    return CorridorMatch(incidents=incidents, skipped_count=skipped, unique_count=len(unique))


def check_route(
    path: Sequence[LatLng],
    events: Iterable[TrafficEvent],
    *,
    corridor_miles: float,
) -> RouteCheckResult:
    """Build route metrics once, filter events, and summarize critical vs minor."""
    events = list(events)
    metrics = build_route_metrics(path)
    match = find_route_incidents(path, metrics.cumulative_miles, events, corridor_miles=corridor_miles)

    critical = sum(1 for incident in match.incidents if is_critical(incident.event_type))
    logger.info(
        "Route check: %.1f mi, %d incident(s) within %.2f mi (%d critical).",
        metrics.total_miles,
        len(match.incidents),
        corridor_miles,
        critical,
    )
    return RouteCheckResult(
        incidents=match.incidents,
        total_miles=metrics.total_miles,
        corridor_miles=float(corridor_miles),
        skipped_count=match.skipped_count,
        critical_count=critical,
        minor_count=len(match.incidents) - critical,
        meta={
            "vertex_count": len(path),
            "event_count": len(events),
            "unique_event_count": match.unique_count,
        },
    )


def rider_route_status(
    path: Sequence[LatLng],
    cumulative_miles: Sequence[float],
    position: LatLng,
    *,
    corridor_miles: float,
) -> RiderRouteStatus:
    """Report whether a rider's position lies within `corridor_miles` of the route."""
    corridor = _validate_corridor(corridor_miles)
    projection = project_point_to_route(path, cumulative_miles, position)
    return RiderRouteStatus(
        is_on_route=projection.distance_to_route_miles <= corridor,
        distance_to_route_miles=projection.distance_to_route_miles,
        route_distance_miles=projection.route_distance_miles,
    )
