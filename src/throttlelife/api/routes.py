"""
API routes.

Endpoints:
- POST `/api/route-incidents`: incidents inside a corridor around a route, ranked by distance ahead.
- POST `/api/rider-status`: whether a rider position is on a route.
- POST `/api/event-types`: classify events (type, severity, marker label/colour) plus the
  planned-feed category breakdown.
- GET  `/api/settings`: public corridor defaults for the web client.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from throttlelife.config.overrides import apply_settings_overrides
from throttlelife.config.settings import get_settings
from throttlelife.core.route import build_route_metrics
from throttlelife.domain.models import EventSource, GeoPoint, RiderRouteStatus, RouteCheckResult, TrafficEvent
from throttlelife.incidents.classify import get_event_type, is_critical, marker_style
from throttlelife.incidents.corridor import check_route, rider_route_status
from throttlelife.ingestion.feeds import count_planned_categories

router = APIRouter()


class RouteIncidentsRequest(BaseModel):
    path: list[GeoPoint]
    events: list[TrafficEvent] = Field(default_factory=list)
    corridor_miles: float | None = Field(default=None, ge=0)
    settings_overrides: dict[str, Any] | None = None


class RiderStatusRequest(BaseModel):
    # A projection needs at least one segment; shorter routes would report an infinite offset.
    path: list[GeoPoint] = Field(..., min_length=2)
    position: GeoPoint
    corridor_miles: float | None = Field(default=None, ge=0)
    settings_overrides: dict[str, Any] | None = None


class EventTypesRequest(BaseModel):
    events: list[TrafficEvent]


def _validation_error(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(exc)})


@router.post("/api/route-incidents", response_model=RouteCheckResult)
def post_route_incidents(request: RouteIncidentsRequest) -> RouteCheckResult:
    """Run the corridor filter for one route and a batch of events."""
    try:
        settings = apply_settings_overrides(get_settings(), request.settings_overrides)
        corridor = request.corridor_miles if request.corridor_miles is not None else settings.corridor.hazard_miles
        path = [p.to_latlng() for p in request.path]
        return check_route(path, request.events, corridor_miles=corridor)
    except ValueError as e:
        raise _validation_error(e) from e


@router.post("/api/rider-status", response_model=RiderRouteStatus)
def post_rider_status(request: RiderStatusRequest) -> RiderRouteStatus:
    """Project a rider position onto a route using the rider corridor."""
    try:
        settings = apply_settings_overrides(get_settings(), request.settings_overrides)
        corridor = request.corridor_miles if request.corridor_miles is not None else settings.corridor.rider_miles
        path = [p.to_latlng() for p in request.path]
        metrics = build_route_metrics(path)
        return rider_route_status(
            path, metrics.cumulative_miles, request.position.to_latlng(), corridor_miles=corridor
        )
    except ValueError as e:
        raise _validation_error(e) from e


@router.post("/api/event-types")
def post_event_types(request: EventTypesRequest) -> dict:
    """Classify each event; used by the map and dashboard for marker styling."""
    types = []
    for event in request.events:
        event_type = get_event_type(event)
        style = marker_style(event_type)
        types.append(
            {
                "id": event.id,
                "event_type": event_type.value,
                "critical": is_critical(event_type),
                "label": style.label,
                "color": style.color,
            }
        )
    planned = [event for event in request.events if event.source == EventSource.PLANNED]
    return {"types": types, "planned_categories": count_planned_categories(planned)}


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return settings safe to expose to the web client."""
    settings = get_settings()
    return {
        "app": {"name": settings.app.name, "timezone": settings.app.timezone},
        "corridor": settings.corridor.model_dump(mode="json"),
    }
