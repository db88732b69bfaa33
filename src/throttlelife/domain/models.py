"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- feed parsers produce `TrafficEvent`s,
- the corridor filter turns them into ranked `RouteIncident`s,
- the CLI and API serialize `RouteCheckResult` / `RiderRouteStatus`.

Keeping these models in one place helps:
- validation (reject bad inputs early),
- typed refactors,
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from throttlelife.core.geo import LatLng


class EventSource(str, Enum):
    """Which upstream feed produced an event."""

    PLANNED = "planned"
    LIVE = "live"


# Feed tags used by the original web client.
_LEGACY_SOURCE_ALIASES = {"json": EventSource.PLANNED, "xml": EventSource.LIVE}


class EventType(str, Enum):
    """Closed set of event classifications, used for severity and marker styling."""

    CRASH = "crash"
    CLOSURE = "closure"
    CONSTRUCTION = "construction"
    BLOCKED = "blocked"
    POLICE = "police"
    WEATHER = "weather"
    HAZARD = "hazard"


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees (API/CLI payload shape)."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_latlng(self) -> LatLng:
        return LatLng(lat=self.lat, lng=self.lng)


class TrafficEvent(BaseModel):
    """A single reported hazard, closure or incident.

    Coordinates are optional and may be NaN: malformed upstream rows are kept
    so the corridor filter can skip and count them instead of failing the batch.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    latitude: float | None = None
    longitude: float | None = None
    description: str = ""
    start_date: datetime
    end_date: datetime
    category: str | None = None
    subcategory: str | None = None
    source: EventSource

    @field_validator("source", mode="before")
    @classmethod
    def _accept_legacy_source(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LEGACY_SOURCE_ALIASES.get(value.strip().lower(), value.strip().lower())
        return value

    def location(self) -> LatLng | None:
        """Return the event coordinate, or None when it is missing."""
        if self.latitude is None or self.longitude is None:
            return None
        return LatLng(lat=self.latitude, lng=self.longitude)


class RouteIncident(TrafficEvent):
    """A traffic event found inside a route corridor."""

    distance_to_route_miles: float
    route_distance_miles: float
    event_type: EventType


class RouteCheckResult(BaseModel):
    """Ranked incidents along a route plus the summary counts shown to riders.

    `meta` records input sizes (`vertex_count`, `event_count`, `unique_event_count`)
    so clients can tell "no incidents" apart from "no events were sent".
    """

    incidents: list[RouteIncident]
    total_miles: float
    corridor_miles: float
    skipped_count: int = 0
    critical_count: int = 0
    minor_count: int = 0
    meta: dict[str, Any] = Field(default_factory=dict)


class RiderRouteStatus(BaseModel):
    """Whether a rider's live position is on a planned route."""

    is_on_route: bool
    distance_to_route_miles: float
    route_distance_miles: float
