"""
Route and feed file loaders.

The CLI works from local files: a route exported from a routing provider plus
saved snapshots of the planned (JSON) and live (XML) feeds. Paths are resolved
against the project root so commands behave the same from any working directory.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from throttlelife.config.settings import Settings
from throttlelife.core.env import resolve_project_path
from throttlelife.core.geo import LatLng
from throttlelife.domain.models import GeoPoint, TrafficEvent
from throttlelife.ingestion.feeds import LiveIncidentBatch, parse_live_incidents, parse_planned_events


_EVENTS_ADAPTER = TypeAdapter(list[TrafficEvent])


def parse_route(payload: Any) -> list[LatLng]:
    """Accept `[{lat, lng}, ...]`, `[[lat, lng], ...]` or `{"overview_path": [...]}`."""
    if isinstance(payload, dict):
        payload = payload.get("overview_path", payload.get("path"))
    if not isinstance(payload, list):
        raise ValueError("Route file must contain a list of points or an 'overview_path' list.")

    path: list[LatLng] = []
    for i, item in enumerate(payload):
        if isinstance(item, dict):
            lng = item.get("lng", item.get("lon"))
            point = GeoPoint(lat=item.get("lat"), lng=lng)
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            point = GeoPoint(lat=item[0], lng=item[1])
        else:
            raise ValueError(f"Route point #{i} has an unsupported shape: {item!r}")
        path.append(point.to_latlng())
    return path


def load_route(path: str | Path) -> list[LatLng]:
    """Load a route polyline from a JSON file."""
    resolved = resolve_project_path(path)
    return parse_route(json.loads(resolved.read_text(encoding="utf-8")))


def load_events(path: str | Path) -> list[TrafficEvent]:
    """Load already-normalized events (a JSON list of `TrafficEvent` objects)."""
    resolved = resolve_project_path(path)
    return _EVENTS_ADAPTER.validate_python(json.loads(resolved.read_text(encoding="utf-8")))


def load_planned_events(path: str | Path, *, settings: Settings) -> list[TrafficEvent]:
    """Load a saved planned-feed JSON snapshot."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Planned feed {resolved} must be a JSON object keyed by event id.")
    return parse_planned_events(payload, timezone=settings.app.timezone)


def load_live_incidents(path: str | Path, *, settings: Settings, now: datetime) -> LiveIncidentBatch:
    """Load a saved live-feed XML snapshot; incidents are treated as reported at `now`."""
    resolved = resolve_project_path(path)
    return parse_live_incidents(
        resolved.read_text(encoding="utf-8"),
        now=now,
        coordinate_scale=settings.feeds.live_coordinate_scale,
        validity=timedelta(minutes=settings.feeds.live_validity_minutes),
    )
