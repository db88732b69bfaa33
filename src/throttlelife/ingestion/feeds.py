"""
Traffic feed parsers.

Two upstream feeds produce `TrafficEvent`s:

- Planned/structured feed (JSON): scheduled road work and closures keyed by event
  id, with `orci:`-prefixed fields, explicit start/stop times and a
  `"<lat> <lng>"` position string.
- Live/incident feed (TMDD XML): `impactReport` elements whose coordinates are
  integers scaled by 1,000,000 and which carry no validity window of their own;
  each incident is assumed active for a short fixed window from `now`.

Only payload parsing lives here. Fetching and polling belong to whoever owns the
feed credentials; they hand us the decoded JSON mapping or the raw XML text.
Rows that cannot be parsed are skipped and logged so one bad record never drops
the whole feed.
"""

from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Iterator, Mapping

from throttlelife.core.time import parse_datetime
from throttlelife.domain.models import EventSource, TrafficEvent

logger = logging.getLogger(__name__)

LIVE_COORDINATE_SCALE = 1_000_000
LIVE_VALIDITY = timedelta(hours=1)
LIVE_CATEGORY = "Unplanned Incident"


@dataclass(frozen=True)
class LiveIncidentBatch:
    """Parsed live incidents plus counts keyed by `"<typeEvent child>: <value>"`."""

    incidents: list[TrafficEvent]
    category_counts: dict[str, int] = field(default_factory=dict)


def _parse_position(value: Any) -> tuple[float, float] | None:
    parts = str(value).split()
    if len(parts) != 2:
        return None
    return float(parts[0]), float(parts[1])


def parse_planned_events(payload: Mapping[str, Any], *, timezone: str = "UTC") -> list[TrafficEvent]:
    """Parse the planned-events JSON mapping (event id -> record)."""
    events: list[TrafficEvent] = []
    for event_id, raw in payload.items():
        try:
            if not event_id or not isinstance(raw, Mapping):
                raise ValueError("record is not a mapping")

            pos = ((raw.get("orci:start_point") or {}).get("gml:Point") or {}).get("gml:pos")
            position = _parse_position(pos) if pos else None
            start = raw.get("orci:scheduled_start_time")
            stop = raw.get("orci:scheduled_stop_time")
            if position is None or not start or not stop:
                raise ValueError("missing position or schedule")

            events.append(
                TrafficEvent(
                    id=str(event_id),
                    latitude=position[0],
                    longitude=position[1],
                    description=str(
                        raw.get("orci:template_511_text") or raw.get("orci:type_event") or "No description available"
                    ),
                    start_date=parse_datetime(str(start), timezone),
                    end_date=parse_datetime(str(stop), timezone),
                    category=str(raw.get("orci:event_category") or "Unknown"),
                    subcategory=str(raw.get("orci:event_subcategory") or "Unknown"),
                    source=EventSource.PLANNED,
                )
            )
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("Skipping planned event %s: %s", event_id, exc)
            continue

    if not events:
        logger.warning("Planned feed returned 0 events after parsing; continuing with empty list.")
    return events


def _local_name(tag: Any) -> str:
    # Handles both `{uri}name` (declared namespaces) and bare `prefix:name` tags.
    return str(tag).rsplit("}", 1)[-1].rsplit(":", 1)[-1]


def _descendants(elem: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in elem.iter():
        if child is not elem and _local_name(child.tag) == name:
            yield child


def _first(elem: ET.Element | None, *names: str) -> ET.Element | None:
    """Follow a chain of descendant names, e.g. `_first(report, "description", "text")`."""
    current = elem
    for name in names:
        if current is None:
            return None
        current = next(_descendants(current, name), None)
    return current


def _text(elem: ET.Element | None) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def parse_live_incidents(
    xml_text: str,
    *,
    now: datetime,
    coordinate_scale: float = LIVE_COORDINATE_SCALE,
    validity: timedelta = LIVE_VALIDITY,
) -> LiveIncidentBatch:
    """Parse the live incident XML document into events valid for `[now, now + validity]`.

    Raises:
        xml.etree.ElementTree.ParseError: If the document itself is not well-formed.
    """
    root = ET.fromstring(xml_text)
    reports: Iterable[ET.Element] = (
        [root] if _local_name(root.tag) == "impactReport" else list(_descendants(root, "impactReport"))
    )

    incidents: list[TrafficEvent] = []
    counts: dict[str, int] = {}
    for index, report in enumerate(reports):
        incident_id = _text(_first(report, "senderIncidentID")) or f"xml-id-{index}"

        lat_node = _first(report, "geoLocationPoint", "latitude")
        if lat_node is None:
            lat_node = _first(report, "latitude")
        lng_node = _first(report, "geoLocationPoint", "longitude")
        if lng_node is None:
            lng_node = _first(report, "longitude")
        if lat_node is None or lng_node is None:
            logger.warning("Skipping live incident %s: missing coordinates.", incident_id)
            continue

        try:
            latitude = float(_text(lat_node)) / coordinate_scale
            longitude = float(_text(lng_node)) / coordinate_scale
        except ValueError:
            latitude = longitude = math.nan
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            logger.warning("Skipping live incident %s: failed coordinate conversion.", incident_id)
            continue

        description = (
            _text(_first(report, "five11Message"))
            or _text(_first(report, "description", "text"))
            or "Incident Reported"
        )

        category_name = "Unspecified Incident"
        category_value = "Unknown"
        type_event = _first(report, "typeEvent")
        type_child = next(iter(type_event), None) if type_event is not None else None
        if type_child is not None:
            category_name = _local_name(type_child.tag)
            category_value = _text(type_child) or "Incident"

        key = f"{category_name}: {category_value}"
        counts[key] = counts.get(key, 0) + 1

        incidents.append(
            TrafficEvent(
                id=incident_id,
                latitude=latitude,
                longitude=longitude,
                description=description,
                start_date=now,
                end_date=now + validity,
                category=LIVE_CATEGORY,
                subcategory=category_value,
                source=EventSource.LIVE,
            )
        )

    return LiveIncidentBatch(incidents=incidents, category_counts=counts)


def is_event_active_in_window(event: TrafficEvent, start: datetime, end: datetime) -> bool:
    """True when the event overlaps the `[start, end]` window."""
    return event.start_date < end and event.end_date > start


def count_planned_categories(events: Iterable[TrafficEvent]) -> dict[str, dict[str, int]]:
    """Nested counts `{category: {subcategory: n}}` for the feed breakdown panel."""
    counts: dict[str, dict[str, int]] = {}
    for event in events:
        category = event.category or "Unknown"
        subcategory = event.subcategory or "Unknown"
        bucket = counts.setdefault(category, {})
        bucket[subcategory] = bucket.get(subcategory, 0) + 1
    return counts
