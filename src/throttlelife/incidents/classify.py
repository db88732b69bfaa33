"""
Event classification.

`get_event_type()` maps a `TrafficEvent` to one `EventType` with ordered,
first-match-wins keyword rules. The order matters: downstream severity and marker
colours (red for crash/closure, orange for construction/blocked, blue for police,
gray for weather, yellow for hazard) depend on crash-like signals winning over the
generic "planned work" defaults.

Live incidents carry the feed's descriptive type value (e.g. "Disabled Vehicle")
in `subcategory`; planned events fall through subcategory, then description, then
category.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from throttlelife.domain.models import EventSource, EventType, TrafficEvent

Rule = tuple[EventType, tuple[str, ...]]

LIVE_SUBCATEGORY_RULES: tuple[Rule, ...] = (
    (EventType.CRASH, ("accident", "multi vehicle", "crash")),
    (EventType.BLOCKED, ("disabled", "stalled", "other traffic")),
    (EventType.POLICE, ("security", "police")),
    (EventType.WEATHER, ("weather", "advisory")),
)

# Shared by the subcategory and description passes for planned events.
PLANNED_TEXT_RULES: tuple[Rule, ...] = (
    (EventType.CONSTRUCTION, ("wz", "work zone", "construction", "bridge", "inspection")),
    (EventType.CLOSURE, ("closure", "closed")),
    (EventType.CRASH, ("crash", "accident", "collision")),
    (EventType.POLICE, ("police", "law enforcement")),
    (EventType.WEATHER, ("weather", "rain", "snow")),
    (EventType.HAZARD, ("hazard", "debris")),
    (EventType.BLOCKED, ("lane", "shoulder", "blocked")),
)

CRITICAL_TYPES = frozenset({EventType.CRASH, EventType.CLOSURE})

_PLANNED_WORD = re.compile(r"\bplanned\b")


@dataclass(frozen=True)
class MarkerStyle:
    label: str
    color: str


MARKER_STYLES: dict[EventType, MarkerStyle] = {
    EventType.CRASH: MarkerStyle(label="CRASH", color="red"),
    EventType.CLOSURE: MarkerStyle(label="CLOSED", color="red"),
    EventType.CONSTRUCTION: MarkerStyle(label="WORK", color="orange"),
    EventType.BLOCKED: MarkerStyle(label="BLOCKED", color="orange"),
    EventType.POLICE: MarkerStyle(label="POLICE", color="blue"),
    EventType.WEATHER: MarkerStyle(label="WEATHER", color="gray"),
    EventType.HAZARD: MarkerStyle(label="HAZARD", color="yellow"),
}


def _normalize(text: str | None) -> str:
    return re.sub(r"[-_]+", " ", (text or "").lower()).strip()


def _match(text: str, rules: tuple[Rule, ...]) -> EventType | None:
    if not text:
        return None
    for event_type, keywords in rules:
        if any(k in text for k in keywords):
            return event_type
    return None


def get_event_type(event: TrafficEvent) -> EventType:
    """Classify an event (pure; safe to memoize per event)."""
    subcategory = _normalize(event.subcategory)

    if event.source == EventSource.LIVE:
        return _match(subcategory, LIVE_SUBCATEGORY_RULES) or EventType.HAZARD

    if subcategory != "unknown":
        matched = _match(subcategory, PLANNED_TEXT_RULES)
        if matched is not None:
            return matched

    matched = _match(_normalize(event.description), PLANNED_TEXT_RULES)
    if matched is not None:
        return matched

    category = _normalize(event.category)
    if _PLANNED_WORD.search(category):
        return EventType.CONSTRUCTION
    if "unplanned" in category or "incident" in category:
        return EventType.HAZARD
    return EventType.CONSTRUCTION


def is_critical(event_type: EventType) -> bool:
    """Crashes and closures are shown as critical; everything else is minor."""
    return event_type in CRITICAL_TYPES


def marker_style(event_type: EventType) -> MarkerStyle:
    return MARKER_STYLES.get(event_type, MARKER_STYLES[EventType.HAZARD])
