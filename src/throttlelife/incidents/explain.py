"""
Small formatting helpers.

Used by the CLI to print compact summaries of route incidents.
"""

from __future__ import annotations

from throttlelife.domain.models import RouteIncident
from throttlelife.incidents.classify import marker_style


def one_line_summary(incident: RouteIncident) -> str:
    """Render a compact single-line summary for a route incident."""
    style = marker_style(incident.event_type)
    parts = [
        f"[{style.label}]",
        f"ahead={incident.route_distance_miles:.1f}mi",
        f"offset={incident.distance_to_route_miles:.2f}mi",
        f"when={incident.start_date:%b %d %H:%M}",
    ]
    if incident.source.value == "live":
        parts.append("LIVE")
    return " ".join(parts) + f"  {incident.description}"
