"""
ThrottleLife CLI entrypoint.

This CLI is intended for quick local checks and debugging without the web app.
It delegates all geometry and classification to `throttlelife.incidents`.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from throttlelife.catalog.loader import load_events, load_live_incidents, load_planned_events, load_route
from throttlelife.config.settings import Settings, get_settings
from throttlelife.core.geo import LatLng
from throttlelife.core.logging import configure_logging
from throttlelife.core.route import build_route_metrics
from throttlelife.core.time import now_in, parse_datetime
from throttlelife.domain.models import EventSource, TrafficEvent
from throttlelife.incidents.classify import get_event_type, is_critical, marker_style
from throttlelife.incidents.corridor import check_route, rider_route_status
from throttlelife.incidents.explain import one_line_summary
from throttlelife.ingestion.feeds import count_planned_categories, is_event_active_in_window


@dataclass
class _LoadedEvents:
    events: list[TrafficEvent]
    live_category_counts: dict[str, int] = field(default_factory=dict)


def _collect_events(args: argparse.Namespace, settings: Settings) -> _LoadedEvents:
    """Live incidents first, then planned events, matching the map's merge order.

    With `--active-within HOURS`, only events overlapping `[at, at + HOURS]` are kept.
    Live incidents are stamped at `--at` (default: now) since the feed carries no times.
    """
    now = parse_datetime(args.at, settings.app.timezone) if args.at else now_in(settings.app.timezone)
    loaded = _LoadedEvents(events=[])
    for path in args.live or []:
        batch = load_live_incidents(path, settings=settings, now=now)
        loaded.events.extend(batch.incidents)
        for key, n in batch.category_counts.items():
            loaded.live_category_counts[key] = loaded.live_category_counts.get(key, 0) + n
    for path in args.planned or []:
        loaded.events.extend(load_planned_events(path, settings=settings))
    for path in args.events or []:
        loaded.events.extend(load_events(path))

    if args.active_within is not None:
        end = now + timedelta(hours=args.active_within)
        loaded.events = [e for e in loaded.events if is_event_active_in_window(e, now, end)]
    return loaded


def _cmd_check_route(args: argparse.Namespace) -> int:
    """Handle the `check-route` subcommand."""
    settings = get_settings()
    corridor = args.corridor_miles if args.corridor_miles is not None else settings.corridor.hazard_miles

    path = load_route(args.route)
    result = check_route(path, _collect_events(args, settings).events, corridor_miles=corridor)

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(f"Route: {result.total_miles:.1f} mi, corridor {result.corridor_miles:.2f} mi")
    print(f"Critical: {result.critical_count}  Minor: {result.minor_count}  Total: {len(result.incidents)}")
    if result.skipped_count:
        print(f"Skipped {result.skipped_count} event(s) with unusable coordinates")
    if not result.incidents:
        print("No incidents detected along this route.")
        return 0
    for i, incident in enumerate(result.incidents, start=1):
        print(f"{i:>2}. {one_line_summary(incident)}")
    return 0


def _cmd_rider_status(args: argparse.Namespace) -> int:
    """Handle the `rider-status` subcommand."""
    settings = get_settings()
    corridor = args.corridor_miles if args.corridor_miles is not None else settings.corridor.rider_miles

    path = load_route(args.route)
    metrics = build_route_metrics(path)
    status = rider_route_status(
        path,
        metrics.cumulative_miles,
        LatLng(lat=float(args.lat), lng=float(args.lng)),
        corridor_miles=corridor,
    )

    if args.json:
        # Infinite offsets (degenerate routes) are not valid JSON numbers.
        payload = status.model_dump()
        if payload["distance_to_route_miles"] == float("inf"):
            payload["distance_to_route_miles"] = None
        print(json.dumps(payload, indent=2))
        return 0

    label = "on route" if status.is_on_route else "off route"
    print(
        f"{label}: offset={status.distance_to_route_miles:.2f}mi "
        f"along={status.route_distance_miles:.1f}/{metrics.total_miles:.1f}mi"
    )
    return 0


def _cmd_classify(args: argparse.Namespace) -> int:
    """Handle the `classify` subcommand (per-event types plus the feed category breakdown)."""
    settings = get_settings()
    loaded = _collect_events(args, settings)
    rows: list[dict[str, Any]] = []
    for event in loaded.events:
        event_type = get_event_type(event)
        rows.append(
            {
                "id": event.id,
                "event_type": event_type.value,
                "critical": is_critical(event_type),
                "label": marker_style(event_type).label,
                "description": event.description,
            }
        )
    planned_counts = count_planned_categories(e for e in loaded.events if e.source == EventSource.PLANNED)

    if args.json:
        payload = {
            "events": rows,
            "planned_categories": planned_counts,
            "live_categories": loaded.live_category_counts,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    for row in rows:
        flag = "!" if row["critical"] else " "
        print(f"{flag} {row['label']:<8} {row['id']}  {row['description']}")
    for category, subcategories in sorted(planned_counts.items()):
        print(f"{category}: " + ", ".join(f"{name} ({n})" for name, n in sorted(subcategories.items())))
    for key, n in sorted(loaded.live_category_counts.items()):
        print(f"{key} ({n})")
    return 0


def _add_event_sources(p: argparse.ArgumentParser) -> None:
    p.add_argument("--planned", action="append", default=[], help="Planned feed JSON snapshot (repeatable).")
    p.add_argument("--live", action="append", default=[], help="Live incident XML snapshot (repeatable).")
    p.add_argument("--events", action="append", default=[], help="Normalized events JSON list (repeatable).")
    p.add_argument(
        "--at", default=None, help="Reference time (ISO-8601) for live stamps and --active-within; defaults to now."
    )
    p.add_argument(
        "--active-within", type=float, default=None, help="Keep only events active within this many hours of --at."
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ThrottleLife CLI."""
    parser = argparse.ArgumentParser(prog="throttlelife")
    sub = parser.add_subparsers(dest="command", required=True)

    chk = sub.add_parser("check-route", help="List incidents inside a corridor around a route.")
    chk.add_argument("--route", required=True, help="Route JSON file (list of {lat, lng}).")
    _add_event_sources(chk)
    chk.add_argument(
        "--corridor-miles", type=float, default=None, help="Corridor half-width; defaults to corridor.hazard_miles."
    )
    chk.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    chk.set_defaults(func=_cmd_check_route)

    rid = sub.add_parser("rider-status", help="Check whether a rider position is on a route.")
    rid.add_argument("--route", required=True)
    rid.add_argument("--lat", required=True, type=float)
    rid.add_argument("--lng", required=True, type=float)
    rid.add_argument(
        "--corridor-miles", type=float, default=None, help="Defaults to corridor.rider_miles."
    )
    rid.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    rid.set_defaults(func=_cmd_rider_status)

    cls = sub.add_parser("classify", help="Classify feed events into event types.")
    _add_event_sources(cls)
    cls.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    cls.set_defaults(func=_cmd_classify)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m throttlelife.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
