from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
import xml.etree.ElementTree as ET

from throttlelife.domain.models import EventSource
from throttlelife.ingestion.feeds import (
    count_planned_categories,
    is_event_active_in_window,
    parse_live_incidents,
    parse_planned_events,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

PLANNED_PAYLOAD = {
    "EV-1": {
        "orci:template_511_text": "Bridge work on Route 1 NB",
        "orci:type_event": "Maintenance",
        "orci:scheduled_start_time": "2026-10-17T08:00:00",
        "orci:scheduled_stop_time": "2026-10-18T17:00:00-04:00",
        "orci:event_category": "Planned Event",
        "orci:event_subcategory": "Bridge Inspection",
        "orci:start_point": {"gml:Point": {"gml:pos": "37.5407 -77.4360"}},
    },
    "EV-2": {
        "orci:template_511_text": "No position",
        "orci:scheduled_start_time": "2026-10-17T08:00:00Z",
        "orci:scheduled_stop_time": "2026-10-17T10:00:00Z",
    },
    "EV-3": {
        "orci:scheduled_start_time": "2026-10-17T08:00:00Z",
        "orci:scheduled_stop_time": "2026-10-17T10:00:00Z",
        "orci:start_point": {"gml:Point": {"gml:pos": "37.5"}},
    },
    "EV-4": {
        "orci:type_event": "Lane closure",
        "orci:scheduled_start_time": "2026-10-17T08:00:00Z",
        "orci:scheduled_stop_time": "2026-10-17T10:00:00Z",
        "orci:start_point": {"gml:Point": {"gml:pos": "38.0 -78.0"}},
    },
    "EV-5": {
        "orci:scheduled_start_time": "not a date",
        "orci:scheduled_stop_time": "2026-10-17T10:00:00Z",
        "orci:start_point": {"gml:Point": {"gml:pos": "38.0 -78.0"}},
    },
}

LIVE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<im:incidentFilteredTMDD xmlns:im="http://www.tmdd.org/3/messages">
  <impactReport>
    <im:senderIncidentID>INC-100</im:senderIncidentID>
    <im:atisReport>
      <typeEvent><accidentsAndIncidents>Multi-Vehicle Accident</accidentsAndIncidents></typeEvent>
      <location><pointLocation><geoLocationPoint>
        <latitude>37541234</latitude><longitude>-77436789</longitude>
      </geoLocationPoint></pointLocation></location>
      <localEventInformation><five11Message>I-95 N crash near exit 74</five11Message></localEventInformation>
    </im:atisReport>
  </impactReport>
  <impactReport>
    <im:senderIncidentID>INC-101</im:senderIncidentID>
    <im:atisReport><typeEvent><obstruction>Debris</obstruction></typeEvent></im:atisReport>
  </impactReport>
  <impactReport>
    <im:senderIncidentID>INC-102</im:senderIncidentID>
    <im:atisReport>
      <location><pointLocation><geoLocationPoint>
        <latitude>abc</latitude><longitude>-77436789</longitude>
      </geoLocationPoint></pointLocation></location>
    </im:atisReport>
  </impactReport>
  <impactReport>
    <im:atisReport>
      <location><pointLocation><geoLocationPoint>
        <latitude>38000000</latitude><longitude>-78500000</longitude>
      </geoLocationPoint></pointLocation></location>
      <description><text>Vehicle fire</text></description>
    </im:atisReport>
  </impactReport>
  <impactReport>
    <im:senderIncidentID>INC-104</im:senderIncidentID>
    <im:atisReport>
      <typeEvent><accidentsAndIncidents>Disabled Vehicle</accidentsAndIncidents></typeEvent>
      <location><pointLocation><geoLocationPoint>
        <latitude>37000000</latitude><longitude>-77000000</longitude>
      </geoLocationPoint></pointLocation></location>
    </im:atisReport>
  </impactReport>
</im:incidentFilteredTMDD>
"""


def test_parse_planned_events_keeps_valid_rows_only():
    events = parse_planned_events(PLANNED_PAYLOAD, timezone="America/New_York")

    assert [e.id for e in events] == ["EV-1", "EV-4"]
    first, second = events

    assert first.source == EventSource.PLANNED
    assert first.latitude == pytest.approx(37.5407)
    assert first.longitude == pytest.approx(-77.4360)
    assert first.description == "Bridge work on Route 1 NB"
    assert first.category == "Planned Event"
    assert first.subcategory == "Bridge Inspection"
    # Naive timestamps get the configured timezone.
    assert first.start_date == datetime(2026, 10, 17, 8, 0, tzinfo=ZoneInfo("America/New_York"))

    assert second.description == "Lane closure"
    assert second.category == "Unknown"
    assert second.subcategory == "Unknown"


def test_parse_live_incidents_scales_coordinates_and_sets_window():
    batch = parse_live_incidents(LIVE_XML, now=NOW)

    assert [i.id for i in batch.incidents] == ["INC-100", "xml-id-3", "INC-104"]
    first = batch.incidents[0]
    assert first.latitude == pytest.approx(37.541234)
    assert first.longitude == pytest.approx(-77.436789)
    assert first.description == "I-95 N crash near exit 74"
    assert first.subcategory == "Multi-Vehicle Accident"
    assert first.category == "Unplanned Incident"
    assert first.source == EventSource.LIVE
    assert first.start_date == NOW
    assert first.end_date == NOW + timedelta(hours=1)

    fallback = batch.incidents[1]
    assert fallback.description == "Vehicle fire"
    assert fallback.subcategory == "Unknown"


def test_parse_live_incidents_category_counts():
    batch = parse_live_incidents(LIVE_XML, now=NOW)
    assert batch.category_counts == {
        "accidentsAndIncidents: Multi-Vehicle Accident": 1,
        "Unspecified Incident: Unknown": 1,
        "accidentsAndIncidents: Disabled Vehicle": 1,
    }


def test_parse_live_incidents_custom_scale_and_validity():
    batch = parse_live_incidents(LIVE_XML, now=NOW, coordinate_scale=1_000, validity=timedelta(minutes=15))
    assert batch.incidents[0].latitude == pytest.approx(37541.234)
    assert batch.incidents[0].end_date == NOW + timedelta(minutes=15)


def test_parse_live_incidents_rejects_malformed_document():
    with pytest.raises(ET.ParseError):
        parse_live_incidents("<impactReport>", now=NOW)


def test_is_event_active_in_window():
    event = parse_live_incidents(LIVE_XML, now=NOW).incidents[0]

    assert is_event_active_in_window(event, NOW - timedelta(hours=2), NOW + timedelta(minutes=1))
    assert not is_event_active_in_window(event, NOW + timedelta(hours=1), NOW + timedelta(hours=3))
    assert not is_event_active_in_window(event, NOW - timedelta(hours=2), NOW)


def test_count_planned_categories():
    events = parse_planned_events(PLANNED_PAYLOAD, timezone="UTC")
    assert count_planned_categories(events) == {
        "Planned Event": {"Bridge Inspection": 1},
        "Unknown": {"Unknown": 1},
    }
