"""Test fixtures for GTFS-R protobuf data."""

from __future__ import annotations

import time
from typing import Any

from google.transit import gtfs_realtime_pb2

from interchange_api.models.realtime import StopTimeEvent, TripUpdate

# Fixed "now" used across extractor, matcher and snapshot tests
NOW_MS = 1_760_000_000_000
MINUTE_MS = 60_000


def at_minutes(minutes: float) -> int:
    """Epoch millis ``minutes`` after NOW_MS."""
    return NOW_MS + int(minutes * MINUTE_MS)


def _add_trip_update(feed: Any, trip: dict[str, Any]) -> None:
    entity = feed.entity.add()
    entity.id = trip.get("entity_id", f"tu_{trip['trip_id']}")
    tu = entity.trip_update
    if trip.get("trip_id"):
        tu.trip.trip_id = trip["trip_id"]
    tu.trip.route_id = trip.get("route_id", "")

    for su in trip.get("stop_updates", []):
        stu = tu.stop_time_update.add()
        stu.stop_id = su["stop_id"]
        if su.get("stop_sequence") is not None:
            stu.stop_sequence = su["stop_sequence"]
        if su.get("arrival_time") or su.get("arrival_delay"):
            stu.arrival.time = su.get("arrival_time", 0)
            stu.arrival.delay = su.get("arrival_delay", 0)
        if su.get("departure_time") or su.get("departure_delay"):
            stu.departure.time = su.get("departure_time", 0)
            stu.departure.delay = su.get("departure_delay", 0)


def build_trip_update_feed(
    trips: list[dict[str, Any]] | None = None,
    feed_timestamp: int | None = None,
) -> bytes:
    """Build a serialized FeedMessage with one TripUpdate entity per trip dict.

    Each trip dict has ``trip_id``, ``route_id`` and ``stop_updates``; each stop
    update has ``stop_id`` and optionally ``stop_sequence``, ``arrival_time``,
    ``departure_time`` (unix seconds) and delays.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())

    if trips is None:
        trips = [
            {
                "trip_id": "trip_001",
                "route_id": "route_R1",
                "stop_updates": [
                    {"stop_id": "stop_A", "stop_sequence": 1, "departure_time": 1700000060},
                    {"stop_id": "stop_B", "stop_sequence": 2, "arrival_time": 1700000120},
                ],
            }
        ]

    for trip in trips:
        _add_trip_update(feed, trip)

    return feed.SerializeToString()


def build_alert_feed(
    count: int = 1,
    route_id: str = "route_99",
    feed_timestamp: int | None = None,
) -> bytes:
    """Build a serialized FeedMessage with ``count`` Alert entities."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())

    for i in range(count):
        entity = feed.entity.add()
        entity.id = f"alert_{i:03d}"
        alert = entity.alert
        alert.cause = 3  # TECHNICAL_PROBLEM
        alert.effect = 3  # SIGNIFICANT_DELAYS
        translation = alert.header_text.translation.add()
        translation.text = f"Delays on route {route_id}"
        translation.language = "en"
        ie = alert.informed_entity.add()
        ie.route_id = route_id

    return feed.SerializeToString()


def build_empty_feed(feed_timestamp: int | None = None) -> bytes:
    """Build a serialized FeedMessage with no entities."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())
    return feed.SerializeToString()


def make_trip(
    trip_id: str,
    route_id: str,
    stops: list[tuple[str, int | None, int]],
    headsign: str | None = None,
) -> TripUpdate:
    """Domain TripUpdate from ``(stop_id, sequence, epoch_millis)`` tuples."""
    return TripUpdate(
        trip_id=trip_id,
        route_id=route_id,
        stop_time_events=tuple(
            StopTimeEvent(stop_id=stop_id, sequence=seq, epoch_millis=when)
            for stop_id, seq, when in stops
        ),
        headsign=headsign,
    )
