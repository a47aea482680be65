"""GTFS-R normalizer: protobuf entities to domain trip updates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from interchange_api.models.realtime import FeedMessage, StopTimeEvent, TripUpdate

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2  # type: ignore[import-untyped]


def _event_time_millis(stu: Any) -> int:
    """Departure time if present, else arrival time, in epoch millis (0 = none)."""
    seconds = 0
    if stu.HasField("departure") and stu.departure.time:
        seconds = stu.departure.time
    elif stu.HasField("arrival") and stu.arrival.time:
        seconds = stu.arrival.time
    return int(seconds) * 1000


def _event_delay(stu: Any) -> int:
    if stu.HasField("departure") and stu.departure.delay:
        return int(stu.departure.delay)
    if stu.HasField("arrival") and stu.arrival.delay:
        return int(stu.arrival.delay)
    return 0


def _trip_headsign(tu: Any) -> Optional[str]:
    # trip_properties.trip_headsign only exists in newer bindings
    if "trip_properties" not in tu.DESCRIPTOR.fields_by_name:
        return None
    if not tu.HasField("trip_properties"):
        return None
    headsign = getattr(tu.trip_properties, "trip_headsign", "")
    return str(headsign) if headsign else None


class GtfsRtNormalizer:
    """Reduces a decoded FeedMessage to the fields the snapshot engine reads."""

    @staticmethod
    def normalize(feed: gtfs_realtime_pb2.FeedMessage) -> FeedMessage:
        trip_updates: list[TripUpdate] = []
        alert_count = 0

        for entity in feed.entity:
            if entity.HasField("alert"):
                alert_count += 1
            if not entity.HasField("trip_update"):
                continue

            tu = entity.trip_update
            events = tuple(
                StopTimeEvent(
                    stop_id=stu.stop_id,
                    sequence=int(stu.stop_sequence) if stu.HasField("stop_sequence") else None,
                    epoch_millis=_event_time_millis(stu),
                    delay_seconds=_event_delay(stu),
                )
                for stu in tu.stop_time_update
                if stu.stop_id
            )
            if not events:
                continue

            trip_updates.append(
                TripUpdate(
                    trip_id=tu.trip.trip_id or entity.id,
                    route_id=tu.trip.route_id or "",
                    stop_time_events=events,
                    headsign=_trip_headsign(tu),
                )
            )

        return FeedMessage(
            header_timestamp=int(feed.header.timestamp) if feed.header.timestamp else 0,
            trip_updates=tuple(trip_updates),
            alert_count=alert_count,
            entity_count=len(feed.entity),
        )
