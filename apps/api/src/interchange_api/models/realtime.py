"""Realtime domain models: decoded feed content, departures and snapshots.

Everything here is a frozen dataclass. A snapshot is built once per fetch
cycle and replaced wholesale by the next one, so nothing is mutated after
construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class StopTimeEvent:
    """One predicted stop visit within a trip.

    ``epoch_millis`` comes from the departure time when present, otherwise the
    arrival time; ``0`` means the feed gave no time for this stop.
    ``sequence`` is ``None`` when the feed omits ``stop_sequence``.
    """

    stop_id: str
    sequence: Optional[int]
    epoch_millis: int
    delay_seconds: int = 0


@dataclass(frozen=True)
class TripUpdate:
    trip_id: str
    route_id: str
    stop_time_events: Tuple[StopTimeEvent, ...] = ()
    headsign: Optional[str] = None

    @property
    def has_sequence_numbers(self) -> bool:
        return any(event.sequence is not None for event in self.stop_time_events)


@dataclass(frozen=True)
class FeedMessage:
    """A decoded GTFS-R feed reduced to what the snapshot engine consumes."""

    header_timestamp: int = 0
    trip_updates: Tuple[TripUpdate, ...] = ()
    alert_count: int = 0
    entity_count: int = 0

    @property
    def header_timestamp_millis(self) -> int:
        return self.header_timestamp * 1000 if self.header_timestamp else 0


@dataclass(frozen=True)
class Departure:
    trip_id: str
    route_id: str
    stop_id: str
    when_epoch_millis: int
    delay_seconds: int = 0
    platform_code: Optional[str] = None
    headsign: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tripId": self.trip_id,
            "routeId": self.route_id,
            "stopId": self.stop_id,
            "platformCode": self.platform_code,
            "when": self.when_epoch_millis,
            "delaySec": self.delay_seconds,
            "headsign": self.headsign,
        }


@dataclass(frozen=True)
class Connection:
    """A feasible tram to train transfer."""

    tram: Departure
    train: Departure
    wait_minutes: int
    total_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tram": self.tram.to_dict(),
            "train": self.train.to_dict(),
            "waitTime": self.wait_minutes,
            "totalTime": self.total_minutes,
        }


@dataclass(frozen=True)
class JourneyConfig:
    tram_ride_minutes: int = 5
    platform_change_buffer_minutes: int = 3
    train_ride_minutes: int = 9


@dataclass(frozen=True)
class AlertCounts:
    metro: int = 0
    tram: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"metro": self.metro, "tram": self.tram}


@dataclass(frozen=True)
class SourceTimestamps:
    """Feed header timestamps in epoch millis; ``0`` when the feed failed."""

    metro_trip_updates: int = 0
    metro_service_alerts: int = 0
    tram_trip_updates: int = 0
    tram_service_alerts: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "metroTripUpdatesTs": self.metro_trip_updates,
            "metroServiceAlertsTs": self.metro_service_alerts,
            "tramTripUpdatesTs": self.tram_trip_updates,
            "tramServiceAlertsTs": self.tram_service_alerts,
        }


@dataclass(frozen=True)
class SnapshotNotes:
    """How the snapshot was assembled: platform resolution and feed health."""

    used_static_gtfs: bool = False
    interchange_parent_stop_id: Optional[str] = None
    interchange_platform_count: int = 0
    tram_stop_ids: Tuple[str, ...] = ()
    feed_errors: Dict[str, str] = field(default_factory=dict)
    stale_feeds: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platformResolution": {
                "usedStaticGtfs": self.used_static_gtfs,
                "interchange": {
                    "parentStopId": self.interchange_parent_stop_id,
                    "platformCount": self.interchange_platform_count,
                },
                "tramStops": list(self.tram_stop_ids),
            },
            "feedErrors": dict(self.feed_errors),
            "staleFeeds": list(self.stale_feeds),
        }


@dataclass(frozen=True)
class Snapshot:
    generated_at: datetime
    trains: Tuple[Departure, ...] = ()
    trams: Tuple[Departure, ...] = ()
    connections: Tuple[Connection, ...] = ()
    alert_counts: AlertCounts = field(default_factory=AlertCounts)
    source_timestamps: SourceTimestamps = field(default_factory=SourceTimestamps)
    notes: SnapshotNotes = field(default_factory=SnapshotNotes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served by ``/api/screen``."""
        return {
            "meta": {
                "generatedAt": self.generated_at.isoformat(),
                "sources": self.source_timestamps.to_dict(),
            },
            "trains": [d.to_dict() for d in self.trains],
            "trams": [d.to_dict() for d in self.trams],
            "connections": [c.to_dict() for c in self.connections],
            "alerts": self.alert_counts.to_dict(),
            "notes": self.notes.to_dict(),
        }
