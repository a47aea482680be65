"""Domain models for the interchange snapshot engine."""

from interchange_api.models.realtime import (
    AlertCounts,
    Connection,
    Departure,
    FeedMessage,
    JourneyConfig,
    Snapshot,
    SnapshotNotes,
    SourceTimestamps,
    StopTimeEvent,
    TripUpdate,
)

__all__ = [
    "AlertCounts",
    "Connection",
    "Departure",
    "FeedMessage",
    "JourneyConfig",
    "Snapshot",
    "SnapshotNotes",
    "SourceTimestamps",
    "StopTimeEvent",
    "TripUpdate",
]
