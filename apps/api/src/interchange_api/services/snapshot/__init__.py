"""Snapshot cache, orchestration and background refresh."""

from interchange_api.services.snapshot.cache import SnapshotCache
from interchange_api.services.snapshot.refresher import SnapshotRefresher
from interchange_api.services.snapshot.service import (
    SnapshotService,
    build_snapshot_service,
    get_snapshot_service,
    reset_snapshot_service,
)

__all__ = [
    "SnapshotCache",
    "SnapshotRefresher",
    "SnapshotService",
    "build_snapshot_service",
    "get_snapshot_service",
    "reset_snapshot_service",
]
