"""Time-boxed holder for the current snapshot."""

from __future__ import annotations

from typing import Optional

from interchange_api.models.realtime import Snapshot


class SnapshotCache:
    """Holds one snapshot until ``cache_until`` (epoch millis).

    Fresh means a snapshot exists and ``now < cache_until``. ``store`` always
    replaces the previous snapshot; nothing is merged.
    """

    def __init__(self) -> None:
        self._snapshot: Optional[Snapshot] = None
        self._cache_until = 0

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def cache_until(self) -> int:
        return self._cache_until

    def is_fresh(self, now_ms: int) -> bool:
        return self._snapshot is not None and now_ms < self._cache_until

    def get_fresh(self, now_ms: int) -> Optional[Snapshot]:
        return self._snapshot if self.is_fresh(now_ms) else None

    def store(self, snapshot: Snapshot, cache_until_ms: int) -> None:
        self._snapshot = snapshot
        self._cache_until = cache_until_ms
