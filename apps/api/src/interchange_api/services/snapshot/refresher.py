"""Background refresh loop that keeps the snapshot cache warm."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any, Optional

from interchange_api.logging import get_logger
from interchange_api.services.snapshot.service import SnapshotService

logger = get_logger(__name__)


class SnapshotRefresher:
    """Calls ``get_snapshot`` every ``interval_sec`` so requests rarely wait on the network.

    Usage:
        refresher = SnapshotRefresher(service, credential, interval_sec=60)
        await refresher.start()   # launches background task
        await refresher.stop()    # cancels background task
    """

    def __init__(
        self,
        service: SnapshotService,
        credential: Optional[str],
        interval_sec: float,
    ) -> None:
        self._service = service
        self._credential = credential
        self._interval = interval_sec

        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._refresh_count = 0
        self._last_refresh_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def refresh_count(self) -> int:
        return self._refresh_count

    async def start(self) -> None:
        if self._running:
            logger.warning("Refresher already running, ignoring start request")
            return

        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info("Snapshot refresher started", interval_sec=self._interval)

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Snapshot refresher stopped")

    async def run_once(self) -> None:
        self._refresh_count += 1
        self._last_refresh_at = datetime.now(timezone.utc)
        await self._service.get_snapshot(self._credential)

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "refresh_count": self._refresh_count,
            "last_refresh_at": self._last_refresh_at.isoformat() if self._last_refresh_at else None,
            "interval_sec": self._interval,
        }

    async def _refresh_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception as exc:
                logger.error("Snapshot refresh failed unexpectedly", exc_info=exc)

            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
