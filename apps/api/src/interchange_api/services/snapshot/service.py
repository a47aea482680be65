"""Snapshot orchestration: fetch all feeds, extract, match, cache.

A fetch cycle runs at most once per cache window. Concurrent callers that
miss the cache together share one in-flight cycle.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from interchange_api.config import Settings, get_settings
from interchange_api.logging import get_logger
from interchange_api.models.realtime import (
    AlertCounts,
    FeedMessage,
    Snapshot,
    SnapshotNotes,
    SourceTimestamps,
)
from interchange_api.services.departures.extractor import (
    extract_train_departures,
    extract_tram_departures,
)
from interchange_api.services.gtfs_rt.diagnostics import ConnectionDiagnostics
from interchange_api.services.gtfs_rt.errors import FeedError
from interchange_api.services.gtfs_rt.fetcher import FeedClient, FeedDescriptor, RetryPolicy
from interchange_api.services.gtfs_static.parser import load_stops
from interchange_api.services.gtfs_static.resolver import StaticReference
from interchange_api.services.matching.engine import match_connections
from interchange_api.services.snapshot.cache import SnapshotCache

logger = get_logger(__name__)

# Feed labels
FEED_METRO_TRIP_UPDATES = "metro/trip-updates"
FEED_METRO_SERVICE_ALERTS = "metro/service-alerts"
FEED_TRAM_TRIP_UPDATES = "tram/trip-updates"
FEED_TRAM_SERVICE_ALERTS = "tram/service-alerts"

FeedResult = Tuple[Optional[FeedMessage], Optional[str]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class SnapshotService:
    """Owns the snapshot cache and runs fetch cycles on cache misses.

    Usage:
        service = build_snapshot_service(settings)
        snapshot = await service.get_snapshot(settings.odata_key)
    """

    def __init__(
        self,
        settings: Settings,
        feed_client: FeedClient,
        static_reference: StaticReference,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._settings = settings
        self._feed_client = feed_client
        self._static = static_reference
        self._clock = clock
        self._journey = settings.journey_config()

        self.cache = SnapshotCache()
        self.cycle_count = 0
        self._inflight: Dict[Optional[str], asyncio.Task[Snapshot]] = {}

        self._interchange = static_reference.resolve_interchange_stop_ids(
            settings.interchange_station_name, settings.interchange_stop_ids
        )
        self._target_stop_ids = static_reference.build_target_stop_id_set(
            settings.target_destination_stop_names
        )
        self._tram_stop_ids = static_reference.build_tram_stop_ids(
            settings.target_stop_ids, settings.target_stop_name_terms
        )

        if not self._interchange.all_platform_stop_ids:
            logger.warning(
                "No interchange platform stop IDs resolved; train departures will be empty",
                station=settings.interchange_station_name,
            )

    @property
    def diagnostics(self) -> ConnectionDiagnostics:
        return self._feed_client.diagnostics

    async def get_snapshot(self, credential: Optional[str]) -> Snapshot:
        """Return the cached snapshot, or run (or join) a fetch cycle on a miss.

        Concurrent callers only join an in-flight cycle started with the same
        credential; a keyless caller racing a keyed one gets its own cycle.
        """
        cached = self.cache.get_fresh(self._clock())
        if cached is not None:
            return cached

        # No suspension point between the check and the assignment, so only
        # the first caller of a miss creates the task.
        task = self._inflight.get(credential)
        if task is None or task.done():
            task = asyncio.create_task(self._run_cycle(credential))
            self._inflight[credential] = task
        return await asyncio.shield(task)

    async def _run_cycle(self, credential: Optional[str]) -> Snapshot:
        now_ms = self._clock()
        self.cycle_count += 1
        started = time.monotonic()

        if not credential:
            logger.warning("No Open Data credential configured, serving empty snapshot")
            snapshot = Snapshot(generated_at=_as_datetime(now_ms), notes=self._notes())
        else:
            snapshot = await self._build_snapshot(credential, now_ms)

        self.cache.store(snapshot, now_ms + self._settings.cache_seconds * 1000)
        logger.info(
            "Snapshot cycle complete",
            cycle=self.cycle_count,
            trains=len(snapshot.trains),
            trams=len(snapshot.trams),
            connections=len(snapshot.connections),
            feed_errors=snapshot.notes.feed_errors or None,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return snapshot

    async def _build_snapshot(self, credential: str, now_ms: int) -> Snapshot:
        settings = self._settings
        descriptors = [
            FeedDescriptor(
                FEED_METRO_TRIP_UPDATES,
                settings.metro_feed_base_url,
                settings.trip_updates_path,
                credential,
            ),
            FeedDescriptor(
                FEED_METRO_SERVICE_ALERTS,
                settings.metro_feed_base_url,
                settings.service_alerts_path,
                credential,
            ),
            FeedDescriptor(
                FEED_TRAM_TRIP_UPDATES,
                settings.tram_feed_base_url,
                settings.trip_updates_path,
                credential,
            ),
            FeedDescriptor(
                FEED_TRAM_SERVICE_ALERTS,
                settings.tram_feed_base_url,
                settings.service_alerts_path,
                credential,
            ),
        ]

        results = await asyncio.gather(*(self._fetch_contained(d) for d in descriptors))
        feeds: Dict[str, Optional[FeedMessage]] = {}
        feed_errors: Dict[str, str] = {}
        for descriptor, (feed, error) in zip(descriptors, results):
            feeds[descriptor.name] = feed
            if error:
                feed_errors[descriptor.name] = error

        metro_tu = feeds[FEED_METRO_TRIP_UPDATES]
        metro_sa = feeds[FEED_METRO_SERVICE_ALERTS]
        tram_tu = feeds[FEED_TRAM_TRIP_UPDATES]
        tram_sa = feeds[FEED_TRAM_SERVICE_ALERTS]

        trains = extract_train_departures(
            metro_tu,
            self._interchange.all_platform_stop_ids,
            self._target_stop_ids,
            now_ms,
            platform_lookup=self._static.get_platform_code,
        )
        trams = extract_tram_departures(
            tram_tu,
            settings.target_route_number,
            self._tram_stop_ids,
            now_ms,
            settings.default_tram_headsign,
            target_route_id=settings.target_route_id,
        )
        connections = match_connections(trams, trains, self._journey)

        return Snapshot(
            generated_at=_as_datetime(now_ms),
            trains=tuple(trains),
            trams=tuple(trams),
            connections=tuple(connections),
            alert_counts=AlertCounts(
                metro=metro_sa.alert_count if metro_sa else 0,
                tram=tram_sa.alert_count if tram_sa else 0,
            ),
            source_timestamps=SourceTimestamps(
                metro_trip_updates=_header_ms(metro_tu),
                metro_service_alerts=_header_ms(metro_sa),
                tram_trip_updates=_header_ms(tram_tu),
                tram_service_alerts=_header_ms(tram_sa),
            ),
            notes=self._notes(
                feed_errors=feed_errors,
                stale_feeds=self._stale_feeds(feeds, now_ms),
            ),
        )

    async def _fetch_contained(self, descriptor: FeedDescriptor) -> FeedResult:
        """Fetch one feed; any failure becomes an empty contribution.

        Isolated per feed - failure in one doesn't affect the others.
        """
        try:
            return await self._feed_client.fetch_feed(descriptor), None
        except FeedError as exc:
            logger.warning(
                "Feed unavailable for this snapshot",
                feed=descriptor.name,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None, type(exc).__name__
        except Exception as exc:
            logger.error("Unexpected feed error", feed=descriptor.name, exc_info=exc)
            return None, type(exc).__name__

    def _stale_feeds(self, feeds: Dict[str, Optional[FeedMessage]], now_ms: int) -> Tuple[str, ...]:
        threshold_ms = self._settings.stale_feed_threshold_sec * 1000
        stale = []
        for name, feed in feeds.items():
            header_ms = _header_ms(feed)
            if header_ms and now_ms - header_ms > threshold_ms:
                logger.warning(
                    "Stale GTFS-R feed detected",
                    feed=name,
                    feed_age_sec=(now_ms - header_ms) // 1000,
                    threshold_sec=self._settings.stale_feed_threshold_sec,
                )
                stale.append(name)
        return tuple(stale)

    def _notes(
        self,
        feed_errors: Optional[Dict[str, str]] = None,
        stale_feeds: Tuple[str, ...] = (),
    ) -> SnapshotNotes:
        return SnapshotNotes(
            used_static_gtfs=self._static.has_stops,
            interchange_parent_stop_id=self._interchange.parent_stop_id,
            interchange_platform_count=len(self._interchange.all_platform_stop_ids),
            tram_stop_ids=tuple(sorted(self._tram_stop_ids)),
            feed_errors=feed_errors or {},
            stale_feeds=stale_feeds,
        )


def _header_ms(feed: Optional[FeedMessage]) -> int:
    return feed.header_timestamp_millis if feed else 0


def _as_datetime(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


def build_snapshot_service(
    settings: Settings,
    clock: Callable[[], int] = _now_ms,
) -> SnapshotService:
    """Wire a snapshot service, its feed client and static reference from settings."""
    feed_client = FeedClient(
        diagnostics=ConnectionDiagnostics(),
        timeout_sec=settings.feed_timeout_sec,
        retry_policy=RetryPolicy(
            max_attempts=settings.feed_max_attempts,
            backoff_base_sec=settings.feed_backoff_base_sec,
        ),
    )
    static_reference = StaticReference(load_stops(settings.gtfs_static_path))
    return SnapshotService(settings, feed_client, static_reference, clock=clock)


# Singleton instance for the app lifecycle
_service_instance: SnapshotService | None = None


def get_snapshot_service() -> SnapshotService:
    """Get or create the app-wide snapshot service."""
    global _service_instance
    if _service_instance is None:
        _service_instance = build_snapshot_service(get_settings())
    return _service_instance


def reset_snapshot_service() -> None:
    """Reset the singleton (for testing)."""
    global _service_instance
    _service_instance = None

