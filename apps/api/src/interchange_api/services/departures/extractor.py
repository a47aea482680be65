"""Departure extraction: reduce a decoded feed to the departures this commute cares about.

Two filters share the same shape. Trains are kept when they call at any
interchange platform and later call at a city target stop. Trams are kept
when they run the target route and call at the target stop. Both drop
events without a time or already in the past, sort by time and cap the
result at ``MAX_DEPARTURES``.
"""

from __future__ import annotations

import re
from typing import Callable, Collection, List, Optional

from interchange_api.logging import get_logger
from interchange_api.models.realtime import Departure, FeedMessage, StopTimeEvent, TripUpdate

logger = get_logger(__name__)

MAX_DEPARTURES = 12

PlatformLookup = Callable[[str], Optional[str]]


def resolve_sequence(trip: TripUpdate, index: int) -> int:
    """Explicit stop_sequence if the feed sent one, else the event's index."""
    event = trip.stop_time_events[index]
    return event.sequence if event.sequence is not None else index


def is_city_bound_trip(
    trip: TripUpdate,
    target_stop_ids: Collection[str],
    current_index: int,
) -> bool:
    """True if the trip calls at a target stop strictly after ``current_index``.

    Equal sequence numbers are not downstream. A trip with no sequence numbers
    at all treats every stop after the current one as downstream.
    """
    events = trip.stop_time_events
    if not events or not target_stop_ids:
        return False

    if not trip.has_sequence_numbers:
        return any(e.stop_id in target_stop_ids for e in events[current_index + 1 :])

    current_seq = resolve_sequence(trip, current_index)
    return any(
        event.stop_id in target_stop_ids and resolve_sequence(trip, index) > current_seq
        for index, event in enumerate(events)
    )


def matches_route(route_id: str, target_route_number: str, target_route_id: str = "") -> bool:
    """Route match tolerant of feed ID formats ("58", "3-58-", "aus:vic:3-58:").

    The route number must appear with no digit directly before or after it,
    so "58" matches "3-58-" but not "59", "158" or "580".
    """
    if not route_id:
        return False
    if target_route_id and target_route_id in route_id:
        return True
    if not target_route_number:
        return False
    pattern = rf"(?<!\d){re.escape(target_route_number)}(?!\d)"
    return re.search(pattern, route_id) is not None


def _first_event_at(trip: TripUpdate, stop_ids: Collection[str]) -> Optional[int]:
    for index, event in enumerate(trip.stop_time_events):
        if event.stop_id in stop_ids:
            return index
    return None


def _is_upcoming(event: StopTimeEvent, now_ms: int) -> bool:
    return event.epoch_millis != 0 and event.epoch_millis >= now_ms


def _rank(departures: List[Departure]) -> List[Departure]:
    departures.sort(key=lambda d: (d.when_epoch_millis, d.trip_id))
    return departures[:MAX_DEPARTURES]


def extract_train_departures(
    feed: Optional[FeedMessage],
    platform_stop_ids: Collection[str],
    target_stop_ids: Collection[str],
    now_ms: int,
    platform_lookup: Optional[PlatformLookup] = None,
) -> List[Departure]:
    """City-bound trains calling at any interchange platform."""
    if feed is None or not platform_stop_ids:
        return []

    departures: List[Departure] = []
    for trip in feed.trip_updates:
        index = _first_event_at(trip, platform_stop_ids)
        if index is None:
            continue

        event = trip.stop_time_events[index]
        if not _is_upcoming(event, now_ms):
            continue
        if not is_city_bound_trip(trip, target_stop_ids, index):
            continue

        departures.append(
            Departure(
                trip_id=trip.trip_id,
                route_id=trip.route_id,
                stop_id=event.stop_id,
                when_epoch_millis=event.epoch_millis,
                delay_seconds=event.delay_seconds,
                platform_code=platform_lookup(event.stop_id) if platform_lookup else None,
                headsign=trip.headsign,
            )
        )

    ranked = _rank(departures)
    logger.debug(
        "Train departures extracted",
        candidates=len(departures),
        kept=len(ranked),
    )
    return ranked


def extract_tram_departures(
    feed: Optional[FeedMessage],
    target_route_number: str,
    tram_stop_ids: Collection[str],
    now_ms: int,
    default_headsign: str,
    target_route_id: str = "",
) -> List[Departure]:
    """Target-route trams calling at the configured tram stop."""
    if feed is None or not tram_stop_ids:
        return []

    departures: List[Departure] = []
    for trip in feed.trip_updates:
        if not matches_route(trip.route_id, target_route_number, target_route_id):
            continue

        index = _first_event_at(trip, tram_stop_ids)
        if index is None:
            continue

        event = trip.stop_time_events[index]
        if not _is_upcoming(event, now_ms):
            continue

        departures.append(
            Departure(
                trip_id=trip.trip_id,
                route_id=trip.route_id,
                stop_id=event.stop_id,
                when_epoch_millis=event.epoch_millis,
                delay_seconds=event.delay_seconds,
                headsign=trip.headsign or default_headsign,
            )
        )

    ranked = _rank(departures)
    logger.debug(
        "Tram departures extracted",
        candidates=len(departures),
        kept=len(ranked),
    )
    return ranked
