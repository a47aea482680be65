"""Connection matching: pair each tram with the earliest train it can make."""

from __future__ import annotations

import math
from typing import List, Sequence

from interchange_api.logging import get_logger
from interchange_api.models.realtime import Connection, Departure, JourneyConfig

logger = get_logger(__name__)

MS_PER_MINUTE = 60_000


def round_minutes(millis: int) -> int:
    """Milliseconds to whole minutes, rounding halves up."""
    return math.floor(millis / MS_PER_MINUTE + 0.5)


def tram_arrival_millis(tram: Departure, journey: JourneyConfig) -> int:
    """Predicted arrival of ``tram`` at the interchange."""
    return tram.when_epoch_millis + journey.tram_ride_minutes * MS_PER_MINUTE


def earliest_catchable_train(
    arrival_ms: int,
    trains: Sequence[Departure],
    journey: JourneyConfig,
) -> Departure | None:
    """First train leaving at or after arrival plus the platform change buffer.

    ``trains`` must be time-ascending.
    """
    min_train_ms = arrival_ms + journey.platform_change_buffer_minutes * MS_PER_MINUTE
    for train in trains:
        if train.when_epoch_millis >= min_train_ms:
            return train
    return None


def match_connections(
    trams: Sequence[Departure],
    trains: Sequence[Departure],
    journey: JourneyConfig,
) -> List[Connection]:
    """Best tram to train transfers, shortest total journey first.

    Trams with no catchable train in the known departures are skipped. The
    sort is stable, so equal total times keep tram departure order.
    """
    if not trams or not trains:
        return []

    connections: List[Connection] = []
    for tram in trams:
        arrival_ms = tram_arrival_millis(tram, journey)
        train = earliest_catchable_train(arrival_ms, trains, journey)
        if train is None:
            continue

        connections.append(
            Connection(
                tram=tram,
                train=train,
                wait_minutes=round_minutes(train.when_epoch_millis - arrival_ms),
                total_minutes=(
                    round_minutes(train.when_epoch_millis - tram.when_epoch_millis)
                    + journey.train_ride_minutes
                ),
            )
        )

    connections.sort(key=lambda c: c.total_minutes)
    logger.debug(
        "Connections matched",
        trams=len(trams),
        trains=len(trains),
        connections=len(connections),
    )
    return connections
