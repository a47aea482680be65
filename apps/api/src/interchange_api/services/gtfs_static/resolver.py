"""Stop lookups against static GTFS: interchange platforms, target stops, platform codes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from interchange_api.logging import get_logger

logger = get_logger(__name__)

# GTFS location_type for a parent station
LOCATION_TYPE_STATION = "1"


@dataclass(frozen=True)
class InterchangeStopIds:
    parent_stop_id: Optional[str]
    all_platform_stop_ids: Tuple[str, ...]


class StaticReference:
    """Read-only view over stops.txt rows."""

    def __init__(self, stops: Sequence[Dict[str, Any]]) -> None:
        self._stops = list(stops)
        self._by_id: Dict[str, Dict[str, Any]] = {s["stop_id"]: s for s in self._stops}
        self._children: Dict[str, List[str]] = {}
        for stop in self._stops:
            parent = stop.get("parent_station") or ""
            if parent:
                self._children.setdefault(parent, []).append(stop["stop_id"])

    @property
    def has_stops(self) -> bool:
        return bool(self._stops)

    def get_platform_code(self, stop_id: str) -> Optional[str]:
        stop = self._by_id.get(stop_id)
        if not stop:
            return None
        return stop.get("platform_code") or None

    def resolve_interchange_stop_ids(
        self,
        station_name: str,
        override_ids: Iterable[str] = (),
    ) -> InterchangeStopIds:
        """Find the interchange's parent station and every platform stop under it.

        Trains can use any platform, so all child stop IDs are candidates.
        Configured override IDs are always included.
        """
        needle = station_name.strip().lower()
        parent_id: Optional[str] = None

        for stop in self._stops:
            name = (stop.get("stop_name") or "").lower()
            if needle not in name:
                continue
            is_station = stop.get("location_type") == LOCATION_TYPE_STATION
            if is_station or (not stop.get("parent_station") and stop["stop_id"] in self._children):
                parent_id = stop["stop_id"]
                break

        platform_ids: List[str] = []
        if parent_id:
            platform_ids.extend(self._children.get(parent_id, []))
        else:
            # No hierarchy in this dataset; fall back to every stop with the station name
            platform_ids.extend(
                s["stop_id"]
                for s in self._stops
                if needle and needle in (s.get("stop_name") or "").lower()
            )

        for stop_id in override_ids:
            if stop_id not in platform_ids:
                platform_ids.append(stop_id)

        logger.info(
            "Interchange stops resolved",
            station=station_name,
            parent_stop_id=parent_id,
            platform_count=len(platform_ids),
        )
        return InterchangeStopIds(parent_id, tuple(platform_ids))

    def build_target_stop_id_set(self, target_names: Iterable[str]) -> set[str]:
        """All stop IDs whose name contains one of ``target_names``, plus their platforms."""
        needles = [n.strip().lower() for n in target_names if n.strip()]
        result: set[str] = set()
        if not needles:
            return result

        for stop in self._stops:
            name = (stop.get("stop_name") or "").lower()
            if any(n in name for n in needles):
                result.add(stop["stop_id"])
                result.update(self._children.get(stop["stop_id"], []))
        return result

    def build_tram_stop_ids(
        self,
        configured_ids: Iterable[str],
        name_terms: Sequence[str] = (),
    ) -> set[str]:
        """Configured tram stop IDs plus any stop whose name contains every term."""
        result = {stop_id for stop_id in configured_ids if stop_id}
        terms = [t.lower() for t in name_terms if t]
        if terms:
            for stop in self._stops:
                name = (stop.get("stop_name") or "").lower()
                if all(t in name for t in terms):
                    result.add(stop["stop_id"])
        return result
