"""GTFS CSV parser with column validation."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from interchange_api.logging import get_logger
from interchange_api.services.gtfs_static.reader import GtfsReader

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = get_logger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "stops.txt": {"stop_id", "stop_name"},
}


class MissingColumnError(Exception):
    """Raised when a required CSV column is missing."""


class GtfsParser:
    """Parses GTFS CSV files, yielding one dict per row."""

    def __init__(self, reader: GtfsReader) -> None:
        self._reader = reader

    def parse_file(self, filename: str) -> Iterator[dict[str, Any]]:
        """
        Raises:
            MissingColumnError: If required columns are missing.
        """
        with self._reader.open_file(filename) as text_io:
            csv_reader = csv.DictReader(text_io)

            if csv_reader.fieldnames is None:
                msg = f"Empty CSV file: {filename}"
                raise MissingColumnError(msg)

            actual_columns = {name.strip() for name in csv_reader.fieldnames}
            required = REQUIRED_COLUMNS.get(filename, set())
            missing = required - actual_columns
            if missing:
                msg = f"Missing required columns in {filename}: {sorted(missing)}"
                raise MissingColumnError(msg)

            for row in csv_reader:
                yield {k.strip(): (v or "").strip() for k, v in row.items() if k}

    def parse_stops(self) -> Iterator[dict[str, Any]]:
        return self.parse_file("stops.txt")


def load_stops(path: Optional[Union[str, Path]]) -> list[dict[str, Any]]:
    """Load stops.txt rows from a GTFS directory or ZIP.

    Static data is optional: no path, or a path that does not exist, yields
    an empty list and the engine falls back to configured stop IDs.
    """
    if not path:
        return []
    if not Path(path).exists():
        logger.warning("Static GTFS path not found, continuing without it", path=str(path))
        return []

    with GtfsReader(path) as reader:
        stops = list(GtfsParser(reader).parse_stops())

    logger.info("Static GTFS stops loaded", path=str(path), stop_count=len(stops))
    return stops
