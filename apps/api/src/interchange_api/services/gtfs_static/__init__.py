"""Static GTFS stop reference data."""

from interchange_api.services.gtfs_static.parser import GtfsParser, load_stops
from interchange_api.services.gtfs_static.reader import GtfsReader
from interchange_api.services.gtfs_static.resolver import InterchangeStopIds, StaticReference

__all__ = [
    "GtfsParser",
    "GtfsReader",
    "InterchangeStopIds",
    "StaticReference",
    "load_stops",
]
