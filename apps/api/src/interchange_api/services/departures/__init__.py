"""Departure extraction for the train and tram feeds."""

from interchange_api.services.departures.extractor import (
    MAX_DEPARTURES,
    extract_train_departures,
    extract_tram_departures,
    is_city_bound_trip,
    matches_route,
)

__all__ = [
    "MAX_DEPARTURES",
    "extract_train_departures",
    "extract_tram_departures",
    "is_city_bound_trip",
    "matches_route",
]
