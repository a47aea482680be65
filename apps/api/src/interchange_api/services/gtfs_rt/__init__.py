"""GTFS-Realtime feed client for the metro and tram feeds."""

from interchange_api.services.gtfs_rt.decoder import GtfsRtDecoder
from interchange_api.services.gtfs_rt.diagnostics import ConnectionDiagnostics
from interchange_api.services.gtfs_rt.fetcher import FeedClient, FeedDescriptor, RetryPolicy
from interchange_api.services.gtfs_rt.normalizer import GtfsRtNormalizer

__all__ = [
    "ConnectionDiagnostics",
    "FeedClient",
    "FeedDescriptor",
    "GtfsRtDecoder",
    "GtfsRtNormalizer",
    "RetryPolicy",
]
