"""GTFS-R protobuf decode layer."""

from __future__ import annotations

from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.transit import gtfs_realtime_pb2

from interchange_api.logging import get_logger
from interchange_api.services.gtfs_rt.errors import DecodeError

logger = get_logger(__name__)


class GtfsRtDecoder:
    """Decodes raw protobuf bytes into GTFS-R FeedMessage objects."""

    @staticmethod
    def decode(data: bytes, feed: str) -> gtfs_realtime_pb2.FeedMessage:
        """Decode protobuf bytes into a FeedMessage.

        Args:
            data: Raw protobuf bytes.
            feed: Feed label for logging and errors.

        Raises:
            DecodeError: If protobuf parsing fails.
        """
        try:
            message = gtfs_realtime_pb2.FeedMessage()
            message.ParseFromString(data)
        except ProtobufDecodeError as exc:
            msg = f"Failed to decode {feed} protobuf: {exc}"
            raise DecodeError(feed, msg) from exc

        logger.debug(
            "GTFS-R feed decoded",
            feed=feed,
            entity_count=len(message.entity),
            feed_timestamp=message.header.timestamp,
            gtfs_rt_version=message.header.gtfs_realtime_version,
        )
        return message
