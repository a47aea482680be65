"""Failure taxonomy for a single GTFS-R feed fetch.

Only ``FetchError`` is the product of retrying; every other error is raised
on the first attempt that hits it.
"""

from __future__ import annotations


class FeedError(Exception):
    """Base class for all per-feed failures."""

    def __init__(self, feed: str, message: str) -> None:
        super().__init__(message)
        self.feed = feed


class FeedTimeoutError(FeedError):
    """The request exceeded the feed timeout and was cancelled."""


class FetchError(FeedError):
    """Network-level failure that persisted after all retry attempts."""

    def __init__(self, feed: str, message: str, cause: BaseException | None = None) -> None:
        super().__init__(feed, message)
        self.cause = cause


class UpstreamError(FeedError):
    """The upstream answered with a non-2xx status that is not worth retrying."""

    def __init__(self, feed: str, status: int, body_excerpt: str = "") -> None:
        super().__init__(feed, f"{feed} returned HTTP {status}: {body_excerpt}".rstrip(": "))
        self.status = status
        self.body_excerpt = body_excerpt


class AuthError(UpstreamError):
    """401/403: the credential was rejected."""


class RateLimitError(UpstreamError):
    """429: the upstream rate limit was hit."""


class EmptyFeedError(FeedError):
    """The upstream returned an empty body."""


class DecodeError(FeedError):
    """The body could not be decoded as a GTFS-R FeedMessage."""
