"""GTFS-R feed client with timeout, retry and backoff."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from interchange_api.logging import get_logger
from interchange_api.models.realtime import FeedMessage
from interchange_api.services.gtfs_rt.decoder import GtfsRtDecoder
from interchange_api.services.gtfs_rt.diagnostics import ConnectionDiagnostics
from interchange_api.services.gtfs_rt.errors import (
    AuthError,
    EmptyFeedError,
    FeedError,
    FeedTimeoutError,
    FetchError,
    RateLimitError,
    UpstreamError,
)
from interchange_api.services.gtfs_rt.normalizer import GtfsRtNormalizer

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 15.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SEC = 1.0
BODY_EXCERPT_CHARS = 200
USER_AGENT = "interchange-snapshot/0.1"


@dataclass(frozen=True)
class FeedDescriptor:
    """One upstream feed endpoint plus the credential used to call it."""

    name: str
    base_url: str
    path: str
    credential: Optional[str] = None

    @property
    def url(self) -> str:
        base = self.base_url.rstrip("/")
        path = self.path.lstrip("/")
        return f"{base}/{path}"

    @property
    def params(self) -> dict[str, str]:
        return {"subscription-key": self.credential} if self.credential else {}

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/x-protobuf",
            "User-Agent": USER_AGENT,
        }
        if self.credential:
            headers["KeyId"] = self.credential
            headers["Ocp-Apim-Subscription-Key"] = self.credential
        return headers


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a feed fetch gets and how long to wait between them."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base_sec: float = DEFAULT_BACKOFF_BASE_SEC

    def delay_for(self, attempt: int) -> float:
        """Delay after the zero-based ``attempt`` failed: 1s, 2s, 4s, ..."""
        return self.backoff_base_sec * (2**attempt)


class _ServerError(UpstreamError):
    """5xx response; retried like a network failure."""


class FeedClient:
    """Fetches and decodes GTFS-R feeds.

    Each attempt gets its own ``httpx.AsyncClient`` and its own timeout, so a
    slow feed is cancelled without touching requests for other feeds.
    """

    def __init__(
        self,
        diagnostics: ConnectionDiagnostics,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.diagnostics = diagnostics
        self.timeout_sec = timeout_sec
        self.retry_policy = retry_policy or RetryPolicy()
        self._transport = transport
        self._sleep = sleep
        self._decoder = GtfsRtDecoder()
        self._normalizer = GtfsRtNormalizer()

    async def fetch_feed(self, descriptor: FeedDescriptor) -> FeedMessage:
        """Download, decode and normalize one feed.

        Raises:
            FeedTimeoutError: The request exceeded ``timeout_sec``.
            FetchError: Network failure or 5xx after all retry attempts, or a
                client error retrying cannot fix (bad encoding, redirect loop).
            AuthError: HTTP 401/403.
            RateLimitError: HTTP 429.
            UpstreamError: Any other non-2xx status.
            EmptyFeedError: Empty response body.
            DecodeError: Body is not a valid FeedMessage.
        """
        self.diagnostics.record_request()
        try:
            data = await self._download(descriptor)
            if not data:
                raise EmptyFeedError(descriptor.name, f"{descriptor.name} returned empty response")
            feed = self._normalizer.normalize(self._decoder.decode(data, descriptor.name))
        except FeedError as exc:
            self.diagnostics.record_failure(descriptor.name, str(exc))
            logger.error(
                "GTFS-R fetch failed",
                feed=descriptor.name,
                error_type=type(exc).__name__,
                error=str(exc),
                consecutive_failures=self.diagnostics.consecutive_failures,
            )
            raise

        self.diagnostics.record_success()
        logger.info(
            "GTFS-R feed fetched",
            feed=descriptor.name,
            size_bytes=len(data),
            entity_count=feed.entity_count,
            trip_updates=len(feed.trip_updates),
            feed_timestamp=feed.header_timestamp,
        )
        return feed

    async def _download(self, descriptor: FeedDescriptor) -> bytes:
        """Run attempts under the retry policy, returning the raw body."""
        policy = self.retry_policy
        last_error: Exception | None = None

        for attempt in range(policy.max_attempts):
            try:
                return await self._attempt(descriptor, attempt)
            except (httpx.TransportError, _ServerError) as exc:
                last_error = exc
                if attempt < policy.max_attempts - 1:
                    delay = policy.delay_for(attempt)
                    logger.warning(
                        "GTFS-R fetch failed, retrying",
                        feed=descriptor.name,
                        attempt=attempt + 1,
                        max_attempts=policy.max_attempts,
                        delay_sec=delay,
                        error=str(exc),
                    )
                    await self._sleep(delay)

        msg = f"Failed to fetch {descriptor.name} after {policy.max_attempts} attempts: {last_error}"
        raise FetchError(descriptor.name, msg, cause=last_error) from last_error

    async def _attempt(self, descriptor: FeedDescriptor, attempt: int) -> bytes:
        logger.debug(
            "Fetching GTFS-R feed",
            feed=descriptor.name,
            attempt=attempt + 1,
        )
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_sec),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.get(
                        descriptor.url,
                        params=descriptor.params,
                        headers=descriptor.headers,
                    ),
                    timeout=self.timeout_sec,
                )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            msg = f"{descriptor.name} timed out after {self.timeout_sec}s"
            raise FeedTimeoutError(descriptor.name, msg) from exc
        except httpx.TransportError:
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # Non-transport client errors are not retried
            msg = f"Failed to fetch {descriptor.name}: {type(exc).__name__}: {exc}"
            raise FetchError(descriptor.name, msg, cause=exc) from exc

        self._check_status(descriptor, response)
        return response.content

    @staticmethod
    def _check_status(descriptor: FeedDescriptor, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        excerpt = response.text[:BODY_EXCERPT_CHARS]
        if status in (401, 403):
            raise AuthError(descriptor.name, status, excerpt)
        if status == 429:
            raise RateLimitError(descriptor.name, status, excerpt)
        if status >= 500:
            raise _ServerError(descriptor.name, status, excerpt)
        raise UpstreamError(descriptor.name, status, excerpt)
