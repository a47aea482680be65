"""Connection diagnostics for the feed client."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LastError:
    time: datetime
    feed_path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "time": self.time.isoformat(),
            "feedPath": self.feed_path,
            "message": self.message,
        }


class ConnectionDiagnostics:
    """Request/success counters shared by every fetch a ``FeedClient`` makes.

    One instance is owned by whoever builds the feed client and handed to it
    explicitly, so two engines never share counters. Nothing reads these
    values to make decisions; they exist for ``/health``.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self.last_success_time: Optional[datetime] = None
        self.last_error: Optional[LastError] = None
        self.consecutive_failures = 0
        self.total_requests = 0
        self.total_successes = 0

    def record_request(self) -> None:
        self.total_requests += 1

    def record_success(self) -> None:
        self.last_success_time = self._clock()
        self.consecutive_failures = 0
        self.total_successes += 1

    def record_failure(self, feed_path: str, message: str) -> None:
        self.last_error = LastError(time=self._clock(), feed_path=feed_path, message=message)
        self.consecutive_failures += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastSuccessTime": (
                self.last_success_time.isoformat() if self.last_success_time else None
            ),
            "lastError": self.last_error.to_dict() if self.last_error else None,
            "consecutiveFailures": self.consecutive_failures,
            "totalRequests": self.total_requests,
            "totalSuccesses": self.total_successes,
        }
