"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from interchange_api.config import Settings
from interchange_api.main import app
from interchange_api.services.gtfs_rt.diagnostics import ConnectionDiagnostics
from interchange_api.services.gtfs_static.parser import load_stops
from interchange_api.services.gtfs_static.resolver import StaticReference
from interchange_api.services.snapshot.service import reset_snapshot_service

from .fixtures.gtfs_fixture import write_gtfs_dir
from .fixtures.gtfs_rt_fixture import NOW_MS


@pytest.fixture(autouse=True)
def _reset_singleton() -> None:
    """Reset the app-wide snapshot service between tests."""
    reset_snapshot_service()


@pytest.fixture
def gtfs_dir(tmp_path: Path) -> Path:
    return write_gtfs_dir(tmp_path / "gtfs")


@pytest.fixture
def static_reference(gtfs_dir: Path) -> StaticReference:
    return StaticReference(load_stops(gtfs_dir))


@pytest.fixture
def settings(gtfs_dir: Path) -> Settings:
    return Settings(
        odata_key="test-key",
        metro_feed_base_url="https://feeds.test/metro",
        tram_feed_base_url="https://feeds.test/tram",
        gtfs_static_path=str(gtfs_dir),
        cache_seconds=60,
        feed_timeout_sec=5,
        feed_max_attempts=1,
        feed_backoff_base_sec=0,
    )


@pytest.fixture
def diagnostics() -> ConnectionDiagnostics:
    return ConnectionDiagnostics()


class FakeClock:
    """Epoch-millis clock advanced by hand."""

    def __init__(self, now_ms: int = NOW_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings_factory(gtfs_dir: Path) -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "odata_key": "test-key",
            "metro_feed_base_url": "https://feeds.test/metro",
            "tram_feed_base_url": "https://feeds.test/tram",
            "gtfs_static_path": str(gtfs_dir),
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def patch_settings(settings: Settings) -> Any:
    """Point every get_settings() lookup at the test settings."""
    with patch("interchange_api.routers.snapshot.get_settings", return_value=settings), patch(
        "interchange_api.main.get_settings", return_value=settings
    ), patch("interchange_api.services.snapshot.service.get_settings", return_value=settings):
        yield settings


@pytest.fixture
async def client(patch_settings: Settings) -> AsyncGenerator[AsyncClient, None]:  # noqa: ARG001
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
