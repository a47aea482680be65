"""Application configuration via environment variables."""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from interchange_api.models.realtime import JourneyConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Interchange Snapshot API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Transport Victoria Open Data credential (empty = static-only mode)
    odata_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ODATA_KEY", "ODATA_API_KEY"),
    )

    # GTFS-R feed endpoints
    metro_feed_base_url: str = Field(
        default=(
            "https://api.opendata.transport.vic.gov.au/opendata/public-transport"
            "/gtfs/realtime/v1/metro"
        ),
        validation_alias=AliasChoices("METRO_FEED_BASE_URL"),
    )
    tram_feed_base_url: str = Field(
        default=(
            "https://api.opendata.transport.vic.gov.au/opendata/public-transport"
            "/gtfs/realtime/v1/tram"
        ),
        validation_alias=AliasChoices("TRAM_FEED_BASE_URL"),
    )
    trip_updates_path: str = "trip-updates"
    service_alerts_path: str = "service-alerts"

    # Feed client
    feed_timeout_sec: float = Field(default=15.0, gt=0)
    # Total attempts per feed fetch, including the first; not a count of retries
    feed_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        validation_alias=AliasChoices("FEED_MAX_ATTEMPTS", "FEED_MAX_RETRIES"),
    )
    feed_backoff_base_sec: float = Field(default=1.0, ge=0)

    # Tram side of the commute
    target_route_id: str = "3-58-"
    target_route_number: str = "58"
    target_stop_ids: List[str] = Field(default_factory=lambda: ["2719"])
    target_stop_name_terms: List[str] = Field(default_factory=lambda: ["tivoli", "toorak"])
    default_tram_headsign: str = "West Coburg"

    # Train side of the commute
    interchange_station_name: str = "South Yarra"
    interchange_stop_ids: List[str] = Field(default_factory=list)
    target_destination_stop_names: List[str] = Field(
        default_factory=lambda: [
            "Parliament",
            "Melbourne Central",
            "Flagstaff",
            "Southern Cross",
            "Flinders Street",
        ]
    )

    # Journey timing (minutes)
    tram_ride_minutes: int = Field(default=5, ge=0)
    platform_change_buffer_minutes: int = Field(default=3, ge=0)
    train_ride_minutes: int = Field(default=9, ge=0)

    # Snapshot cache / background refresh
    cache_seconds: int = Field(default=60, ge=1)
    refresh_seconds: int = Field(default=60, ge=1)
    snapshot_auto_refresh: bool = False
    stale_feed_threshold_sec: int = 120

    # Static GTFS (directory or ZIP holding stops.txt)
    gtfs_static_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GTFS_STATIC_PATH", "GTFS_STATIC_DIR"),
    )

    def missing_required_env(self) -> list[str]:
        """Return required environment variables that are missing or empty."""
        missing: list[str] = []

        if not self.metro_feed_base_url:
            missing.append("METRO_FEED_BASE_URL")
        if not self.tram_feed_base_url:
            missing.append("TRAM_FEED_BASE_URL")

        return missing

    def journey_config(self) -> JourneyConfig:
        """Build the journey timing constants consumed by the matcher."""
        return JourneyConfig(
            tram_ride_minutes=self.tram_ride_minutes,
            platform_change_buffer_minutes=self.platform_change_buffer_minutes,
            train_ride_minutes=self.train_ride_minutes,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
