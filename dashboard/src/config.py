"""
Dashboard service configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Deploy-time values (gateway address, credentials, cadences, file locations,
third-party API keys) live here. The user-editable thresholds and display
preferences are a separate JSON document managed by
:mod:`dashboard.src.settings_store`.

CHANGELOG:
- 2026-10-09: Add SAMPLE_RETENTION_DAYS for hourly sample trims
- 2026-10-02: Initial creation

TODO:
- None
"""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class DashboardSettings(BaseSettings):
    """Dashboard backend configuration.

    All values are loaded from environment variables. Required variables
    must be set; optional variables have sensible defaults.

    Attributes:
        gateway_host: Energy gateway IP address / hostname on the local LAN.
        gateway_username: Login user for the gateway (default ``customer``).
        gateway_password: Login password for the gateway.
        gateway_timeout_s: Timeout for every gateway HTTP call.
        poll_interval_s: Seconds between live-stream poll cycles.
        direct_cache_ttl_s: Freshness window for the on-demand endpoint.
        analytics_interval_s: Seconds between hourly analytics roll-ups.
        sample_retention_days: Samples older than this are trimmed.
        data_dir: Directory for JSON documents and the default SQLite file.
        database_url: SQLAlchemy async URL. Derived from data_dir if unset.
        public_dir: Static front-end directory (also watched for hot reload).
        code_watch_interval_s: Seconds between front-end hash checks.
        openweather_api_key: OpenWeather API key; empty disables weather.
        weather_lat: Latitude for weather queries.
        weather_lon: Longitude for weather queries.
        weather_location: Display name for the weather location.
        ambient_app_key: Ambient Weather application key.
        ambient_api_key: Ambient Weather API key.
        host: HTTP bind address.
        port: HTTP bind port.
        log_level: Root log level name.
    """

    gateway_host: str
    gateway_username: str = "customer"
    gateway_password: str
    gateway_timeout_s: float = 5.0
    poll_interval_s: float = 10.0
    direct_cache_ttl_s: float = 15.0
    analytics_interval_s: float = 3600.0
    sample_retention_days: int = 90
    data_dir: str = "data"
    database_url: str = ""
    public_dir: str = "public"
    code_watch_interval_s: float = 2.0
    openweather_api_key: str = ""
    weather_lat: float = 41.48
    weather_lon: float = -75.18
    weather_location: str = "Hawley, US"
    ambient_app_key: str = ""
    ambient_api_key: str = ""
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _default_database_url(self) -> "DashboardSettings":
        """Default database_url to a SQLite file inside data_dir."""
        if not self.database_url:
            db_path = Path(self.data_dir) / "energy-history.db"
            self.database_url = f"sqlite+aiosqlite:///{db_path}"
        return self

    @field_validator("gateway_timeout_s")
    @classmethod
    def gateway_timeout_must_be_positive(cls, v: float) -> float:
        """Validate the gateway timeout is strictly positive."""
        if v <= 0:
            raise ValueError("GATEWAY_TIMEOUT_S must be > 0")
        return v

    @field_validator("poll_interval_s")
    @classmethod
    def poll_interval_must_not_hammer_gateway(cls, v: float) -> float:
        """Validate the poll interval is at least one second.

        The gateway's login-then-query flow is slow; sub-second polling
        only queues work behind the fetch lock.
        """
        if v < 1:
            raise ValueError("POLL_INTERVAL_S must be >= 1")
        return v

    @field_validator("sample_retention_days")
    @classmethod
    def retention_must_be_positive(cls, v: int) -> int:
        """Validate sample retention keeps at least one day."""
        if v < 1:
            raise ValueError("SAMPLE_RETENTION_DAYS must be >= 1")
        return v

    @field_validator("port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate HTTP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @property
    def data_path(self) -> Path:
        """Return data_dir as a Path."""
        return Path(self.data_dir)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
