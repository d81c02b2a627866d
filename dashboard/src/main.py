"""
Entrypoint for the wall dashboard service.

Configures structured JSON logging, logs a secret-free config summary and
serves :data:`dashboard.src.api.main.app` with uvicorn. uvicorn's own
logging config is disabled so its access and error records go through the
same JSON handler.

Run with ``wall-dashboard`` or ``python -m dashboard.src.main``.

CHANGELOG:
- 2026-10-06: Initial creation

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import UTC, datetime

import uvicorn

from dashboard.src.config import DashboardSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Route all logging through a single JSON handler on stderr.

    Args:
        level: Root log level name. Unknown names fall back to INFO.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True


def _masked_secret(value: str | None) -> str:
    """Return a short non-reversible fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def log_config_summary(settings: DashboardSettings) -> None:
    """Log a config summary at startup with secrets masked."""
    logger.info(
        "Wall dashboard starting with config: "
        "gateway_host=%s, gateway_username=%s, gateway_password_masked=%s, "
        "poll_interval_s=%s, direct_cache_ttl_s=%s, analytics_interval_s=%s, "
        "sample_retention_days=%s, data_dir=%s, database_url=%s, public_dir=%s, "
        "weather_enabled=%s, temps_enabled=%s, host=%s, port=%s",
        settings.gateway_host,
        settings.gateway_username,
        _masked_secret(settings.gateway_password),
        settings.poll_interval_s,
        settings.direct_cache_ttl_s,
        settings.analytics_interval_s,
        settings.sample_retention_days,
        settings.data_dir,
        settings.database_url,
        settings.public_dir,
        bool(settings.openweather_api_key),
        bool(settings.ambient_app_key and settings.ambient_api_key),
        settings.host,
        settings.port,
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """Load config, set up logging and serve the API until interrupted."""
    settings = DashboardSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    from dashboard.src.api.main import app

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
