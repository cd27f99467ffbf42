"""Application configuration helpers."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "True", "yes", "YES", "on")


@dataclass(frozen=True)
class Settings:
    """Holds configuration values for the relay, read once at startup."""

    rcon_host: str = "localhost"
    rcon_port: int = 25575
    rcon_password: str = ""
    rcon_timeout_ms: int = 5000
    websocket_port: int = 8888
    poll_frequency_ms: int = 1000
    debug: bool = False
    log_level: str = "INFO"
    listen_host: str = "0.0.0.0"
    reconnect_delay_ms: int = 3000
    subscriber_send_timeout_ms: int = 5000
    error_threshold: int = 5
    app_version: str = "0.1.0"
    api_version: str = "v1"

    @property
    def rcon_timeout_seconds(self) -> float:
        """Return the remote console request timeout in seconds."""

        return self.rcon_timeout_ms / 1000

    @property
    def poll_interval_seconds(self) -> float:
        """Return the delay between two poll cycles in seconds."""

        return self.poll_frequency_ms / 1000

    @property
    def reconnect_delay_seconds(self) -> float:
        """Return the delay before a scheduled reconnect attempt in seconds."""

        return self.reconnect_delay_ms / 1000

    @property
    def subscriber_send_timeout_seconds(self) -> float:
        """Return how long a subscriber may take to accept one snapshot."""

        return self.subscriber_send_timeout_ms / 1000

    @property
    def api_prefix(self) -> str:
        """Return the URL prefix used for versioned API routes."""

        return f"/api/{self.api_version}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid value %r for %s, using %s", raw, name, default)
        return default


def get_settings() -> Settings:
    """Build the settings from the process environment."""

    debug = os.getenv("DEBUG", "0") in _TRUTHY
    log_level = os.getenv("LOG_LEVEL") or ("DEBUG" if debug else "INFO")
    return Settings(
        rcon_host=os.getenv("RCON_HOST") or "localhost",
        rcon_port=_env_int("RCON_PORT", 25575),
        rcon_password=os.getenv("RCON_PASSWORD", ""),
        rcon_timeout_ms=_env_int("RCON_TIMEOUT", 5000),
        websocket_port=_env_int("WEBSOCKET_PORT", 8888),
        poll_frequency_ms=_env_int("POLL_FREQUENCY", 1000),
        debug=debug,
        log_level=log_level.strip().upper(),
    )
