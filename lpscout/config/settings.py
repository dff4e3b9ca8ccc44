"""Application settings and configuration management."""

from pathlib import Path

import structlog
import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from ..core.types import FilterThresholds

logger = structlog.get_logger(__name__)


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Feed connection
    feed_url: str = Field(
        default="wss://ws-token-sol-lb.tinyastro.io/cable",
        description="Feed WebSocket URL",
    )
    feed_origin: str | None = Field(
        default="https://photon-sol.tinyastro.io",
        description="Origin header sent with the WebSocket handshake",
    )
    channel: str = Field(
        default="DiscoverLpChannel", description="Channel to subscribe to"
    )

    # Timing
    reconnect_interval_seconds: float = Field(
        default=5.0, ge=0, description="Fixed delay before each reconnect"
    )
    max_reconnect_attempts: int = Field(
        default=10, ge=0, description="Reconnect attempts before giving up"
    )
    keepalive_interval_seconds: float = Field(
        default=30.0, gt=0, description="Keep-alive ping period"
    )
    open_timeout_seconds: float = Field(
        default=10.0, gt=0, description="WebSocket handshake timeout"
    )
    stats_interval_seconds: float = Field(
        default=300.0, gt=0, description="Pipeline statistics log period"
    )

    # Filtering
    thresholds: FilterThresholds = Field(
        default_factory=FilterThresholds, description="Momentum filter thresholds"
    )

    # Notifications
    telegram_bot_token: str | None = Field(
        default=None, description="Telegram bot token"
    )
    telegram_admin_ids: list[int] = Field(
        default_factory=list, description="Telegram admin user IDs"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Render logs as JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "LPSCOUT_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings(yaml_path: str | None = None) -> AppSettings:
    """Load settings from an optional YAML file and environment variables.

    Args:
        yaml_path: Path to YAML configuration file, or None for defaults

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If the YAML cannot be parsed
    """
    if yaml_path is None:
        settings = AppSettings()
        logger.info("Configuration loaded from environment", feed_url=settings.feed_url)
        return settings

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(
                f"Invalid YAML configuration: expected a mapping in {yaml_path}"
            )

        logger.info("Loading configuration", yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            feed_url=settings.feed_url,
            channel=settings.channel,
            max_reconnect_attempts=settings.max_reconnect_attempts,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
