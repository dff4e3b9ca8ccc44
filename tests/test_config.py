"""Tests for configuration management."""

import os
import tempfile

import pytest
from pydantic import ValidationError

from lpscout.config.settings import AppSettings, load_settings
from lpscout.core.types import FilterThresholds


def write_yaml(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write(content)
        return f.name


def test_app_settings_defaults() -> None:
    """Test that AppSettings has correct defaults."""
    settings = AppSettings()

    assert settings.feed_url == "wss://ws-token-sol-lb.tinyastro.io/cable"
    assert settings.feed_origin == "https://photon-sol.tinyastro.io"
    assert settings.channel == "DiscoverLpChannel"
    assert settings.reconnect_interval_seconds == 5.0
    assert settings.max_reconnect_attempts == 10
    assert settings.keepalive_interval_seconds == 30.0
    assert settings.open_timeout_seconds == 10.0
    assert settings.thresholds == FilterThresholds()
    assert settings.telegram_bot_token is None
    assert settings.telegram_admin_ids == []
    assert settings.log_level == "INFO"
    assert settings.log_json is False


def test_app_settings_custom_values() -> None:
    """Test that AppSettings can be customized."""
    settings = AppSettings(
        feed_url="wss://feed.example.com/cable",
        channel="OtherChannel",
        max_reconnect_attempts=3,
        thresholds={"min_volume": 7500, "min_volume_mcap_ratio": 0.2},
        telegram_admin_ids=[123456789],
    )

    assert settings.feed_url == "wss://feed.example.com/cable"
    assert settings.channel == "OtherChannel"
    assert settings.max_reconnect_attempts == 3
    assert settings.thresholds.min_volume == 7500
    assert settings.thresholds.min_volume_mcap_ratio == 0.2
    # Unspecified thresholds keep their defaults
    assert settings.thresholds.min_market_cap == 40000
    assert settings.telegram_admin_ids == [123456789]


def test_app_settings_validation() -> None:
    """Test that AppSettings validates values."""
    with pytest.raises(ValidationError):
        AppSettings(max_reconnect_attempts=-1)

    with pytest.raises(ValidationError):
        AppSettings(keepalive_interval_seconds=0)

    with pytest.raises(ValidationError):
        AppSettings(thresholds={"max_top_holders_percent": 150})


def test_app_settings_env_override(monkeypatch) -> None:
    """Test environment variables feed settings."""
    monkeypatch.setenv("LPSCOUT_CHANNEL", "EnvChannel")
    monkeypatch.setenv("LPSCOUT_TELEGRAM_BOT_TOKEN", "env_token")

    settings = AppSettings()

    assert settings.channel == "EnvChannel"
    assert settings.telegram_bot_token == "env_token"


def test_thresholds_are_immutable() -> None:
    """Test thresholds cannot be changed at runtime."""
    settings = AppSettings()

    with pytest.raises(ValidationError):
        settings.thresholds.min_volume = 1


def test_load_settings_from_yaml() -> None:
    """Test loading a YAML configuration file."""
    yaml_path = write_yaml("""
        feed_url: "wss://feed.example.com/cable"
        channel: "DiscoverLpChannel"
        reconnect_interval_seconds: 2.5
        max_reconnect_attempts: 4
        keepalive_interval_seconds: 15
        thresholds:
          min_market_cap: 50000
          max_market_cap: 400000
          min_volume: 6000
        log_level: "DEBUG"
        """)

    try:
        settings = load_settings(yaml_path)

        assert settings.feed_url == "wss://feed.example.com/cable"
        assert settings.reconnect_interval_seconds == 2.5
        assert settings.max_reconnect_attempts == 4
        assert settings.keepalive_interval_seconds == 15
        assert settings.thresholds.min_market_cap == 50000
        assert settings.thresholds.max_market_cap == 400000
        assert settings.thresholds.min_volume == 6000
        assert settings.thresholds.min_buy_sell_ratio == 1.2
        assert settings.log_level == "DEBUG"
    finally:
        os.unlink(yaml_path)


def test_load_settings_without_file() -> None:
    """Test loading with no file uses defaults."""
    settings = load_settings(None)
    assert settings.channel == "DiscoverLpChannel"


def test_load_settings_empty_file() -> None:
    """Test an empty YAML file yields defaults."""
    yaml_path = write_yaml("")

    try:
        settings = load_settings(yaml_path)
        assert settings.max_reconnect_attempts == 10
    finally:
        os.unlink(yaml_path)


def test_load_settings_file_not_found() -> None:
    """Test that load_settings handles missing files."""
    with pytest.raises(FileNotFoundError):
        load_settings("/nonexistent/config.yaml")


def test_load_settings_invalid_yaml() -> None:
    """Test that load_settings handles invalid YAML."""
    yaml_path = write_yaml("feed_url: [unclosed\n  - : :")

    try:
        with pytest.raises(ValueError, match="Invalid YAML configuration"):
            load_settings(yaml_path)
    finally:
        os.unlink(yaml_path)


def test_load_settings_non_mapping_yaml() -> None:
    """Test that a YAML list is rejected."""
    yaml_path = write_yaml("- one\n- two\n")

    try:
        with pytest.raises(ValueError, match="expected a mapping"):
            load_settings(yaml_path)
    finally:
        os.unlink(yaml_path)


def test_load_settings_validation_error() -> None:
    """Test that load_settings surfaces validation errors."""
    yaml_path = write_yaml("max_reconnect_attempts: -5\n")

    try:
        with pytest.raises(ValidationError):
            load_settings(yaml_path)
    finally:
        os.unlink(yaml_path)


def test_shipped_default_config() -> None:
    """Test the shipped configuration file loads."""
    config_path = os.path.join(
        os.path.dirname(__file__), "..", "configs", "default.yaml"
    )
    settings = load_settings(config_path)

    assert settings.thresholds == FilterThresholds()
    assert settings.max_reconnect_attempts == 10
