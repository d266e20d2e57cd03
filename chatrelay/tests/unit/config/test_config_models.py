"""
Unit tests for configuration models.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from chatrelay.config import get_config, reset_config
from chatrelay.config.models import (
    AppConfig,
    LoggingConfig,
    RelayConfig,
    ServerConfig,
    StaticConfig,
    _parse_env_list,
)


def test_parse_env_list_none():
    """Test parsing None as env list."""
    assert _parse_env_list(None) == []


def test_parse_env_list_empty_string():
    """Test parsing empty string as env list."""
    assert _parse_env_list("") == []


def test_parse_env_list_json():
    """Test parsing JSON list."""
    assert _parse_env_list('["a", "b", "c"]') == ["a", "b", "c"]


def test_parse_env_list_csv():
    """Test parsing CSV list."""
    assert _parse_env_list("a, b, c") == ["a", "b", "c"]


def test_server_config_defaults():
    """Test ServerConfig defaults."""
    with patch.dict(os.environ, {}, clear=True):
        config = ServerConfig()

    assert config.host == "127.0.0.1"
    assert config.port == 3000


def test_server_config_from_env():
    """Test ServerConfig reads SERVER_ variables."""
    with patch.dict(os.environ, {"SERVER_HOST": "0.0.0.0", "SERVER_PORT": "8080"}, clear=False):
        config = ServerConfig()

    assert config.host == "0.0.0.0"
    assert config.port == 8080


@pytest.mark.parametrize("port", [80, 70000])
def test_server_config_invalid_port(port):
    """Test ports outside 1024-65535 are rejected."""
    with pytest.raises(ValidationError):
        ServerConfig(port=port)


def test_logging_config_normalizes_level():
    """Test log levels are upper-cased."""
    assert LoggingConfig(level="debug").level == "DEBUG"


@pytest.mark.parametrize(
    "kwargs",
    [{"environment": "staging"}, {"level": "LOUD"}, {"format": "xml"}],
)
def test_logging_config_invalid_values(kwargs):
    """Test invalid logging settings are rejected."""
    with pytest.raises(ValidationError):
        LoggingConfig(**kwargs)


def test_logging_config_legacy_dict():
    """Test the logging dict shape consumed by setup_enhanced_logging."""
    legacy = LoggingConfig(environment="unit_test", rotation_max_size="5MB").to_legacy_dict()

    assert legacy["environment"] == "unit_test"
    assert legacy["rotation"]["max_size"] == "5MB"


def test_relay_config_defaults():
    """Test RelayConfig defaults."""
    with patch.dict(os.environ, {}, clear=True):
        config = RelayConfig()

    assert config.websocket_path == "/"
    assert config.subprotocol == "json"
    assert config.allowed_origins == []
    assert config.max_message_size == 64 * 1024
    assert config.max_json_depth == 16
    assert config.outbox_max_size == 256


def test_relay_config_allowed_origins_from_env():
    """Test RELAY_ALLOWED_ORIGINS accepts CSV and JSON lists."""
    with patch.dict(os.environ, {"RELAY_ALLOWED_ORIGINS": "http://a.example, http://b.example"}, clear=False):
        assert RelayConfig().allowed_origins == ["http://a.example", "http://b.example"]

    with patch.dict(os.environ, {"RELAY_ALLOWED_ORIGINS": '["http://c.example"]'}, clear=False):
        assert RelayConfig().allowed_origins == ["http://c.example"]


def test_relay_config_rejects_relative_path():
    """Test the WebSocket path must be absolute."""
    with pytest.raises(ValidationError):
        RelayConfig(websocket_path="ws")


def test_relay_config_rejects_zero_limits():
    """Test relay limits must be positive."""
    with pytest.raises(ValidationError):
        RelayConfig(outbox_max_size=0)


def test_static_config_from_env():
    """Test StaticConfig reads STATIC_ variables."""
    with patch.dict(os.environ, {"STATIC_ROOT_DIR": "/srv/www", "STATIC_INDEX_FILE": "home.html"}, clear=False):
        config = StaticConfig()

    assert config.root_dir == "/srv/www"
    assert config.index_file == "home.html"


def test_app_config_legacy_dict():
    """Test the composite config flattens into the legacy dict."""
    legacy = AppConfig().to_legacy_dict()

    assert set(legacy) == {"host", "port", "logging", "relay", "static"}
    assert legacy["relay"]["subprotocol"] == "json"


def test_get_config_returns_fresh_instances_in_tests():
    """Test get_config does not cache under pytest."""
    first = get_config()
    reset_config()
    second = get_config()

    assert isinstance(first, AppConfig)
    assert first is not second
