"""
Tests for the application factory and lifespan.
"""

from unittest.mock import Mock

from fastapi.testclient import TestClient

from chatrelay.app.factory import create_app
from chatrelay.config.models import AppConfig, RelayConfig
from chatrelay.realtime.message_router import MessageRouter
from chatrelay.realtime.session_registry import SessionRegistry


def test_create_app_wires_relay_services():
    """Test the relay services are shared through app.state."""
    config = AppConfig(relay=RelayConfig(max_message_size=1024, max_json_depth=8))

    app = create_app(config)

    assert app.state.config is config
    assert isinstance(app.state.session_registry, SessionRegistry)
    assert isinstance(app.state.message_router, MessageRouter)
    assert app.state.message_router.registry is app.state.session_registry
    assert app.state.message_router.allocator is app.state.name_allocator
    assert app.state.message_validator.max_message_size == 1024
    assert app.state.message_validator.max_json_depth == 8


def test_create_app_loads_config_when_omitted():
    """Test create_app falls back to get_config()."""
    app = create_app()

    assert isinstance(app.state.config, AppConfig)


def test_each_app_has_its_own_registry():
    """Test registries are owned per app, not shared globally."""
    first = create_app(AppConfig())
    second = create_app(AppConfig())

    assert first.state.session_registry is not second.state.session_registry


def test_lifespan_closes_remaining_outboxes():
    """Test shutdown closes the send handle of every registered session."""
    app = create_app(AppConfig())
    handle = Mock()

    with TestClient(app):
        app.state.message_router.connect(handle)

    handle.close.assert_called_once()
