"""
Tests for ConnectionSession and its lifecycle state machine.
"""

from unittest.mock import Mock

import pytest
from statemachine.exceptions import TransitionNotAllowed

from chatrelay.realtime.session import ConnectionSession, SessionLifecycle


def test_new_session_starts_connecting():
    """Test a fresh session is in the connecting state and unnamed."""
    session = ConnectionSession(session_id=1, send_handle=Mock())

    assert session.state == "connecting"
    assert session.display_name == ""
    assert not session.is_named
    assert not session.is_closed


def test_normal_lifecycle():
    """Test connecting -> unnamed -> named -> named -> closed."""
    lifecycle = SessionLifecycle(session_id=1)

    lifecycle.activate()
    assert lifecycle.current_state.id == "unnamed"

    lifecycle.assign_name()
    assert lifecycle.current_state.id == "named"

    lifecycle.assign_name()
    assert lifecycle.current_state.id == "named"

    lifecycle.close_session()
    assert lifecycle.current_state.id == "closed"


@pytest.mark.parametrize("steps", [[], ["activate"], ["activate", "assign_name"]])
def test_close_from_any_open_state(steps):
    """Test every non-final state can close."""
    lifecycle = SessionLifecycle(session_id=1)
    for step in steps:
        getattr(lifecycle, step)()

    lifecycle.close_session()

    assert lifecycle.current_state.id == "closed"


def test_cannot_name_before_activation():
    """Test naming requires a registered session."""
    lifecycle = SessionLifecycle(session_id=1)

    with pytest.raises(TransitionNotAllowed):
        lifecycle.assign_name()


def test_closed_is_final():
    """Test there is no path back from closed."""
    lifecycle = SessionLifecycle(session_id=1)
    lifecycle.close_session()

    with pytest.raises(TransitionNotAllowed):
        lifecycle.activate()
    with pytest.raises(TransitionNotAllowed):
        lifecycle.assign_name()


def test_session_send_uses_handle():
    """Test frames are pushed through the session's send handle."""
    handle = Mock()
    session = ConnectionSession(session_id=3, send_handle=handle)

    session.send('{"kind":"id","id":3}')

    handle.send.assert_called_once_with('{"kind":"id","id":3}')


def test_sessions_compare_by_identity():
    """Test two sessions with equal fields are still distinct."""
    handle = Mock()

    assert ConnectionSession(session_id=1, send_handle=handle) != ConnectionSession(session_id=1, send_handle=handle)
