"""
Tests for the ChatRelay exception hierarchy.
"""

from chatrelay.exceptions import (
    ChatRelayError,
    ErrorContext,
    MessageValidationError,
    SessionIdCollisionError,
)


def test_error_to_dict_includes_context():
    """Test errors serialize with their context for structured logging."""
    error = ChatRelayError("boom", context=ErrorContext(session_id=3, kind="message"), details={"a": 1})

    assert error.to_dict() == {
        "error_type": "ChatRelayError",
        "message": "boom",
        "context": {"session_id": 3, "kind": "message", "metadata": {}},
        "details": {"a": 1},
    }


def test_validation_error_records_error_type():
    """Test the validation category is kept on the error and in its details."""
    error = MessageValidationError("bad frame", error_type="json_parse_error")

    assert isinstance(error, ChatRelayError)
    assert error.error_type == "json_parse_error"
    assert error.details == {"error_type": "json_parse_error"}
    assert str(error) == "bad frame"


def test_validation_error_default_type():
    """Test the default validation category."""
    assert MessageValidationError("bad").error_type == "validation_error"


def test_session_id_collision_message():
    """Test the collision error names the identifier."""
    error = SessionIdCollisionError(9)

    assert error.session_id == 9
    assert "9" in error.message
