"""
Inbound frame validation for the relay.

Applies size and JSON depth limits before handing the parsed object to the
wire decoder, so malformed or abusive frames are rejected before routing.
"""

import json
from typing import Any

from ..exceptions import MessageValidationError
from ..structured_logging.enhanced_logging_config import get_logger
from .wire import InboundMessage, decode_message

logger = get_logger(__name__)


class MessageValidator:
    """
    Validates and decodes inbound WebSocket text frames.

    Implements:
    - Frame size limits
    - JSON depth limits
    - UTF-8 encodability of string values
    - Decoding into a wire message variant
    """

    MAX_MESSAGE_SIZE = 64 * 1024
    MAX_JSON_DEPTH = 16

    def __init__(self, max_message_size: int | None = None, max_json_depth: int | None = None):
        """
        Initialize the message validator.

        Args:
            max_message_size: Maximum frame size in bytes (default: 64KB)
            max_json_depth: Maximum JSON nesting depth (default: 16)
        """
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH

    def validate_size(self, data: str) -> None:
        """
        Validate frame size.

        Raises:
            MessageValidationError: If the frame exceeds the size limit
        """
        size = len(data.encode("utf-8", errors="surrogatepass"))
        if size > self.max_message_size:
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type="size_limit_exceeded",
            )

    def validate_json_structure(self, message: Any) -> None:
        """
        Validate the parsed frame is an object within the depth limit.

        Raises:
            MessageValidationError: If the structure is invalid
        """
        if not isinstance(message, dict):
            raise MessageValidationError("Message must be a JSON object", error_type="invalid_type")

        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            raise MessageValidationError(
                f"JSON depth {depth} exceeds maximum {self.max_json_depth}",
                error_type="depth_limit_exceeded",
            )

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        """Calculate the nesting depth of a JSON structure, stopping once past the limit."""
        if current_depth > self.max_json_depth:
            return current_depth

        if isinstance(obj, dict):
            if not obj:
                return current_depth
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            if not obj:
                return current_depth
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def parse_and_validate(self, data: str) -> InboundMessage:
        """
        Parse, validate and decode a complete inbound frame.

        This is the main entry point for frame validation.

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data)

        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            raise MessageValidationError(f"Invalid JSON: {e}", error_type="json_parse_error") from e
        except RecursionError as e:
            raise MessageValidationError("JSON nesting too deep to parse", error_type="depth_limit_exceeded") from e

        self.validate_json_structure(message)
        self.validate_encoding(message)
        return decode_message(message, data)

    def validate_encoding(self, message: dict[str, Any]) -> None:
        """
        Validate the parsed frame can be re-encoded as UTF-8.

        JSON escapes can smuggle in lone surrogates that parse fine but cannot be relayed.

        Raises:
            MessageValidationError: If any string holds an unencodable character
        """
        try:
            json.dumps(message, ensure_ascii=False).encode("utf-8")
        except UnicodeEncodeError as e:
            raise MessageValidationError(
                f"Message contains characters that cannot be encoded: {e.reason}",
                error_type="invalid_encoding",
            ) from e
