"""
Wire message variants for the relay protocol.

Every frame is a JSON object tagged by its "kind" field. Inbound frames are
decoded once, at the transport boundary, into one of:

- UsernameRequest ("username"): handled entirely by the server
- ChatMessage ("message"): sanitized, stamped with the sender name, relayed
- OpaqueMessage (any other kind): relayed byte-for-byte, e.g. signaling offers

Outbound server messages are IdAssignment ("id"), RosterMessage ("roster")
and UsernameRejected ("rejectusername"), plus relayed ChatMessage frames.
"""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from ..exceptions import MessageValidationError


class WireMessage(BaseModel):
    """Base for JSON wire messages; unknown fields are preserved for relaying."""

    model_config = ConfigDict(extra="allow")

    kind: str


class IdAssignment(WireMessage):
    """Sent once to a new session with its identifier."""

    kind: Literal["id"] = "id"
    id: int


class RosterMessage(WireMessage):
    """Current display names of every named session."""

    kind: Literal["roster"] = "roster"
    users: list[str]


class UsernameRejected(WireMessage):
    """Tells a requester the name it was actually granted."""

    kind: Literal["rejectusername"] = "rejectusername"
    id: int
    name: str


class UsernameRequest(WireMessage):
    kind: Literal["username"] = "username"
    id: int | str | None = None
    name: str


class ChatMessage(WireMessage):
    kind: Literal["message"] = "message"
    id: int | str | None = None
    text: str
    target: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class OpaqueMessage:
    """
    A message of a kind the server does not interpret.

    The original frame text is kept so it can be relayed unchanged.
    """

    kind: str
    raw: str
    target: str | None = None


InboundMessage = UsernameRequest | ChatMessage | OpaqueMessage

_INBOUND_MODELS: dict[str, type[WireMessage]] = {
    "username": UsernameRequest,
    "message": ChatMessage,
}


def decode_message(payload: dict[str, Any], raw: str) -> InboundMessage:
    """
    Decode a parsed JSON object into its inbound variant.

    Args:
        payload: The parsed frame
        raw: The original frame text, kept for opaque relaying

    Raises:
        MessageValidationError: If the kind is missing or the fields do not fit the variant
    """
    kind = payload.get("kind")
    if not isinstance(kind, str) or not kind:
        raise MessageValidationError("Message must contain a string 'kind' field", error_type="missing_required_field")

    model = _INBOUND_MODELS.get(kind)
    if model is None:
        target = payload.get("target")
        if target is not None and not isinstance(target, str):
            raise MessageValidationError("Field 'target' must be a string", error_type="invalid_target")
        return OpaqueMessage(kind=kind, raw=raw, target=target)

    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as e:
        raise MessageValidationError(
            f"Invalid '{kind}' message: {e.error_count()} field error(s)",
            error_type="schema_validation_failed",
            details={"errors": [err["loc"] for err in e.errors()]},
        ) from e


def encode_message(message: WireMessage) -> str:
    """Serialize a wire message to a JSON text frame, omitting unset optional fields."""
    return message.model_dump_json(exclude_none=True)


def encode_relayed(message: ChatMessage) -> str:
    """
    Serialize a relayed chat message.

    Every field the client sent is kept, nulls included. Only fields the client
    left out are omitted, and name is dropped when the sender has none.
    """
    exclude = {"name"} if message.name is None else None
    return message.model_dump_json(exclude_unset=True, exclude=exclude)
