"""
Message routing for the relay.

The router receives connect, frame and disconnect events from the transport
adapter and decides, per event, who gets what: the sender alone, one named
target, or every registered session.

None of the entry points await. Each event, including every registry
mutation and every frame it queues, completes before the event loop can run
another connection's handler, so the registry is never observed half-updated
and competing name requests resolve in arrival order.
"""

from collections.abc import Callable
from typing import Any

from ..exceptions import MessageValidationError
from ..structured_logging.enhanced_logging_config import get_logger
from .message_validator import MessageValidator
from .name_allocator import NameAllocator
from .session import ConnectionSession, SendHandle
from .session_registry import SessionRegistry
from .text_sanitizer import strip_tags
from .wire import (
    ChatMessage,
    IdAssignment,
    InboundMessage,
    OpaqueMessage,
    RosterMessage,
    UsernameRejected,
    UsernameRequest,
    WireMessage,
    encode_message,
    encode_relayed,
)

logger = get_logger(__name__)


class MessageRouter:
    """
    Routes relay events.

    | kind           | action                                                   |
    |----------------|----------------------------------------------------------|
    | connect        | register session, send identity to it alone              |
    | "username"     | allocate name, notify on rename, broadcast roster        |
    | "message"      | sanitize text, stamp sender name, deliver by target rule |
    | any other kind | relay the original frame by target rule                  |
    | disconnect     | unregister session, broadcast roster                     |

    Target rule: a non-empty target delivers to that one named session (or
    nowhere if the name is not registered); otherwise every registered
    session receives the frame, the sender included.
    """

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        allocator: NameAllocator | None = None,
        validator: MessageValidator | None = None,
    ) -> None:
        self.registry = registry or SessionRegistry()
        self.allocator = allocator or NameAllocator()
        self.validator = validator or MessageValidator()
        self._handlers: dict[type, Callable[[ConnectionSession, Any], None]] = {
            UsernameRequest: self._handle_username,
            ChatMessage: self._handle_chat,
            OpaqueMessage: self._handle_opaque,
        }

    def connect(self, send_handle: SendHandle) -> ConnectionSession:
        """Register a new connection and send it its identity."""
        session = self.registry.create(send_handle)
        session.lifecycle.activate()
        self._send(session, IdAssignment(id=session.session_id))
        logger.info("Session connected", session_id=session.session_id, active_sessions=len(self.registry))
        return session

    def handle_frame(self, session: ConnectionSession, frame: str) -> None:
        """Validate, decode and route one inbound text frame. Malformed frames are dropped."""
        try:
            message = self.validator.parse_and_validate(frame)
        except MessageValidationError as e:
            logger.warning(
                "Dropping malformed frame",
                session_id=session.session_id,
                error_type=e.error_type,
                error=e.to_dict(),
            )
            return
        self.route(session, message)

    def route(self, session: ConnectionSession, message: InboundMessage) -> None:
        """Route one decoded message from its originating session."""
        if self.registry.find_by_id(session.session_id) is not session:
            logger.debug("Ignoring message from unregistered session", session_id=session.session_id)
            return
        self._handlers[type(message)](session, message)

    def disconnect(self, session_id: int, code: int | None = None, reason: str = "") -> None:
        """Unregister a session and tell everyone left. Unknown ids are a no-op."""
        session = self.registry.remove(session_id)
        if session is None:
            return

        session.lifecycle.close_session()
        session.send_handle.close()
        logger.info(
            "Session disconnected",
            session_id=session_id,
            display_name=session.display_name,
            code=code,
            reason=reason,
            active_sessions=len(self.registry),
        )
        self.broadcast_roster()

    def broadcast_roster(self) -> None:
        """Send a freshly built roster to every registered session."""
        self._broadcast(encode_message(RosterMessage(users=self.registry.snapshot_names())))

    def _handle_username(self, session: ConnectionSession, message: UsernameRequest) -> None:
        allocation = self.allocator.allocate(message.name, self.registry, requester=session)
        if allocation.changed:
            self._send(session, UsernameRejected(id=session.session_id, name=allocation.granted))

        previous = session.display_name
        self.registry.rename(session, allocation.granted)
        session.lifecycle.assign_name()
        logger.info(
            "Display name set",
            session_id=session.session_id,
            requested=message.name,
            granted=allocation.granted,
            previous=previous or None,
        )
        self.broadcast_roster()

    def _handle_chat(self, session: ConnectionSession, message: ChatMessage) -> None:
        relayed = message.model_copy(
            update={"text": strip_tags(message.text), "name": session.display_name or None}
        )
        self._dispatch(session, message.target, encode_relayed(relayed), kind=message.kind)

    def _handle_opaque(self, session: ConnectionSession, message: OpaqueMessage) -> None:
        self._dispatch(session, message.target, message.raw, kind=message.kind)

    def _dispatch(self, sender: ConnectionSession, target: str | None, frame: str, *, kind: str) -> None:
        """Apply the target rule to an already encoded frame."""
        if not target:
            self._broadcast(frame)
            return

        recipient = self.registry.find_by_name(target)
        if recipient is None:
            logger.debug("Dropping message for unknown target", session_id=sender.session_id, kind=kind, target=target)
            return
        self._deliver(recipient, frame)

    def _send(self, session: ConnectionSession, message: WireMessage) -> None:
        self._deliver(session, encode_message(message))

    def _broadcast(self, frame: str) -> None:
        for session in self.registry.sessions():
            self._deliver(session, frame)

    @staticmethod
    def _deliver(session: ConnectionSession, frame: str) -> None:
        try:
            session.send(frame)
        except Exception as e:  # noqa: BLE001 - one bad handle must not abort a fan-out
            logger.error(
                "Error delivering frame",
                session_id=session.session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
