"""
Connection session model and its lifecycle state machine.

A ConnectionSession exists for every active client connection. It holds the
session identity, the current display name and the handle used to push
frames to that one client.
"""

from dataclasses import dataclass, field
from typing import Protocol

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class SendHandle(Protocol):
    """Capability to push outbound frames to a single connection."""

    def send(self, frame: str) -> None:
        """Queue one frame for delivery. Must never raise on a dead connection."""

    def close(self) -> None:
        """Invalidate the handle; later sends are dropped."""


class SessionLifecycle(StateMachine):
    """
    Lifecycle of one relay session.

    States:
    - connecting: transport accepted, not yet in the registry
    - unnamed: registered and identity assigned, no display name yet
    - named: holds a display name
    - closed: disconnected (final)

    Transitions:
    - connecting -> unnamed: activate
    - unnamed -> named, named -> named: assign_name
    - connecting/unnamed/named -> closed: close_session
    """

    connecting = State("Connecting", initial=True)
    unnamed = State("Unnamed")
    named = State("Named")
    closed = State("Closed", final=True)

    activate = connecting.to(unnamed)
    assign_name = unnamed.to(named) | named.to.itself()
    close_session = connecting.to(closed) | unnamed.to(closed) | named.to(closed)

    def __init__(self, session_id: int):
        # Set before super().__init__() because entering the initial state fires on_enter_state
        self.session_id = session_id
        super().__init__()

    def on_enter_state(self, target: State, event: str | None = None) -> None:
        """Log every state transition."""
        logger.debug(
            "Session state transition",
            session_id=self.session_id,
            trigger_event=str(event) if event else "initial",
            to_state=target.id,
        )


@dataclass(eq=False)
class ConnectionSession:
    """
    One connected client.

    session_id is assigned once by the registry and never changes. display_name
    is empty until the first accepted username request; only the registry may
    change it, so the name index stays consistent.
    """

    session_id: int
    send_handle: SendHandle
    display_name: str = ""
    lifecycle: SessionLifecycle = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.lifecycle = SessionLifecycle(self.session_id)

    @property
    def state(self) -> str:
        """Current lifecycle state id."""
        return self.lifecycle.current_state.id

    @property
    def is_named(self) -> bool:
        return self.state == "named"

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"

    def send(self, frame: str) -> None:
        """Push one encoded frame to this session."""
        self.send_handle.send(frame)
