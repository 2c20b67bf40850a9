"""
Per-connection chat session state.

A session starts HANDSHAKING when the socket opens, becomes REGISTERED once
its credential resolves, and ends CLOSED on disconnect or rejection. The
lifecycle is a python-statemachine FSM so illegal transitions (registering
twice, registering a rejected socket) raise instead of passing silently.
"""

import enum
import uuid
from dataclasses import dataclass, field

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from ..auth.identity import UserIdentity
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class SessionState(enum.Enum):
    HANDSHAKING = "handshaking"
    REGISTERED = "registered"
    CLOSED = "closed"


class SessionStateError(RuntimeError):
    """Raised on an illegal session state transition."""


class SessionLifecycle(StateMachine):
    """
    Lifecycle of one chat connection.

    Transitions:
    - handshaking → registered: identity_resolved
    - handshaking → closed: connection_closed (handshake rejected)
    - registered → closed: connection_closed
    """

    handshaking = State("Handshaking", value=SessionState.HANDSHAKING.value, initial=True)
    registered = State("Registered", value=SessionState.REGISTERED.value)
    closed = State("Closed", value=SessionState.CLOSED.value, final=True)

    identity_resolved = handshaking.to(registered)
    connection_closed = handshaking.to(closed) | registered.to(closed)

    def __init__(self, connection_id: str):
        # Set before super().__init__() because on_enter_state fires for the initial state
        self.connection_id = connection_id
        super().__init__()

    def on_enter_state(self, state: State, event=None, **kwargs) -> None:
        logger.debug(
            "Chat session state transition",
            connection_id=self.connection_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )


@dataclass
class ChatSession:
    """One live real-time connection and the identity bound to it."""

    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    identity: UserIdentity | None = None
    display_name: str | None = None
    color: str | None = None
    lifecycle: SessionLifecycle = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.lifecycle = SessionLifecycle(self.connection_id)

    @property
    def state(self) -> SessionState:
        return SessionState(self.lifecycle.current_state_value)

    @property
    def is_registered(self) -> bool:
        return self.lifecycle.registered.is_active

    @property
    def is_closed(self) -> bool:
        return self.lifecycle.closed.is_active

    def register(self, identity: UserIdentity, color: str) -> None:
        try:
            self.lifecycle.identity_resolved()
        except TransitionNotAllowed as e:
            raise SessionStateError(f"Cannot register a session in state {self.state.value}") from e
        self.identity = identity
        self.display_name = identity.display_name
        self.color = color

    def close(self) -> bool:
        """Move to CLOSED. Returns False if the session was already closed."""
        if self.is_closed:
            return False
        self.lifecycle.connection_closed()
        return True
