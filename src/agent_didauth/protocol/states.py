"""Handshake states and the per-attempt trace of transitions."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from agent_didauth.errors import AuthenticationError


class ServerState(str, Enum):
    """Relying-party side of the handshake."""

    AWAITING_CARD = "AwaitingCard"
    CARD_SERVED = "CardServed"
    AWAITING_PRESENTATION = "AwaitingPresentation"
    PRESENTATION_VERIFIED = "PresentationVerified"
    REVOCATION_CHECKED = "RevocationChecked"
    POLICY_CHECKED = "PolicyChecked"
    AUTHORIZED = "Authorized"
    TOKEN_ISSUED = "TokenIssued"
    REJECTED = "Rejected"


class ClientState(str, Enum):
    """Holder side of the handshake."""

    INIT = "Init"
    IDENTITY_ESTABLISHED = "IdentityEstablished"
    SERVER_CARD_FETCHED = "ServerCardFetched"
    SERVER_PRESENTATION_VERIFIED = "ServerPresentationVerified"
    CREDENTIAL_REQUESTED = "CredentialRequested"
    CREDENTIAL_RECEIVED = "CredentialReceived"
    PRESENTATION_BUILT = "PresentationBuilt"
    PRESENTATION_SENT = "PresentationSent"
    TOKEN_RECEIVED = "TokenReceived"
    FAILED = "Failed"


State = Union[ServerState, ClientState]

_TERMINAL_FAILURES: frozenset[State] = frozenset({ServerState.REJECTED, ClientState.FAILED})


class HandshakeClosedError(RuntimeError):
    """Raised when a transition is attempted after a terminal failure."""


@dataclass
class HandshakeTrace:
    """Ordered record of the states one handshake attempt went through.

    Once :meth:`reject` has been called the trace is closed: further
    :meth:`advance` calls raise :class:`HandshakeClosedError`.

    Parameters
    ----------
    initial:
        The first state of the attempt.
    subject:
        DID of the peer, once its signature has been verified.
    """

    initial: State
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    subject: str | None = None
    states: list[State] = field(default_factory=list)
    error_tag: str | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if not self.states:
            self.states.append(self.initial)

    @property
    def current(self) -> State:
        return self.states[-1]

    @property
    def rejected(self) -> bool:
        return self.current in _TERMINAL_FAILURES

    def advance(self, state: State) -> None:
        if self.rejected:
            raise HandshakeClosedError(
                f"Handshake {self.trace_id} already ended in {self.current.value}"
            )
        self.states.append(state)

    def reject(self, error: AuthenticationError) -> None:
        """Move to the terminal failure state for this side."""
        if self.rejected:
            return
        terminal = ServerState.REJECTED if isinstance(self.initial, ServerState) else ClientState.FAILED
        self.states.append(terminal)
        self.error_tag = error.tag
        self.reason = error.reason

    def reached(self, state: State) -> bool:
        return state in self.states

    def names(self) -> list[str]:
        return [state.value for state in self.states]


__all__ = [
    "ClientState",
    "HandshakeClosedError",
    "HandshakeTrace",
    "ServerState",
]
