"""Transport contract between a client agent and a server agent.

A transport carries the four handshake operations. Before anything is
sent, every registered pre-send hook sees the outgoing request and may add
or rewrite headers; the client agent uses this to stamp its DID on each
call.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from agent_didauth.protocol.messages import AgentCard, AuthenticationOutcome, TaskResult

logger = logging.getLogger(__name__)

AGENT_DID_HEADER = "x-agent-did"
PRESENTATION_HEADER = "x-a2a-did-vp"

FETCH_AGENT_CARD = "fetch_agent_card"
SUBMIT_PRESENTATION = "submit_presentation"
REQUEST_CREDENTIAL = "request_credential"
DISPATCH_TASK = "dispatch_task"


@dataclass
class OutgoingRequest:
    """A request about to leave the client.

    Parameters
    ----------
    operation:
        One of the four operation names.
    payload:
        Operation arguments, as they will be serialized.
    headers:
        Mutable header mapping; hooks may add entries.
    """

    operation: str
    payload: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


PreSendHook = Callable[[OutgoingRequest], None]


class Transport(ABC):
    """Abstract base for client-side transports."""

    def __init__(self) -> None:
        self._hooks: list[PreSendHook] = []

    def add_pre_send_hook(self, hook: PreSendHook) -> None:
        """Register *hook*; registering the same hook twice is a no-op."""
        if hook not in self._hooks:
            self._hooks.append(hook)

    def _prepare(self, operation: str, payload: dict[str, Any] | None = None) -> OutgoingRequest:
        request = OutgoingRequest(operation=operation, payload=dict(payload or {}))
        for hook in self._hooks:
            hook(request)
        logger.debug("Sending %s (headers: %s)", operation, sorted(request.headers))
        return request

    @abstractmethod
    def fetch_agent_card(self) -> AgentCard:
        """Return the server's agent card."""

    @abstractmethod
    def submit_presentation(self, token: str) -> AuthenticationOutcome:
        """Submit a presentation and return the server's decision."""

    @abstractmethod
    def request_credential(self, holder_did: str, task_claims: dict[str, Any]) -> str:
        """Ask the server-hosted issuer for a task credential."""

    @abstractmethod
    def dispatch_task(
        self,
        auth_token: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> TaskResult:
        """Run an authorized task."""


__all__ = [
    "AGENT_DID_HEADER",
    "DISPATCH_TASK",
    "FETCH_AGENT_CARD",
    "OutgoingRequest",
    "PRESENTATION_HEADER",
    "PreSendHook",
    "REQUEST_CREDENTIAL",
    "SUBMIT_PRESENTATION",
    "Transport",
]
