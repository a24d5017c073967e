"""In-process transport calling a ServerAgent directly."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agent_didauth.protocol.messages import AgentCard, AuthenticationOutcome, TaskResult
from agent_didauth.transport.base import (
    DISPATCH_TASK,
    FETCH_AGENT_CARD,
    REQUEST_CREDENTIAL,
    SUBMIT_PRESENTATION,
    OutgoingRequest,
    Transport,
)

if TYPE_CHECKING:
    from agent_didauth.protocol.server import ServerAgent


class LocalTransport(Transport):
    """Deliver every operation to *server* in the same process.

    Server-side exceptions propagate unchanged. Every prepared request is
    kept in :attr:`sent` so hook behavior can be inspected.
    """

    def __init__(self, server: "ServerAgent") -> None:
        super().__init__()
        self._server = server
        self.sent: list[OutgoingRequest] = []

    def _prepare(self, operation: str, payload: dict[str, Any] | None = None) -> OutgoingRequest:
        request = super()._prepare(operation, payload)
        self.sent.append(request)
        return request

    def fetch_agent_card(self) -> AgentCard:
        self._prepare(FETCH_AGENT_CARD)
        return self._server.fetch_agent_card()

    def submit_presentation(self, token: str) -> AuthenticationOutcome:
        self._prepare(SUBMIT_PRESENTATION, {"vp": token})
        return self._server.submit_presentation(token)

    def request_credential(self, holder_did: str, task_claims: dict[str, Any]) -> str:
        self._prepare(REQUEST_CREDENTIAL, {"holderDID": holder_did, "taskData": task_claims})
        return self._server.request_credential(holder_did, task_claims)

    def dispatch_task(
        self,
        auth_token: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> TaskResult:
        self._prepare(DISPATCH_TASK, {"taskType": action, "taskData": data or {}})
        return self._server.dispatch_task(auth_token, action, data)


__all__ = ["LocalTransport"]
