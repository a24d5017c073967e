"""HTTP transport speaking to the routes served by :mod:`agent_didauth.server.app`.

Usage
-----
::

    with HttpTransport("http://localhost:3000") as transport:
        session = client.authenticate(transport, {"action": "OrderPizza"})
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from agent_didauth.errors import RemoteRejection, TransportError, TransportTimeout
from agent_didauth.protocol.messages import AgentCard, AuthenticationOutcome, TaskResult
from agent_didauth.transport.base import (
    DISPATCH_TASK,
    FETCH_AGENT_CARD,
    REQUEST_CREDENTIAL,
    SUBMIT_PRESENTATION,
    OutgoingRequest,
    Transport,
)

logger = logging.getLogger(__name__)

_ROUTES: dict[str, tuple[str, str]] = {
    FETCH_AGENT_CARD: ("GET", "/agent-card"),
    SUBMIT_PRESENTATION: ("POST", "/a2a/authenticate"),
    REQUEST_CREDENTIAL: ("POST", "/api/issue-vc"),
    DISPATCH_TASK: ("POST", "/ai/task"),
}


class HttpTransport(Transport):
    """Transport backed by a synchronous :class:`httpx.Client`.

    Parameters
    ----------
    base_url:
        Root URL of the server agent.
    timeout:
        Per-request timeout in seconds.
    client:
        Optional pre-configured client (e.g. with a mock transport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout)

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def fetch_agent_card(self) -> AgentCard:
        _, body = self._send(self._prepare(FETCH_AGENT_CARD))
        if "did" not in body:
            raise TransportError(f"Agent card response has no DID: {body}")
        return AgentCard.model_validate(body)

    def submit_presentation(self, token: str) -> AuthenticationOutcome:
        _, body = self._send(self._prepare(SUBMIT_PRESENTATION, {"vp": token}))
        if "authorized" not in body:
            raise TransportError(f"Unexpected authentication response: {body}")
        return AuthenticationOutcome.model_validate(body)

    def request_credential(self, holder_did: str, task_claims: dict[str, Any]) -> str:
        request = self._prepare(
            REQUEST_CREDENTIAL, {"holderDID": holder_did, "taskData": task_claims}
        )
        status, body = self._send(request)
        if status != 200:
            raise RemoteRejection(str(body.get("error", "TransportError")), str(body.get("reason", "")))
        token = body.get("vc")
        if not isinstance(token, str):
            raise TransportError("Credential response carries no 'vc' token")
        return token

    def dispatch_task(
        self,
        auth_token: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> TaskResult:
        request = self._prepare(
            DISPATCH_TASK,
            {"authToken": auth_token, "taskType": action, "taskData": data or {}},
        )
        status, body = self._send(request)
        if status != 200:
            raise RemoteRejection(str(body.get("error", "TransportError")), str(body.get("reason", "")))
        return TaskResult.model_validate(body)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _send(self, request: OutgoingRequest) -> tuple[int, dict[str, Any]]:
        method, path = _ROUTES[request.operation]
        try:
            if method == "GET":
                response = self._client.get(path, headers=request.headers)
            else:
                response = self._client.post(path, json=request.payload, headers=request.headers)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out after %.1fs", method, path, self._timeout)
            raise TransportTimeout(request.operation, self._timeout, 1) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(
                f"{method} {path} returned non-JSON body (HTTP {response.status_code})"
            ) from exc
        if not isinstance(body, dict):
            raise TransportError(f"{method} {path} returned a non-object body")
        logger.debug("%s %s -> HTTP %d", method, path, response.status_code)
        return response.status_code, body


__all__ = ["HttpTransport"]
