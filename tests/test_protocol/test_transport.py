"""Tests for agent_didauth.transport — hooks and the httpx-backed transport."""
from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from agent_didauth.errors import RemoteRejection, TransportError, TransportTimeout
from agent_didauth.transport.base import AGENT_DID_HEADER, OutgoingRequest
from agent_didauth.transport.http import HttpTransport

BASE_URL = "http://agent.test"

Handler = Callable[[httpx.Request], httpx.Response]


def _transport(handler: Handler, timeout: float = 10.0) -> HttpTransport:
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpTransport(BASE_URL, timeout=timeout, client=client)


def _stamp(request: OutgoingRequest) -> None:
    request.headers[AGENT_DID_HEADER] = "did:key:zClient"


class TestPreSendHooks:
    def test_hook_headers_reach_the_wire(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"name": "Server", "did": "did:key:zServer"})

        transport = _transport(handler)
        transport.add_pre_send_hook(_stamp)
        card = transport.fetch_agent_card()

        assert card.did == "did:key:zServer"
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/agent-card"
        assert seen[0].headers[AGENT_DID_HEADER] == "did:key:zClient"

    def test_duplicate_hook_ignored(self) -> None:
        transport = _transport(lambda request: httpx.Response(200, json={}))
        transport.add_pre_send_hook(_stamp)
        transport.add_pre_send_hook(_stamp)
        assert len(transport._hooks) == 1


class TestOperations:
    def test_submit_presentation_posts_vp(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "authorized": True,
                    "status": "success",
                    "clientDid": "did:key:zClient",
                    "authToken": "tok",
                    "tokenType": "Bearer",
                    "expiresIn": 3600,
                    "action": "QueryStatus",
                    "permissions": ["read:status"],
                },
            )

        outcome = _transport(handler).submit_presentation("a.b.c")
        assert bodies == [{"vp": "a.b.c"}]
        assert outcome.authorized is True
        assert outcome.auth_token == "tok"
        assert outcome.permissions == ["read:status"]

    def test_forbidden_presentation_is_an_outcome(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403,
                json={"authorized": False, "error": "ReplayDetected", "reason": "seen before"},
            )

        outcome = _transport(handler).submit_presentation("a.b.c")
        assert outcome.authorized is False
        assert outcome.error == "ReplayDetected"

    def test_request_credential_returns_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert request.url.path == "/api/issue-vc"
            assert body == {"holderDID": "did:key:zClient", "taskData": {"action": "OrderPizza"}}
            return httpx.Response(200, json={"vc": "x.y.z", "issuer": "did:key:zIssuer"})

        token = _transport(handler).request_credential("did:key:zClient", {"action": "OrderPizza"})
        assert token == "x.y.z"

    def test_request_credential_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "InvalidRequest", "reason": "no holder"})

        with pytest.raises(RemoteRejection) as exc_info:
            _transport(handler).request_credential("", {})
        assert exc_info.value.tag == "InvalidRequest"

    def test_dispatch_task(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["authToken"] == "tok"
            assert body["taskType"] == "QueryStatus"
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "taskType": "QueryStatus",
                    "details": {"status": "active"},
                    "processingTime": 1.5,
                    "timestamp": "2025-01-15T12:00:00+00:00",
                },
            )

        result = _transport(handler).dispatch_task("tok", "QueryStatus")
        assert result.details == {"status": "active"}
        assert result.processing_time_ms == 1.5

    def test_dispatch_task_unauthorized(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "TokenExpired", "reason": "expired"})

        with pytest.raises(RemoteRejection) as exc_info:
            _transport(handler).dispatch_task("tok", "QueryStatus")
        assert exc_info.value.tag == "TokenExpired"


class TestFailures:
    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransportTimeout):
            _transport(handler, timeout=0.5).fetch_agent_card()

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError, match="failed"):
            _transport(handler).fetch_agent_card()

    def test_non_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>bad gateway</html>")

        with pytest.raises(TransportError, match="non-JSON"):
            _transport(handler).fetch_agent_card()

    def test_card_without_did(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"name": "anonymous"})

        with pytest.raises(TransportError, match="no DID"):
            _transport(handler).fetch_agent_card()

    def test_unexpected_authentication_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": "boom"})

        with pytest.raises(TransportError, match="Unexpected"):
            _transport(handler).submit_presentation("a.b.c")

    def test_context_manager_closes_client(self) -> None:
        client = httpx.Client(
            base_url=BASE_URL,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        with HttpTransport(BASE_URL, client=client):
            pass
        assert client.is_closed
