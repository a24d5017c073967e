"""Tests for agent_didauth.server.app — HTTP handler integration."""
from __future__ import annotations

import threading
from collections.abc import Iterator

import httpx
import pytest

from agent_didauth.errors import RemoteRejection
from agent_didauth.identity.actor import ActorIdentity
from agent_didauth.presentation.builder import PresentationBuilder
from agent_didauth.protocol.client import ClientAgent
from agent_didauth.protocol.server import ServerAgent
from agent_didauth.server import routes
from agent_didauth.server.app import create_server
from agent_didauth.transport.base import PRESENTATION_HEADER
from agent_didauth.transport.http import HttpTransport


@pytest.fixture(autouse=True)
def reset_server_state() -> None:
    """Reset module-level state before each test."""
    routes.reset_state()


@pytest.fixture()
def agent() -> ServerAgent:
    return ServerAgent(ActorIdentity.generate("server"))


@pytest.fixture()
def base_url(agent: ServerAgent) -> Iterator[str]:
    server = create_server(port=0, agent=agent)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


class TestDIDAuthHandlerGet:
    def test_health(self, base_url: str, agent: ServerAgent) -> None:
        response = httpx.get(f"{base_url}/health")
        assert response.status_code == 200
        assert response.json()["did"] == agent.did

    def test_well_known_card(self, base_url: str, agent: ServerAgent) -> None:
        response = httpx.get(f"{base_url}/.well-known/agent.json")
        assert response.status_code == 200
        assert response.json()["did"] == agent.did

    def test_unknown_route(self, base_url: str) -> None:
        response = httpx.get(f"{base_url}/nowhere")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"


class TestDIDAuthHandlerPost:
    def test_invalid_json(self, base_url: str) -> None:
        response = httpx.post(
            f"{base_url}/a2a/authenticate",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidJSON"

    def test_non_object_body(self, base_url: str) -> None:
        response = httpx.post(f"{base_url}/ai/task", json=[1, 2, 3])
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidJSON"

    def test_unknown_route(self, base_url: str) -> None:
        response = httpx.post(f"{base_url}/nowhere", json={})
        assert response.status_code == 404

    def test_authenticate_without_presentation(self, base_url: str) -> None:
        response = httpx.post(f"{base_url}/a2a/authenticate", json={})
        assert response.status_code == 401
        assert response.json()["authorized"] is False


class TestHandshakeOverHttp:
    def test_full_handshake_and_task(self, base_url: str, agent: ServerAgent) -> None:
        client = ClientAgent(ActorIdentity.generate("client"))
        with HttpTransport(base_url, timeout=5.0) as transport:
            session = client.authenticate(transport, {"action": "OrderPizza"})
            result = client.perform_task(transport, session, data={"menu": "Hawaiian"})

        assert session.server_did == agent.did
        assert session.permissions == ["read:menu", "write:order"]
        assert result.task_type == "OrderPizza"
        assert result.details["menu"] == "Hawaiian"

    def test_presentation_in_header(self, base_url: str, agent: ServerAgent) -> None:
        identity = ActorIdentity.generate("client")
        credential = agent.request_credential(identity.did, {"action": "QueryStatus"})
        vp = PresentationBuilder().build_presentation(
            [credential], identity.did, identity, audience=agent.did
        )
        response = httpx.post(
            f"{base_url}/a2a/authenticate", json={}, headers={PRESENTATION_HEADER: vp}
        )
        assert response.status_code == 200
        assert response.json()["clientDid"] == identity.did

    def test_rejection_over_http(self, base_url: str) -> None:
        client = ClientAgent(ActorIdentity.generate("client"))
        with HttpTransport(base_url, timeout=5.0) as transport:
            with pytest.raises(RemoteRejection) as exc_info:
                client.authenticate(transport, {"action": "DeleteAccount"})
        assert exc_info.value.tag == "PolicyViolation"
