"""Tests for agent_didauth.protocol.client — the holder side of the handshake."""
from __future__ import annotations

import pytest

from agent_didauth.errors import (
    IdentityNotFound,
    MissingCredential,
    RemoteRejection,
    VerificationError,
)
from agent_didauth.identity.actor import ActorIdentity
from agent_didauth.identity.directory import IdentityRegistry
from agent_didauth.protocol.client import ClientAgent
from agent_didauth.protocol.messages import AgentCard, SecurityScheme
from agent_didauth.protocol.server import ServerAgent
from agent_didauth.protocol.states import ClientState
from agent_didauth.transport.base import AGENT_DID_HEADER
from agent_didauth.transport.local import LocalTransport


class _CardOverrideTransport(LocalTransport):
    """Local transport that rewrites the agent card before the client sees it."""

    def __init__(self, server: ServerAgent, **changes: object) -> None:
        super().__init__(server)
        self._changes = changes

    def fetch_agent_card(self) -> AgentCard:
        card = super().fetch_agent_card()
        return card.model_copy(update=self._changes)


@pytest.fixture()
def server() -> ServerAgent:
    return ServerAgent(ActorIdentity.generate("server"))


@pytest.fixture()
def client() -> ClientAgent:
    return ClientAgent(ActorIdentity.generate("client"))


@pytest.fixture()
def transport(server: ServerAgent) -> LocalTransport:
    return LocalTransport(server)


class TestAuthenticate:
    def test_successful_handshake(
        self, client: ClientAgent, server: ServerAgent, transport: LocalTransport
    ) -> None:
        session = client.authenticate(transport, {"action": "OrderPizza"})
        assert session.client_did == client.did
        assert session.server_did == server.did
        assert session.action == "OrderPizza"
        assert session.permissions == ["read:menu", "write:order"]
        assert session.token_type == "Bearer"
        assert session.server_verified is True
        assert session.trace is not None
        assert session.trace.names() == [
            "Init",
            "IdentityEstablished",
            "ServerCardFetched",
            "ServerPresentationVerified",
            "CredentialRequested",
            "CredentialReceived",
            "PresentationBuilt",
            "PresentationSent",
            "TokenReceived",
        ]

    def test_every_request_carries_client_did(
        self, client: ClientAgent, transport: LocalTransport
    ) -> None:
        client.authenticate(transport, {"action": "QueryStatus"})
        assert [request.operation for request in transport.sent] == [
            "fetch_agent_card",
            "request_credential",
            "submit_presentation",
        ]
        assert all(request.headers[AGENT_DID_HEADER] == client.did for request in transport.sent)

    def test_hook_registered_once(self, client: ClientAgent, transport: LocalTransport) -> None:
        client.authenticate(transport, {"action": "QueryStatus"})
        client.authenticate(transport, {"action": "QueryStatus"})
        assert len(transport._hooks) == 1

    def test_server_rejection_surfaces_tag(
        self, client: ClientAgent, transport: LocalTransport
    ) -> None:
        with pytest.raises(RemoteRejection) as exc_info:
            client.authenticate(transport, {"action": "DeleteAccount"})
        assert exc_info.value.tag == "PolicyViolation"
        assert "DeleteAccount" in exc_info.value.reason
        trace = client.last_trace
        assert trace is not None
        assert trace.current is ClientState.FAILED
        assert trace.reached(ClientState.PRESENTATION_SENT)
        assert not trace.reached(ClientState.TOKEN_RECEIVED)


class TestServerVerification:
    def test_missing_server_presentation_blocks(
        self, client: ClientAgent, server: ServerAgent
    ) -> None:
        transport = _CardOverrideTransport(server, server_vp=None)
        with pytest.raises(MissingCredential):
            client.authenticate(transport, {"action": "OrderPizza"})
        assert client.last_trace is not None
        assert client.last_trace.names()[-1] == "Failed"
        assert [request.operation for request in transport.sent] == ["fetch_agent_card"]

    def test_presentation_from_other_agent_blocks(
        self, client: ClientAgent, server: ServerAgent
    ) -> None:
        impostor_card = ServerAgent(ActorIdentity.generate("impostor")).fetch_agent_card()
        transport = _CardOverrideTransport(server, server_vp=impostor_card.server_vp)
        with pytest.raises(VerificationError, match="card names"):
            client.authenticate(transport, {"action": "OrderPizza"})

    def test_card_issuer_mismatch_blocks(self, client: ClientAgent, server: ServerAgent) -> None:
        transport = _CardOverrideTransport(
            server,
            security_schemes={"did_auth": SecurityScheme(issuer_did="did:key:zSomeoneElse")},
        )
        with pytest.raises(VerificationError, match="card advertises issuer"):
            client.authenticate(transport, {"action": "OrderPizza"})

    def test_issued_credential_must_come_from_card_issuer(self, server: ServerAgent) -> None:
        client = ClientAgent(ActorIdentity.generate("client"), require_server_verification=False)
        transport = _CardOverrideTransport(
            server,
            security_schemes={"did_auth": SecurityScheme(issuer_did="did:key:zSomeoneElse")},
        )
        with pytest.raises(VerificationError, match="card advertises issuer"):
            client.authenticate(transport, {"action": "OrderPizza"})
        assert client.last_trace is not None
        assert not client.last_trace.reached(ClientState.CREDENTIAL_RECEIVED)

    def test_unknown_server_identity_blocks(self, server: ServerAgent) -> None:
        client = ClientAgent(ActorIdentity.generate("client"), directory=IdentityRegistry())
        with pytest.raises(IdentityNotFound):
            client.authenticate(LocalTransport(server), {"action": "OrderPizza"})

    def test_advisory_mode_proceeds(self, server: ServerAgent) -> None:
        client = ClientAgent(ActorIdentity.generate("client"), require_server_verification=False)
        transport = _CardOverrideTransport(server, server_vp=None)

        session = client.authenticate(transport, {"action": "OrderPizza"})

        assert session.server_verified is False
        assert session.trace is not None
        assert not session.trace.reached(ClientState.SERVER_PRESENTATION_VERIFIED)
        assert session.trace.current is ClientState.TOKEN_RECEIVED


class TestPerformTask:
    def test_runs_session_action(self, client: ClientAgent, transport: LocalTransport) -> None:
        session = client.authenticate(transport, {"action": "OrderPizza"})
        result = client.perform_task(transport, session, data={"menu": "Margherita"})
        assert result.task_type == "OrderPizza"
        assert result.details["menu"] == "Margherita"
        assert transport.sent[-1].operation == "dispatch_task"
        assert transport.sent[-1].headers[AGENT_DID_HEADER] == client.did

    def test_explicit_action(self, client: ClientAgent, transport: LocalTransport) -> None:
        session = client.authenticate(transport, {"action": "OrderPizza"})
        result = client.perform_task(transport, session, action="QueryStatus")
        assert result.details["status"] == "active"
