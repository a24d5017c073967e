"""Tests for agent_didauth.protocol — states, replay cache and task dispatch."""
from __future__ import annotations

import datetime

import pytest

from agent_didauth.errors import PolicyViolation, ReplayDetected
from agent_didauth.protocol.messages import AgentCard, AuthenticationOutcome, SecurityScheme
from agent_didauth.protocol.replay import ReplayCache
from agent_didauth.protocol.states import (
    ClientState,
    HandshakeClosedError,
    HandshakeTrace,
    ServerState,
)
from agent_didauth.protocol.tasks import TaskDispatcher

T0 = datetime.datetime(2025, 1, 15, 12, 0, 0, tzinfo=datetime.timezone.utc)


class _Clock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += datetime.timedelta(seconds=seconds)


class TestHandshakeTrace:
    def test_starts_in_initial_state(self) -> None:
        trace = HandshakeTrace(ServerState.AWAITING_PRESENTATION)
        assert trace.current is ServerState.AWAITING_PRESENTATION
        assert trace.rejected is False

    def test_advance_records_order(self) -> None:
        trace = HandshakeTrace(ServerState.AWAITING_PRESENTATION)
        trace.advance(ServerState.PRESENTATION_VERIFIED)
        trace.advance(ServerState.REVOCATION_CHECKED)
        assert trace.names() == ["AwaitingPresentation", "PresentationVerified", "RevocationChecked"]
        assert trace.reached(ServerState.PRESENTATION_VERIFIED)
        assert not trace.reached(ServerState.TOKEN_ISSUED)

    def test_server_rejection_is_terminal(self) -> None:
        trace = HandshakeTrace(ServerState.AWAITING_PRESENTATION)
        trace.reject(PolicyViolation(["Action not allowed: DeleteAccount"]))
        assert trace.current is ServerState.REJECTED
        assert trace.error_tag == "PolicyViolation"
        with pytest.raises(HandshakeClosedError):
            trace.advance(ServerState.TOKEN_ISSUED)

    def test_client_failure_state(self) -> None:
        trace = HandshakeTrace(ClientState.INIT)
        trace.reject(ReplayDetected("urn:uuid:1"))
        assert trace.current is ClientState.FAILED
        assert "urn:uuid:1" in (trace.reason or "")

    def test_second_reject_keeps_first_error(self) -> None:
        trace = HandshakeTrace(ClientState.INIT)
        trace.reject(ReplayDetected("urn:uuid:1"))
        trace.reject(PolicyViolation(["other"]))
        assert trace.error_tag == "ReplayDetected"
        assert trace.names().count("Failed") == 1

    def test_trace_ids_are_unique(self) -> None:
        assert HandshakeTrace(ClientState.INIT).trace_id != HandshakeTrace(ClientState.INIT).trace_id


class TestReplayCache:
    def test_first_use_accepted_second_rejected(self) -> None:
        cache = ReplayCache(ttl_seconds=60, clock=_Clock())
        cache.check_and_remember("urn:uuid:a")
        assert "urn:uuid:a" in cache
        with pytest.raises(ReplayDetected):
            cache.check_and_remember("urn:uuid:a")

    def test_entries_expire(self) -> None:
        clock = _Clock()
        cache = ReplayCache(ttl_seconds=60, clock=clock)
        cache.check_and_remember("urn:uuid:a")
        clock.advance(61)
        assert len(cache) == 0
        cache.check_and_remember("urn:uuid:a")

    def test_entry_kept_through_exact_ttl(self) -> None:
        clock = _Clock()
        cache = ReplayCache(ttl_seconds=60, clock=clock)
        cache.check_and_remember("urn:uuid:a")
        clock.advance(60)
        assert "urn:uuid:a" in cache
        with pytest.raises(ReplayDetected):
            cache.check_and_remember("urn:uuid:a")

    def test_distinct_ids_independent(self) -> None:
        cache = ReplayCache(ttl_seconds=60, clock=_Clock())
        cache.check_and_remember("urn:uuid:a")
        cache.check_and_remember("urn:uuid:b")
        assert len(cache) == 2


class TestTaskDispatcher:
    def test_order_pizza(self) -> None:
        result = TaskDispatcher(clock=_Clock()).dispatch("OrderPizza", {"menu": "Margherita"})
        assert result.success is True
        assert result.task_type == "OrderPizza"
        assert result.details["menu"] == "Margherita"
        assert result.details["orderId"].startswith("ORD-")
        assert result.details["price"] == 25000
        assert result.timestamp == T0.isoformat()

    def test_query_status(self) -> None:
        result = TaskDispatcher(clock=_Clock()).dispatch("QueryStatus")
        assert result.details == {"status": "active", "lastUpdate": T0.isoformat()}

    def test_update_profile(self) -> None:
        result = TaskDispatcher().dispatch("UpdateProfile", {"email": "a@b.c", "name": "A"})
        assert result.details == {"updated": True, "fields": ["email", "name"]}

    def test_unknown_action_echoed(self) -> None:
        result = TaskDispatcher().dispatch("Dance")
        assert result.details == {"message": "Unknown task type", "received": "Dance"}

    def test_register_custom_handler(self) -> None:
        dispatcher = TaskDispatcher()
        dispatcher.register("Ping", lambda data: {"pong": True})
        assert "Ping" in dispatcher.actions()
        assert dispatcher.dispatch("Ping").details == {"pong": True}

    def test_wire_form_uses_aliases(self) -> None:
        wire = TaskDispatcher().dispatch("QueryStatus").to_wire()
        assert wire["taskType"] == "QueryStatus"
        assert "processingTime" in wire


class TestMessages:
    def test_agent_card_wire_aliases(self) -> None:
        card = AgentCard(
            name="Server",
            did="did:key:zServer",
            server_vp="a.b.c",
            security_schemes={"did_auth": SecurityScheme(issuer_did="did:key:zIssuer")},
        )
        wire = card.to_wire()
        assert wire["serverVP"] == "a.b.c"
        assert wire["securitySchemes"]["did_auth"]["issuerDID"] == "did:key:zIssuer"
        assert AgentCard.model_validate(wire).issuer_did == "did:key:zIssuer"

    def test_rejected_outcome_wire_form(self) -> None:
        outcome = AuthenticationOutcome.rejected(PolicyViolation(["Action not allowed: X"]))
        assert outcome.to_wire() == {
            "authorized": False,
            "error": "PolicyViolation",
            "reason": "Policy violation: Action not allowed: X",
        }

    def test_success_outcome_wire_form(self) -> None:
        outcome = AuthenticationOutcome(
            authorized=True,
            client_did="did:key:zClient",
            auth_token="tok",
            token_type="Bearer",
            expires_in=3600,
            action="QueryStatus",
            permissions=["read:status"],
        )
        wire = outcome.to_wire()
        assert wire["status"] == "success"
        assert wire["clientDid"] == "did:key:zClient"
        assert wire["authToken"] == "tok"
        assert "error" not in wire
        assert AuthenticationOutcome.model_validate(wire).auth_token == "tok"
