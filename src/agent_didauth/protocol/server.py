"""ServerAgent — the relying-party side of the mutual DID handshake.

Handshake
---------
::

    AwaitingCard → CardServed                          (fetch_agent_card)
    AwaitingPresentation → PresentationVerified        (submit_presentation)
        → RevocationChecked → PolicyChecked → Authorized → TokenIssued

Any failing step moves the attempt to ``Rejected`` and no later step runs.
The order is fixed: revocation and compliance are only evaluated on a
presentation whose signature chain has already verified, and a token is
only issued after all three passed.

Each call to :meth:`ServerAgent.submit_presentation` is an independent
attempt with its own :class:`~agent_didauth.protocol.states.HandshakeTrace`;
the agent itself only holds immutable configuration plus the replay cache.
"""
from __future__ import annotations

import logging
from typing import Any

from agent_didauth._time import Clock, to_epoch, utcnow
from agent_didauth.audit import HandshakeAuditLog
from agent_didauth.config import Settings
from agent_didauth.credentials.issuer import CredentialIssuer
from agent_didauth.credentials.models import VerifiedPresentation
from agent_didauth.errors import (
    AuthenticationError,
    CredentialExpired,
    PolicyViolation,
    RevocationDetected,
)
from agent_didauth.identity.actor import ActorIdentity
from agent_didauth.identity.directory import (
    DIDKeyResolver,
    IdentityDirectory,
    call_with_timeout,
)
from agent_didauth.policy.engine import CLOCK_SKEW, CREDENTIAL_EXPIRED, PolicyEngine
from agent_didauth.policy.revocation import RevocationList
from agent_didauth.policy.rules import PolicyRules
from agent_didauth.policy.token import decode_access_token
from agent_didauth.presentation.builder import PresentationBuilder
from agent_didauth.presentation.verifier import PresentationVerifier
from agent_didauth.protocol.messages import (
    AgentCard,
    AuthenticationOutcome,
    SecurityScheme,
    TaskResult,
)
from agent_didauth.protocol.replay import ReplayCache
from agent_didauth.protocol.states import HandshakeTrace, ServerState
from agent_didauth.protocol.tasks import TaskDispatcher

logger = logging.getLogger(__name__)


class ServerAgent:
    """Serve an agent card, authenticate presentations and dispatch tasks.

    Parameters
    ----------
    identity:
        The server's own identity; signs its service presentation.
    issuer:
        Issuer used for the server's ServiceEndpoint credential and for
        credentials handed out through :meth:`request_credential`. A fresh
        issuer identity is generated when omitted.
    directory:
        Resolves client and issuer DIDs. Defaults to :class:`DIDKeyResolver`.
    policy:
        Policy engine evaluating client credentials. The default trusts only
        credentials minted by *issuer*.
    replay_cache:
        Seen-presentation store; defaults to one whose TTL equals the
        policy's freshness window.
    audit:
        Optional audit log.
    name, description, service_url:
        Published in the agent card and the ServiceEndpoint credential.
    lookup_timeout, lookup_retries:
        Bounds on directory and revocation lookups.
    clock:
        Clock shared by the issuer, policy checks and token expiry.
    """

    def __init__(
        self,
        identity: ActorIdentity,
        issuer: CredentialIssuer | None = None,
        directory: IdentityDirectory | None = None,
        policy: PolicyEngine | None = None,
        replay_cache: ReplayCache | None = None,
        audit: HandshakeAuditLog | None = None,
        dispatcher: TaskDispatcher | None = None,
        name: str = "Server Agent",
        description: str = "DID-based mutually authenticating agent",
        service_url: str = "http://localhost:3000",
        lookup_timeout: float = 5.0,
        lookup_retries: int = 2,
        clock: Clock | None = None,
    ) -> None:
        self._identity = identity
        self._clock = clock or utcnow
        self._issuer = issuer or CredentialIssuer(ActorIdentity.generate("issuer"), clock=self._clock)
        self._policy = policy or PolicyEngine(
            PolicyRules(trusted_issuers=frozenset({self._issuer.did})), clock=self._clock
        )
        self._verifier = PresentationVerifier(
            directory or DIDKeyResolver(),
            resolve_timeout=lookup_timeout,
            resolve_retries=lookup_retries,
        )
        self._replay = replay_cache or ReplayCache(
            self._policy.rules.max_credential_age + CLOCK_SKEW, clock=self._clock
        )
        self._audit = audit
        self._dispatcher = dispatcher or TaskDispatcher(clock=self._clock)
        self._name = name
        self._description = description
        self._service_url = service_url
        self._lookup_timeout = lookup_timeout
        self._lookup_retries = lookup_retries
        self._service_presentation = self._build_service_presentation()
        logger.info("Server agent %s ready (issuer %s)", identity.did, self._issuer.did)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        identity: ActorIdentity | None = None,
        issuer: CredentialIssuer | None = None,
        directory: IdentityDirectory | None = None,
        clock: Clock | None = None,
    ) -> "ServerAgent":
        """Build an agent whose policy, audit and revocation come from *settings*.

        With no ``trusted_issuers`` configured, only the hosted issuer is trusted.
        """
        issuer = issuer or CredentialIssuer(ActorIdentity.generate("issuer"), clock=clock)
        rules = settings.policy_rules()
        if not rules.trusted_issuers:
            rules = rules.model_copy(update={"trusted_issuers": frozenset({issuer.did})})
        revocation = (
            RevocationList(settings.revocation_list_path)
            if settings.revocation_list_path is not None
            else None
        )
        return cls(
            identity or ActorIdentity.generate("server"),
            issuer=issuer,
            directory=directory,
            policy=PolicyEngine(rules, revocation, clock=clock),
            audit=HandshakeAuditLog(settings.audit_log_path),
            name=settings.agent_name,
            service_url=settings.server_url,
            lookup_timeout=settings.lookup_timeout,
            lookup_retries=settings.lookup_retries,
            clock=clock,
        )

    @property
    def did(self) -> str:
        return self._identity.did

    @property
    def issuer(self) -> CredentialIssuer:
        return self._issuer

    @property
    def policy(self) -> PolicyEngine:
        return self._policy

    # ------------------------------------------------------------------
    # Card
    # ------------------------------------------------------------------

    def fetch_agent_card(self) -> AgentCard:
        """Return the card advertising this agent's DID, service presentation and tasks."""
        trace = HandshakeTrace(ServerState.AWAITING_CARD)
        card = AgentCard(
            name=self._name,
            description=self._description,
            did=self.did,
            server_vp=self._service_presentation,
            security_schemes={"did_auth": SecurityScheme(issuer_did=self._issuer.did)},
            supported_tasks=[
                action
                for action in self._dispatcher.actions()
                if action in self._policy.rules.allowed_actions
            ],
        )
        trace.advance(ServerState.CARD_SERVED)
        logger.info("Agent card served (%s)", " -> ".join(trace.names()))
        return card

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def submit_presentation(self, token: str) -> AuthenticationOutcome:
        """Authenticate a client presentation.

        Never raises for protocol failures: a failure is returned as an
        unauthorized :class:`AuthenticationOutcome` carrying the error tag
        and reason.
        """
        outcome, _ = self.authenticate(token)
        return outcome

    def authenticate(self, token: str) -> tuple[AuthenticationOutcome, HandshakeTrace]:
        """Like :meth:`submit_presentation` but also return the state trace."""
        trace = HandshakeTrace(ServerState.AWAITING_PRESENTATION)
        try:
            outcome = self._run_handshake(token, trace)
        except AuthenticationError as exc:
            trace.reject(exc)
            logger.warning(
                "Authentication rejected [%s]: %s (%s)",
                exc.tag,
                exc.reason,
                " -> ".join(trace.names()),
            )
            self._record(
                "authentication_rejected",
                trace.subject or "unknown",
                error=exc.tag,
                reason=exc.reason,
            )
            return AuthenticationOutcome.rejected(exc), trace
        logger.info("Authentication succeeded for %s", outcome.client_did)
        return outcome, trace

    def _run_handshake(self, token: str, trace: HandshakeTrace) -> AuthenticationOutcome:
        presentation = self._verifier.verify_presentation(token, expected_audience=self.did)
        trace.subject = presentation.holder
        trace.advance(ServerState.PRESENTATION_VERIFIED)

        if not presentation.id:
            raise PolicyViolation(["Presentation has no identifier"])
        self._replay.check_and_remember(presentation.id)

        for credential in presentation.credentials:
            status = call_with_timeout(
                lambda credential=credential: self._policy.check_revocation_status(credential),
                operation=f"revocation({credential.id})",
                timeout=self._lookup_timeout,
                retries=self._lookup_retries,
            )
            if status.revoked:
                raise RevocationDetected(credential.id, status.reason)
        trace.advance(ServerState.REVOCATION_CHECKED)

        credential = self._policy.select_credential(presentation.credentials)
        decision = self._policy.check_compliance(credential, holder_did=presentation.holder)
        if not decision.compliant:
            if set(decision.codes) == {CREDENTIAL_EXPIRED}:
                raise CredentialExpired(decision.errors[0])
            raise PolicyViolation(decision.errors)
        trace.advance(ServerState.POLICY_CHECKED)

        grant = self._policy.authorize(credential)
        if not grant.authorized:
            raise PolicyViolation([f"Action has no permission mapping: {grant.action}"])
        trace.advance(ServerState.AUTHORIZED)

        token_value = self._policy.issue_token(grant)
        trace.advance(ServerState.TOKEN_ISSUED)

        self._record(
            "token_issued",
            presentation.holder,
            action=grant.action,
            permissions=sorted(grant.permissions),
            expires_at=token_value.expires_at,
        )
        return AuthenticationOutcome(
            authorized=True,
            client_did=presentation.holder,
            auth_token=token_value.access_token,
            token_type=token_value.token_type,
            expires_in=token_value.expires_in,
            action=grant.action,
            permissions=sorted(grant.permissions),
        )

    def verify_peer_presentation(self, token: str) -> VerifiedPresentation:
        """Verify any presentation's signature chain without applying policy."""
        return self._verifier.verify_presentation(token)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def request_credential(self, holder_did: str, task_claims: dict[str, Any]) -> str:
        """Issue a ``TaskLogCredential`` for *holder_did* from the hosted issuer.

        Raises
        ------
        ValueError
            If *holder_did* is empty.
        """
        token = self._issuer.issue_task_log(holder_did, task_claims)
        self._record("credential_issued", holder_did, action=task_claims.get("action"))
        return token

    # ------------------------------------------------------------------
    # Task dispatch
    # ------------------------------------------------------------------

    def dispatch_task(
        self,
        auth_token: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> TaskResult:
        """Run *action* for the bearer of *auth_token*.

        Raises
        ------
        TokenInvalid
            If the token is malformed.
        TokenExpired
            If the token has expired.
        PolicyViolation
            If *action* is not whitelisted.
        """
        claims = decode_access_token(auth_token, now=to_epoch(self._clock()))
        if action not in self._policy.rules.allowed_actions:
            raise PolicyViolation([f"Action not allowed: {action}"])
        result = self._dispatcher.dispatch(action, data)
        self._record("task_dispatched", claims.did, action=action)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_service_presentation(self) -> str:
        credential = self._issuer.issue_service_endpoint(
            self.did,
            {"url": self._service_url, "protocols": ["A2A", "DID-Auth"], "version": "1.0"},
        )
        return PresentationBuilder(clock=self._clock).build_presentation(
            [credential], self.did, self._identity
        )

    def _record(self, event_type: str, subject: str, **details: object) -> None:
        if self._audit is not None:
            self._audit.record(event_type, subject, actor=self.did, **details)


__all__ = ["ServerAgent"]
