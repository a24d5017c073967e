"""ClientAgent — the holder side of the mutual DID handshake.

Handshake
---------
::

    Init → IdentityEstablished → ServerCardFetched
        → ServerPresentationVerified → CredentialRequested
        → CredentialReceived → PresentationBuilt → PresentationSent
        → TokenReceived

A failure at any step moves the attempt to ``Failed`` and the error is
raised to the caller. With ``require_server_verification=False`` a server
presentation that does not verify is logged and skipped instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from agent_didauth._time import Clock, utcnow
from agent_didauth.credentials.models import CredentialType, VerifiedCredential
from agent_didauth.errors import (
    AuthenticationError,
    MissingCredential,
    RemoteRejection,
    VerificationError,
)
from agent_didauth.identity.actor import ActorIdentity
from agent_didauth.identity.directory import DIDKeyResolver, IdentityDirectory
from agent_didauth.presentation.builder import PresentationBuilder
from agent_didauth.presentation.verifier import PresentationVerifier
from agent_didauth.protocol.messages import AgentCard, TaskResult
from agent_didauth.protocol.states import ClientState, HandshakeTrace
from agent_didauth.transport.base import AGENT_DID_HEADER, OutgoingRequest, Transport

logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    """What a successful handshake leaves the client with."""

    client_did: str
    server_did: str
    auth_token: str
    token_type: str
    expires_in: int
    action: str | None
    permissions: list[str] = field(default_factory=list)
    credential: str = ""
    server_verified: bool = True
    trace: HandshakeTrace | None = None


class ClientAgent:
    """Authenticate to server agents and run tasks with the granted token.

    Parameters
    ----------
    identity:
        The client's own identity.
    directory:
        Resolves the server's and issuers' DIDs. Defaults to
        :class:`DIDKeyResolver`.
    require_server_verification:
        When ``True`` (the default) the handshake stops if the server's
        presentation does not verify; otherwise a warning is logged.
    lookup_timeout, lookup_retries:
        Bounds on directory lookups.
    clock:
        Clock for presentation timestamps.
    """

    def __init__(
        self,
        identity: ActorIdentity,
        directory: IdentityDirectory | None = None,
        require_server_verification: bool = True,
        lookup_timeout: float = 5.0,
        lookup_retries: int = 2,
        clock: Clock | None = None,
    ) -> None:
        self._identity = identity
        self._verifier = PresentationVerifier(
            directory or DIDKeyResolver(),
            resolve_timeout=lookup_timeout,
            resolve_retries=lookup_retries,
        )
        self._builder = PresentationBuilder(clock=clock or utcnow)
        self._require_server_verification = require_server_verification
        self.last_trace: HandshakeTrace | None = None

    @property
    def did(self) -> str:
        return self._identity.did

    def attach(self, transport: Transport) -> None:
        """Register the DID-stamping hook on *transport*."""
        transport.add_pre_send_hook(self._stamp_did)

    def authenticate(self, transport: Transport, task: dict[str, Any]) -> ClientSession:
        """Run the full handshake for *task* over *transport*.

        Parameters
        ----------
        transport:
            Carrier to the server agent.
        task:
            Task claims for the requested credential; ``task["action"]``
            names the action to be authorized.

        Returns
        -------
        ClientSession

        Raises
        ------
        AuthenticationError
            Any subclass, for the first step that failed. A server-side
            rejection surfaces as :class:`RemoteRejection` carrying the
            server's tag.
        """
        trace = HandshakeTrace(ClientState.INIT)
        self.last_trace = trace
        try:
            session = self._run_handshake(transport, task, trace)
        except AuthenticationError as exc:
            trace.reject(exc)
            logger.warning(
                "Handshake failed [%s]: %s (%s)", exc.tag, exc.reason, " -> ".join(trace.names())
            )
            raise
        logger.info("Authenticated to %s for %s", session.server_did, session.action)
        return session

    def perform_task(
        self,
        transport: Transport,
        session: ClientSession,
        action: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> TaskResult:
        """Dispatch *action* (default: the session's action) with the session token."""
        self.attach(transport)
        task_action = action or session.action
        if not task_action:
            raise ValueError("No action given and the session carries none")
        return transport.dispatch_task(session.auth_token, task_action, data)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_handshake(
        self,
        transport: Transport,
        task: dict[str, Any],
        trace: HandshakeTrace,
    ) -> ClientSession:
        self.attach(transport)
        trace.advance(ClientState.IDENTITY_ESTABLISHED)

        card = transport.fetch_agent_card()
        trace.advance(ClientState.SERVER_CARD_FETCHED)

        server_verified = self._check_server(card)
        if server_verified:
            trace.advance(ClientState.SERVER_PRESENTATION_VERIFIED)

        trace.advance(ClientState.CREDENTIAL_REQUESTED)
        credential_token = transport.request_credential(self.did, dict(task))
        credential = self._verifier.verify_credential(credential_token)
        if credential.subject != self.did:
            raise VerificationError(
                f"Issued credential names subject {credential.subject!r}, expected {self.did!r}"
            )
        self._check_card_issuer(card, credential)
        trace.advance(ClientState.CREDENTIAL_RECEIVED)

        presentation = self._builder.build_presentation(
            [credential_token], self.did, self._identity, audience=card.did
        )
        trace.advance(ClientState.PRESENTATION_BUILT)

        outcome = transport.submit_presentation(presentation)
        trace.advance(ClientState.PRESENTATION_SENT)
        if not outcome.authorized or not outcome.auth_token:
            raise RemoteRejection(outcome.error or "Rejected", outcome.reason or "no reason given")
        trace.advance(ClientState.TOKEN_RECEIVED)

        return ClientSession(
            client_did=self.did,
            server_did=card.did,
            auth_token=outcome.auth_token,
            token_type=outcome.token_type or "Bearer",
            expires_in=outcome.expires_in or 0,
            action=outcome.action,
            permissions=list(outcome.permissions),
            credential=credential_token,
            server_verified=server_verified,
            trace=trace,
        )

    def _check_server(self, card: AgentCard) -> bool:
        try:
            self._verify_server_presentation(card)
        except AuthenticationError as exc:
            if self._require_server_verification:
                raise
            logger.warning(
                "Continuing without a verified server presentation from %s: %s",
                card.did,
                exc.reason,
            )
            return False
        return True

    def _verify_server_presentation(self, card: AgentCard) -> VerifiedCredential:
        if not card.server_vp:
            raise MissingCredential(f"Agent card for {card.did} carries no server presentation")
        presentation = self._verifier.verify_presentation(card.server_vp)
        if presentation.holder != card.did:
            raise VerificationError(
                f"Server presentation is held by {presentation.holder!r}, card names {card.did!r}"
            )
        for credential in presentation.credentials:
            if credential.has_type(CredentialType.SERVICE_ENDPOINT.value):
                self._check_card_issuer(card, credential)
                return credential
        raise MissingCredential("Server presentation carries no ServiceEndpointCredential")

    @staticmethod
    def _check_card_issuer(card: AgentCard, credential: VerifiedCredential) -> None:
        if card.issuer_did and credential.issuer != card.issuer_did:
            raise VerificationError(
                f"Credential {credential.id} is issued by {credential.issuer!r}, "
                f"card advertises issuer {card.issuer_did!r}"
            )

    def _stamp_did(self, request: OutgoingRequest) -> None:
        request.headers[AGENT_DID_HEADER] = self.did


__all__ = ["ClientAgent", "ClientSession"]
