"""agent-didauth — Mutual DID-based authentication and authorization between agents.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import agent_didauth
>>> agent_didauth.__version__
'0.1.0'

Quick start
-----------
::

    from agent_didauth import ActorIdentity, ClientAgent, LocalTransport, ServerAgent

    server = ServerAgent(ActorIdentity.generate("server"))
    client = ClientAgent(ActorIdentity.generate("client"))
    transport = LocalTransport(server)

    session = client.authenticate(transport, {"action": "OrderPizza"})
    result = client.perform_task(transport, session, data={"menu": "Margherita"})
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from agent_didauth.errors import (
    AudienceMismatch,
    AuthenticationError,
    CredentialExpired,
    IdentityNotFound,
    InvalidCredentialSignature,
    InvalidSignature,
    MissingCredential,
    PolicyError,
    PolicyViolation,
    RemoteRejection,
    ReplayDetected,
    RevocationDetected,
    TokenError,
    TokenExpired,
    TokenInvalid,
    TransportError,
    TransportTimeout,
    VerificationError,
)

# ------------------------------------------------------------------
# Identity
# ------------------------------------------------------------------
from agent_didauth.identity import (
    ActorIdentity,
    DIDKeyResolver,
    IdentityDirectory,
    IdentityRegistry,
    ResolvedIdentity,
)

# ------------------------------------------------------------------
# Credentials and presentations
# ------------------------------------------------------------------
from agent_didauth.credentials import (
    CredentialIssuer,
    CredentialType,
    VerifiedCredential,
    VerifiedPresentation,
)
from agent_didauth.presentation import PresentationBuilder, PresentationVerifier

# ------------------------------------------------------------------
# Policy
# ------------------------------------------------------------------
from agent_didauth.policy import (
    AuthorizationGrant,
    AuthorizationToken,
    PolicyDecision,
    PolicyEngine,
    PolicyRules,
    RevocationList,
)

# ------------------------------------------------------------------
# Protocol orchestration (imported before transport)
# ------------------------------------------------------------------
from agent_didauth.protocol import (
    AgentCard,
    AuthenticationOutcome,
    ClientAgent,
    ClientSession,
    ClientState,
    HandshakeTrace,
    ServerAgent,
    ServerState,
    TaskResult,
)
from agent_didauth.transport import HttpTransport, LocalTransport, Transport

# ------------------------------------------------------------------
# Ambient
# ------------------------------------------------------------------
from agent_didauth.audit import HandshakeAuditLog
from agent_didauth.config import Settings

__all__ = [
    "__version__",
    # Errors
    "AudienceMismatch",
    "AuthenticationError",
    "CredentialExpired",
    "IdentityNotFound",
    "InvalidCredentialSignature",
    "InvalidSignature",
    "MissingCredential",
    "PolicyError",
    "PolicyViolation",
    "RemoteRejection",
    "ReplayDetected",
    "RevocationDetected",
    "TokenError",
    "TokenExpired",
    "TokenInvalid",
    "TransportError",
    "TransportTimeout",
    "VerificationError",
    # Identity
    "ActorIdentity",
    "DIDKeyResolver",
    "IdentityDirectory",
    "IdentityRegistry",
    "ResolvedIdentity",
    # Credentials and presentations
    "CredentialIssuer",
    "CredentialType",
    "PresentationBuilder",
    "PresentationVerifier",
    "VerifiedCredential",
    "VerifiedPresentation",
    # Policy
    "AuthorizationGrant",
    "AuthorizationToken",
    "PolicyDecision",
    "PolicyEngine",
    "PolicyRules",
    "RevocationList",
    # Protocol
    "AgentCard",
    "AuthenticationOutcome",
    "ClientAgent",
    "ClientSession",
    "ClientState",
    "HandshakeTrace",
    "ServerAgent",
    "ServerState",
    "TaskResult",
    # Transport
    "HttpTransport",
    "LocalTransport",
    "Transport",
    # Ambient
    "HandshakeAuditLog",
    "Settings",
]
