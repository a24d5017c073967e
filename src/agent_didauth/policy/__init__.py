"""agent_didauth.policy — rules, revocation, compliance and authorization."""
from __future__ import annotations

from agent_didauth.policy.engine import PolicyDecision, PolicyEngine, Violation
from agent_didauth.policy.revocation import (
    NullRevocationRegistry,
    RevocationList,
    RevocationRegistry,
    RevocationStatus,
)
from agent_didauth.policy.rules import DEFAULT_ACTION_PERMISSIONS, PolicyRules
from agent_didauth.policy.token import (
    AccessTokenClaims,
    AuthorizationGrant,
    AuthorizationToken,
    decode_access_token,
    encode_access_token,
)

__all__ = [
    "AccessTokenClaims",
    "AuthorizationGrant",
    "AuthorizationToken",
    "DEFAULT_ACTION_PERMISSIONS",
    "NullRevocationRegistry",
    "PolicyDecision",
    "PolicyEngine",
    "PolicyRules",
    "RevocationList",
    "RevocationRegistry",
    "RevocationStatus",
    "Violation",
    "decode_access_token",
    "encode_access_token",
]
