"""Authorization grants and the bearer tokens that carry them.

Token format
------------
``access_token`` is standard base64 over compact JSON::

    {"action": ..., "did": ..., "exp": <epoch seconds>, "permissions": [...]}

The token is deliberately not signed: it is a bearer artifact handed back
to the client that just authenticated, and is only ever checked for shape
and expiry by the task dispatcher of the server that issued it.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field

from agent_didauth.errors import TokenExpired, TokenInvalid

TOKEN_TYPE: str = "Bearer"


@dataclass(frozen=True)
class AuthorizationGrant:
    """The policy engine's authorization decision for one credential.

    Parameters
    ----------
    authorized:
        Whether a token may be issued for this grant.
    holder_did:
        The credential subject being authorized.
    action:
        The declared task action (``None`` when the credential has none).
    permissions:
        Capabilities granted for *action*.
    expires_in:
        Lifetime of the resulting token in seconds.
    """

    authorized: bool
    holder_did: str
    action: str | None
    permissions: frozenset[str] = field(default_factory=frozenset)
    expires_in: int = 3600

    def to_dict(self) -> dict[str, object]:
        return {
            "authorized": self.authorized,
            "holderDID": self.holder_did,
            "action": self.action,
            "permissions": sorted(self.permissions),
            "expiresIn": self.expires_in,
        }


@dataclass(frozen=True)
class AccessTokenClaims:
    """Decoded contents of an access token."""

    did: str
    action: str | None
    permissions: frozenset[str]
    exp: int


@dataclass(frozen=True)
class AuthorizationToken:
    """A bearer token issued after successful authentication."""

    access_token: str
    expires_in: int
    expires_at: int
    token_type: str = TOKEN_TYPE

    def to_dict(self) -> dict[str, object]:
        return {
            "tokenType": self.token_type,
            "accessToken": self.access_token,
            "expiresIn": self.expires_in,
            "expiresAt": self.expires_at,
        }


def encode_access_token(grant: AuthorizationGrant, expires_at: int) -> str:
    """Encode *grant* with absolute expiry *expires_at* (epoch seconds)."""
    body = {
        "did": grant.holder_did,
        "action": grant.action,
        "permissions": sorted(grant.permissions),
        "exp": expires_at,
    }
    raw = json.dumps(body, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_access_token(token: str, now: int | None = None) -> AccessTokenClaims:
    """Decode an access token and, when *now* is given, enforce its expiry.

    Raises
    ------
    TokenInvalid
        If the token is not base64 JSON with the expected fields.
    TokenExpired
        If *now* is past the token's ``exp``.
    """
    if not isinstance(token, str) or not token:
        raise TokenInvalid("Authorization token is missing")
    try:
        body = json.loads(base64.b64decode(token, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TokenInvalid(f"Authorization token could not be decoded: {exc}") from exc
    if not isinstance(body, dict):
        raise TokenInvalid("Authorization token payload must be an object")

    did = body.get("did")
    exp = body.get("exp")
    permissions = body.get("permissions")
    action = body.get("action")
    if not isinstance(did, str) or not did:
        raise TokenInvalid("Authorization token has no 'did'")
    if not isinstance(exp, int) or isinstance(exp, bool):
        raise TokenInvalid("Authorization token has no integer 'exp'")
    if not isinstance(permissions, list) or not all(isinstance(p, str) for p in permissions):
        raise TokenInvalid("Authorization token 'permissions' must be a list of strings")
    if action is not None and not isinstance(action, str):
        raise TokenInvalid("Authorization token 'action' must be a string")

    if now is not None and now >= exp:
        raise TokenExpired(exp)
    return AccessTokenClaims(did=did, action=action, permissions=frozenset(permissions), exp=exp)


__all__ = [
    "AccessTokenClaims",
    "AuthorizationGrant",
    "AuthorizationToken",
    "TOKEN_TYPE",
    "decode_access_token",
    "encode_access_token",
]
