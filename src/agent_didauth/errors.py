"""Error taxonomy for the authentication protocol.

Every failure that can reach a protocol caller is an
:class:`AuthenticationError` carrying a short ``tag`` and a human-readable
``reason``. :meth:`AuthenticationError.to_dict` is the only form that is
ever sent back over a transport: it never contains key material or
traceback state.

Hierarchy
---------
::

    AuthenticationError
    ├── VerificationError
    │   ├── IdentityNotFound
    │   ├── InvalidSignature
    │   │   └── InvalidCredentialSignature
    │   ├── MissingCredential
    │   └── AudienceMismatch
    ├── PolicyError
    │   ├── CredentialExpired
    │   ├── PolicyViolation
    │   ├── RevocationDetected
    │   └── ReplayDetected
    ├── TransportTimeout
    ├── TransportError
    ├── RemoteRejection
    └── TokenError
        ├── TokenInvalid
        └── TokenExpired
"""
from __future__ import annotations

from typing import Sequence


class AuthenticationError(Exception):
    """Base class for all protocol failures.

    Parameters
    ----------
    reason:
        Human-readable description of the failure.
    """

    tag: str = "AuthenticationError"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)

    def to_dict(self) -> dict[str, str]:
        """Return the caller-safe representation ``{"error", "reason"}``."""
        return {"error": self.tag, "reason": self.reason}


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class VerificationError(AuthenticationError):
    """Raised when a signed artifact cannot be verified end-to-end."""

    tag = "VerificationError"


class IdentityNotFound(VerificationError):
    """Raised when the identity directory cannot resolve a DID."""

    tag = "IdentityNotFound"

    def __init__(self, did: str, detail: str = "") -> None:
        self.did = did
        message = f"Identity {did!r} could not be resolved"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidSignature(VerificationError):
    """Raised when a presentation signature (or its envelope) is invalid."""

    tag = "InvalidSignature"


class InvalidCredentialSignature(InvalidSignature):
    """Raised when an embedded credential fails signature verification."""

    tag = "InvalidCredentialSignature"

    def __init__(self, index: int, credential_id: str, detail: str) -> None:
        self.index = index
        self.credential_id = credential_id
        super().__init__(
            f"Credential #{index} ({credential_id or 'unknown id'}) failed verification: {detail}"
        )


class MissingCredential(VerificationError):
    """Raised when a presentation carries no credentials."""

    tag = "MissingCredential"

    def __init__(self, reason: str = "Presentation contains no credentials") -> None:
        super().__init__(reason)


class AudienceMismatch(VerificationError):
    """Raised when a presentation is addressed to a different relying party."""

    tag = "AudienceMismatch"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Presentation audience {actual!r} does not match {expected!r}"
        )


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class PolicyError(AuthenticationError):
    """Raised when verified claims fail policy evaluation."""

    tag = "PolicyError"


class CredentialExpired(PolicyError):
    """Raised when a credential is older than the freshness window."""

    tag = "CredentialExpired"


class PolicyViolation(PolicyError):
    """Raised when one or more compliance rules fail.

    Parameters
    ----------
    errors:
        Every violation message, in evaluation order.
    """

    tag = "PolicyViolation"

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Policy violation: " + "; ".join(self.errors))


class RevocationDetected(PolicyError):
    """Raised when a credential has been revoked."""

    tag = "RevocationDetected"

    def __init__(self, credential_id: str, reason: str | None) -> None:
        self.credential_id = credential_id
        self.revocation_reason = reason
        super().__init__(
            f"Credential {credential_id!r} has been revoked: {reason or 'unspecified'}"
        )


class ReplayDetected(PolicyError):
    """Raised when a presentation identifier has already been accepted."""

    tag = "ReplayDetected"

    def __init__(self, presentation_id: str) -> None:
        self.presentation_id = presentation_id
        super().__init__(f"Presentation {presentation_id!r} has already been used")


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportTimeout(AuthenticationError):
    """Raised when an external lookup exceeds its time bound."""

    tag = "TransportTimeout"

    def __init__(self, operation: str, timeout: float, attempts: int) -> None:
        self.operation = operation
        self.timeout = timeout
        self.attempts = attempts
        super().__init__(
            f"{operation} did not complete within {timeout:.1f}s "
            f"after {attempts} attempt(s)"
        )


class TransportError(AuthenticationError):
    """Raised when the peer cannot be reached or answers unintelligibly."""

    tag = "TransportError"


class RemoteRejection(AuthenticationError):
    """A rejection reported by the peer, carrying the peer's error tag.

    Parameters
    ----------
    tag:
        The taxonomy tag the peer reported (e.g. ``"PolicyViolation"``).
    reason:
        The peer's human-readable reason.
    """

    def __init__(self, tag: str, reason: str) -> None:
        self.tag = tag or "AuthenticationError"
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Authorization tokens
# ---------------------------------------------------------------------------


class TokenError(AuthenticationError):
    """Base class for bearer-token errors raised during task dispatch."""

    tag = "TokenError"


class TokenInvalid(TokenError):
    """Raised when an authorization token is structurally malformed."""

    tag = "TokenInvalid"


class TokenExpired(TokenError):
    """Raised when an authorization token is past its expiry."""

    tag = "TokenExpired"

    def __init__(self, expired_at: int) -> None:
        self.expired_at = expired_at
        super().__init__(f"Authorization token expired at {expired_at}")


__all__ = [
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
]
