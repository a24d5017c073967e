"""PolicyEngine — turns verified claims into a scoped authorization decision.

The engine never raises for malformed claims. Compliance problems are
reported as :class:`Violation` entries, all of them in a single pass, and
the orchestrator decides how to surface them.

Checks performed by :meth:`PolicyEngine.check_compliance`
---------------------------------------------------------
- ``credential_type``   — no type tag intersects the required set
- ``action_not_allowed``— declared action is not whitelisted
- ``credential_expired``— ``now - issuedAt`` exceeds the freshness window
- ``issued_at_invalid`` — ``issuedAt`` is missing, unparseable or in the future
- ``missing_field``     — a ``required_schema`` key is absent (one per key)
- ``untrusted_issuer``  — issuer is not in a configured trust list
- ``subject_mismatch``  — credential subject is not the presenting holder
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from agent_didauth._time import Clock, to_epoch, utcnow
from agent_didauth.credentials.models import VerifiedCredential
from agent_didauth.errors import PolicyViolation
from agent_didauth.policy.revocation import (
    NullRevocationRegistry,
    RevocationRegistry,
    RevocationStatus,
)
from agent_didauth.policy.rules import PolicyRules
from agent_didauth.policy.token import (
    AuthorizationGrant,
    AuthorizationToken,
    encode_access_token,
)

logger = logging.getLogger(__name__)

# Tolerated forward clock drift between issuer and relying party, in seconds.
CLOCK_SKEW: float = 60.0

CREDENTIAL_TYPE = "credential_type"
ACTION_NOT_ALLOWED = "action_not_allowed"
CREDENTIAL_EXPIRED = "credential_expired"
ISSUED_AT_INVALID = "issued_at_invalid"
MISSING_FIELD = "missing_field"
UNTRUSTED_ISSUER = "untrusted_issuer"
SUBJECT_MISMATCH = "subject_mismatch"


@dataclass(frozen=True)
class Violation:
    """One failed compliance rule."""

    code: str
    message: str


@dataclass(frozen=True)
class PolicyDecision:
    """Result of a compliance check.

    ``compliant`` is ``True`` exactly when ``violations`` is empty.
    """

    compliant: bool
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> list[str]:
        """Violation messages in evaluation order."""
        return [violation.message for violation in self.violations]

    @property
    def codes(self) -> list[str]:
        return [violation.code for violation in self.violations]

    def to_dict(self) -> dict[str, object]:
        return {"compliant": self.compliant, "errors": self.errors}


class PolicyEngine:
    """Evaluate verified credentials against a :class:`PolicyRules` set.

    Parameters
    ----------
    rules:
        The rule set; defaults to :class:`PolicyRules` defaults.
    revocation_registry:
        Source of revocation status; defaults to a registry that never
        reports a revocation.
    clock:
        Clock used for freshness checks and token expiry.

    Example
    -------
    ::

        engine = PolicyEngine()
        decision = engine.check_compliance(credential)
        if decision.compliant:
            grant = engine.authorize(credential)
            token = engine.issue_token(grant)
    """

    def __init__(
        self,
        rules: PolicyRules | None = None,
        revocation_registry: RevocationRegistry | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._rules = rules or PolicyRules()
        self._revocation = revocation_registry or NullRevocationRegistry()
        self._clock = clock or utcnow

    @property
    def rules(self) -> PolicyRules:
        return self._rules

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def check_revocation_status(self, credential: VerifiedCredential) -> RevocationStatus:
        """Ask the revocation registry about *credential*."""
        status = self._revocation.check(credential)
        if status.revoked:
            logger.warning("Credential %s is revoked: %s", credential.id, status.reason)
        return status

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    def select_credential(
        self, credentials: Sequence[VerifiedCredential]
    ) -> VerifiedCredential:
        """Pick the credential to authorize on.

        The first credential carrying a required type wins; otherwise the
        first credential is returned so that compliance reports why it
        does not qualify.
        """
        if not credentials:
            raise ValueError("select_credential needs at least one credential")
        for credential in credentials:
            if self._rules.required_credential_types.intersection(credential.type):
                return credential
        return credentials[0]

    def check_compliance(
        self,
        credential: VerifiedCredential,
        holder_did: str | None = None,
    ) -> PolicyDecision:
        """Run every compliance rule against *credential*.

        Parameters
        ----------
        credential:
            A verified credential.
        holder_did:
            When given, the credential subject must equal it.

        Returns
        -------
        PolicyDecision
            All violations, never short-circuited.
        """
        rules = self._rules
        violations: list[Violation] = []

        if not rules.required_credential_types.intersection(credential.type):
            violations.append(
                Violation(
                    CREDENTIAL_TYPE,
                    "Missing required credential type: "
                    + ", ".join(sorted(rules.required_credential_types)),
                )
            )

        action = credential.action
        if action is not None and action not in rules.allowed_actions:
            violations.append(Violation(ACTION_NOT_ALLOWED, f"Action not allowed: {action}"))

        if credential.issued_at is None:
            violations.append(Violation(ISSUED_AT_INVALID, "Credential has no valid issuedAt"))
        else:
            age = (self._clock() - credential.issued_at).total_seconds()
            if age > rules.max_credential_age:
                violations.append(
                    Violation(
                        CREDENTIAL_EXPIRED,
                        f"Credential expired ({int(age)}s old, "
                        f"maximum {int(rules.max_credential_age)}s)",
                    )
                )
            elif age < -CLOCK_SKEW:
                violations.append(
                    Violation(ISSUED_AT_INVALID, "Credential issuedAt is in the future")
                )

        if rules.required_schema:
            present = set(credential.claims) | {"id"}
            if credential.issued_at is not None:
                present.add("issuedAt")
            for key in rules.required_schema:
                if key not in present:
                    violations.append(Violation(MISSING_FIELD, f"Missing required field: {key}"))

        if rules.trusted_issuers and credential.issuer not in rules.trusted_issuers:
            violations.append(
                Violation(UNTRUSTED_ISSUER, f"Issuer is not trusted: {credential.issuer}")
            )

        if holder_did is not None and credential.subject != holder_did:
            violations.append(
                Violation(
                    SUBJECT_MISMATCH,
                    f"Credential subject {credential.subject} is not the holder {holder_did}",
                )
            )

        if violations:
            logger.info(
                "Credential %s violates policy: %s",
                credential.id,
                "; ".join(v.message for v in violations),
            )
        return PolicyDecision(compliant=not violations, violations=tuple(violations))

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def authorize(self, credential: VerifiedCredential) -> AuthorizationGrant:
        """Map the credential's action to its capability set.

        An action without a mapping yields an empty permission set. It is
        authorized only when ``reject_unmapped_actions`` is disabled.
        """
        action = credential.action
        mapped = action is not None and action in self._rules.action_permissions
        permissions = self._rules.action_permissions[action] if mapped else frozenset()
        authorized = mapped or not self._rules.reject_unmapped_actions
        logger.info(
            "Authorization for %s action=%s permissions=%s authorized=%s",
            credential.subject,
            action,
            sorted(permissions),
            authorized,
        )
        return AuthorizationGrant(
            authorized=authorized,
            holder_did=credential.subject,
            action=action,
            permissions=frozenset(permissions),
            expires_in=self._rules.token_ttl,
        )

    def issue_token(self, grant: AuthorizationGrant) -> AuthorizationToken:
        """Encode *grant* as a bearer token expiring ``expires_in`` from now.

        Raises
        ------
        PolicyViolation
            If the grant is not authorized.
        """
        if not grant.authorized:
            raise PolicyViolation([f"Action has no permission mapping: {grant.action}"])
        expires_at = to_epoch(self._clock()) + grant.expires_in
        token = AuthorizationToken(
            access_token=encode_access_token(grant, expires_at),
            expires_in=grant.expires_in,
            expires_at=expires_at,
        )
        logger.info("Issued authorization token for %s (exp=%d)", grant.holder_did, expires_at)
        return token


__all__ = [
    "PolicyDecision",
    "PolicyEngine",
    "Violation",
]
