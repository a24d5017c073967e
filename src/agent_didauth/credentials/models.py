"""Normalized credential and presentation models.

Wire tokens (see :mod:`agent_didauth.credentials.jws`) are parsed exactly
once, by the verifier, into these models. Everything downstream (policy
engine, orchestrators, HTTP routes) reads claims through
:class:`VerifiedCredential` only.
"""
from __future__ import annotations

import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent_didauth._time import parse_iso
from agent_didauth.credentials.jws import TokenFormatError

W3C_CREDENTIALS_CONTEXT: str = "https://www.w3.org/2018/credentials/v1"
BASE_CREDENTIAL_TYPE: str = "VerifiableCredential"
PRESENTATION_TYPE: str = "VerifiablePresentation"

# Keys stamped by the issuer into credentialSubject; not part of the claims.
RESERVED_SUBJECT_KEYS: frozenset[str] = frozenset({"id", "issuedAt"})


class CredentialType(str, Enum):
    """Specific credential tags understood by the default policy."""

    TASK_LOG = "TaskLogCredential"
    SERVICE_ENDPOINT = "ServiceEndpointCredential"


class VerifiedCredential(BaseModel):
    """A credential whose issuer signature has been checked.

    Parameters
    ----------
    id:
        Credential identifier (``jti``).
    issuer:
        DID of the minting issuer.
    subject:
        DID of the holder the claims are about.
    type:
        Ordered type tags, always starting with ``VerifiableCredential``.
    claims:
        Domain claims, without the reserved ``id``/``issuedAt`` keys.
    issued_at:
        Parsed ``issuedAt`` stamp, or ``None`` when missing or unparseable.
    not_before:
        ``nbf`` in epoch seconds, when present.
    raw:
        The token this credential was parsed from.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    issuer: str
    subject: str
    type: tuple[str, ...]
    claims: dict[str, Any] = Field(default_factory=dict)
    issued_at: Optional[datetime.datetime] = None
    not_before: Optional[int] = None
    raw: str = Field(default="", repr=False)

    @property
    def action(self) -> str | None:
        """The task action the credential declares, if any.

        Task-log credentials carry it as ``taskLog.action``; credentials
        minted with flat claims may carry a top-level ``action``.
        """
        task_log = self.claims.get("taskLog")
        if isinstance(task_log, dict) and task_log.get("action") is not None:
            return str(task_log["action"])
        action = self.claims.get("action")
        return str(action) if action is not None else None

    def has_type(self, tag: str) -> bool:
        return tag in self.type

    @classmethod
    def from_payload(cls, payload: dict[str, Any], raw: str = "") -> "VerifiedCredential":
        """Build a credential from a decoded token payload.

        Raises
        ------
        TokenFormatError
            If the payload does not have the credential envelope shape.
        """
        envelope = payload.get("vc")
        if not isinstance(envelope, dict):
            raise TokenFormatError("Credential payload has no 'vc' object")
        types = envelope.get("type")
        if not isinstance(types, list) or BASE_CREDENTIAL_TYPE not in types:
            raise TokenFormatError(f"Credential type must include {BASE_CREDENTIAL_TYPE!r}")
        subject_block = envelope.get("credentialSubject")
        if not isinstance(subject_block, dict):
            raise TokenFormatError("Credential has no credentialSubject object")
        issuer = payload.get("iss")
        if not isinstance(issuer, str) or not issuer:
            raise TokenFormatError("Credential has no issuer")
        subject = payload.get("sub") or subject_block.get("id")
        if not isinstance(subject, str) or not subject:
            raise TokenFormatError("Credential has no subject")
        not_before = payload.get("nbf")
        return cls(
            id=str(payload.get("jti", "")),
            issuer=issuer,
            subject=subject,
            type=tuple(str(tag) for tag in types),
            claims={k: v for k, v in subject_block.items() if k not in RESERVED_SUBJECT_KEYS},
            issued_at=parse_iso(subject_block.get("issuedAt")),
            not_before=not_before if isinstance(not_before, int) else None,
            raw=raw,
        )

    def summary(self) -> dict[str, Any]:
        """Return a JSON-friendly view without the raw token."""
        return {
            "id": self.id,
            "issuer": self.issuer,
            "subject": self.subject,
            "type": list(self.type),
            "claims": self.claims,
            "issuedAt": self.issued_at.isoformat() if self.issued_at else None,
        }


class VerifiedPresentation(BaseModel):
    """A presentation whose holder signature and every credential verified."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    holder: str
    audience: Optional[str] = None
    issued_at: Optional[int] = None
    credentials: tuple[VerifiedCredential, ...]


__all__ = [
    "BASE_CREDENTIAL_TYPE",
    "CredentialType",
    "PRESENTATION_TYPE",
    "RESERVED_SUBJECT_KEYS",
    "VerifiedCredential",
    "VerifiedPresentation",
    "W3C_CREDENTIALS_CONTEXT",
]
