"""agent_didauth.credentials — credential tokens, models and issuance."""
from __future__ import annotations

from agent_didauth.credentials.issuer import CredentialIssuer
from agent_didauth.credentials.jws import (
    SignedToken,
    TokenFormatError,
    decode_unverified,
    encode_signed,
)
from agent_didauth.credentials.models import (
    CredentialType,
    VerifiedCredential,
    VerifiedPresentation,
)

__all__ = [
    "CredentialIssuer",
    "CredentialType",
    "SignedToken",
    "TokenFormatError",
    "VerifiedCredential",
    "VerifiedPresentation",
    "decode_unverified",
    "encode_signed",
]
