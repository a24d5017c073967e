"""Compact signed-token codec shared by credentials and presentations.

Token format
------------
The token is a dot-separated string::

    base64url(header).base64url(payload).base64url(signature)

- header: ``{"alg": "EdDSA", "typ": "JWT", "kid": <signer DID>}``
- payload: JSON object (keys sorted, compact separators)
- signature: Ed25519 over the ASCII bytes of ``header.payload``

Segments are unpadded base64url and must be in canonical form: a segment
that decodes but does not re-encode to exactly the same text is rejected,
so no two distinct strings verify as the same token.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from agent_didauth.identity import keys
from agent_didauth.identity.actor import ActorIdentity

ALGORITHM: str = "EdDSA"
TOKEN_TYPE: str = "JWT"


class TokenFormatError(ValueError):
    """Raised when a token cannot be parsed into header, payload and signature."""


@dataclass(frozen=True)
class SignedToken:
    """A parsed (not yet verified) compact token.

    Parameters
    ----------
    header:
        Decoded header object.
    payload:
        Decoded payload object.
    signing_input:
        The exact bytes the signature covers.
    signature:
        Raw signature bytes.
    """

    header: dict[str, Any]
    payload: dict[str, Any]
    signing_input: bytes
    signature: bytes

    @property
    def signer(self) -> str:
        """The DID named by the header ``kid``."""
        return str(self.header.get("kid", ""))

    def verify(self, public_key: bytes) -> bool:
        """Return ``True`` if the signature matches *public_key*."""
        return keys.verify(public_key, self.signature, self.signing_input)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Decode a canonical unpadded base64url segment.

    Raises
    ------
    TokenFormatError
        If the segment is not canonical base64url.
    """
    try:
        data = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as exc:
        raise TokenFormatError(f"Invalid base64url segment: {exc}") from exc
    if b64url_encode(data) != segment:
        raise TokenFormatError("Non-canonical base64url segment")
    return data


def _encode_json(value: dict[str, Any]) -> str:
    return b64url_encode(json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8"))


def _decode_json(segment: str, label: str) -> dict[str, Any]:
    raw = b64url_decode(segment)
    try:
        value = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TokenFormatError(f"Token {label} is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise TokenFormatError(f"Token {label} must be a JSON object")
    return value


def encode_signed(payload: dict[str, Any], signer: ActorIdentity) -> str:
    """Serialize *payload* and sign it with *signer*'s private key.

    Returns
    -------
    str
        The compact token string.
    """
    header = {"alg": ALGORITHM, "typ": TOKEN_TYPE, "kid": signer.did}
    signing_input = f"{_encode_json(header)}.{_encode_json(payload)}"
    signature = signer.sign(signing_input.encode("ascii"))
    return f"{signing_input}.{b64url_encode(signature)}"


def decode_unverified(token: str) -> SignedToken:
    """Parse *token* without checking its signature.

    Raises
    ------
    TokenFormatError
        If the token is not a well-formed compact token.
    """
    if not isinstance(token, str):
        raise TokenFormatError("Token must be a string")
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenFormatError(f"Expected 3 dot-separated parts, got {len(parts)}")
    header_b64, payload_b64, signature_b64 = parts
    header = _decode_json(header_b64, "header")
    if header.get("alg") != ALGORITHM:
        raise TokenFormatError(f"Unsupported algorithm {header.get('alg')!r}")
    payload = _decode_json(payload_b64, "payload")
    try:
        signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    except UnicodeEncodeError as exc:
        raise TokenFormatError("Token contains non-ASCII characters") from exc
    return SignedToken(
        header=header,
        payload=payload,
        signing_input=signing_input,
        signature=b64url_decode(signature_b64),
    )


__all__ = [
    "ALGORITHM",
    "SignedToken",
    "TokenFormatError",
    "b64url_decode",
    "b64url_encode",
    "decode_unverified",
    "encode_signed",
]
