"""Ed25519 signing primitive.

The protocol engine treats signing as an external black box with the usual
asymmetric-signature guarantees. This module is the single place where the
``cryptography`` package is touched; everything above it passes raw
32-byte keys and 64-byte signatures around.
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature as _CryptoInvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

PUBLIC_KEY_LENGTH: int = 32
SIGNATURE_LENGTH: int = 64


def generate_keypair() -> tuple[bytes, bytes]:
    """Generate a fresh Ed25519 keypair.

    Returns
    -------
    tuple[bytes, bytes]
        ``(private_key_bytes, public_key_bytes)``, both 32 raw bytes.
    """
    private_key = Ed25519PrivateKey.generate()
    private_bytes = private_key.private_bytes(
        Encoding.Raw, PrivateFormat.Raw, NoEncryption()
    )
    return private_bytes, _raw_public(private_key)


def public_key_from_private(private_key_bytes: bytes) -> bytes:
    """Derive the raw public key that belongs to *private_key_bytes*."""
    return _raw_public(Ed25519PrivateKey.from_private_bytes(private_key_bytes))


def sign(private_key_bytes: bytes, payload: bytes) -> bytes:
    """Sign *payload* and return the 64-byte Ed25519 signature."""
    return Ed25519PrivateKey.from_private_bytes(private_key_bytes).sign(payload)


def verify(public_key_bytes: bytes, signature: bytes, payload: bytes) -> bool:
    """Return ``True`` only if *signature* over *payload* matches the key.

    Malformed keys or signatures of the wrong length verify as ``False``
    rather than raising.
    """
    if len(public_key_bytes) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        public_key.verify(signature, payload)
    except (_CryptoInvalidSignature, ValueError):
        return False
    return True


def _raw_public(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


__all__ = [
    "PUBLIC_KEY_LENGTH",
    "SIGNATURE_LENGTH",
    "generate_keypair",
    "public_key_from_private",
    "sign",
    "verify",
]
