"""did:key encoding for Ed25519 agent identities.

An agent DID is derived deterministically from its public key:

1. prefix the 32-byte Ed25519 public key with the multicodec marker
   ``0xed 0x01``;
2. base58btc-encode the 34 bytes;
3. prepend the multibase indicator ``z`` and the ``did:key:`` scheme.

Because the key is embedded in the identifier, a did:key can always be
resolved offline; see :class:`~agent_didauth.identity.directory.DIDKeyResolver`.
"""
from __future__ import annotations

from agent_didauth.identity.keys import PUBLIC_KEY_LENGTH

DID_KEY_PREFIX: str = "did:key:z"
METHOD: str = "key"

_ED25519_CODEC: bytes = b"\xed\x01"
_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX: dict[str, int] = {char: position for position, char in enumerate(_ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode *data* with the bitcoin base58 alphabet."""
    number = int.from_bytes(data, "big")
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_ALPHABET[remainder])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading_zeros + "".join(reversed(digits))


def b58decode(text: str) -> bytes:
    """Decode a base58btc string.

    Raises
    ------
    ValueError
        If *text* contains a character outside the alphabet.
    """
    number = 0
    for char in text:
        try:
            number = number * 58 + _INDEX[char]
        except KeyError:
            raise ValueError(f"Invalid base58 character {char!r}") from None
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    leading_ones = len(text) - len(text.lstrip("1"))
    return b"\x00" * leading_ones + body


def did_from_public_key(public_key: bytes) -> str:
    """Return the ``did:key`` identifier for a raw Ed25519 public key."""
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise ValueError(
            f"Ed25519 public keys are {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
        )
    return DID_KEY_PREFIX + b58encode(_ED25519_CODEC + public_key)


def public_key_from_did(did: str) -> bytes:
    """Recover the raw Ed25519 public key embedded in a ``did:key``.

    Raises
    ------
    ValueError
        If *did* is not a well-formed Ed25519 ``did:key``.
    """
    if not did.startswith(DID_KEY_PREFIX) or len(did) == len(DID_KEY_PREFIX):
        raise ValueError(f"Not a did:key identifier: {did!r}")
    decoded = b58decode(did[len(DID_KEY_PREFIX):])
    if not decoded.startswith(_ED25519_CODEC):
        raise ValueError(f"Unsupported multicodec in {did!r}; only Ed25519 is accepted")
    public_key = decoded[len(_ED25519_CODEC):]
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"Embedded key in {did!r} has the wrong length")
    return public_key


def is_did_key(did: str) -> bool:
    """Return ``True`` if *did* decodes to an Ed25519 public key."""
    try:
        public_key_from_did(did)
    except ValueError:
        return False
    return True


__all__ = [
    "DID_KEY_PREFIX",
    "METHOD",
    "b58decode",
    "b58encode",
    "did_from_public_key",
    "is_did_key",
    "public_key_from_did",
]
