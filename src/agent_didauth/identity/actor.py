"""ActorIdentity — the immutable identity value each agent is built around.

An actor generates its key pair exactly once (at process start) and the
resulting :class:`ActorIdentity` is injected into the issuer, the
presentation builder and the orchestrators. There is no module-level
wallet: every component receives the identity it acts on explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from agent_didauth.identity import keys
from agent_didauth.identity.did_key import METHOD, did_from_public_key


@dataclass(frozen=True)
class ResolvedIdentity:
    """The public half of an identity, as returned by a directory.

    Parameters
    ----------
    did:
        The resolved DID.
    public_key:
        The 32-byte Ed25519 verification key.
    metadata:
        Directory-provided metadata (name, registration time, ...).
    """

    did: str
    public_key: bytes
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActorIdentity:
    """A DID bound to an Ed25519 key pair.

    Parameters
    ----------
    did:
        ``did:key`` identifier derived from ``public_key``.
    public_key:
        Raw 32-byte public key.
    private_key:
        Raw 32-byte private key. Never included in ``repr`` or in any
        serialized form.
    name:
        Human-readable label for logs and agent cards.
    method:
        DID method tag naming the resolution scheme.
    """

    did: str
    public_key: bytes
    private_key: bytes = field(repr=False)
    name: str = "agent"
    method: str = METHOD

    @classmethod
    def generate(cls, name: str = "agent") -> "ActorIdentity":
        """Create a new identity with a freshly generated key pair."""
        private_key, public_key = keys.generate_keypair()
        return cls(
            did=did_from_public_key(public_key),
            public_key=public_key,
            private_key=private_key,
            name=name,
        )

    @classmethod
    def from_private_key(cls, private_key: bytes, name: str = "agent") -> "ActorIdentity":
        """Rebuild an identity from stored private key bytes."""
        public_key = keys.public_key_from_private(private_key)
        return cls(
            did=did_from_public_key(public_key),
            public_key=public_key,
            private_key=private_key,
            name=name,
        )

    def sign(self, payload: bytes) -> bytes:
        """Sign *payload* with this identity's private key."""
        return keys.sign(self.private_key, payload)

    def public_view(self) -> ResolvedIdentity:
        """Return the directory-facing view of this identity."""
        return ResolvedIdentity(
            did=self.did,
            public_key=self.public_key,
            metadata={"name": self.name, "method": self.method},
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize the public fields to a plain dictionary."""
        return {
            "did": self.did,
            "name": self.name,
            "method": self.method,
            "public_key_hex": self.public_key.hex(),
        }


__all__ = ["ActorIdentity", "ResolvedIdentity"]
