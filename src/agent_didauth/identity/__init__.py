"""agent_didauth.identity — actor identities, did:key encoding and directories.

Submodules
----------
keys
    Ed25519 signing primitive (generate / sign / verify).
did_key
    did:key encoding and decoding.
actor
    ActorIdentity and ResolvedIdentity values.
directory
    IdentityDirectory contract, DIDKeyResolver, IdentityRegistry and
    bounded-timeout lookups.
"""
from __future__ import annotations

from agent_didauth.identity.actor import ActorIdentity, ResolvedIdentity
from agent_didauth.identity.did_key import (
    did_from_public_key,
    is_did_key,
    public_key_from_did,
)
from agent_didauth.identity.directory import (
    DIDKeyResolver,
    IdentityDirectory,
    IdentityRegistry,
    call_with_timeout,
    resolve_identity,
)

__all__ = [
    "ActorIdentity",
    "DIDKeyResolver",
    "IdentityDirectory",
    "IdentityRegistry",
    "ResolvedIdentity",
    "call_with_timeout",
    "did_from_public_key",
    "is_did_key",
    "public_key_from_did",
    "resolve_identity",
]
