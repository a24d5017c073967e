"""Tests for agent_didauth.identity — keys, did:key encoding and actor identities."""
from __future__ import annotations

import pytest

from agent_didauth.identity import keys
from agent_didauth.identity.actor import ActorIdentity
from agent_didauth.identity.did_key import (
    DID_KEY_PREFIX,
    b58decode,
    b58encode,
    did_from_public_key,
    is_did_key,
    public_key_from_did,
)


@pytest.fixture()
def identity() -> ActorIdentity:
    return ActorIdentity.generate("tester")


# ---------------------------------------------------------------------------
# Signing primitive
# ---------------------------------------------------------------------------


class TestKeys:
    def test_keypair_lengths(self) -> None:
        private_key, public_key = keys.generate_keypair()
        assert len(private_key) == 32
        assert len(public_key) == keys.PUBLIC_KEY_LENGTH

    def test_public_key_from_private_matches(self) -> None:
        private_key, public_key = keys.generate_keypair()
        assert keys.public_key_from_private(private_key) == public_key

    def test_sign_and_verify(self) -> None:
        private_key, public_key = keys.generate_keypair()
        signature = keys.sign(private_key, b"payload")
        assert len(signature) == keys.SIGNATURE_LENGTH
        assert keys.verify(public_key, signature, b"payload") is True

    def test_verify_rejects_other_payload(self) -> None:
        private_key, public_key = keys.generate_keypair()
        signature = keys.sign(private_key, b"payload")
        assert keys.verify(public_key, signature, b"other") is False

    def test_verify_rejects_other_key(self) -> None:
        private_key, _ = keys.generate_keypair()
        _, other_public = keys.generate_keypair()
        signature = keys.sign(private_key, b"payload")
        assert keys.verify(other_public, signature, b"payload") is False

    def test_verify_rejects_wrong_lengths(self) -> None:
        private_key, public_key = keys.generate_keypair()
        signature = keys.sign(private_key, b"payload")
        assert keys.verify(public_key[:31], signature, b"payload") is False
        assert keys.verify(public_key, signature[:63], b"payload") is False


# ---------------------------------------------------------------------------
# did:key
# ---------------------------------------------------------------------------


class TestBase58:
    def test_known_vector(self) -> None:
        assert b58encode(b"hello world") == "StV1DL6CwTryKyV"

    def test_leading_zero_bytes_are_ones(self) -> None:
        assert b58encode(b"\x00\x00\x01") == "112"
        assert b58decode("112") == b"\x00\x00\x01"

    def test_decode_rejects_invalid_character(self) -> None:
        with pytest.raises(ValueError, match="Invalid base58"):
            b58decode("0OIl")


class TestDidKey:
    def test_did_has_prefix(self, identity: ActorIdentity) -> None:
        assert identity.did.startswith(DID_KEY_PREFIX)

    def test_ed25519_did_starts_with_z6mk(self, identity: ActorIdentity) -> None:
        assert identity.did.startswith("did:key:z6Mk")

    def test_public_key_round_trip(self, identity: ActorIdentity) -> None:
        assert public_key_from_did(identity.did) == identity.public_key

    def test_did_is_deterministic(self, identity: ActorIdentity) -> None:
        assert did_from_public_key(identity.public_key) == identity.did

    def test_wrong_key_length_rejected(self) -> None:
        with pytest.raises(ValueError, match="32 bytes"):
            did_from_public_key(b"\x01" * 16)

    def test_non_did_key_rejected(self) -> None:
        with pytest.raises(ValueError, match="Not a did:key"):
            public_key_from_did("did:web:example.com")

    def test_wrong_codec_rejected(self) -> None:
        did = DID_KEY_PREFIX + b58encode(b"\x12\x00" + b"\x01" * 32)
        with pytest.raises(ValueError, match="multicodec"):
            public_key_from_did(did)

    def test_is_did_key(self, identity: ActorIdentity) -> None:
        assert is_did_key(identity.did) is True
        assert is_did_key("did:key:") is False
        assert is_did_key("did:example:123") is False


# ---------------------------------------------------------------------------
# ActorIdentity
# ---------------------------------------------------------------------------


class TestActorIdentity:
    def test_generate_produces_distinct_identities(self) -> None:
        assert ActorIdentity.generate().did != ActorIdentity.generate().did

    def test_from_private_key_restores_did(self, identity: ActorIdentity) -> None:
        restored = ActorIdentity.from_private_key(identity.private_key, name="copy")
        assert restored.did == identity.did
        assert restored.name == "copy"

    def test_repr_hides_private_key(self, identity: ActorIdentity) -> None:
        assert identity.private_key.hex() not in repr(identity)

    def test_to_dict_has_no_private_key(self, identity: ActorIdentity) -> None:
        data = identity.to_dict()
        assert data["did"] == identity.did
        assert data["public_key_hex"] == identity.public_key.hex()
        assert identity.private_key.hex() not in str(data)

    def test_public_view(self, identity: ActorIdentity) -> None:
        view = identity.public_view()
        assert view.did == identity.did
        assert view.public_key == identity.public_key
        assert view.metadata == {"name": "tester", "method": "key"}

    def test_sign_verifies_with_public_key(self, identity: ActorIdentity) -> None:
        signature = identity.sign(b"data")
        assert keys.verify(identity.public_key, signature, b"data")

    def test_identity_is_immutable(self, identity: ActorIdentity) -> None:
        with pytest.raises(AttributeError):
            identity.name = "changed"  # type: ignore[misc]
