"""Tests for agent_didauth.credentials — token codec, issuance and normalized models."""
from __future__ import annotations

import datetime

import pytest

from agent_didauth.credentials.issuer import CredentialIssuer
from agent_didauth.credentials.jws import (
    ALGORITHM,
    TokenFormatError,
    b64url_decode,
    b64url_encode,
    decode_unverified,
    encode_signed,
)
from agent_didauth.credentials.models import (
    BASE_CREDENTIAL_TYPE,
    CredentialType,
    VerifiedCredential,
)
from agent_didauth.identity.actor import ActorIdentity

T0 = datetime.datetime(2025, 1, 15, 12, 0, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture()
def issuer_identity() -> ActorIdentity:
    return ActorIdentity.generate("issuer")


@pytest.fixture()
def holder() -> ActorIdentity:
    return ActorIdentity.generate("holder")


@pytest.fixture()
def issuer(issuer_identity: ActorIdentity) -> CredentialIssuer:
    return CredentialIssuer(issuer_identity, clock=lambda: T0)


# ---------------------------------------------------------------------------
# Compact token codec
# ---------------------------------------------------------------------------


class TestCompactToken:
    def test_encode_decode_round_trip(self, holder: ActorIdentity) -> None:
        token = encode_signed({"hello": "world", "n": 1}, holder)
        parsed = decode_unverified(token)
        assert parsed.header == {"alg": ALGORITHM, "typ": "JWT", "kid": holder.did}
        assert parsed.payload == {"hello": "world", "n": 1}
        assert parsed.signer == holder.did
        assert parsed.verify(holder.public_key) is True

    def test_verify_fails_for_other_key(self, holder: ActorIdentity) -> None:
        parsed = decode_unverified(encode_signed({"a": 1}, holder))
        assert parsed.verify(ActorIdentity.generate().public_key) is False

    def test_wrong_part_count(self) -> None:
        with pytest.raises(TokenFormatError, match="3 dot-separated"):
            decode_unverified("a.b")

    def test_non_string_rejected(self) -> None:
        with pytest.raises(TokenFormatError):
            decode_unverified(123)  # type: ignore[arg-type]

    def test_unsupported_algorithm(self) -> None:
        header = b64url_encode(b'{"alg":"none","typ":"JWT"}')
        payload = b64url_encode(b"{}")
        with pytest.raises(TokenFormatError, match="Unsupported algorithm"):
            decode_unverified(f"{header}.{payload}.")

    def test_payload_must_be_object(self, holder: ActorIdentity) -> None:
        header = encode_signed({}, holder).split(".")[0]
        payload = b64url_encode(b"[1, 2]")
        with pytest.raises(TokenFormatError, match="JSON object"):
            decode_unverified(f"{header}.{payload}.AAAA")

    def test_b64url_round_trip_is_unpadded(self) -> None:
        encoded = b64url_encode(b"\xff\xfe")
        assert "=" not in encoded
        assert b64url_decode(encoded) == b"\xff\xfe"

    def test_non_canonical_segment_rejected(self) -> None:
        # "AB" and "AA" decode to the same byte; only "AA" is canonical.
        assert b64url_encode(b"\x00") == "AA"
        with pytest.raises(TokenFormatError, match="Non-canonical"):
            b64url_decode("AB")


# ---------------------------------------------------------------------------
# CredentialIssuer
# ---------------------------------------------------------------------------


class TestCredentialIssuer:
    def test_task_log_payload_shape(
        self, issuer: CredentialIssuer, holder: ActorIdentity
    ) -> None:
        token = issuer.issue_task_log(holder.did, {"action": "OrderPizza", "timestamp": 1})
        payload = decode_unverified(token).payload
        assert payload["iss"] == issuer.did
        assert payload["sub"] == holder.did
        assert payload["nbf"] == int(T0.timestamp())
        assert payload["jti"].startswith("urn:uuid:")
        vc = payload["vc"]
        assert vc["type"] == [BASE_CREDENTIAL_TYPE, "TaskLogCredential"]
        subject = vc["credentialSubject"]
        assert subject["id"] == holder.did
        assert subject["issuedAt"] == T0.isoformat()
        assert subject["taskLog"] == {"action": "OrderPizza", "timestamp": 1}

    def test_signed_by_issuer(self, issuer: CredentialIssuer, issuer_identity: ActorIdentity, holder: ActorIdentity) -> None:
        parsed = decode_unverified(issuer.issue_task_log(holder.did, {"action": "QueryStatus"}))
        assert parsed.signer == issuer_identity.did
        assert parsed.verify(issuer_identity.public_key)

    def test_service_endpoint_credential(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        token = issuer.issue_service_endpoint(holder.did, {"url": "http://x"})
        vc = decode_unverified(token).payload["vc"]
        assert vc["type"][1] == CredentialType.SERVICE_ENDPOINT.value
        assert vc["credentialSubject"]["serviceEndpoint"] == {"url": "http://x"}

    def test_each_credential_has_unique_id(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        first = decode_unverified(issuer.issue_task_log(holder.did, {})).payload["jti"]
        second = decode_unverified(issuer.issue_task_log(holder.did, {})).payload["jti"]
        assert first != second

    def test_empty_holder_rejected(self, issuer: CredentialIssuer) -> None:
        with pytest.raises(ValueError, match="holder_did"):
            issuer.issue_task_log("", {"action": "OrderPizza"})

    def test_reserved_claim_rejected(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        with pytest.raises(ValueError, match="reserved"):
            issuer.issue_credential(holder.did, "CustomCredential", {"issuedAt": "yesterday"})

    def test_custom_type_string(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        token = issuer.issue_credential(holder.did, "CustomCredential", {"level": 3})
        assert decode_unverified(token).payload["vc"]["type"][1] == "CustomCredential"


# ---------------------------------------------------------------------------
# VerifiedCredential
# ---------------------------------------------------------------------------


class TestVerifiedCredential:
    def test_from_payload(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        token = issuer.issue_task_log(holder.did, {"action": "OrderPizza"})
        credential = VerifiedCredential.from_payload(decode_unverified(token).payload, raw=token)
        assert credential.issuer == issuer.did
        assert credential.subject == holder.did
        assert credential.issued_at == T0
        assert credential.action == "OrderPizza"
        assert credential.has_type("TaskLogCredential")
        assert "issuedAt" not in credential.claims
        assert credential.raw == token

    def test_top_level_action_fallback(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        token = issuer.issue_credential(holder.did, "TaskLogCredential", {"action": "QueryStatus"})
        credential = VerifiedCredential.from_payload(decode_unverified(token).payload)
        assert credential.action == "QueryStatus"

    def test_missing_envelope_rejected(self) -> None:
        with pytest.raises(TokenFormatError, match="'vc'"):
            VerifiedCredential.from_payload({"iss": "did:key:zX"})

    def test_missing_base_type_rejected(self) -> None:
        payload = {"iss": "did:key:zX", "vc": {"type": ["Other"], "credentialSubject": {"id": "s"}}}
        with pytest.raises(TokenFormatError, match="VerifiableCredential"):
            VerifiedCredential.from_payload(payload)

    def test_unparseable_issued_at_is_none(self) -> None:
        payload = {
            "iss": "did:key:zX",
            "sub": "did:key:zY",
            "vc": {
                "type": [BASE_CREDENTIAL_TYPE],
                "credentialSubject": {"id": "did:key:zY", "issuedAt": "not-a-date"},
            },
        }
        assert VerifiedCredential.from_payload(payload).issued_at is None

    def test_summary_omits_raw(self, issuer: CredentialIssuer, holder: ActorIdentity) -> None:
        token = issuer.issue_task_log(holder.did, {"action": "OrderPizza"})
        summary = VerifiedCredential.from_payload(decode_unverified(token).payload, raw=token).summary()
        assert token not in str(summary)
        assert summary["issuedAt"] == T0.isoformat()
