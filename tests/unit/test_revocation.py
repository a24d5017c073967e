"""Tests for agent_didauth.policy.revocation — revocation registries."""
from __future__ import annotations

from pathlib import Path

import pytest

from agent_didauth.credentials.models import VerifiedCredential
from agent_didauth.policy.revocation import (
    NullRevocationRegistry,
    RevocationList,
    RevocationRegistry,
)


@pytest.fixture()
def credential() -> VerifiedCredential:
    return VerifiedCredential(
        id="urn:uuid:1234",
        issuer="did:key:zIssuer",
        subject="did:key:zHolder",
        type=("VerifiableCredential", "TaskLogCredential"),
    )


class TestNullRevocationRegistry:
    def test_never_revoked(self, credential: VerifiedCredential) -> None:
        assert NullRevocationRegistry().check(credential).revoked is False

    def test_satisfies_protocol(self) -> None:
        assert isinstance(NullRevocationRegistry(), RevocationRegistry)


class TestRevocationList:
    def test_revoke_and_check(self, credential: VerifiedCredential) -> None:
        revocations = RevocationList()
        revocations.revoke(credential.id, reason="superseded")
        status = revocations.check(credential)
        assert status.revoked is True
        assert status.reason == "superseded"
        assert revocations.is_revoked(credential.id)
        assert len(revocations) == 1

    def test_unrevoke(self, credential: VerifiedCredential) -> None:
        revocations = RevocationList()
        revocations.revoke(credential.id)
        revocations.unrevoke(credential.id)
        assert revocations.check(credential).revoked is False
        assert len(revocations) == 0

    def test_unrevoke_unknown_is_noop(self) -> None:
        revocations = RevocationList()
        revocations.unrevoke("urn:uuid:unknown")
        assert len(revocations) == 0

    def test_persistence(self, credential: VerifiedCredential, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "revoked.json"
        RevocationList(path).revoke(credential.id, reason="key compromise")
        reloaded = RevocationList(path)
        assert reloaded.check(credential).reason == "key compromise"

    def test_unreadable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "revoked.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Unreadable"):
            RevocationList(path)
