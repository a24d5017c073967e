"""Credential revocation registries.

The policy engine asks a :class:`RevocationRegistry` about every credential
exactly once per authentication attempt. A production deployment would
back this with a status list anchored on a ledger; :class:`RevocationList`
is the in-memory (optionally file-persisted) stand-in, and
:class:`NullRevocationRegistry` reports every credential as valid.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from agent_didauth.credentials.models import VerifiedCredential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevocationStatus:
    """Outcome of a revocation lookup."""

    revoked: bool
    reason: str | None = None


@runtime_checkable
class RevocationRegistry(Protocol):
    """Pluggable revocation check."""

    def check(self, credential: VerifiedCredential) -> RevocationStatus:
        ...


class NullRevocationRegistry:
    """Registry that never reports a revocation."""

    def check(self, credential: VerifiedCredential) -> RevocationStatus:
        return RevocationStatus(revoked=False)


class RevocationList:
    """Revoked credential IDs with their reasons.

    Thread-safe. When *persist_path* is given, the list is loaded from it
    on construction and rewritten after every change.

    Parameters
    ----------
    persist_path:
        Optional JSON file holding ``{"revoked": {credential_id: reason}}``.
    """

    def __init__(self, persist_path: Path | None = None) -> None:
        self._revoked: dict[str, str] = {}
        self._lock = threading.Lock()
        self._persist_path = persist_path

        if persist_path is not None and persist_path.exists():
            self._load_from_disk()

    def revoke(self, credential_id: str, reason: str = "unspecified") -> None:
        """Mark *credential_id* as revoked."""
        with self._lock:
            self._revoked[credential_id] = reason
            self._save_to_disk()
        logger.info("Revoked credential %s (%s)", credential_id, reason)

    def unrevoke(self, credential_id: str) -> None:
        """Remove *credential_id* from the list, if present."""
        with self._lock:
            self._revoked.pop(credential_id, None)
            self._save_to_disk()

    def check(self, credential: VerifiedCredential) -> RevocationStatus:
        with self._lock:
            reason = self._revoked.get(credential.id)
        if reason is None:
            return RevocationStatus(revoked=False)
        return RevocationStatus(revoked=True, reason=reason)

    def is_revoked(self, credential_id: str) -> bool:
        with self._lock:
            return credential_id in self._revoked

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)

    def _save_to_disk(self) -> None:
        if self._persist_path is None:
            return
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"revoked": dict(sorted(self._revoked.items()))}
        self._persist_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _load_from_disk(self) -> None:
        assert self._persist_path is not None
        try:
            payload = json.loads(self._persist_path.read_text(encoding="utf-8"))
            self._revoked = {str(k): str(v) for k, v in payload.get("revoked", {}).items()}
        except (json.JSONDecodeError, AttributeError) as exc:
            raise ValueError(f"Unreadable revocation list {self._persist_path}: {exc}") from exc


__all__ = [
    "NullRevocationRegistry",
    "RevocationList",
    "RevocationRegistry",
    "RevocationStatus",
]
