"""Identity directories — resolving a DID to its verification key.

The protocol engine needs a single read operation from the outside world::

    directory.resolve(did) -> ResolvedIdentity    # or raise IdentityNotFound

Two implementations are provided:

:class:`DIDKeyResolver`
    Stateless. Decodes the public key embedded in a ``did:key`` string.
:class:`IdentityRegistry`
    An in-memory mirror of a ledger-backed directory. Only registered,
    active identities resolve. Lock-protected, with NDJSON export/import.

Directory lookups are the only calls in a handshake that may block on
external I/O, so the orchestrators go through :func:`call_with_timeout`,
which bounds each attempt and retries a limited number of times before
raising :class:`~agent_didauth.errors.TransportTimeout`.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Callable, Protocol, TypeVar, runtime_checkable

from agent_didauth.errors import IdentityNotFound, TransportTimeout
from agent_didauth.identity.actor import ActorIdentity, ResolvedIdentity
from agent_didauth.identity.did_key import public_key_from_did

logger = logging.getLogger(__name__)

T = TypeVar("T")

@runtime_checkable
class IdentityDirectory(Protocol):
    """Anything that can resolve a DID to its public key."""

    def resolve(self, did: str) -> ResolvedIdentity:
        """Resolve *did* or raise :class:`IdentityNotFound`."""
        ...

class DIDKeyResolver:
    """Resolve ``did:key`` identifiers by decoding the key they embed."""

    def resolve(self, did: str) -> ResolvedIdentity:
        try:
            public_key = public_key_from_did(did)
        except ValueError as exc:
            raise IdentityNotFound(did, str(exc)) from exc
        return ResolvedIdentity(did=did, public_key=public_key, metadata={"method": "key"})

class IdentityRegistry:
    """In-memory identity directory with optional file persistence.

    Mirrors a ledger: an identity is resolvable only after it has been
    registered and until it is deactivated. All public methods are
    thread-safe.

    Example
    -------
    ::

        registry = IdentityRegistry()
        registry.register(server_identity)
        registry.resolve(server_identity.did).public_key
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResolvedIdentity] = {}
        self._deactivated: set[str] = set()
        self._lock = threading.Lock()

    def register(
        self,
        identity: ActorIdentity | ResolvedIdentity,
        metadata: dict[str, object] | None = None,
    ) -> str:
        """Publish the public half of *identity*. Re-registering replaces it.

        Returns
        -------
        str
            The registered DID.
        """
        public = identity.public_view() if isinstance(identity, ActorIdentity) else identity
        merged = {**public.metadata, **(metadata or {})}
        entry = ResolvedIdentity(did=public.did, public_key=public.public_key, metadata=merged)
        with self._lock:
            self._entries[entry.did] = entry
            self._deactivated.discard(entry.did)
        logger.debug("Registered identity %s", entry.did)
        return entry.did

    def resolve(self, did: str) -> ResolvedIdentity:
        with self._lock:
            entry = self._entries.get(did)
            deactivated = did in self._deactivated
        if entry is None:
            raise IdentityNotFound(did, "not registered")
        if deactivated:
            raise IdentityNotFound(did, "deactivated")
        return entry

    def deactivate(self, did: str) -> bool:
        """Mark *did* as no longer resolvable. Returns ``False`` if unknown."""
        with self._lock:
            if did not in self._entries:
                return False
            self._deactivated.add(did)
        logger.info("Deactivated identity %s", did)
        return True

    def list_dids(self) -> list[str]:
        """Return all registered DIDs (including deactivated), sorted."""
        with self._lock:
            return sorted(self._entries)

    def export_registry(self, path: Path) -> None:
        """Write every entry as one JSON object per line."""
        with self._lock:
            entries = sorted(self._entries.values(), key=lambda e: e.did)
            deactivated = set(self._deactivated)
        lines = [
            json.dumps(
                {
                    "did": entry.did,
                    "public_key_hex": entry.public_key.hex(),
                    "metadata": entry.metadata,
                    "deactivated": entry.did in deactivated,
                },
                sort_keys=True,
            )
            for entry in entries
        ]
        path.write_text("\n".join(lines), encoding="utf-8")

    def import_registry(self, path: Path) -> int:
        """Load entries written by :meth:`export_registry`.

        Existing DIDs are kept; duplicates from the file are skipped.

        Returns
        -------
        int
            Number of entries added.

        Raises
        ------
        ValueError
            If a line is not valid JSON or lacks required fields.
        """
        added = 0
        for line_number, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
            if not raw.strip():
                continue
            try:
                record = json.loads(raw)
                entry = ResolvedIdentity(
                    did=record["did"],
                    public_key=bytes.fromhex(record["public_key_hex"]),
                    metadata=dict(record.get("metadata", {})),
                )
            except (json.JSONDecodeError, KeyError, ValueError) as exc:
                raise ValueError(f"Invalid registry entry on line {line_number}: {exc}") from exc
            with self._lock:
                if entry.did in self._entries:
                    continue
                self._entries[entry.did] = entry
                if record.get("deactivated"):
                    self._deactivated.add(entry.did)
            added += 1
        return added

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, did: object) -> bool:
        with self._lock:
            return did in self._entries

# ---------------------------------------------------------------------------
# Bounded external calls
# ---------------------------------------------------------------------------

class _Attempt:
    """One run of a bounded call on its own daemon thread.

    An attempt that times out is abandoned, not interrupted: its thread
    finishes (or hangs) on its own without holding capacity other lookups
    need.
    """

    def __init__(self, func: Callable[[], T], name: str) -> None:
        self._func = func
        self._done = threading.Event()
        self._value: object = None
        self._error: Exception | None = None
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self) -> None:
        try:
            self._value = self._func()
        except Exception as exc:  # re-raised in the calling thread
            self._error = exc
        finally:
            self._done.set()

    def wait(self, timeout: float) -> bool:
        self._thread.start()
        return self._done.wait(timeout)

    def result(self) -> object:
        if self._error is not None:
            raise self._error
        return self._value

def call_with_timeout(
    func: Callable[[], T],
    *,
    operation: str,
    timeout: float,
    retries: int = 0,
) -> T:
    """Run *func* with a per-attempt time bound.

    Only timeouts are retried (up to *retries* extra attempts). Any
    exception raised by *func* itself propagates unchanged on the first
    occurrence. Each attempt runs on a fresh thread, so a lookup that never
    returns delays only the handshake that issued it.

    Raises
    ------
    TransportTimeout
        When every attempt exceeded *timeout* seconds.
    """
    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        run = _Attempt(func, name=f"didauth-lookup-{attempt}")
        if run.wait(timeout):
            return run.result()  # type: ignore[return-value]
        logger.warning(
            "%s timed out after %.1fs (attempt %d/%d)", operation, timeout, attempt, attempts
        )
    raise TransportTimeout(operation, timeout, attempts)


def resolve_identity(
    directory: IdentityDirectory,
    did: str,
    *,
    timeout: float = 5.0,
    retries: int = 2,
) -> ResolvedIdentity:
    """Resolve *did* through *directory* under :func:`call_with_timeout`."""
    return call_with_timeout(
        lambda: directory.resolve(did),
        operation=f"resolve({did})",
        timeout=timeout,
        retries=retries,
    )

__all__ = [
    "DIDKeyResolver",
    "IdentityDirectory",
    "IdentityRegistry",
    "call_with_timeout",
    "resolve_identity",
]
