"""ReplayCache — remembers accepted presentation identifiers.

The freshness window only bounds how long a captured presentation stays
usable; this cache makes each presentation single-use within that window.
An entry is kept up to and including ``ttl_seconds`` after it was recorded.
The server sizes the TTL as the freshness window plus the tolerated issuer
clock skew, the longest a credential accepted now can still pass the
freshness check.
"""
from __future__ import annotations

import threading

from agent_didauth._time import Clock, utcnow
from agent_didauth.errors import ReplayDetected


class ReplayCache:
    """Thread-safe set of seen presentation IDs with expiry.

    Parameters
    ----------
    ttl_seconds:
        How long an identifier is remembered.
    clock:
        Optional clock for expiry bookkeeping.
    """

    def __init__(self, ttl_seconds: float, clock: Clock | None = None) -> None:
        self._ttl = ttl_seconds
        self._clock = clock or utcnow
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def check_and_remember(self, presentation_id: str) -> None:
        """Record *presentation_id*, or raise if it is already recorded.

        Raises
        ------
        ReplayDetected
            If the identifier was seen within the TTL.
        """
        now = self._clock().timestamp()
        with self._lock:
            self._purge(now)
            if presentation_id in self._seen:
                raise ReplayDetected(presentation_id)
            self._seen[presentation_id] = now + self._ttl

    def __contains__(self, presentation_id: object) -> bool:
        now = self._clock().timestamp()
        with self._lock:
            self._purge(now)
            return presentation_id in self._seen

    def __len__(self) -> int:
        now = self._clock().timestamp()
        with self._lock:
            self._purge(now)
            return len(self._seen)

    def _purge(self, now: float) -> None:
        expired = [key for key, expires_at in self._seen.items() if expires_at < now]
        for key in expired:
            del self._seen[key]


__all__ = ["ReplayCache"]
