"""Clock helpers shared by issuers, verifiers and the policy engine.

Components accept an optional ``clock`` callable returning an aware UTC
datetime so that freshness and expiry can be evaluated at a fixed instant.
"""
from __future__ import annotations

import datetime
from typing import Callable

Clock = Callable[[], datetime.datetime]


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def to_epoch(moment: datetime.datetime) -> int:
    """Return *moment* as whole seconds since the Unix epoch."""
    return int(moment.timestamp())


def parse_iso(value: object) -> datetime.datetime | None:
    """Parse an ISO-8601 timestamp, returning ``None`` when it is unusable.

    Naive timestamps are interpreted as UTC. A trailing ``Z`` is accepted.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed
