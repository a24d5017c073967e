"""HandshakeAuditLog — JSONL audit trail of authentication events.

Each handshake outcome (token issued, presentation rejected, task
dispatched) is appended as one JSON line to the configured file, or kept
in an in-memory buffer when no path is configured. Entries carry DIDs,
tags and reasons only; tokens and key material are never written.
"""
from __future__ import annotations

import datetime
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class AuditEvent:
    """A single auditable protocol event.

    Parameters
    ----------
    event_type:
        Short snake_case name, e.g. ``"token_issued"``.
    subject:
        The DID the event is about (the client, usually).
    actor:
        The DID of the agent recording the event.
    details:
        Additional key-value context.
    timestamp:
        UTC time of the event.
    """

    event_type: str
    subject: str
    actor: str = "system"
    details: dict[str, object] = field(default_factory=dict)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "subject": self.subject,
            "actor": self.actor,
            "details": self.details,
        }


class HandshakeAuditLog:
    """Append-only, thread-safe audit log.

    Parameters
    ----------
    log_path:
        JSONL file to append to. Parent directories are created. When
        ``None``, events are buffered in memory.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._buffer: list[str] = []
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: AuditEvent) -> None:
        line = json.dumps(event.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)

    def record(self, event_type: str, subject: str, actor: str = "system", **details: object) -> None:
        """Log an event without building an :class:`AuditEvent` by hand."""
        self.log(AuditEvent(event_type=event_type, subject=subject, actor=actor, details=details))

    def events(self) -> list[dict[str, object]]:
        """Return every recorded event, oldest first."""
        with self._lock:
            if self._log_path is None:
                lines = list(self._buffer)
            elif self._log_path.exists():
                lines = self._log_path.read_text(encoding="utf-8").splitlines()
            else:
                lines = []
        return [json.loads(line) for line in lines if line.strip()]

    def drain_buffer(self) -> list[str]:
        """Return and clear buffered lines (in-memory mode only)."""
        with self._lock:
            drained = list(self._buffer)
            self._buffer.clear()
        return drained


__all__ = ["AuditEvent", "HandshakeAuditLog"]
