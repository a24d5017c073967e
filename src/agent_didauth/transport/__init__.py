"""agent_didauth.transport — carriers for the four handshake operations."""
from __future__ import annotations

from agent_didauth.transport.base import (
    AGENT_DID_HEADER,
    PRESENTATION_HEADER,
    OutgoingRequest,
    PreSendHook,
    Transport,
)
from agent_didauth.transport.http import HttpTransport
from agent_didauth.transport.local import LocalTransport

__all__ = [
    "AGENT_DID_HEADER",
    "HttpTransport",
    "LocalTransport",
    "OutgoingRequest",
    "PRESENTATION_HEADER",
    "PreSendHook",
    "Transport",
]
