"""agent_didauth.protocol — handshake orchestration for both sides.

Submodules
----------
messages
    Agent card, authentication outcome and task result payloads.
states
    Server and client state enums plus the per-attempt trace.
replay
    Single-use enforcement for presentations.
tasks
    Handlers run after authorization.
server
    ServerAgent.
client
    ClientAgent and ClientSession.
"""
from __future__ import annotations

from agent_didauth.protocol.messages import (
    AgentCard,
    AuthenticationOutcome,
    SecurityScheme,
    TaskResult,
)
from agent_didauth.protocol.replay import ReplayCache
from agent_didauth.protocol.states import (
    ClientState,
    HandshakeClosedError,
    HandshakeTrace,
    ServerState,
)
from agent_didauth.protocol.tasks import TaskDispatcher
from agent_didauth.protocol.server import ServerAgent
from agent_didauth.protocol.client import ClientAgent, ClientSession

__all__ = [
    "AgentCard",
    "AuthenticationOutcome",
    "ClientAgent",
    "ClientSession",
    "ClientState",
    "HandshakeClosedError",
    "HandshakeTrace",
    "ReplayCache",
    "SecurityScheme",
    "ServerAgent",
    "ServerState",
    "TaskDispatcher",
    "TaskResult",
]
