"""HTTP server mode for agent-didauth.

Exposes a :class:`~agent_didauth.protocol.server.ServerAgent` over the
stdlib HTTP server. See :mod:`agent_didauth.server.app`.
"""
from __future__ import annotations

from agent_didauth.server.app import create_server, run_server

__all__ = ["create_server", "run_server"]
