#!/usr/bin/env python3
"""Example: Handshake over HTTP

Starts the server agent on a free local port in a background thread and
authenticates to it with the httpx-backed transport.

Usage:
    python examples/03_http_server.py

Requirements:
    pip install agent-didauth
"""
from __future__ import annotations

import logging
import threading

from agent_didauth import ActorIdentity, ClientAgent, HttpTransport, ServerAgent
from agent_didauth.server import create_server


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    agent = ServerAgent(ActorIdentity.generate("server"))
    server = create_server(port=0, agent=agent)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base_url = f"http://127.0.0.1:{server.server_address[1]}"
    print(f"Server agent listening on {base_url}")

    try:
        client = ClientAgent(ActorIdentity.generate("client"))
        with HttpTransport(base_url) as transport:
            session = client.authenticate(transport, {"action": "QueryStatus"})
            result = client.perform_task(transport, session)
        print(f"Status: {result.details['status']} (permissions: {session.permissions})")
    finally:
        server.shutdown()
        server.server_close()


if __name__ == "__main__":
    main()
