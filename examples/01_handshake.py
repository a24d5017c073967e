#!/usr/bin/env python3
"""Example: In-process handshake

Runs the full mutual handshake between a client agent and a server agent
in the same process, then dispatches the authorized task.

Usage:
    python examples/01_handshake.py

Requirements:
    pip install agent-didauth
"""
from __future__ import annotations

import agent_didauth
from agent_didauth import ActorIdentity, ClientAgent, LocalTransport, ServerAgent


def main() -> None:
    print(f"agent-didauth version: {agent_didauth.__version__}")

    # Step 1: Create both identities
    server = ServerAgent(ActorIdentity.generate("pizza-server"), name="Pizza Agent")
    client = ClientAgent(ActorIdentity.generate("assistant"))
    print(f"Server DID: {server.did}")
    print(f"Client DID: {client.did}")

    # Step 2: Authenticate for a task
    transport = LocalTransport(server)
    session = client.authenticate(transport, {"action": "OrderPizza", "menu": "Margherita"})
    print(f"Authorized: {session.action} -> {', '.join(session.permissions)}")
    print(f"Token expires in {session.expires_in}s")

    # Step 3: Run the task
    result = client.perform_task(transport, session, data={"menu": "Margherita"})
    print(f"Order placed: {result.details['orderId']} ({result.details['price']})")

    print("\nStates: " + " -> ".join(session.trace.names() if session.trace else []))


if __name__ == "__main__":
    main()
