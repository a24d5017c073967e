"""CLI entry point for agent-didauth.

Invoked as::

    agent-didauth [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m agent_didauth.cli.main

Commands
--------
version        Show version information
keygen         Generate a did:key identity
serve          Run the server agent over HTTP
demo           Run a complete in-process handshake
authenticate   Authenticate to a running server agent
inspect        Decode (and optionally verify) a credential or presentation
"""
from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from agent_didauth import __version__

console = Console()


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_identity(key_file: str | None, name: str) -> Any:
    """Load an identity from a keygen file, or generate an ephemeral one."""
    from agent_didauth.identity import ActorIdentity

    if key_file is None:
        return ActorIdentity.generate(name)
    try:
        data = json.loads(Path(key_file).read_text(encoding="utf-8"))
        return ActorIdentity.from_private_key(
            bytes.fromhex(data["private_key_hex"]), name=data.get("name", name)
        )
    except (OSError, ValueError, KeyError) as exc:
        console.print(f"[red]Error:[/red] cannot load identity from {key_file}: {exc}")
        sys.exit(1)


def _parse_json_option(value: str | None, option: str) -> dict[str, Any]:
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Error:[/red] {option} is not valid JSON: {exc}")
        sys.exit(1)
    if not isinstance(parsed, dict):
        console.print(f"[red]Error:[/red] {option} must be a JSON object")
        sys.exit(1)
    return parsed


def _print_trace(title: str, states: list[str]) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("State")
    for index, state in enumerate(states, start=1):
        style = "red" if state in ("Rejected", "Failed") else "green"
        table.add_row(str(index), f"[{style}]{state}[/{style}]")
    console.print(table)


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="agent-didauth")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    help="Logging level for library output.",
)
def cli(log_level: str) -> None:
    """Mutual DID-based authentication and authorization between agents"""
    logging.basicConfig(level=getattr(logging, log_level))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]agent-didauth[/bold] v{__version__}")


# ------------------------------------------------------------------
# keygen
# ------------------------------------------------------------------


@cli.command(name="keygen")
@click.option("--name", "-n", default="agent", help="Human-readable name for the identity.")
@click.option(
    "--out",
    "-o",
    type=click.Path(),
    default=None,
    help="Write the identity (including the private key) to this JSON file.",
)
def keygen_command(name: str, out: str | None) -> None:
    """Generate a new Ed25519 did:key identity."""
    from agent_didauth.identity import ActorIdentity

    identity = ActorIdentity.generate(name)
    if out:
        payload = {**identity.to_dict(), "private_key_hex": identity.private_key.hex()}
        path = Path(out)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.chmod(path, 0o600)
        console.print(f"[green]Wrote[/green] identity to {path}")
    console.print(f"  Name: {identity.name}")
    console.print(f"  DID:  {identity.did}")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default=None, help="Bind address (default from settings).")
@click.option("--port", type=int, default=None, help="TCP port (default from settings).")
@click.option("--key-file", type=click.Path(exists=True), default=None, help="Server identity file.")
@click.option(
    "--issuer-key-file",
    type=click.Path(exists=True),
    default=None,
    help="Identity file for the hosted credential issuer.",
)
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="JSON settings file.")
def serve_command(
    host: str | None,
    port: int | None,
    key_file: str | None,
    issuer_key_file: str | None,
    config_file: str | None,
) -> None:
    """Run the server agent over HTTP (blocking)."""
    from agent_didauth.config import Settings
    from agent_didauth.credentials import CredentialIssuer
    from agent_didauth.protocol import ServerAgent
    from agent_didauth.server.app import run_server

    settings = Settings.from_env(config_file=Path(config_file) if config_file else None)
    issuer = None
    if issuer_key_file:
        issuer = CredentialIssuer(_load_identity(issuer_key_file, "issuer"))
    agent = ServerAgent.from_settings(
        settings, identity=_load_identity(key_file, "server"), issuer=issuer
    )
    console.print(f"[bold]Server DID:[/bold] {agent.did}")
    console.print(f"[bold]Issuer DID:[/bold] {agent.issuer.did}")
    run_server(host=host or settings.host, port=port or settings.port, agent=agent)


# ------------------------------------------------------------------
# demo
# ------------------------------------------------------------------


@cli.command(name="demo")
@click.option("--action", "-a", default="OrderPizza", show_default=True, help="Task action to authorize.")
@click.option("--data", default=None, help="JSON object passed to the task.")
@click.option(
    "--advisory",
    is_flag=True,
    default=False,
    help="Continue when the server presentation fails to verify.",
)
def demo_command(action: str, data: str | None, advisory: bool) -> None:
    """Run a complete handshake and task between two in-process agents."""
    from agent_didauth.errors import AuthenticationError
    from agent_didauth.identity import ActorIdentity
    from agent_didauth.protocol import ClientAgent, ServerAgent
    from agent_didauth.transport import LocalTransport

    task_data = _parse_json_option(data, "--data")
    server = ServerAgent(ActorIdentity.generate("server"))
    client = ClientAgent(
        ActorIdentity.generate("client"), require_server_verification=not advisory
    )
    transport = LocalTransport(server)

    console.print(f"Server: {server.did}")
    console.print(f"Client: {client.did}")

    try:
        session = client.authenticate(transport, {"action": action, **task_data})
    except AuthenticationError as exc:
        if client.last_trace is not None:
            _print_trace("Client handshake", client.last_trace.names())
        console.print(f"[red]Rejected[/red] [{exc.tag}] {exc.reason}")
        sys.exit(1)

    if session.trace is not None:
        _print_trace("Client handshake", session.trace.names())
    console.print(
        f"[green]Authorized[/green] {session.action} with "
        f"{', '.join(session.permissions) or '(no permissions)'}"
    )
    result = client.perform_task(transport, session, data=task_data)
    console.print_json(json.dumps(result.to_wire(), default=str))


# ------------------------------------------------------------------
# authenticate
# ------------------------------------------------------------------


@cli.command(name="authenticate")
@click.argument("server_url")
@click.option("--action", "-a", required=True, help="Task action to authorize.")
@click.option("--data", default=None, help="JSON object of task claims and task data.")
@click.option("--key-file", type=click.Path(exists=True), default=None, help="Client identity file.")
@click.option("--run-task", is_flag=True, default=False, help="Dispatch the task after authenticating.")
@click.option("--advisory", is_flag=True, default=False, help="Do not stop on server verification failure.")
@click.option("--timeout", type=float, default=10.0, show_default=True, help="Per-request timeout (s).")
def authenticate_command(
    server_url: str,
    action: str,
    data: str | None,
    key_file: str | None,
    run_task: bool,
    advisory: bool,
    timeout: float,
) -> None:
    """Authenticate to the server agent at SERVER_URL."""
    from agent_didauth.errors import AuthenticationError
    from agent_didauth.protocol import ClientAgent
    from agent_didauth.transport import HttpTransport

    task_data = _parse_json_option(data, "--data")
    client = ClientAgent(
        _load_identity(key_file, "client"), require_server_verification=not advisory
    )
    with HttpTransport(server_url, timeout=timeout) as transport:
        try:
            session = client.authenticate(transport, {"action": action, **task_data})
            console.print(f"[green]Authorized[/green] as {client.did}")
            console.print(f"  Action:      {session.action}")
            console.print(f"  Permissions: {', '.join(session.permissions) or '(none)'}")
            console.print(f"  Expires in:  {session.expires_in}s")
            if run_task:
                result = client.perform_task(transport, session, data=task_data)
                console.print_json(json.dumps(result.to_wire(), default=str))
        except AuthenticationError as exc:
            console.print(f"[red]Error:[/red] [{exc.tag}] {exc.reason}")
            sys.exit(1)


# ------------------------------------------------------------------
# inspect
# ------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("token")
@click.option(
    "--verify",
    "verify_token",
    is_flag=True,
    default=False,
    help="Verify signatures against the did:key identities named in the token.",
)
def inspect_command(token: str, verify_token: bool) -> None:
    """Decode a credential or presentation TOKEN and print its contents."""
    from agent_didauth.credentials import TokenFormatError, decode_unverified
    from agent_didauth.errors import AuthenticationError
    from agent_didauth.identity import DIDKeyResolver
    from agent_didauth.presentation import PresentationVerifier

    try:
        parsed = decode_unverified(token)
    except TokenFormatError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    console.print("[bold]Header[/bold]")
    console.print_json(json.dumps(parsed.header))
    console.print("[bold]Payload[/bold]")
    console.print_json(json.dumps(parsed.payload))

    if not verify_token:
        return
    verifier = PresentationVerifier(DIDKeyResolver())
    try:
        if "vp" in parsed.payload:
            presentation = verifier.verify_presentation(token)
            console.print(
                f"[green]Verified[/green] presentation from {presentation.holder} "
                f"({len(presentation.credentials)} credential(s))"
            )
        else:
            credential = verifier.verify_credential(token)
            console.print(f"[green]Verified[/green] credential {credential.id} from {credential.issuer}")
    except AuthenticationError as exc:
        console.print(f"[red]Invalid[/red] [{exc.tag}] {exc.reason}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
