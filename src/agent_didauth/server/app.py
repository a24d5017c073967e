"""HTTP server for agent-didauth using stdlib http.server.

Routes:
    GET    /agent-card           — agent card with the server presentation
    GET    /health               — health check
    POST   /a2a/authenticate     — submit a presentation (body ``vp`` or
                                   header ``x-a2a-did-vp``)
    POST   /api/issue-vc         — issue a TaskLogCredential to a holder
    POST   /api/verify-server-vp — verify any presentation
    POST   /ai/task              — run an authorized task

Usage:
    python -m agent_didauth.server.app --port 3000
    python -m agent_didauth.server.app --host 127.0.0.1 --port 9000
"""
from __future__ import annotations

import argparse
import json
import logging
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from agent_didauth.config import Settings
from agent_didauth.protocol.server import ServerAgent
from agent_didauth.server import routes
from agent_didauth.transport.base import PRESENTATION_HEADER

logger = logging.getLogger(__name__)


class DIDAuthHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the agent-didauth server.

    All request bodies and responses use JSON.
    """

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")

        if path == "/health":
            status, data = routes.handle_health()
        elif path in ("/agent-card", "/.well-known/agent.json"):
            status, data = routes.handle_agent_card()
        else:
            status, data = 404, {"error": "NotFound", "reason": f"No route for GET {path}"}
        self._send_json(status, data)

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")

        body = self._read_json_body()
        if body is None:
            return

        if path == "/a2a/authenticate":
            status, data = routes.handle_authenticate(
                body, header_vp=self.headers.get(PRESENTATION_HEADER)
            )
        elif path == "/api/issue-vc":
            status, data = routes.handle_issue_credential(body)
        elif path == "/api/verify-server-vp":
            status, data = routes.handle_verify_presentation(body)
        elif path == "/ai/task":
            status, data = routes.handle_task(body)
        else:
            status, data = 404, {"error": "NotFound", "reason": f"No route for POST {path}"}
        self._send_json(status, data)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> dict[str, object] | None:
        """Read and parse the JSON request body.

        Returns None (and sends a 400 error response) if parsing fails.
        """
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send_json(400, {"error": "InvalidJSON", "reason": str(exc)})
            return None
        if not isinstance(parsed, dict):
            self._send_json(400, {"error": "InvalidJSON", "reason": "Body must be a JSON object"})
            return None
        return parsed


def create_server(
    host: str = "127.0.0.1",
    port: int = 3000,
    agent: ServerAgent | None = None,
) -> ThreadingHTTPServer:
    """Create (but do not start) the agent-didauth HTTP server.

    Parameters
    ----------
    host:
        Bind address (default ``"127.0.0.1"``).
    port:
        TCP port to listen on (default 3000; 0 picks a free port).
    agent:
        Server agent to expose. When omitted, one is built from
        ``DIDAUTH_*`` settings on first request.

    Returns
    -------
    ThreadingHTTPServer
        A configured server instance ready to call ``serve_forever()`` on.
    """
    if agent is not None:
        routes.configure(agent)
    server = ThreadingHTTPServer((host, port), DIDAuthHandler)
    logger.info("agent-didauth server created at http://%s:%d", host, server.server_address[1])
    return server


def run_server(
    host: str = "127.0.0.1",
    port: int = 3000,
    agent: ServerAgent | None = None,
) -> None:
    """Create and run the agent-didauth HTTP server (blocking)."""
    server = create_server(host=host, port=port, agent=agent)
    logger.info("Serving agent-didauth on http://%s:%d, press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down agent-didauth server.")
    finally:
        server.server_close()


def _build_arg_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="agent-didauth HTTP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="TCP port")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    env_settings = Settings.from_env()
    args = _build_arg_parser(env_settings).parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    run_server(host=args.host, port=args.port, agent=ServerAgent.from_settings(env_settings))
