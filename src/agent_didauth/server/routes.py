"""Route handler functions for the agent-didauth HTTP server.

Each function accepts parsed request data and returns a tuple of
(status_code, response_dict). The HTTP handler in app.py calls these
functions and serializes the results to JSON.

Status codes
------------
200 success, 400 malformed input, 401 missing presentation or token (or a
token that is invalid or expired), 403 authentication or policy rejection.
"""
from __future__ import annotations

import datetime
import logging

from pydantic import ValidationError

from agent_didauth import __version__
from agent_didauth.config import Settings
from agent_didauth.errors import (
    AuthenticationError,
    MissingCredential,
    PolicyError,
    TokenError,
)
from agent_didauth.protocol.server import ServerAgent
from agent_didauth.server.models import (
    AuthenticateRequest,
    ErrorResponse,
    HealthResponse,
    IssueCredentialRequest,
    IssueCredentialResponse,
    TaskRequest,
    VerifyPresentationRequest,
    VerifyPresentationResponse,
)

logger = logging.getLogger(__name__)

# Module-level shared state
_agent: ServerAgent | None = None


def configure(agent: ServerAgent) -> None:
    """Install *agent* as the server agent behind every route."""
    global _agent
    _agent = agent
    logger.info("Routes bound to server agent %s", agent.did)


def get_agent() -> ServerAgent:
    """Return the configured agent, building one from the environment if needed."""
    global _agent
    if _agent is None:
        _agent = ServerAgent.from_settings(Settings.from_env())
    return _agent


def reset_state() -> None:
    """Reset all shared state — used in tests and for clean restarts."""
    global _agent
    _agent = None


def _error(status: int, exc: AuthenticationError) -> tuple[int, dict[str, object]]:
    return status, ErrorResponse(error=exc.tag, reason=exc.reason).model_dump()


def _validation_error(exc: ValidationError) -> tuple[int, dict[str, object]]:
    return 400, ErrorResponse(error="ValidationError", reason=str(exc)).model_dump()


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health."""
    response = HealthResponse(
        version=__version__,
        did=get_agent().did,
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )
    return 200, response.model_dump()


def handle_agent_card() -> tuple[int, dict[str, object]]:
    """Handle GET /agent-card."""
    return 200, get_agent().fetch_agent_card().to_wire()


def handle_authenticate(
    body: dict[str, object],
    header_vp: str | None = None,
) -> tuple[int, dict[str, object]]:
    """Handle POST /a2a/authenticate.

    Parameters
    ----------
    body:
        Parsed JSON request body; the presentation is read from ``vp``.
    header_vp:
        Value of the ``x-a2a-did-vp`` header, used when the body has none.

    Returns
    -------
    tuple[int, dict[str, object]]
        200 with the grant, 401 when no presentation was sent, 403 when
        the presentation was rejected.
    """
    try:
        request = AuthenticateRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    token = request.vp or header_vp
    if not token:
        missing = MissingCredential("No presentation supplied")
        return 401, {"authorized": False, **missing.to_dict()}

    outcome = get_agent().submit_presentation(token)
    return (200 if outcome.authorized else 403), outcome.to_wire()


def handle_issue_credential(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /api/issue-vc."""
    try:
        request = IssueCredentialRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    agent = get_agent()
    try:
        token = agent.request_credential(request.holder_did, request.task_data)
    except ValueError as exc:
        return 400, ErrorResponse(error="ValidationError", reason=str(exc)).model_dump()

    response = IssueCredentialResponse(
        vc=token, issuer=agent.issuer.did, holder_did=request.holder_did
    )
    return 200, response.model_dump(by_alias=True)


def handle_verify_presentation(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /api/verify-server-vp."""
    try:
        request = VerifyPresentationRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    if not request.server_vp:
        return 400, {"verified": False, **MissingCredential("No presentation supplied").to_dict()}

    try:
        presentation = get_agent().verify_peer_presentation(request.server_vp)
    except AuthenticationError as exc:
        logger.info("Peer presentation rejected [%s]: %s", exc.tag, exc.reason)
        return 403, {"verified": False, **exc.to_dict()}

    response = VerifyPresentationResponse(
        holder=presentation.holder,
        audience=presentation.audience,
        credentials=[credential.summary() for credential in presentation.credentials],
    )
    return 200, response.model_dump()


def handle_task(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /ai/task.

    Returns
    -------
    tuple[int, dict[str, object]]
        200 with the task result, 401 when the bearer token is missing,
        invalid or expired, 403 when the action is not allowed.
    """
    try:
        request = TaskRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    if not request.auth_token:
        return 401, ErrorResponse(error="TokenInvalid", reason="No auth token supplied").model_dump()

    try:
        result = get_agent().dispatch_task(request.auth_token, request.task_type, request.task_data)
    except TokenError as exc:
        return _error(401, exc)
    except PolicyError as exc:
        return _error(403, exc)
    return 200, result.to_wire()
