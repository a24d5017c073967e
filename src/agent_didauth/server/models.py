"""Pydantic request/response models for the agent-didauth HTTP server."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthenticateRequest(BaseModel):
    """Request body for POST /a2a/authenticate."""

    vp: Optional[str] = None


class IssueCredentialRequest(BaseModel):
    """Request body for POST /api/issue-vc."""

    model_config = ConfigDict(populate_by_name=True)

    holder_did: str = Field(alias="holderDID")
    task_data: dict[str, Any] = Field(default_factory=dict, alias="taskData")


class IssueCredentialResponse(BaseModel):
    """Response body for POST /api/issue-vc."""

    model_config = ConfigDict(populate_by_name=True)

    vc: str
    issuer: str
    holder_did: str = Field(alias="holderDID")


class VerifyPresentationRequest(BaseModel):
    """Request body for POST /api/verify-server-vp."""

    model_config = ConfigDict(populate_by_name=True)

    server_vp: Optional[str] = Field(default=None, alias="serverVP")


class VerifyPresentationResponse(BaseModel):
    """Response body for a presentation that verified."""

    verified: bool = True
    holder: str
    audience: Optional[str] = None
    credentials: list[dict[str, Any]] = Field(default_factory=list)


class TaskRequest(BaseModel):
    """Request body for POST /ai/task."""

    model_config = ConfigDict(populate_by_name=True)

    auth_token: Optional[str] = Field(default=None, alias="authToken")
    task_type: str = Field(alias="taskType")
    task_data: dict[str, Any] = Field(default_factory=dict, alias="taskData")


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "agent-didauth"
    version: str
    did: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Generic error response body."""

    error: str
    reason: str = ""
