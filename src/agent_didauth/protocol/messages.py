"""Payloads exchanged by the four transport operations.

Field names on the wire are camelCase (``serverVP``, ``clientDid``,
``authToken``); the models accept either spelling and serialize with the
wire aliases via :meth:`to_wire`.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent_didauth.errors import AuthenticationError


class SecurityScheme(BaseModel):
    """How a client is expected to authenticate to the agent."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = "did-vc"
    description: str = "Submit a presentation containing a TaskLogCredential."
    issuer_did: str = Field(alias="issuerDID")


class AgentCard(BaseModel):
    """Self-description a server agent returns to prospective clients."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    did: str
    server_vp: Optional[str] = Field(default=None, alias="serverVP")
    security_schemes: dict[str, SecurityScheme] = Field(
        default_factory=dict, alias="securitySchemes"
    )
    supported_tasks: list[str] = Field(default_factory=list, alias="supportedTasks")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @property
    def issuer_did(self) -> str | None:
        scheme = self.security_schemes.get("did_auth")
        return scheme.issuer_did if scheme else None


class AuthenticationOutcome(BaseModel):
    """Result of ``submit_presentation``: a grant or a structured rejection."""

    model_config = ConfigDict(populate_by_name=True)

    authorized: bool
    client_did: Optional[str] = Field(default=None, alias="clientDid")
    auth_token: Optional[str] = Field(default=None, alias="authToken")
    token_type: Optional[str] = Field(default=None, alias="tokenType")
    expires_in: Optional[int] = Field(default=None, alias="expiresIn")
    action: Optional[str] = None
    permissions: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def rejected(cls, error: AuthenticationError) -> "AuthenticationOutcome":
        return cls(authorized=False, error=error.tag, reason=error.reason)

    def to_wire(self) -> dict[str, Any]:
        if not self.authorized:
            return {"authorized": False, "error": self.error, "reason": self.reason}
        body = self.model_dump(by_alias=True, exclude={"error", "reason"})
        body["status"] = "success"
        return body


class TaskResult(BaseModel):
    """Result of a dispatched task."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    task_type: str = Field(alias="taskType")
    details: dict[str, Any] = Field(default_factory=dict)
    processing_time_ms: float = Field(default=0.0, alias="processingTime")
    timestamp: str

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


__all__ = ["AgentCard", "AuthenticationOutcome", "SecurityScheme", "TaskResult"]
