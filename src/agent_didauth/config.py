"""Settings — deployment configuration for server and client agents.

Values come from, in increasing precedence: field defaults, an optional
JSON file, and ``DIDAUTH_*`` environment variables. List-valued settings
are comma-separated in the environment::

    DIDAUTH_PORT=3000
    DIDAUTH_ALLOWED_ACTIONS=OrderPizza,QueryStatus
    DIDAUTH_REQUIRE_SERVER_VERIFICATION=false
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent_didauth.policy.rules import DEFAULT_ACTION_PERMISSIONS, PolicyRules

logger = logging.getLogger(__name__)

ENV_PREFIX = "DIDAUTH_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})
_LIST_FIELDS = frozenset({"allowed_actions", "required_credential_types", "trusted_issuers"})


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean, got {raw!r}")


def _parse_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    """Typed configuration.

    Parameters
    ----------
    host, port:
        Bind address of the HTTP server.
    server_url:
        Base URL clients use to reach the server agent.
    agent_name:
        Name published in the agent card.
    lookup_timeout, lookup_retries:
        Bounds on directory and revocation lookups.
    max_credential_age, token_ttl, allowed_actions,
    required_credential_types, trusted_issuers, reject_unmapped_actions:
        Policy rules; see :class:`~agent_didauth.policy.rules.PolicyRules`.
    require_server_verification:
        Whether a client stops when the server presentation fails to verify.
    audit_log_path:
        JSONL audit file; in-memory when unset.
    revocation_list_path:
        JSON revocation list; revocation checks are no-ops when unset.
    log_level:
        Root log level for entry points.
    """

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=0, le=65535)
    server_url: str = "http://localhost:3000"
    agent_name: str = "Server Agent"
    lookup_timeout: float = Field(default=5.0, gt=0)
    lookup_retries: int = Field(default=2, ge=0)
    max_credential_age: float = Field(default=3600.0, gt=0)
    token_ttl: int = Field(default=3600, gt=0)
    allowed_actions: list[str] = Field(
        default_factory=lambda: sorted(DEFAULT_ACTION_PERMISSIONS)
    )
    required_credential_types: list[str] = Field(
        default_factory=lambda: ["TaskLogCredential"]
    )
    trusted_issuers: list[str] = Field(default_factory=list)
    reject_unmapped_actions: bool = True
    require_server_verification: bool = True
    audit_log_path: Optional[Path] = None
    revocation_list_path: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, path: Path) -> "Settings":
        """Load settings from a JSON object file.

        Raises
        ------
        ValueError
            If the file is not a JSON object.
        """
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return cls.model_validate(data)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        config_file: Path | None = None,
    ) -> "Settings":
        """Build settings from ``DIDAUTH_*`` variables over an optional file.

        ``DIDAUTH_CONFIG`` names the file when *config_file* is not given.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        file_path = config_file
        if file_path is None and env.get(f"{ENV_PREFIX}CONFIG"):
            file_path = Path(env[f"{ENV_PREFIX}CONFIG"])
        if file_path is not None:
            values.update(cls.from_file(file_path).model_dump(exclude_unset=True))
            logger.debug("Loaded settings file %s", file_path)

        for name, info in cls.model_fields.items():
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if name in _LIST_FIELDS:
                values[name] = _parse_list(raw)
            elif info.annotation is bool:
                values[name] = _parse_bool(name, raw)
            else:
                values[name] = raw
        return cls.model_validate(values)

    def policy_rules(self) -> PolicyRules:
        """Return the :class:`PolicyRules` these settings describe."""
        return PolicyRules(
            required_credential_types=frozenset(self.required_credential_types),
            allowed_actions=frozenset(self.allowed_actions),
            max_credential_age=self.max_credential_age,
            token_ttl=self.token_ttl,
            trusted_issuers=frozenset(self.trusted_issuers),
            reject_unmapped_actions=self.reject_unmapped_actions,
        )


__all__ = ["ENV_PREFIX", "Settings"]
