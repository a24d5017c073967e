"""PolicyRules — the immutable rule set the policy engine evaluates against."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ACTION_PERMISSIONS: dict[str, frozenset[str]] = {
    "OrderPizza": frozenset({"read:menu", "write:order"}),
    "QueryStatus": frozenset({"read:status"}),
    "UpdateProfile": frozenset({"write:profile"}),
}


class PolicyRules(BaseModel):
    """Declarative authorization policy. Loaded once, shared read-only.

    Parameters
    ----------
    required_credential_types:
        A credential is acceptable when at least one of its type tags is in
        this set.
    allowed_actions:
        Whitelist of task actions a credential may declare.
    max_credential_age:
        Freshness window in seconds, measured from the credential's
        ``issuedAt`` stamp.
    required_schema:
        Optional mapping of claim key to expected type name. Only presence
        of the key is enforced.
    action_permissions:
        Static action → capability table used by ``authorize``.
    token_ttl:
        Lifetime, in seconds, of issued authorization tokens.
    trusted_issuers:
        When non-empty, only credentials minted by these DIDs comply.
    reject_unmapped_actions:
        When ``True`` an action without a permission mapping is not
        authorized. When ``False`` it is authorized with no permissions.
    """

    model_config = ConfigDict(frozen=True)

    required_credential_types: frozenset[str] = frozenset({"TaskLogCredential"})
    allowed_actions: frozenset[str] = frozenset(DEFAULT_ACTION_PERMISSIONS)
    max_credential_age: float = Field(default=3600.0, gt=0)
    required_schema: Optional[dict[str, str]] = None
    action_permissions: dict[str, frozenset[str]] = Field(
        default_factory=lambda: dict(DEFAULT_ACTION_PERMISSIONS)
    )
    token_ttl: int = Field(default=3600, gt=0)
    trusted_issuers: frozenset[str] = frozenset()
    reject_unmapped_actions: bool = True


__all__ = ["DEFAULT_ACTION_PERMISSIONS", "PolicyRules"]
