#!/usr/bin/env python3
"""Example: Policy rules and revocation

Configures a stricter policy, revokes a credential, and shows how each
rejection surfaces with its error tag.

Usage:
    python examples/02_policy_and_revocation.py

Requirements:
    pip install agent-didauth
"""
from __future__ import annotations

from agent_didauth import (
    ActorIdentity,
    AuthenticationError,
    CredentialIssuer,
    DIDKeyResolver,
    PolicyEngine,
    PolicyRules,
    PresentationBuilder,
    PresentationVerifier,
    RevocationList,
    ServerAgent,
)


def main() -> None:
    issuer = CredentialIssuer(ActorIdentity.generate("issuer"))
    revocations = RevocationList()
    rules = PolicyRules(
        allowed_actions=frozenset({"QueryStatus"}),
        trusted_issuers=frozenset({issuer.did}),
        token_ttl=300,
    )
    server = ServerAgent(
        ActorIdentity.generate("server"),
        issuer=issuer,
        policy=PolicyEngine(rules, revocations),
    )
    holder = ActorIdentity.generate("client")
    builder = PresentationBuilder()
    verifier = PresentationVerifier(DIDKeyResolver())

    def attempt(action: str, revoke: bool = False) -> None:
        credential = server.request_credential(holder.did, {"action": action})
        if revoke:
            revocations.revoke(verifier.verify_credential(credential).id, reason="compromised")
        vp = builder.build_presentation([credential], holder.did, holder, audience=server.did)
        outcome = server.submit_presentation(vp)
        if outcome.authorized:
            print(f"{action:<14} authorized: {outcome.permissions}")
        else:
            print(f"{action:<14} rejected [{outcome.error}] {outcome.reason}")

    attempt("QueryStatus")
    attempt("OrderPizza")
    attempt("QueryStatus", revoke=True)

    # Errors carry a stable tag and a readable reason.
    try:
        server.dispatch_task("not-a-token", "QueryStatus")
    except AuthenticationError as exc:
        print(f"dispatch       rejected [{exc.tag}] {exc.reason}")


if __name__ == "__main__":
    main()
