"""CredentialIssuer — mints signed, typed claim bundles for a holder.

Every credential is a compact token signed by the issuer's Ed25519 key, so
any relying party can verify it against the issuer's published key without
contacting the issuer again. No revocation state is recorded here; status
is checked later by the policy engine.

Example
-------
::

    issuer = CredentialIssuer(ActorIdentity.generate("issuer"))
    token = issuer.issue_task_log(
        holder_did=client.did,
        task={"action": "OrderPizza", "timestamp": 1700000000000},
    )
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from agent_didauth._time import Clock, to_epoch, utcnow
from agent_didauth.credentials.jws import encode_signed
from agent_didauth.credentials.models import (
    BASE_CREDENTIAL_TYPE,
    RESERVED_SUBJECT_KEYS,
    W3C_CREDENTIALS_CONTEXT,
    CredentialType,
)
from agent_didauth.identity.actor import ActorIdentity

logger = logging.getLogger(__name__)


class CredentialIssuer:
    """Issue credentials signed by a single, fixed issuer identity.

    Parameters
    ----------
    identity:
        The issuer's identity. Static for the issuer's lifetime.
    clock:
        Optional clock used for ``issuedAt``/``nbf`` stamps.
    """

    def __init__(self, identity: ActorIdentity, clock: Clock | None = None) -> None:
        self._identity = identity
        self._clock = clock or utcnow
        logger.info("Credential issuer ready: %s", identity.did)

    @property
    def did(self) -> str:
        """DID of this issuer."""
        return self._identity.did

    def issue_credential(
        self,
        holder_did: str,
        credential_type: CredentialType | str,
        claims: dict[str, Any],
    ) -> str:
        """Issue a credential for *holder_did*.

        Parameters
        ----------
        holder_did:
            DID of the subject/holder. Must not be empty.
        credential_type:
            The specific type tag, added after ``VerifiableCredential``.
        claims:
            Domain claims placed in ``credentialSubject``. The keys ``id``
            and ``issuedAt`` are stamped by the issuer and may not be
            supplied.

        Returns
        -------
        str
            The signed credential token.

        Raises
        ------
        ValueError
            If *holder_did* is empty or *claims* uses a reserved key.
        """
        if not holder_did:
            raise ValueError("holder_did must not be empty.")
        reserved = RESERVED_SUBJECT_KEYS.intersection(claims)
        if reserved:
            raise ValueError(f"Claims may not set reserved keys: {sorted(reserved)}")

        type_tag = (
            credential_type.value
            if isinstance(credential_type, CredentialType)
            else str(credential_type)
        )
        now = self._clock()
        payload: dict[str, Any] = {
            "iss": self._identity.did,
            "sub": holder_did,
            "nbf": to_epoch(now),
            "jti": f"urn:uuid:{uuid.uuid4()}",
            "vc": {
                "@context": [W3C_CREDENTIALS_CONTEXT],
                "type": [BASE_CREDENTIAL_TYPE, type_tag],
                "credentialSubject": {
                    "id": holder_did,
                    **claims,
                    "issuedAt": now.isoformat(),
                },
            },
        }
        token = encode_signed(payload, self._identity)
        logger.info("Issued %s %s to %s", type_tag, payload["jti"], holder_did)
        return token

    def issue_task_log(self, holder_did: str, task: dict[str, Any]) -> str:
        """Issue a ``TaskLogCredential`` recording the task a holder will perform."""
        return self.issue_credential(holder_did, CredentialType.TASK_LOG, {"taskLog": dict(task)})

    def issue_service_endpoint(self, server_did: str, service_info: dict[str, Any]) -> str:
        """Issue a ``ServiceEndpointCredential`` describing a server agent."""
        return self.issue_credential(
            server_did,
            CredentialType.SERVICE_ENDPOINT,
            {"serviceEndpoint": dict(service_info)},
        )


__all__ = ["CredentialIssuer"]
