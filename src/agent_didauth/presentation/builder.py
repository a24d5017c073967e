"""PresentationBuilder — wraps credentials into a holder-signed presentation."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from agent_didauth._time import Clock, to_epoch, utcnow
from agent_didauth.credentials.jws import encode_signed
from agent_didauth.credentials.models import PRESENTATION_TYPE, W3C_CREDENTIALS_CONTEXT
from agent_didauth.errors import MissingCredential
from agent_didauth.identity.actor import ActorIdentity
from agent_didauth.identity.did_key import did_from_public_key

logger = logging.getLogger(__name__)


class PresentationBuilder:
    """Build signed ``VerifiablePresentation`` tokens.

    Parameters
    ----------
    clock:
        Optional clock for the ``iat``/``nbf`` stamps.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utcnow

    def build_presentation(
        self,
        credentials: Sequence[str],
        holder_did: str,
        signer: ActorIdentity,
        audience: str | None = None,
    ) -> str:
        """Wrap *credentials* into a presentation signed by *signer*.

        Parameters
        ----------
        credentials:
            Credential tokens, embedded in the given order.
        holder_did:
            The presenting identity. Must be the DID of *signer*.
        signer:
            The holder's identity; its private key signs the envelope.
        audience:
            Optional DID of the intended relying party.

        Returns
        -------
        str
            The signed presentation token.

        Raises
        ------
        MissingCredential
            If *credentials* is empty.
        ValueError
            If *holder_did* is not the DID derived from the signer's key.
        """
        if not credentials:
            raise MissingCredential("A presentation needs at least one credential")
        signer_did = did_from_public_key(signer.public_key)
        if signer_did != holder_did or signer.did != holder_did:
            raise ValueError(
                f"Holder {holder_did!r} does not match the signing key ({signer_did!r})"
            )

        now = to_epoch(self._clock())
        payload: dict[str, Any] = {
            "iss": holder_did,
            "jti": f"urn:uuid:{uuid.uuid4()}",
            "iat": now,
            "nbf": now,
            "vp": {
                "@context": [W3C_CREDENTIALS_CONTEXT],
                "type": [PRESENTATION_TYPE],
                "verifiableCredential": list(credentials),
            },
        }
        if audience:
            payload["aud"] = audience

        token = encode_signed(payload, signer)
        logger.debug(
            "Built presentation %s for %s with %d credential(s)",
            payload["jti"],
            holder_did,
            len(credentials),
        )
        return token


__all__ = ["PresentationBuilder"]
