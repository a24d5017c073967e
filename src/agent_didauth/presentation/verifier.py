"""PresentationVerifier — checks a presentation's full signature chain.

Verification flow
-----------------
1. Parse the envelope and read the claimed signer (``iss``, which must
   equal the header ``kid``).
2. Resolve the signer's key through the identity directory.
3. Verify the presentation signature.
4. For every embedded credential: parse it, resolve its issuer, verify its
   signature, normalize it into a
   :class:`~agent_didauth.credentials.models.VerifiedCredential`.
5. Optionally enforce the intended audience.

Verification is all-or-nothing: the first failing credential rejects the
whole presentation and no partial credential list is ever returned.
"""
from __future__ import annotations

import logging
from typing import Any

from agent_didauth.credentials.jws import SignedToken, TokenFormatError, decode_unverified
from agent_didauth.credentials.models import (
    PRESENTATION_TYPE,
    VerifiedCredential,
    VerifiedPresentation,
)
from agent_didauth.errors import (
    AudienceMismatch,
    InvalidCredentialSignature,
    InvalidSignature,
    MissingCredential,
)
from agent_didauth.identity.directory import IdentityDirectory, resolve_identity

logger = logging.getLogger(__name__)


class PresentationVerifier:
    """Verify presentations and credentials against an identity directory.

    Parameters
    ----------
    directory:
        Resolves DIDs to public keys.
    resolve_timeout:
        Per-attempt bound, in seconds, on each directory lookup.
    resolve_retries:
        Extra attempts allowed when a lookup times out.
    """

    def __init__(
        self,
        directory: IdentityDirectory,
        resolve_timeout: float = 5.0,
        resolve_retries: int = 2,
    ) -> None:
        self._directory = directory
        self._timeout = resolve_timeout
        self._retries = resolve_retries

    # ------------------------------------------------------------------
    # Presentations
    # ------------------------------------------------------------------

    def verify_presentation(
        self,
        token: str,
        expected_audience: str | None = None,
    ) -> VerifiedPresentation:
        """Verify *token* end-to-end.

        Parameters
        ----------
        token:
            A presentation token produced by
            :class:`~agent_didauth.presentation.builder.PresentationBuilder`.
        expected_audience:
            When given, a presentation addressed to another ``aud`` is
            rejected. Presentations without ``aud`` are accepted.

        Returns
        -------
        VerifiedPresentation

        Raises
        ------
        InvalidSignature
            Malformed envelope or bad holder signature.
        IdentityNotFound
            The holder or a credential issuer cannot be resolved.
        InvalidCredentialSignature
            An embedded credential failed verification.
        MissingCredential
            The presentation embeds no credentials.
        AudienceMismatch
            The presentation names a different audience.
        TransportTimeout
            A directory lookup exceeded its bound.
        """
        try:
            parsed = decode_unverified(token)
        except TokenFormatError as exc:
            raise InvalidSignature(f"Malformed presentation: {exc}") from exc

        holder = self._claimed_signer(parsed)
        if holder is None:
            raise InvalidSignature("Presentation signer does not match its declared holder")

        resolved = resolve_identity(
            self._directory, holder, timeout=self._timeout, retries=self._retries
        )
        if not parsed.verify(resolved.public_key):
            logger.warning("Presentation signature check failed for holder %s", holder)
            raise InvalidSignature(f"Presentation signature does not verify for {holder!r}")

        envelope = parsed.payload.get("vp")
        if not isinstance(envelope, dict) or PRESENTATION_TYPE not in (envelope.get("type") or []):
            raise InvalidSignature("Payload is not a VerifiablePresentation envelope")
        embedded = envelope.get("verifiableCredential")
        if not isinstance(embedded, list) or not embedded:
            raise MissingCredential()

        credentials = tuple(
            self._verify_embedded(index, item) for index, item in enumerate(embedded)
        )

        audience = parsed.payload.get("aud")
        if expected_audience and audience and audience != expected_audience:
            raise AudienceMismatch(expected_audience, str(audience))

        issued_at = parsed.payload.get("iat")
        presentation = VerifiedPresentation(
            id=str(parsed.payload.get("jti", "")),
            holder=holder,
            audience=str(audience) if audience else None,
            issued_at=issued_at if isinstance(issued_at, int) else None,
            credentials=credentials,
        )
        logger.info(
            "Verified presentation %s from %s (%d credential(s))",
            presentation.id,
            holder,
            len(credentials),
        )
        return presentation

    # ------------------------------------------------------------------
    # Single credentials
    # ------------------------------------------------------------------

    def verify_credential(self, token: str) -> VerifiedCredential:
        """Verify a standalone credential token.

        Raises
        ------
        InvalidCredentialSignature
            If the token is malformed or its signature does not verify.
        IdentityNotFound
            If the issuer cannot be resolved.
        """
        return self._verify_embedded(0, token)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _claimed_signer(parsed: SignedToken) -> str | None:
        issuer = parsed.payload.get("iss")
        if not isinstance(issuer, str) or not issuer or issuer != parsed.signer:
            return None
        return issuer

    def _verify_embedded(self, index: int, item: Any) -> VerifiedCredential:
        if not isinstance(item, str):
            raise InvalidCredentialSignature(index, "", "credential is not a compact token")
        try:
            parsed = decode_unverified(item)
        except TokenFormatError as exc:
            raise InvalidCredentialSignature(index, "", str(exc)) from exc

        credential_id = str(parsed.payload.get("jti", ""))
        issuer = self._claimed_signer(parsed)
        if issuer is None:
            raise InvalidCredentialSignature(
                index, credential_id, "signer does not match the declared issuer"
            )

        resolved = resolve_identity(
            self._directory, issuer, timeout=self._timeout, retries=self._retries
        )
        if not parsed.verify(resolved.public_key):
            logger.warning("Credential %s signature check failed (issuer %s)", credential_id, issuer)
            raise InvalidCredentialSignature(
                index, credential_id, f"signature does not verify for issuer {issuer!r}"
            )
        try:
            return VerifiedCredential.from_payload(parsed.payload, raw=item)
        except TokenFormatError as exc:
            raise InvalidCredentialSignature(index, credential_id, str(exc)) from exc


__all__ = ["PresentationVerifier"]
