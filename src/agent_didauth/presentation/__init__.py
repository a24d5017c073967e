"""agent_didauth.presentation — building and verifying presentations."""
from __future__ import annotations

from agent_didauth.presentation.builder import PresentationBuilder
from agent_didauth.presentation.verifier import PresentationVerifier

__all__ = ["PresentationBuilder", "PresentationVerifier"]
