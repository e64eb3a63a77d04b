"""Replicate API token checks."""

from dataclasses import dataclass
from typing import Protocol

from line_sketcher.config import resolve_api_token
from line_sketcher.errors import InputValidationError

_TOKEN_PREFIX = "r8_"


class TokenVerifier(Protocol):
    """Interface for checking a token against the compute service."""

    async def verify_token(self, api_token: str) -> bool:
        """Return True if the service accepts the token."""


@dataclass
class CredentialService:
    """Validate and verify Replicate API tokens."""

    verifier: TokenVerifier
    default_api_token: str | None = None

    async def verify(self, api_token: str | None = None) -> bool:
        """Check the caller token (or the configured default) remotely."""
        token = resolve_api_token(api_token, self.default_api_token)
        if token is None:
            raise InputValidationError("Please enter an API key first")
        if not token.startswith(_TOKEN_PREFIX):
            raise InputValidationError(
                f"Replicate API keys start with {_TOKEN_PREFIX!r}"
            )
        return await self.verifier.verify_token(token)
