"""
Error types for the Cortex chat client.

CredentialError is fatal and raised while the signer is built. TransportError
is recoverable per request; the agent client turns it into a generic failure
answer. ParseError never leaves the SSE parser.
"""

from typing import Optional


class CortexChatError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class CredentialError(CortexChatError):
    """Raised when the private key cannot be loaded or is unusable for signing."""


class TransportError(CortexChatError):
    """Raised when the agent endpoint fails or returns a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(CortexChatError):
    """Raised for an SSE payload that is not valid JSON."""


class QueryExecutionError(CortexChatError):
    """Raised when the warehouse query collaborator fails."""
