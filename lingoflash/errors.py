"""Domain exceptions for gateway, provider, and CLI diagnostics.

Exceptions are raised inside the gateway's collaborators and converted into
`ClassifiedError` values at the gateway boundary. The CLI wraps its own
failures in `CommandError`.
"""

from __future__ import annotations

from typing import Any


class LingoflashError(RuntimeError):
    """Base class for all Lingoflash domain failures."""


class ValidationError(LingoflashError):
    """Raised for an unknown purpose or a missing required request field."""


class DecryptionError(LingoflashError):
    """Raised when a stored credential cannot be decrypted.

    Wrong password, corrupted blob, and truncated ciphertext all surface as
    this single error so callers cannot distinguish the causes.
    """

    def __init__(self, message: str = "Failed to decrypt the stored API key.") -> None:
        super().__init__(message)


class ParseError(LingoflashError):
    """Raised when a provider reply does not match its documented shape."""

    def __init__(self, message: str, *, raw_payload: Any = None) -> None:
        super().__init__(message)
        self.raw_payload = raw_payload


class ProviderHTTPError(LingoflashError):
    """Raised when a provider exchange fails at the transport or HTTP layer."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        provider_code: str | None = None,
        payload: Any = None,
        transport_error: BaseException | None = None,
    ) -> None:
        """Initialize provider failure metadata used by the error classifier."""

        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.provider_code = provider_code
        self.payload = payload
        self.transport_error = transport_error


class QuotaServiceError(LingoflashError):
    """Raised when the remote quota service cannot be reached or replies badly."""


class CommandError(RuntimeError):
    """Raised when a CLI command fails at a specific stage."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped command error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class QuotaExceededError(LingoflashError):
    """Raised when the quota service refuses a hosted generation."""
