"""Classify provider failures into the gateway error taxonomy.

Rules are evaluated in priority order and the first match wins:

1. transport failures (refused connection, DNS failure, timeout) -> network
2. HTTP 5xx without a quota or model indicator -> network
3. model-unavailability message -> unsupported_model
4. HTTP 401/403 or an invalid-key message -> auth
5. HTTP 429 or a quota/billing/credits message -> rate_limit
6. anything else -> unknown, with the raw payload attached

Transport and 5xx checks run first so an outage is never reported as a
model problem.
"""

from __future__ import annotations

import re
import socket
from typing import Any

import requests

from ..models.datatypes import ClassifiedError, ErrorKind
from ..parsing import short_message


_TRANSPORT_SIGNATURES = (
    "connection refused",
    "connection reset",
    "connection aborted",
    "name resolution",
    "failed to resolve",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "timed out",
    "timeout",
    "failed to fetch",
    "network request failed",
    "network is unreachable",
)

_MODEL_SUBSTRINGS = (
    "does not exist",
    "invalid model",
    "not found",
    "is not supported",
    "unknown model",
)
_MODEL_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"response_format.*json_schema.*is not supported with this model",
        r"json_schema.*is not supported",
        r"structured outputs.*not supported",
    )
)
_MODEL_CODES = frozenset({"model_not_found"})

_AUTH_SUBSTRINGS = (
    "api key not valid",
    "invalid api key",
    "incorrect api key",
    "api_key_invalid",
)
_AUTH_CODES = frozenset(
    {"invalid_api_key", "api_key_invalid", "unauthenticated", "permission_denied"}
)

_QUOTA_SUBSTRINGS = (
    "quota",
    "billing",
    "credits",
    "resource exhausted",
    "resource_exhausted",
    "rate limit",
)
_QUOTA_CODES = frozenset({"insufficient_quota", "rate_limit_exceeded", "resource_exhausted"})

_HEADLINES = {
    ErrorKind.NETWORK: "{label} could not be reached; check your connection and retry",
    ErrorKind.UNSUPPORTED_MODEL: "{label} rejected the selected model; choose a different model",
    ErrorKind.AUTH: "{label} authentication failed; re-enter a valid API key",
    ErrorKind.RATE_LIMIT: "{label} quota or rate limit reached",
    ErrorKind.UNKNOWN: "{label} request failed",
}


def provider_error_fields(payload: Any) -> tuple[str, str]:
    """Return lower-cased `(message, code)` from a provider error payload.

    OpenAI puts a string `code` next to `message`; Google uses an integer
    `code`, a string `status`, and `details[].reason` entries.
    """

    if isinstance(payload, str):
        return payload.lower(), ""
    if not isinstance(payload, dict):
        return "", ""
    error = payload.get("error")
    if isinstance(error, str):
        return error.lower(), ""
    if not isinstance(error, dict):
        message = payload.get("message")
        return (message.lower() if isinstance(message, str) else ""), ""

    message = error.get("message")
    code = error.get("code")
    status = error.get("status")
    code_text = code if isinstance(code, str) else status if isinstance(status, str) else ""
    message_text = message if isinstance(message, str) else ""
    details_reason = _details_reason(error.get("details"))
    if details_reason:
        message_text = f"{message_text} {details_reason}"
    return message_text.lower(), code_text.lower()


def _details_reason(details: Any) -> str:
    """Return Google `error.details[].reason` values joined by spaces."""

    if not isinstance(details, list):
        return ""
    reasons = [
        item["reason"]
        for item in details
        if isinstance(item, dict) and isinstance(item.get("reason"), str)
    ]
    return " ".join(reasons)


def is_transport_failure(transport_error: BaseException | str | None) -> bool:
    """Return whether `transport_error` looks like a network-layer failure."""

    if transport_error is None:
        return False
    if isinstance(
        transport_error,
        requests.ConnectionError
        | requests.Timeout
        | TimeoutError
        | ConnectionError
        | socket.gaierror,
    ):
        return True
    text = str(transport_error).lower()
    return any(signature in text for signature in _TRANSPORT_SIGNATURES)


def is_unsupported_model(message: str, code: str) -> bool:
    """Return whether a provider message or code signals an unavailable model."""

    if code in _MODEL_CODES:
        return True
    if any(indicator in message for indicator in _MODEL_SUBSTRINGS):
        return True
    return any(pattern.search(message) for pattern in _MODEL_PATTERNS)


def is_auth_failure(message: str, code: str) -> bool:
    """Return whether a provider message or code signals an invalid credential."""

    if code in _AUTH_CODES:
        return True
    return any(indicator in message for indicator in _AUTH_SUBSTRINGS)


def is_quota_failure(message: str, code: str) -> bool:
    """Return whether a provider message or code signals quota exhaustion."""

    if code in _QUOTA_CODES:
        return True
    return any(indicator in message for indicator in _QUOTA_SUBSTRINGS)


def classify(
    transport_error: BaseException | str | None,
    http_status: int | None,
    provider_payload: Any,
    provider: str,
) -> ClassifiedError:
    """Map one failed provider exchange to a `ClassifiedError`."""

    message, code = provider_error_fields(provider_payload)

    if is_transport_failure(transport_error):
        kind = ErrorKind.NETWORK
    elif (
        http_status is not None
        and 500 <= http_status <= 599
        and not is_unsupported_model(message, code)
        and not is_quota_failure(message, code)
    ):
        kind = ErrorKind.NETWORK
    elif is_unsupported_model(message, code):
        kind = ErrorKind.UNSUPPORTED_MODEL
    elif http_status in (401, 403) or is_auth_failure(message, code):
        kind = ErrorKind.AUTH
    elif http_status == 429 or is_quota_failure(message, code):
        kind = ErrorKind.RATE_LIMIT
    else:
        kind = ErrorKind.UNKNOWN

    return ClassifiedError(
        kind=kind,
        message=_describe(kind, provider, http_status, provider_payload, transport_error),
        provider=provider,
        retryable_hint=kind.retryable,
        http_status=http_status,
        raw_provider_payload=provider_payload if provider_payload not in (None, {}, "") else None,
    )


def _describe(
    kind: ErrorKind,
    provider: str,
    http_status: int | None,
    provider_payload: Any,
    transport_error: BaseException | str | None,
) -> str:
    """Build a concise, redacted user-facing message."""

    label = {"openai": "OpenAI", "google": "Google"}.get(provider, provider)
    headline = _HEADLINES[kind].format(label=label)
    if http_status is not None:
        headline = f"{headline} (HTTP {http_status})"

    detail = _raw_message(provider_payload)
    if not detail and transport_error is not None:
        detail = str(transport_error)
    if detail:
        return f"{headline}: {short_message(detail)}"
    return f"{headline}."


def _raw_message(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return ""
