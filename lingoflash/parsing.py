"""Shared parsing helpers for configuration, storage records, and CLI values."""

from __future__ import annotations

import re


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})
_MAX_USER_MESSAGE_CHARS = 180


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def parse_positive_float(value: object, field_name: str) -> float:
    """Parse a strictly positive number from a raw config value.

    Raises:
        ValueError: If the value is not a number greater than zero.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive number.")
    if isinstance(value, int | float):
        parsed = float(value)
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a positive number.")
        try:
            parsed = float(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a positive number.") from exc
    if parsed <= 0.0:
        raise ValueError(f"`{field_name}` must be a positive number.")
    return parsed


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive whole number from a raw config value.

    Raises:
        ValueError: If the value is not an integer greater than zero.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a positive integer.")
        try:
            parsed = int(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a positive integer.") from exc
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive integer.")
    return parsed


def redact_secrets(text: str) -> str:
    """Redact API-key-like tokens from provider or transport messages."""

    redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
    redacted = re.sub(r"\bAIza[A-Za-z0-9_-]{20,}\b", "[redacted-key]", redacted)
    redacted = re.sub(
        r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
        "Bearer [redacted-token]",
        redacted,
    )
    redacted = re.sub(r"([?&]key=)[^&\s'\"]+", r"\1[redacted-key]", redacted)
    return redacted


def short_message(text: str, limit: int = _MAX_USER_MESSAGE_CHARS) -> str:
    """Collapse whitespace, redact secrets, and cap message length."""

    compact = " ".join(redact_secrets(text).split())
    if len(compact) <= limit:
        return compact
    return f"{compact[: limit - 3]}..."
