"""Structured gateway logging utilities.

Responsibilities:
- Emit concise, deterministic single-line events for gateway calls.
- Keep secrets out of log lines; raw provider payloads are redacted and capped.
"""

from __future__ import annotations

import json
import sys
from typing import Any, TextIO

from loguru import logger as _loguru_logger

from ..parsing import short_message


_MAX_PAYLOAD_CHARS = 600


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


def _format_payload(payload: Any) -> str:
    if isinstance(payload, str):
        text = payload
    else:
        try:
            text = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError):
            text = repr(payload)
    return short_message(text, limit=_MAX_PAYLOAD_CHARS)


class GatewayLogger:
    """Emit deterministic events for gateway calls through loguru.

    Pass `sink` to route events to a stream; with no sink the process-wide
    loguru configuration is used unchanged.
    """

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Bind a logger for gateway events, optionally adding a dedicated sink."""

        self._logger = _loguru_logger.bind(component="lingoflash")
        self._sink_id: int | None = None
        if sink is not None:
            self._sink_id = _loguru_logger.add(
                sink,
                format="{message}",
                level=level,
                colorize=False,
                filter=lambda record: record["extra"].get("component") == "lingoflash",
            )

    @classmethod
    def to_stderr(cls, level: str = "INFO") -> GatewayLogger:
        """Return a logger writing gateway events to stderr."""

        return cls(sink=sys.stderr, level=level)

    def close(self) -> None:
        """Remove the dedicated sink, if one was added."""

        if self._sink_id is not None:
            _loguru_logger.remove(self._sink_id)
            self._sink_id = None

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured gateway log line."""

        line = f"[gateway] level={level} stage={stage} event={event}{_format_context(context)}"
        self._logger.log(level, line)

    def log_call_start(self, purpose: str, provider: str, user_id: str) -> None:
        self._emit("INFO", "start", "generate", purpose=purpose, provider=provider, user=user_id)

    def log_call_complete(self, purpose: str, provider: str) -> None:
        self._emit("INFO", "complete", "generate", purpose=purpose, provider=provider)

    def log_call_failure(self, purpose: str, provider: str, error_kind: str) -> None:
        """Emit a failure event without sensitive payload details."""

        self._emit(
            "ERROR",
            "failure",
            "generate",
            purpose=purpose,
            provider=provider,
            error_kind=error_kind,
        )

    def log_cache_lookup(self, language: str, hit: bool) -> None:
        self._emit("DEBUG", "hit" if hit else "miss", "cache", language=language)

    def log_parse_failure(self, provider: str, raw_payload: Any) -> None:
        """Emit a provider contract failure with a redacted raw payload excerpt."""

        self._emit("ERROR", "parse_failure", "provider", provider=provider)
        self._logger.error(f"[gateway] raw_payload={_format_payload(raw_payload)}")

    def log_quota_update(self, user_id: str, new_count: int, remaining: int | None) -> None:
        self._emit(
            "INFO",
            "flashcard_counted",
            "quota",
            user=user_id,
            count=new_count,
            remaining="unknown" if remaining is None else remaining,
        )

    def log_warning(self, stage: str, event: str, **context: object) -> None:
        self._emit("WARNING", event, stage, **context)
