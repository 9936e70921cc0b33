"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
gateway results, credential status, and preference summaries.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer

from .errors import CommandError
from .models.datatypes import ClassifiedError, ErrorKind


_KIND_HINTS = {
    ErrorKind.VALIDATION: "Check the command arguments and stored preferences.",
    ErrorKind.DECRYPTION: "Re-enter your API key with `lingoflash credentials --set-api-key`.",
    ErrorKind.NETWORK: "Check your network connection and retry.",
    ErrorKind.AUTH: "Store a valid API key with `lingoflash credentials --set-api-key`.",
    ErrorKind.UNSUPPORTED_MODEL: (
        "Pick another model with `lingoflash preferences --openai-model/--google-model`."
    ),
    ErrorKind.RATE_LIMIT: "Wait for the quota to reset or check your provider billing.",
    ErrorKind.PARSE: "Retry the request; the provider reply did not match the expected format.",
}


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, CommandError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def command_error_from(error: ClassifiedError) -> CommandError:
    """Map a classified gateway error to a stage-scoped command error."""

    return CommandError(
        stage=error.kind.value,
        detail=error.message,
        hint=_KIND_HINTS.get(error.kind),
    )


def echo_json(payload: Any) -> None:
    """Print a JSON payload with stable key order."""

    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True))


def echo_credential_status(status: dict[str, Any]) -> None:
    """Print selected provider and per-provider stored/validated flags."""

    typer.echo(f"Selected provider: {status['selected_provider']}")
    mode = "own API key" if status["use_own_credential"] else "hosted"
    typer.echo(f"Credential mode: {mode}")
    for provider, flags in sorted(status["providers"].items()):
        stored = "present" if flags["stored"] else "not set"
        validated = "validated" if flags["validated"] else "not validated"
        typer.echo(f"Stored {provider} API key: {stored} ({validated})")


def echo_preferences(preferences: dict[str, Any]) -> None:
    """Print effective preferences as `key: value` rows."""

    for key in sorted(preferences):
        typer.echo(f"{key}: {preferences[key]}")
