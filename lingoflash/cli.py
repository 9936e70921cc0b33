"""Command-line interface for Lingoflash.

Responsibilities:
- Expose user-facing commands for gateway operations.
- Convert CLI arguments into `LingoflashConfig` and a `Gateway` instance.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator

from loguru import logger as _loguru_logger
import typer

from .cli_rendering import (
    command_error_from,
    echo_credential_status,
    echo_json,
    echo_preferences,
    exit_with_command_error,
)
from .config import ConfigLoader, LingoflashConfig
from .errors import CommandError
from .gateway import Gateway, GatewayContext
from .models.datatypes import GatewayResult
from .parsing import normalize_optional_string
from .telemetry.logger import GatewayLogger

app = typer.Typer(
    name="lingoflash",
    no_args_is_help=True,
    help="Lingoflash provider gateway CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to a YAML config file."),
]
StoreOption = Annotated[
    Path | None,
    typer.Option("--store", help="Path to the JSON key-value store."),
]
LogLevelOption = Annotated[
    str,
    typer.Option("--log-level", help="Gateway log level written to stderr."),
]


def _load_config(config_path: Path | None, store_path: Path | None) -> LingoflashConfig:
    """Resolve effective config and map failures to stage errors."""

    try:
        return ConfigLoader.load(
            config_path=config_path,
            overrides={"store_path": store_path},
        )
    except FileNotFoundError as exc:
        raise CommandError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise CommandError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config file or `LINGOFLASH_*` environment values and rerun.",
        ) from exc


@contextmanager
def _open_gateway(
    config_path: Path | None,
    store_path: Path | None,
    log_level: str,
) -> Iterator[Gateway]:
    """Yield a gateway whose log sink is removed when the command finishes."""

    config = _load_config(config_path, store_path)
    _loguru_logger.remove()
    gateway_logger = GatewayLogger.to_stderr(level=log_level.upper())
    try:
        yield Gateway(GatewayContext.from_config(config, logger=gateway_logger))
    finally:
        gateway_logger.close()


def _unwrap(result: GatewayResult) -> dict:
    """Return result data or raise the mapped command error."""

    if result.error is not None:
        raise command_error_from(result.error)
    return dict(result.data or {})


@app.command("generate")
def generate_command(
    purpose: Annotated[
        str,
        typer.Argument(
            help=(
                "Purpose type: flashcard, definition, mnemonic, translation, "
                "examples, or translation_popup."
            )
        ),
    ],
    text: Annotated[str, typer.Argument(help="Text to send to the provider.")],
    user_id: Annotated[str, typer.Option("--user-id", help="User identifier.")] = "local",
    language: Annotated[
        str,
        typer.Option("--language", help="Target language key, e.g. `french_fr`."),
    ] = "english_en",
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="Use this API key for one call instead of the stored one.",
        ),
    ] = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Generate one purpose-specific result and print it as JSON."""

    try:
        with _open_gateway(config, store, log_level) as gateway:
            data = _unwrap(
                gateway.generate(
                    purpose,
                    user_id,
                    text,
                    language,
                    explicit_credential=normalize_optional_string(api_key),
                )
            )
    except CommandError as exc:
        exit_with_command_error("generate", exc)

    echo_json(data)


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str,
        typer.Option("--provider", help="Provider whose key is managed: openai or google."),
    ] = "openai",
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for an API key with hidden input, validate, and store it encrypted.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option("--clear-api-key", help="Clear the stored API key for the provider."),
    ] = False,
    validate: Annotated[
        bool,
        typer.Option(
            "--validate/--no-validate",
            help="Validate the key by listing provider models before storing it.",
        ),
    ] = True,
    config: ConfigOption = None,
    store: StoreOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Manage encrypted provider credentials."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            CommandError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    try:
        with _open_gateway(config, store, log_level) as gateway:
            if set_api_key:
                prompted_api_key = normalize_optional_string(
                    typer.prompt(
                        f"{provider} API key (hidden input)",
                        default="",
                        hide_input=True,
                        show_default=False,
                    )
                )
                if prompted_api_key is None:
                    raise CommandError(
                        stage="credentials",
                        detail="No API key entered.",
                        hint="Provide a non-empty API key when using `--set-api-key`.",
                    )
                stored = _unwrap(
                    gateway.store_credential(provider, prompted_api_key, validate=validate)
                )
                suffix = " and validated" if stored["validated"] else " without validation"
                typer.echo(f"{stored['provider']} API key stored encrypted{suffix}.")
                return

            if clear_api_key:
                cleared = _unwrap(gateway.clear_credential(provider))
                if cleared["removed"]:
                    typer.echo(f"Stored {cleared['provider']} API key cleared.")
                else:
                    typer.echo(f"No stored {cleared['provider']} API key found.")
                return

            echo_credential_status(_unwrap(gateway.credential_status()))
    except CommandError as exc:
        exit_with_command_error("credentials", exc)


@app.command("models")
def models_command(
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="Provider to query; defaults to the selected one."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Use this API key instead of the stored one."),
    ] = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """List models available to the provider API key."""

    try:
        with _open_gateway(config, store, log_level) as gateway:
            listing = _unwrap(
                gateway.list_models(
                    provider=normalize_optional_string(provider),
                    explicit_credential=normalize_optional_string(api_key),
                )
            )
    except CommandError as exc:
        exit_with_command_error("models", exc)

    typer.echo(f"Provider: {listing['provider']}")
    for model in listing["models"]:
        typer.echo(model)


@app.command("preferences")
def preferences_command(
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="Select the provider: openai or google."),
    ] = None,
    openai_model: Annotated[
        str | None,
        typer.Option("--openai-model", help="Model used for OpenAI calls."),
    ] = None,
    google_model: Annotated[
        str | None,
        typer.Option("--google-model", help="Model used for Google calls."),
    ] = None,
    learning_goal: Annotated[
        str | None,
        typer.Option("--learning-goal", help="Learning goal injected into instructions."),
    ] = None,
    own_credential: Annotated[
        bool | None,
        typer.Option(
            "--own-credential/--hosted",
            help="Use your own API key or the hosted proxy.",
            show_default=False,
        ),
    ] = None,
    config: ConfigOption = None,
    store: StoreOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Show or update stored preferences."""

    try:
        with _open_gateway(config, store, log_level) as gateway:
            preferences = _unwrap(
                gateway.set_preferences(
                    provider=normalize_optional_string(provider),
                    openai_model=openai_model,
                    google_model=google_model,
                    learning_goal=learning_goal,
                    use_own_credential=own_credential,
                )
            )
    except CommandError as exc:
        exit_with_command_error("preferences", exc)

    echo_preferences(preferences)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
