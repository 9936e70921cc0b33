"""Integration tests for CLI generation, credential, model, and preference flows."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pytest import MonkeyPatch
from typer.testing import CliRunner

from lingoflash.cli import app
from tests.provider_stubs import MockRequestsResponse, RecordingTransport, openai_reply

_FLASHCARD = {
    "definition": "A common French greeting",
    "translation": "Hello",
    "example_1": "Bonjour, comment allez-vous ?",
    "example_2": "Elle m'a dit bonjour.",
    "example_3": "Bonjour à tous !",
}


def _provider_responder(method: str, url: str, kwargs: dict[str, Any]) -> MockRequestsResponse:
    """Answer model listings and chat completions like the OpenAI API."""

    if method == "GET":
        return MockRequestsResponse(payload={"data": [{"id": "gpt-4o-mini"}, {"id": "gpt-4o"}]})
    return MockRequestsResponse(payload=openai_reply(_FLASHCARD))


def _store_key(runner: CliRunner, store_path: Path) -> None:
    result = runner.invoke(
        app,
        ["credentials", "--set-api-key", "--store", str(store_path)],
        input="sk-cli-secret-key\n",
    )
    assert result.exit_code == 0, result.output


def test_credentials_set_api_key_validates_and_encrypts(
    monkeypatch: MonkeyPatch, tmp_path: Path
) -> None:
    """Setting a key should validate it and never write the plaintext to disk."""

    transport = RecordingTransport(_provider_responder).install(monkeypatch)
    store_path = tmp_path / "store.json"
    runner = CliRunner()

    result = runner.invoke(
        app,
        ["credentials", "--set-api-key", "--store", str(store_path)],
        input="sk-cli-secret-key\n",
    )

    assert result.exit_code == 0, result.output
    assert "openai API key stored encrypted and validated." in result.output
    assert transport.urls() == ["https://api.openai.com/v1/models"]
    stored_text = store_path.read_text(encoding="utf-8")
    assert "sk-cli-secret-key" not in stored_text
    assert json.loads(stored_text)["api_key_validated"] is True


def test_credentials_status_and_clear(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """Status should reflect the stored key, and clearing should remove it."""

    RecordingTransport(_provider_responder).install(monkeypatch)
    store_path = tmp_path / "store.json"
    runner = CliRunner()
    _store_key(runner, store_path)

    status = runner.invoke(app, ["credentials", "--store", str(store_path)])
    cleared = runner.invoke(app, ["credentials", "--clear-api-key", "--store", str(store_path)])
    cleared_again = runner.invoke(
        app, ["credentials", "--clear-api-key", "--store", str(store_path)]
    )

    assert status.exit_code == 0, status.output
    assert "Selected provider: openai" in status.output
    assert "Stored openai API key: present (validated)" in status.output
    assert "Stored openai API key cleared." in cleared.output
    assert "No stored openai API key found." in cleared_again.output


def test_credentials_rejects_conflicting_actions(tmp_path: Path) -> None:
    """`--set-api-key` and `--clear-api-key` together should fail with exit code 1."""

    result = CliRunner().invoke(
        app,
        ["credentials", "--set-api-key", "--clear-api-key", "--store", str(tmp_path / "s.json")],
    )

    assert result.exit_code == 1
    assert "cannot be used together" in result.output


def test_credentials_reports_rejected_key(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """A key rejected by the provider should fail at the auth stage with a hint."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(
            payload={"error": {"message": "Incorrect API key provided"}}, status_code=401
        )
    ).install(monkeypatch)

    result = CliRunner().invoke(
        app,
        ["credentials", "--set-api-key", "--store", str(tmp_path / "store.json")],
        input="sk-rejected-key\n",
    )

    assert result.exit_code == 1
    assert "credentials failed at stage `auth`" in result.output
    assert "Hint: Store a valid API key" in result.output


def test_generate_prints_flashcard_json(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """Generate should print the canonical flashcard as JSON."""

    transport = RecordingTransport(_provider_responder).install(monkeypatch)
    store_path = tmp_path / "store.json"
    runner = CliRunner()
    _store_key(runner, store_path)

    result = runner.invoke(
        app,
        [
            "generate",
            "flashcard",
            "Bonjour",
            "--language",
            "french_fr",
            "--user-id",
            "cli-user",
            "--store",
            str(store_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == _FLASHCARD
    assert transport.calls[-1][2]["headers"]["Authorization"] == "Bearer sk-cli-secret-key"
    stored = json.loads(store_path.read_text(encoding="utf-8"))
    assert len(stored["conversation_cli-user_flashcard"]["messages"]) == 3


def test_generate_reports_decryption_failure(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """A tampered installation password should fail at the decryption stage."""

    transport = RecordingTransport(_provider_responder).install(monkeypatch)
    store_path = tmp_path / "store.json"
    runner = CliRunner()
    _store_key(runner, store_path)
    stored = json.loads(store_path.read_text(encoding="utf-8"))
    stored["installation_password"] = "tampered"
    store_path.write_text(json.dumps(stored), encoding="utf-8")
    calls_before = len(transport.calls)

    result = runner.invoke(app, ["generate", "flashcard", "Bonjour", "--store", str(store_path)])

    assert result.exit_code == 1
    assert "generate failed at stage `decryption`" in result.output
    assert "Hint: Re-enter your API key" in result.output
    assert len(transport.calls) == calls_before


def test_generate_rejects_unknown_purpose(tmp_path: Path) -> None:
    """Unknown purposes should fail at the validation stage."""

    result = CliRunner().invoke(
        app, ["generate", "poem", "Bonjour", "--store", str(tmp_path / "store.json")]
    )

    assert result.exit_code == 1
    assert "generate failed at stage `validation`" in result.output
    assert "Invalid conversation type" in result.output


def test_generate_reports_missing_config_file(tmp_path: Path) -> None:
    """A missing `--config` path should fail at the config stage."""

    result = CliRunner().invoke(
        app,
        ["generate", "flashcard", "Bonjour", "--config", str(tmp_path / "missing.yaml")],
    )

    assert result.exit_code == 1
    assert "generate failed at stage `config`" in result.output
    assert "Config file not found" in result.output


def test_models_lists_provider_models(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """Models should list identifiers for the stored key in sorted order."""

    RecordingTransport(_provider_responder).install(monkeypatch)
    store_path = tmp_path / "store.json"
    runner = CliRunner()
    _store_key(runner, store_path)

    result = runner.invoke(app, ["models", "--store", str(store_path)])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["Provider: openai", "gpt-4o", "gpt-4o-mini"]


def test_preferences_updates_and_prints_values(tmp_path: Path) -> None:
    """Preferences should persist updates and print the effective values."""

    store_path = tmp_path / "store.json"
    runner = CliRunner()

    updated = runner.invoke(
        app,
        [
            "preferences",
            "--provider",
            "google",
            "--google-model",
            "models/gemini-2.5-pro",
            "--learning-goal",
            "Travel in Spain",
            "--hosted",
            "--store",
            str(store_path),
        ],
    )
    shown = runner.invoke(app, ["preferences", "--store", str(store_path)])

    assert updated.exit_code == 0, updated.output
    assert shown.output.splitlines() == [
        "google_model: models/gemini-2.5-pro",
        "learning_goal: Travel in Spain",
        "openai_model: gpt-4o-mini",
        "provider: google",
        "use_own_credential: False",
    ]


def test_preferences_rejects_unknown_provider(tmp_path: Path) -> None:
    """Unknown providers should fail at the validation stage."""

    result = CliRunner().invoke(
        app, ["preferences", "--provider", "carrier-pigeon", "--store", str(tmp_path / "s.json")]
    )

    assert result.exit_code == 1
    assert "preferences failed at stage `validation`" in result.output


def test_corrupt_store_fails_cleanly_for_credentials_and_preferences(tmp_path: Path) -> None:
    """A store file that is not JSON should produce a staged error, not a traceback."""

    store_path = tmp_path / "store.json"
    store_path.write_text("{not json", encoding="utf-8")
    runner = CliRunner()

    status = runner.invoke(app, ["credentials", "--store", str(store_path)])
    preferences = runner.invoke(app, ["preferences", "--store", str(store_path)])

    assert status.exit_code == 1
    assert "credentials failed at stage `unknown`" in status.output
    assert preferences.exit_code == 1
    assert "preferences failed at stage `unknown`" in preferences.output
