"""Unit tests for requests-based provider HTTP clients."""

from __future__ import annotations

import pytest
import requests

from lingoflash.errors import ParseError, ProviderHTTPError
from lingoflash.llm.google_client import GoogleGenerativeClient
from lingoflash.llm.openai_client import OpenAIChatClient
from tests.provider_stubs import MockRequestsResponse, RecordingTransport


def test_openai_chat_completion_sends_bearer_header_and_timeout(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Chat completions should POST JSON with a bearer token and the configured timeout."""

    transport = RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"choices": []})
    ).install(monkeypatch)
    client = OpenAIChatClient(api_key=" sk-test ", base_url="https://api.test/v1/", timeout_seconds=7)

    reply = client.chat_completion({"model": "gpt-4o-mini", "messages": []})

    assert reply == {"choices": []}
    method, url, kwargs = transport.calls[0]
    assert method == "POST"
    assert url == "https://api.test/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"] == {"model": "gpt-4o-mini", "messages": []}
    assert kwargs["timeout"] == 7


def test_openai_client_without_key_omits_authorization(monkeypatch: pytest.MonkeyPatch) -> None:
    """The hosted proxy path should send no Authorization header."""

    transport = RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"choices": []})
    ).install(monkeypatch)
    client = OpenAIChatClient(api_key=None, base_url="https://proxy.test", chat_path="/api/chat")

    client.chat_completion({"userId": "u-1"})

    _, url, kwargs = transport.calls[0]
    assert url == "https://proxy.test/api/chat"
    assert "Authorization" not in kwargs["headers"]


def test_openai_list_models_returns_ids(monkeypatch: pytest.MonkeyPatch) -> None:
    """Model listing should return ids from the `data` array."""

    transport = RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(
            payload={"data": [{"id": "gpt-4o"}, {"id": "gpt-4o-mini"}, {"object": "x"}]}
        )
    ).install(monkeypatch)

    models = OpenAIChatClient(api_key="sk-test").list_models()

    assert models == ["gpt-4o", "gpt-4o-mini"]
    assert transport.calls[0][0] == "GET"
    assert transport.calls[0][1] == "https://api.openai.com/v1/models"


def test_google_client_passes_key_as_query_parameter(monkeypatch: pytest.MonkeyPatch) -> None:
    """Google requests should authenticate with the `key` query parameter."""

    transport = RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"candidates": []})
    ).install(monkeypatch)
    client = GoogleGenerativeClient(api_key="AIza-test")

    client.generate_content("models/gemini-2.5-flash", {"contents": []})

    _, url, kwargs = transport.calls[0]
    assert url == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
    )
    assert kwargs["params"] == {"key": "AIza-test"}
    assert "Authorization" not in kwargs["headers"]


def test_google_list_models_returns_names(monkeypatch: pytest.MonkeyPatch) -> None:
    """Google listing should return names and tolerate an empty listing."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(
            payload={"models": [{"name": "models/gemini-2.5-flash"}]}
        )
    ).install(monkeypatch)

    assert GoogleGenerativeClient(api_key="AIza-test").list_models() == ["models/gemini-2.5-flash"]


def test_http_error_carries_status_code_and_decoded_payload(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """HTTP failures should raise `ProviderHTTPError` with status, code, and payload."""

    error_payload = {"error": {"message": "The model `x` does not exist", "code": "model_not_found"}}
    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload=error_payload, status_code=404)
    ).install(monkeypatch)

    with pytest.raises(ProviderHTTPError) as exc_info:
        OpenAIChatClient(api_key="sk-test").chat_completion({})

    assert exc_info.value.provider == "openai"
    assert exc_info.value.status_code == 404
    assert exc_info.value.provider_code == "model_not_found"
    assert exc_info.value.payload == error_payload
    assert exc_info.value.transport_error is None
    assert "HTTP 404" in str(exc_info.value)


def test_http_error_with_text_body_keeps_raw_text(monkeypatch: pytest.MonkeyPatch) -> None:
    """Non-JSON error bodies should be preserved as text."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(raw=b"Bad Gateway", status_code=502)
    ).install(monkeypatch)

    with pytest.raises(ProviderHTTPError) as exc_info:
        GoogleGenerativeClient(api_key="AIza-test").list_models()

    assert exc_info.value.status_code == 502
    assert exc_info.value.payload == "Bad Gateway"


def test_transport_failure_is_wrapped_with_original_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """Connection failures should carry the original exception for classification."""

    def _refuse(method: str, url: str, kwargs: dict) -> MockRequestsResponse:
        raise requests.ConnectionError("Connection refused")

    RecordingTransport(_refuse).install(monkeypatch)

    with pytest.raises(ProviderHTTPError) as exc_info:
        OpenAIChatClient(api_key="sk-test").chat_completion({})

    assert isinstance(exc_info.value.transport_error, requests.ConnectionError)
    assert exc_info.value.status_code is None


def test_timeout_is_reported_as_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Timeouts should produce a concise timeout message."""

    def _slow(method: str, url: str, kwargs: dict) -> MockRequestsResponse:
        raise requests.Timeout("read timed out")

    RecordingTransport(_slow).install(monkeypatch)

    with pytest.raises(ProviderHTTPError, match="timed out"):
        GoogleGenerativeClient(api_key="AIza-test").generate_content("models/m", {})


def test_invalid_success_body_raises_parse_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """A 200 reply that is not a JSON object should raise `ParseError`."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(raw=b"<html>oops</html>")
    ).install(monkeypatch)

    with pytest.raises(ParseError) as exc_info:
        OpenAIChatClient(api_key="sk-test").chat_completion({})

    assert exc_info.value.raw_payload == "<html>oops</html>"
