"""Unit tests for the quota service client."""

from __future__ import annotations

import pytest
import requests

from lingoflash.errors import QuotaServiceError
from lingoflash.quota import QuotaServiceClient
from tests.provider_stubs import MockRequestsResponse, RecordingTransport


def test_can_generate_posts_user_and_credit_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    """The generation check should send the user id and the credit mode."""

    transport = RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"canGenerate": True})
    ).install(monkeypatch)
    client = QuotaServiceClient("https://quota.test/", timeout_seconds=5)

    assert client.can_generate("user-1", using_own_credential=False) is True
    _, url, kwargs = transport.calls[0]
    assert url == "https://quota.test/api/generate-flashcard"
    assert kwargs["json"] == {"userId": "user-1", "isOwnCredits": False}
    assert kwargs["timeout"] == 5


def test_can_generate_is_false_unless_explicitly_allowed(monkeypatch: pytest.MonkeyPatch) -> None:
    """Anything but `canGenerate: true` should deny the generation."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"canGenerate": "yes"})
    ).install(monkeypatch)

    assert QuotaServiceClient("https://quota.test").can_generate("user-1", False) is False


def test_increment_returns_count_and_derives_remaining(monkeypatch: pytest.MonkeyPatch) -> None:
    """The increment call should return the new count and the remaining allowance."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"success": True, "newCount": 7})
    ).install(monkeypatch)
    client = QuotaServiceClient("https://quota.test", free_generation_limit=10)

    count = client.increment_flashcard_count("user-1")

    assert count.new_count == 7
    assert count.remaining_cards == 3


def test_increment_failure_raises_quota_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """An unsuccessful increment reply should raise `QuotaServiceError`."""

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={"success": False})
    ).install(monkeypatch)

    with pytest.raises(QuotaServiceError):
        QuotaServiceClient("https://quota.test").increment_flashcard_count("user-1")


def test_transport_and_http_failures_raise_quota_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """Network failures and HTTP errors should both raise `QuotaServiceError`."""

    def _refuse(method: str, url: str, kwargs: dict) -> MockRequestsResponse:
        raise requests.ConnectionError("Connection refused")

    RecordingTransport(_refuse).install(monkeypatch)
    with pytest.raises(QuotaServiceError, match="Connection refused"):
        QuotaServiceClient("https://quota.test").can_generate("user-1", False)

    RecordingTransport(
        lambda method, url, kwargs: MockRequestsResponse(payload={}, status_code=500)
    ).install(monkeypatch)
    with pytest.raises(QuotaServiceError):
        QuotaServiceClient("https://quota.test").can_generate("user-1", False)
