"""Client for the remote quota and user-profile service.

The service is consulted only when a user generates without their own API
key: `can_generate` gates the call and `increment_flashcard_count` records a
generated flashcard.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Mapping

import requests

from .errors import QuotaServiceError
from .llm.http_client import DEFAULT_TIMEOUT_SECONDS
from .parsing import short_message


@dataclass(frozen=True, slots=True)
class FlashcardCount:
    """Updated free-tier usage after one generated flashcard."""

    new_count: int
    remaining_cards: int | None = None


class QuotaServiceClient:
    """Minimal requests-based client for the quota service endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        free_generation_limit: int | None = None,
    ) -> None:
        """Initialize the client with the service base URL."""

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.free_generation_limit = free_generation_limit

    def can_generate(self, user_id: str, using_own_credential: bool) -> bool:
        """Return whether the service allows one more generation for `user_id`."""

        payload = self._post(
            "/api/generate-flashcard",
            {"userId": user_id, "isOwnCredits": using_own_credential},
        )
        return payload.get("canGenerate") is True

    def increment_flashcard_count(self, user_id: str) -> FlashcardCount:
        """Record one generated flashcard and return the updated count."""

        payload = self._post("/api/increment-flashcard-count", {"userId": user_id})
        new_count = payload.get("newCount")
        if payload.get("success") is False or isinstance(new_count, bool) or not isinstance(
            new_count, int
        ):
            raise QuotaServiceError("Failed to increment flashcard count.")
        remaining = payload.get("remainingCards")
        if not isinstance(remaining, int) and self.free_generation_limit is not None:
            remaining = self.free_generation_limit - new_count
        return FlashcardCount(
            new_count=new_count,
            remaining_cards=remaining if isinstance(remaining, int) else None,
        )

    def _post(self, endpoint_path: str, body: Mapping[str, Any]) -> dict[str, Any]:
        try:
            response = requests.post(
                f"{self.base_url}{endpoint_path}",
                headers={"Content-Type": "application/json"},
                json=dict(body),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise QuotaServiceError(
                f"Quota service request failed: {short_message(str(exc))}"
            ) from exc

        try:
            payload = json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise QuotaServiceError("Quota service returned invalid JSON payload.") from exc
        if not isinstance(payload, dict):
            raise QuotaServiceError("Quota service returned a non-object JSON payload.")
        return payload
