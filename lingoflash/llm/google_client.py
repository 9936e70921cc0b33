"""Google Generative Language HTTP client.

Responsibilities:
- Send `generateContent` requests for a model, keyed by the `key` query parameter.
- List model names available to an API key.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..errors import ParseError
from .http_client import DEFAULT_TIMEOUT_SECONDS, ProviderHTTPClient


GOOGLE_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GoogleGenerativeClient(ProviderHTTPClient):
    """Minimal requests-based client for the Google Generative Language API."""

    provider_id = "google"
    provider_label = "Google"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = GOOGLE_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize client settings."""

        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)

    def _auth_params(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"key": self.api_key}

    def generate_content(self, model: str, body: Mapping[str, Any]) -> dict[str, Any]:
        """POST a `generateContent` body for `model` (e.g. `models/gemini-2.5-flash`)."""

        return self._post_json(f"/{model.strip('/')}:generateContent", body)

    def list_models(self) -> list[str]:
        """Return model names from `GET /models`."""

        payload = self._get_json("/models")
        models = payload.get("models", [])
        if not isinstance(models, list):
            raise ParseError(
                "Google model listing has a malformed `models` field.", raw_payload=payload
            )
        return [
            str(item["name"]) for item in models if isinstance(item, dict) and item.get("name")
        ]
