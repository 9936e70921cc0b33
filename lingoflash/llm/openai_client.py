"""OpenAI HTTP client for structured chat completions.

Responsibilities:
- Send chat-completions requests with a JSON-schema response format.
- List model identifiers available to an API key.
- Support the hosted proxy, which takes the same body without an API key.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..errors import ParseError
from .http_client import DEFAULT_TIMEOUT_SECONDS, ProviderHTTPClient


OPENAI_BASE_URL = "https://api.openai.com/v1"
CHAT_COMPLETIONS_PATH = "/chat/completions"


class OpenAIChatClient(ProviderHTTPClient):
    """Minimal requests-based OpenAI chat-completions client."""

    provider_id = "openai"
    provider_label = "OpenAI"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = OPENAI_BASE_URL,
        chat_path: str = CHAT_COMPLETIONS_PATH,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize client settings; `chat_path` differs for the hosted proxy."""

        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)
        self.chat_path = chat_path

    def _auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def chat_completion(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """POST a chat-completions body and return the decoded reply."""

        return self._post_json(self.chat_path, body)

    def list_models(self) -> list[str]:
        """Return model identifiers from `GET /models`."""

        payload = self._get_json("/models")
        data = payload.get("data")
        if not isinstance(data, list):
            raise ParseError(
                "OpenAI model listing is missing the `data` list.", raw_payload=payload
            )
        return [
            str(item["id"]) for item in data if isinstance(item, dict) and item.get("id")
        ]
