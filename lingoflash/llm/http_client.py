"""Shared requests-based HTTP plumbing for provider clients.

Responsibilities:
- Send JSON POST and GET requests with a bounded timeout.
- Decode JSON replies and surface malformed success bodies as `ParseError`.
- Convert transport and HTTP failures into `ProviderHTTPError` with the
  status code, provider error code, and decoded error payload attached.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import requests

from ..errors import ParseError, ProviderHTTPError
from ..parsing import short_message


DEFAULT_TIMEOUT_SECONDS = 60.0


class ProviderHTTPClient:
    """Base HTTP client shared by the OpenAI-like and Google-like clients."""

    provider_id = "provider"
    provider_label = "Provider"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _auth_headers(self) -> dict[str, str]:
        """Return provider-specific authentication headers."""

        return {}

    def _auth_params(self) -> dict[str, str]:
        """Return provider-specific authentication query parameters."""

        return {}

    def _post_json(self, endpoint_path: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON object reply."""

        headers = {"Content-Type": "application/json", **self._auth_headers()}
        return self._send(
            "POST",
            endpoint_path,
            headers=headers,
            json_payload=dict(payload),
        )

    def _get_json(self, endpoint_path: str) -> dict[str, Any]:
        """GET an endpoint and return the decoded JSON object reply."""

        return self._send("GET", endpoint_path, headers=self._auth_headers())

    def _send(
        self,
        method: str,
        endpoint_path: str,
        *,
        headers: Mapping[str, str],
        json_payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute one request and map failures consistently."""

        endpoint = f"{self.base_url}{endpoint_path}"
        params = self._auth_params() or None
        try:
            if method == "POST":
                response = requests.post(
                    endpoint,
                    headers=dict(headers),
                    params=params,
                    json=json_payload,
                    timeout=self.timeout_seconds,
                )
            else:
                response = requests.get(
                    endpoint,
                    headers=dict(headers),
                    params=params,
                    timeout=self.timeout_seconds,
                )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            raise self._transport_error_to_provider_error(exc) from exc
        except TimeoutError as exc:
            raise self._transport_error_to_provider_error(exc) from exc

        return self._decode_success_body(bytes(response.content))

    def _decode_success_body(self, body: bytes) -> dict[str, Any]:
        """Decode a successful reply body into a JSON object."""

        text = body.decode("utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(
                f"{self.provider_label} returned invalid JSON payload.",
                raw_payload=text,
            ) from exc
        if not isinstance(payload, dict):
            raise ParseError(
                f"{self.provider_label} returned a non-object JSON payload.",
                raw_payload=payload,
            )
        return payload

    def _transport_error_to_provider_error(self, exc: BaseException) -> ProviderHTTPError:
        """Convert network-layer failures into provider errors."""

        if isinstance(exc, TimeoutError | requests.Timeout):
            detail = f"{self.provider_label} request timed out."
        else:
            detail = f"{self.provider_label} request transport error: {short_message(str(exc))}"
        return ProviderHTTPError(detail, provider=self.provider_id, transport_error=exc)

    def _http_error_to_provider_error(self, exc: requests.HTTPError) -> ProviderHTTPError:
        """Convert HTTP errors into provider errors carrying the decoded payload."""

        response = exc.response
        status_code = response.status_code if response is not None else None
        payload = self._decode_error_payload(response)
        provider_message, provider_code = self._extract_provider_message(payload)
        headline = f"{self.provider_label} request failed (HTTP {status_code})"
        detail = f"{headline}: {provider_message}" if provider_message else f"{headline}."
        return ProviderHTTPError(
            detail,
            provider=self.provider_id,
            status_code=status_code,
            provider_code=provider_code,
            payload=payload,
        )

    @staticmethod
    def _decode_error_body(response: requests.Response | None) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 string."""

        if response is None:
            return ""
        return bytes(response.content).decode("utf-8", errors="replace").strip()

    @classmethod
    def _decode_error_payload(cls, response: requests.Response | None) -> Any:
        """Decode an HTTP error body as JSON, falling back to `{}` or raw text."""

        body = cls._decode_error_body(response)
        if not body:
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return body

    @staticmethod
    def _extract_provider_message(payload: Any) -> tuple[str, str | None]:
        """Extract a concise provider message and optional provider error code."""

        if isinstance(payload, str):
            return short_message(payload), None
        if not isinstance(payload, dict):
            return "", None

        error_payload = payload.get("error")
        if isinstance(error_payload, str):
            return short_message(error_payload), None
        if not isinstance(error_payload, dict):
            return "", None

        provider_code: str | None = None
        for code_key in ("code", "status"):
            code_value = error_payload.get(code_key)
            if isinstance(code_value, str) and code_value.strip():
                provider_code = code_value.strip()
                break
        message_value = error_payload.get("message")
        message = message_value.strip() if isinstance(message_value, str) else ""
        return short_message(message), provider_code
