"""Provider adapters translating one logical request into provider wire formats.

Responsibilities:
- Build schema-constrained request bodies for OpenAI-like and Google-like APIs.
- Send the request through the provider HTTP client.
- Parse provider replies into canonical purpose-specific results.
- Record the successful exchange in the conversation's sliding window.

Key types:
- `ProviderRequest`: provider-ready request body plus routing metadata.
- `ProviderAdapter`: shared exchange flow and canonical result validation.
- `OpenAIAdapter`, `GoogleAdapter`: one implementation per `ProviderKind`.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any

from ..errors import ParseError
from ..models.datatypes import Conversation, ProviderKind, PurposeType
from .conversation import ConversationStore
from .google_client import GoogleGenerativeClient
from .openai_client import OpenAIChatClient
from .prompts import OutputField, PromptLibrary


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    """Provider-ready request.

    Attributes:
        provider: Target provider.
        model: Model identifier the body targets.
        body: JSON body to send.
        fields: Required output fields used to validate the reply.
    """

    provider: ProviderKind
    model: str
    body: dict[str, Any]
    fields: tuple[OutputField, ...]


class ProviderAdapter:
    """Shared exchange flow for provider-specific adapters."""

    kind: ProviderKind

    def __init__(
        self,
        *,
        model: str,
        conversations: ConversationStore,
        prompts: PromptLibrary | None = None,
    ) -> None:
        """Initialize the adapter with its model and conversation store."""

        self.model = model
        self.conversations = conversations
        self.prompts = prompts if prompts is not None else conversations.prompts

    def build_request(
        self,
        conversation: Conversation,
        purpose: PurposeType,
        user_text: str,
        language: str,
        learning_goal: str,
    ) -> ProviderRequest:
        """Return the provider-specific request for one user message."""

        raise NotImplementedError

    def send(self, request: ProviderRequest) -> dict[str, Any]:
        """Perform the network exchange and return the decoded reply."""

        raise NotImplementedError

    def reply_text(self, reply: Any) -> str:
        """Return the assistant text carried by a provider reply."""

        raise NotImplementedError

    def list_models(self) -> list[str]:
        """Return model identifiers available to the configured credential."""

        raise NotImplementedError

    def parse_response(
        self,
        reply: Any,
        fields: tuple[OutputField, ...],
    ) -> dict[str, str]:
        """Parse a provider reply into the canonical result for `fields`."""

        return self.canonical_result(self.reply_text(reply), fields, reply)

    def exchange(
        self,
        conversation: Conversation,
        purpose: PurposeType,
        user_text: str,
        language: str,
        learning_goal: str,
    ) -> tuple[dict[str, str], Conversation]:
        """Run one round trip and return the result with the trimmed conversation."""

        request = self.build_request(conversation, purpose, user_text, language, learning_goal)
        reply = self.send(request)
        assistant_text = self.reply_text(reply)
        result = self.canonical_result(assistant_text, request.fields, reply)
        updated = self.conversations.append_exchange(conversation, user_text, assistant_text)
        return result, updated

    def canonical_result(
        self,
        assistant_text: str,
        fields: tuple[OutputField, ...],
        raw_reply: Any,
    ) -> dict[str, str]:
        """Decode the assistant JSON text and keep exactly the required fields."""

        try:
            payload = json.loads(assistant_text)
        except json.JSONDecodeError as exc:
            raise ParseError(
                f"{self.kind.value} reply content is not valid JSON.",
                raw_payload=raw_reply,
            ) from exc
        if not isinstance(payload, dict):
            raise ParseError(
                f"{self.kind.value} reply content is not a JSON object.",
                raw_payload=raw_reply,
            )

        missing = [item.name for item in fields if not isinstance(payload.get(item.name), str)]
        if missing:
            raise ParseError(
                f"{self.kind.value} reply is missing required field(s): {', '.join(missing)}.",
                raw_payload=raw_reply,
            )
        return {item.name: payload[item.name] for item in fields}


class OpenAIAdapter(ProviderAdapter):
    """Adapter for OpenAI-style chat completions with strict JSON schema output."""

    kind = ProviderKind.OPENAI

    def __init__(
        self,
        *,
        client: OpenAIChatClient,
        model: str,
        conversations: ConversationStore,
        prompts: PromptLibrary | None = None,
        hosted_user_id: str | None = None,
    ) -> None:
        """Initialize the adapter; `hosted_user_id` marks hosted-proxy calls."""

        super().__init__(model=model, conversations=conversations, prompts=prompts)
        self.client = client
        self.hosted_user_id = hosted_user_id

    def build_request(
        self,
        conversation: Conversation,
        purpose: PurposeType,
        user_text: str,
        language: str,
        learning_goal: str,
    ) -> ProviderRequest:
        fields = self.prompts.output_fields(purpose, user_text, language, learning_goal)
        messages = [message.to_record() for message in conversation.messages]
        messages.append({"role": "user", "content": user_text})
        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": self.prompts.schema_name(purpose),
                    "schema": {
                        "type": "object",
                        "properties": {
                            item.name: {"type": "string", "description": item.description}
                            for item in fields
                        },
                        "required": [item.name for item in fields],
                        "additionalProperties": False,
                    },
                    "strict": True,
                },
            },
        }
        if self.hosted_user_id is not None:
            body["userId"] = self.hosted_user_id
        return ProviderRequest(provider=self.kind, model=self.model, body=body, fields=fields)

    def send(self, request: ProviderRequest) -> dict[str, Any]:
        return self.client.chat_completion(request.body)

    def reply_text(self, reply: Any) -> str:
        if not isinstance(reply, dict):
            raise ParseError("Invalid OpenAI response: not a JSON object.", raw_payload=reply)
        choices = reply.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ParseError(
                "Invalid OpenAI response: missing or empty choices array.",
                raw_payload=reply,
            )
        first_choice = choices[0]
        message = first_choice.get("message") if isinstance(first_choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ParseError(
                "Invalid OpenAI response: missing message content.",
                raw_payload=reply,
            )
        return content

    def list_models(self) -> list[str]:
        return self.client.list_models()


class GoogleAdapter(ProviderAdapter):
    """Adapter for Google `generateContent` with a response schema.

    The wire format has no system role, so the system instruction and the
    user text travel together in one user turn.
    """

    kind = ProviderKind.GOOGLE

    def __init__(
        self,
        *,
        client: GoogleGenerativeClient,
        model: str,
        conversations: ConversationStore,
        prompts: PromptLibrary | None = None,
    ) -> None:
        """Initialize the adapter with its HTTP client."""

        super().__init__(model=model, conversations=conversations, prompts=prompts)
        self.client = client

    def build_request(
        self,
        conversation: Conversation,
        purpose: PurposeType,
        user_text: str,
        language: str,
        learning_goal: str,
    ) -> ProviderRequest:
        fields = self.prompts.output_fields(purpose, user_text, language, learning_goal)
        system_text = self._system_text(conversation, purpose, learning_goal)
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": f"{system_text}\n\nUser query: {user_text}"}],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": {
                    "type": "OBJECT",
                    "properties": {
                        item.name: {"type": "STRING", "description": item.description}
                        for item in fields
                    },
                    "required": [item.name for item in fields],
                },
            },
        }
        return ProviderRequest(provider=self.kind, model=self.model, body=body, fields=fields)

    def send(self, request: ProviderRequest) -> dict[str, Any]:
        return self.client.generate_content(request.model, request.body)

    def reply_text(self, reply: Any) -> str:
        text = None
        candidates = reply.get("candidates") if isinstance(reply, dict) else None
        if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
            content = candidates[0].get("content")
            parts = content.get("parts") if isinstance(content, dict) else None
            if isinstance(parts, list) and parts and isinstance(parts[0], dict):
                text = parts[0].get("text")
        if not isinstance(text, str) or not text.strip():
            raise ParseError(
                "Invalid Google API response: missing or malformed content.",
                raw_payload=reply,
            )
        return text

    def list_models(self) -> list[str]:
        return self.client.list_models()

    def _system_text(
        self,
        conversation: Conversation,
        purpose: PurposeType,
        learning_goal: str,
    ) -> str:
        if conversation.messages and conversation.messages[0].role == "system":
            return conversation.messages[0].content
        return self.prompts.system_prompt(purpose, learning_goal)
