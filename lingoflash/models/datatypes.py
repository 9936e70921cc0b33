"""Core datatypes shared across Lingoflash modules.

Responsibilities:
- Represent the closed enumerations (purposes, providers, error kinds).
- Provide immutable records exchanged between the gateway and its collaborators.
- Convert records to and from JSON-safe key-value storage payloads.

Key types:
- `PurposeType`, `ProviderKind`, `ErrorKind`, `Message`, `Conversation`,
  `UserPreferences`, `ClassifiedError`, and `GatewayResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping


class PurposeType(str, Enum):
    """Reason for a generation call; selects instruction template and schema."""

    FLASHCARD = "flashcard"
    DEFINITION = "definition"
    MNEMONIC = "mnemonic"
    TRANSLATION = "translation"
    EXAMPLES = "examples"
    TRANSLATION_POPUP = "translation_popup"

    @classmethod
    def parse(cls, value: object) -> PurposeType:
        """Return the purpose matching `value` or raise `ValueError`."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().lower()
            for member in cls:
                if member.value == token:
                    return member
        supported = ", ".join(member.value for member in cls)
        raise ValueError(f"Invalid conversation type `{value}`; supported: {supported}.")


class ProviderKind(str, Enum):
    """Closed set of supported LLM providers."""

    OPENAI = "openai"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: object) -> ProviderKind:
        """Return the provider matching `value` or raise `ValueError`."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().lower()
            for member in cls:
                if member.value == token:
                    return member
        supported = ", ".join(member.value for member in cls)
        raise ValueError(f"Unsupported provider `{value}`; supported: {supported}.")


class ErrorKind(str, Enum):
    """Actionable failure taxonomy returned to gateway callers."""

    VALIDATION = "validation"
    DECRYPTION = "decryption"
    NETWORK = "network"
    AUTH = "auth"
    UNSUPPORTED_MODEL = "unsupported_model"
    RATE_LIMIT = "rate_limit"
    PARSE = "parse"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """Return whether a caller may reasonably retry after this failure."""

        return self in (ErrorKind.NETWORK, ErrorKind.RATE_LIMIT)


_MESSAGE_ROLES = frozenset({"system", "user", "assistant"})


@dataclass(frozen=True, slots=True)
class Message:
    """One role-tagged conversation entry.

    Attributes:
        role: `system`, `user`, or `assistant`.
        content: Message text.
    """

    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in _MESSAGE_ROLES:
            raise ValueError(f"Unsupported message role `{self.role}`.")

    def to_record(self) -> dict[str, str]:
        """Return the OpenAI-style `{role, content}` mapping."""

        return {"role": self.role, "content": self.content}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Message:
        """Build a message from a stored `{role, content}` mapping."""

        return cls(role=str(record["role"]), content=str(record.get("content") or ""))


@dataclass(frozen=True, slots=True)
class Conversation:
    """Bounded message history for one (user, purpose) pair.

    Attributes:
        user_id: Owner of the conversation.
        purpose: Purpose the conversation serves.
        messages: Ordered messages; index 0 is always the system instruction.
    """

    user_id: str
    purpose: PurposeType
    messages: tuple[Message, ...] = field(default_factory=tuple)

    @property
    def storage_key(self) -> str:
        """Return the key-value storage key for this conversation."""

        return conversation_storage_key(self.user_id, self.purpose)

    def with_messages(self, messages: tuple[Message, ...]) -> Conversation:
        """Return a copy holding `messages`."""

        return replace(self, messages=messages)

    def to_record(self) -> dict[str, Any]:
        """Return a JSON-safe storage payload."""

        return {"messages": [message.to_record() for message in self.messages]}

    @classmethod
    def from_record(
        cls,
        user_id: str,
        purpose: PurposeType,
        record: Mapping[str, Any],
    ) -> Conversation:
        """Build a conversation from a stored payload."""

        raw_messages = record.get("messages") or []
        messages = tuple(
            Message.from_record(item) for item in raw_messages if isinstance(item, Mapping)
        )
        return cls(user_id=user_id, purpose=purpose, messages=messages)


def conversation_storage_key(user_id: str, purpose: PurposeType) -> str:
    """Return the storage key for a (user, purpose) conversation."""

    return f"conversation_{user_id}_{purpose.value}"


@dataclass(frozen=True, slots=True)
class UserPreferences:
    """Stored per-installation provider and learning preferences.

    Attributes:
        provider: Selected provider.
        openai_model: Model used for OpenAI-like calls with an own credential.
        google_model: Model used for Google-like calls.
        learning_goal: Free-text goal interpolated into instructions.
        use_own_credential: Whether calls use the user's own API key.
        openai_key_validated: Whether the stored OpenAI key passed validation.
        google_key_validated: Whether the stored Google key passed validation.
    """

    provider: ProviderKind
    openai_model: str
    google_model: str
    learning_goal: str
    use_own_credential: bool = True
    openai_key_validated: bool = False
    google_key_validated: bool = False

    def model_for(self, provider: ProviderKind) -> str:
        """Return the configured model for `provider`."""

        if provider is ProviderKind.GOOGLE:
            return self.google_model
        return self.openai_model

    def is_validated(self, provider: ProviderKind) -> bool:
        """Return whether the stored key for `provider` passed validation."""

        if provider is ProviderKind.GOOGLE:
            return self.google_key_validated
        return self.openai_key_validated


@dataclass(frozen=True, slots=True)
class ClassifiedError:
    """Taxonomy-tagged failure returned instead of a raised exception.

    Attributes:
        kind: Failure category.
        message: Concise user-facing description.
        provider: Provider involved in the failed call.
        retryable_hint: Whether a retry may succeed.
        http_status: HTTP status, when the failure came from an HTTP reply.
        raw_provider_payload: Provider error payload kept for diagnostics.
    """

    kind: ErrorKind
    message: str
    provider: str
    retryable_hint: bool = False
    http_status: int | None = None
    raw_provider_payload: Any = None

    @property
    def is_unsupported_model(self) -> bool:
        """Return whether the user should pick a different model."""

        return self.kind is ErrorKind.UNSUPPORTED_MODEL


@dataclass(frozen=True, slots=True)
class GatewayResult:
    """Outcome of one gateway call: canonical data or a classified error."""

    data: dict[str, Any] | None = None
    error: ClassifiedError | None = None

    @property
    def success(self) -> bool:
        """Return whether the call produced a canonical result."""

        return self.error is None

    def to_response(self) -> dict[str, Any]:
        """Return the caller-facing response mapping."""

        if self.error is None:
            return {"success": True, "data": dict(self.data or {})}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error.message,
            "kind": self.error.kind.value,
            "provider": self.error.provider,
        }
        if self.error.http_status is not None:
            response["httpStatus"] = self.error.http_status
        if self.error.raw_provider_payload is not None:
            response["rawProviderPayload"] = self.error.raw_provider_payload
        if self.error.is_unsupported_model:
            response["isUnsupportedModel"] = True
        return response
