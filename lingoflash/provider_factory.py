"""Provider factory for gateway adapters.

Responsibilities:
- Resolve a `ProviderKind` to its concrete adapter and HTTP client.
- Keep the provider switch in one place so gateway logic never branches on
  provider names.
"""

from __future__ import annotations

from .config import LingoflashConfig
from .llm.adapters import GoogleAdapter, OpenAIAdapter, ProviderAdapter
from .llm.conversation import ConversationStore
from .llm.google_client import GoogleGenerativeClient
from .llm.openai_client import OpenAIChatClient
from .models.datatypes import ProviderKind


HOSTED_CHAT_PATH = "/api/chat"


class ProviderFactory:
    """Factory for provider adapters used by the gateway."""

    def __init__(self, config: LingoflashConfig) -> None:
        """Initialize the factory with endpoint and timeout settings."""

        self.config = config

    def create_adapter(
        self,
        provider: ProviderKind,
        *,
        api_key: str | None,
        model: str,
        conversations: ConversationStore,
    ) -> ProviderAdapter:
        """Create the adapter for `provider` authenticated with `api_key`."""

        if provider is ProviderKind.OPENAI:
            return OpenAIAdapter(
                client=OpenAIChatClient(
                    api_key=api_key,
                    base_url=self.config.openai_base_url,
                    timeout_seconds=self.config.timeout_seconds,
                ),
                model=model,
                conversations=conversations,
            )
        if provider is ProviderKind.GOOGLE:
            return GoogleAdapter(
                client=GoogleGenerativeClient(
                    api_key=api_key,
                    base_url=self.config.google_base_url,
                    timeout_seconds=self.config.timeout_seconds,
                ),
                model=model,
                conversations=conversations,
            )
        raise ValueError(f"Unsupported provider `{provider}`.")

    def create_hosted_adapter(
        self,
        user_id: str,
        conversations: ConversationStore,
    ) -> OpenAIAdapter:
        """Create the OpenAI-like adapter routed through the hosted proxy."""

        if self.config.hosted_base_url is None:
            raise ValueError("Hosted generation requires `hosted_base_url`.")
        return OpenAIAdapter(
            client=OpenAIChatClient(
                api_key=None,
                base_url=self.config.hosted_base_url,
                chat_path=HOSTED_CHAT_PATH,
                timeout_seconds=self.config.timeout_seconds,
            ),
            model=self.config.hosted_model,
            conversations=conversations,
            hosted_user_id=user_id,
        )
