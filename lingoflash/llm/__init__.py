"""Provider-facing modules: HTTP clients, adapters, prompts, and caches."""

from .adapters import GoogleAdapter, OpenAIAdapter, ProviderAdapter, ProviderRequest
from .cache import TranslationCache, text_hash
from .conversation import ConversationStore
from .error_classifier import classify
from .google_client import GoogleGenerativeClient
from .openai_client import OpenAIChatClient
from .prompts import OutputField, PromptLibrary

__all__ = [
    "ConversationStore",
    "GoogleAdapter",
    "GoogleGenerativeClient",
    "OpenAIAdapter",
    "OpenAIChatClient",
    "OutputField",
    "PromptLibrary",
    "ProviderAdapter",
    "ProviderRequest",
    "TranslationCache",
    "classify",
    "text_hash",
]
