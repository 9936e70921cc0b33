"""Stored user preferences for provider selection and learning goals.

Preferences live in the key-value store so every entry point (CLI, embedding
application) sees the same provider, models, and learning goal. Missing keys
fall back to the configured defaults.
"""

from __future__ import annotations

from typing import Any

from .config import LingoflashConfig
from .io.storage import KeyValueStore
from .models.datatypes import ProviderKind, UserPreferences
from .parsing import normalize_optional_string, parse_permissive_boolean


SELECTED_PROVIDER_KEY = "selected_provider"
OPENAI_MODEL_KEY = "model"
GOOGLE_MODEL_KEY = "google_model"
LEARNING_GOAL_KEY = "learning_goal"
USE_OWN_CREDENTIAL_KEY = "is_own_credentials"
OPENAI_VALIDATED_KEY = "api_key_validated"
GOOGLE_VALIDATED_KEY = "google_api_key_validated"

_PREFERENCE_KEYS = (
    SELECTED_PROVIDER_KEY,
    OPENAI_MODEL_KEY,
    GOOGLE_MODEL_KEY,
    LEARNING_GOAL_KEY,
    USE_OWN_CREDENTIAL_KEY,
    OPENAI_VALIDATED_KEY,
    GOOGLE_VALIDATED_KEY,
)


def validated_key_for(provider: ProviderKind) -> str:
    """Return the storage key of the "key validated" flag for `provider`."""

    if provider is ProviderKind.GOOGLE:
        return GOOGLE_VALIDATED_KEY
    return OPENAI_VALIDATED_KEY


class PreferencesStore:
    """Read and update `UserPreferences` in the key-value store."""

    def __init__(self, storage: KeyValueStore, config: LingoflashConfig) -> None:
        """Initialize the store with its storage collaborator and defaults."""

        self.storage = storage
        self.config = config

    def load(self) -> UserPreferences:
        """Return stored preferences merged over configured defaults."""

        stored = self.storage.get(_PREFERENCE_KEYS)
        provider_value = normalize_optional_string(stored.get(SELECTED_PROVIDER_KEY))
        provider = (
            ProviderKind.parse(provider_value)
            if provider_value is not None
            else self.config.provider_kind
        )
        return UserPreferences(
            provider=provider,
            openai_model=self._string(stored, OPENAI_MODEL_KEY, self.config.openai_model),
            google_model=self._string(stored, GOOGLE_MODEL_KEY, self.config.google_model),
            learning_goal=self._string(stored, LEARNING_GOAL_KEY, self.config.learning_goal),
            use_own_credential=self._boolean(
                stored, USE_OWN_CREDENTIAL_KEY, self.config.use_own_credential
            ),
            openai_key_validated=self._boolean(stored, OPENAI_VALIDATED_KEY, False),
            google_key_validated=self._boolean(stored, GOOGLE_VALIDATED_KEY, False),
        )

    def update(
        self,
        *,
        provider: ProviderKind | None = None,
        openai_model: str | None = None,
        google_model: str | None = None,
        learning_goal: str | None = None,
        use_own_credential: bool | None = None,
    ) -> UserPreferences:
        """Persist the given preference values and return the merged result."""

        update: dict[str, Any] = {}
        if provider is not None:
            update[SELECTED_PROVIDER_KEY] = provider.value
        if normalize_optional_string(openai_model) is not None:
            update[OPENAI_MODEL_KEY] = normalize_optional_string(openai_model)
        if normalize_optional_string(google_model) is not None:
            update[GOOGLE_MODEL_KEY] = normalize_optional_string(google_model)
        if normalize_optional_string(learning_goal) is not None:
            update[LEARNING_GOAL_KEY] = normalize_optional_string(learning_goal)
        if use_own_credential is not None:
            update[USE_OWN_CREDENTIAL_KEY] = use_own_credential
        if update:
            self.storage.set(update)
        return self.load()

    @staticmethod
    def _string(stored: dict[str, Any], key: str, default: str) -> str:
        value = normalize_optional_string(stored.get(key))
        return value if value is not None else default

    @staticmethod
    def _boolean(stored: dict[str, Any], key: str, default: bool) -> bool:
        parsed = parse_permissive_boolean(stored.get(key))
        return default if parsed is None else parsed
