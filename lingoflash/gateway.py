"""Provider gateway: the single entry point for LLM-backed generation.

Responsibilities:
- Validate incoming requests and resolve the user's provider preferences.
- Resolve the credential (explicit, decrypted from storage, or hosted mode).
- Serve translation popups from the result cache when possible.
- Run one conversation exchange under its per-key lock and persist it.
- Convert every failure into a `ClassifiedError` inside a `GatewayResult`.

Key types:
- `GatewayContext`: store handles, clients, cache, and logger for one caller.
- `Gateway`: generation, credential, model-listing, and preference operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .config import LingoflashConfig
from .credentials import CredentialStore
from .errors import (
    DecryptionError,
    ParseError,
    ProviderHTTPError,
    QuotaExceededError,
    QuotaServiceError,
    ValidationError,
)
from .io.storage import JsonFileKeyValueStore, KeyValueStore
from .llm.adapters import ProviderAdapter
from .llm.cache import TranslationCache
from .llm.conversation import ConversationStore
from .llm.error_classifier import classify
from .models.datatypes import (
    ClassifiedError,
    ErrorKind,
    GatewayResult,
    ProviderKind,
    PurposeType,
    UserPreferences,
)
from .parsing import normalize_optional_string, short_message
from .preferences import (
    SELECTED_PROVIDER_KEY,
    USE_OWN_CREDENTIAL_KEY,
    PreferencesStore,
    validated_key_for,
)
from .provider_factory import ProviderFactory
from .quota import QuotaServiceClient
from .telemetry.logger import GatewayLogger


@dataclass(slots=True)
class GatewayContext:
    """Collaborators shared by gateway calls; the caller owns their lifecycle."""

    config: LingoflashConfig
    storage: KeyValueStore
    credentials: CredentialStore
    conversations: ConversationStore
    cache: TranslationCache
    preferences: PreferencesStore
    providers: ProviderFactory
    logger: GatewayLogger
    quota: QuotaServiceClient | None = None

    @classmethod
    def from_config(
        cls,
        config: LingoflashConfig,
        storage: KeyValueStore | None = None,
        logger: GatewayLogger | None = None,
    ) -> GatewayContext:
        """Build a context from config, defaulting to the JSON file store."""

        resolved_storage = (
            storage if storage is not None else JsonFileKeyValueStore(config.store_path)
        )
        quota = None
        if config.quota_service_url is not None:
            quota = QuotaServiceClient(
                config.quota_service_url,
                timeout_seconds=config.timeout_seconds,
                free_generation_limit=config.free_generation_limit,
            )
        return cls(
            config=config,
            storage=resolved_storage,
            credentials=CredentialStore(resolved_storage),
            conversations=ConversationStore(resolved_storage),
            cache=TranslationCache(resolved_storage, ttl_seconds=config.cache_ttl_seconds),
            preferences=PreferencesStore(resolved_storage, config),
            providers=ProviderFactory(config),
            logger=logger if logger is not None else GatewayLogger(),
            quota=quota,
        )


class Gateway:
    """Route generation requests to the selected provider.

    No public method raises; every failure, including local storage
    errors, comes back as a `GatewayResult` carrying a `ClassifiedError`.
    """

    def __init__(self, context: GatewayContext) -> None:
        """Initialize the gateway with its collaborators."""

        self.context = context

    def generate(
        self,
        purpose: PurposeType | str,
        user_id: str,
        text: str,
        language: str,
        explicit_credential: str | None = None,
    ) -> GatewayResult:
        """Generate the canonical result for one purpose-specific request."""

        purpose_label = str(getattr(purpose, "value", purpose))
        provider_label = "unknown"
        try:
            purpose_type = self._parse_purpose(purpose)
            purpose_label = purpose_type.value
            normalized_user = self._require_text(user_id, "user_id")
            self._require_text(text, "text")
            language_key = normalize_optional_string(language) or ""

            preferences = self.context.preferences.load()
            provider = preferences.provider
            provider_label = provider.value
            self.context.logger.log_call_start(purpose_label, provider_label, normalized_user)

            if purpose_type is PurposeType.TRANSLATION_POPUP:
                cached = self.context.cache.get(text, language_key)
                self.context.logger.log_cache_lookup(language_key, cached is not None)
                if cached is not None:
                    self.context.logger.log_call_complete(purpose_label, provider_label)
                    return GatewayResult(data={"translation": cached})

            adapter, hosted = self._resolve_adapter(
                preferences, normalized_user, explicit_credential
            )
            provider_label = adapter.kind.value
            result = self._run_exchange(
                adapter, purpose_type, normalized_user, text, language_key, preferences
            )
        except ValidationError as exc:
            return self._fail(purpose_label, ErrorKind.VALIDATION, str(exc), provider_label)
        except DecryptionError as exc:
            return self._fail(
                purpose_label,
                ErrorKind.DECRYPTION,
                f"{exc} Re-enter your API key.",
                provider_label,
            )
        except ParseError as exc:
            self.context.logger.log_parse_failure(provider_label, exc.raw_payload)
            return self._fail(purpose_label, ErrorKind.PARSE, str(exc), provider_label)
        except ProviderHTTPError as exc:
            classified = classify(exc.transport_error, exc.status_code, exc.payload, exc.provider)
            return self._fail_classified(purpose_label, classified)
        except QuotaServiceError as exc:
            return self._fail(
                purpose_label,
                ErrorKind.NETWORK,
                str(exc),
                provider_label,
                retryable_hint=True,
            )
        except QuotaExceededError as exc:
            return self._fail(
                purpose_label,
                ErrorKind.RATE_LIMIT,
                str(exc),
                provider_label,
                retryable_hint=True,
            )
        except (OSError, ValueError) as exc:
            return self._storage_failure(purpose_label, exc, provider_label)

        if purpose_type is PurposeType.TRANSLATION_POPUP:
            self._cache_translation(text, language_key, result["translation"])
        if hosted and purpose_type is PurposeType.FLASHCARD:
            self._record_hosted_flashcard(normalized_user)
        self.context.logger.log_call_complete(purpose_label, provider_label)
        return GatewayResult(data=result)

    def store_credential(
        self,
        provider: ProviderKind | str,
        secret: str,
        validate: bool = True,
    ) -> GatewayResult:
        """Validate, encrypt, and persist an API key for `provider`.

        The encrypted key, its password, the other provider's cleared key, and
        the updated preferences are written in one storage `set`.
        """

        provider_label = str(getattr(provider, "value", provider))
        try:
            provider_kind = self._parse_provider(provider)
            provider_label = provider_kind.value
            normalized_secret = self._require_text(secret, "API key")
            model_count = None
            if validate:
                models = self._adapter_for(provider_kind, normalized_secret).list_models()
                if provider_kind is ProviderKind.GOOGLE and not models:
                    return self._fail(
                        "credentials",
                        ErrorKind.AUTH,
                        "Google API key is valid but no models are available for it.",
                        provider_label,
                    )
                model_count = len(models)
            extra_values: dict[str, Any] = {
                validated_key_for(other): False
                for other in ProviderKind
                if other is not provider_kind
            }
            extra_values[validated_key_for(provider_kind)] = validate
            extra_values[SELECTED_PROVIDER_KEY] = provider_kind.value
            extra_values[USE_OWN_CREDENTIAL_KEY] = True
            self.context.credentials.store_credential(
                provider_kind, normalized_secret, extra_values=extra_values
            )
        except ValidationError as exc:
            return self._fail("credentials", ErrorKind.VALIDATION, str(exc), provider_label)
        except ParseError as exc:
            self.context.logger.log_parse_failure(provider_label, exc.raw_payload)
            return self._fail("credentials", ErrorKind.PARSE, str(exc), provider_label)
        except ProviderHTTPError as exc:
            classified = classify(exc.transport_error, exc.status_code, exc.payload, exc.provider)
            return self._fail_classified("credentials", classified)
        except (OSError, ValueError) as exc:
            return self._storage_failure("credentials", exc, provider_label)

        data: dict[str, Any] = {"provider": provider_label, "validated": validate}
        if model_count is not None:
            data["models"] = model_count
        return GatewayResult(data=data)

    def clear_credential(self, provider: ProviderKind | str) -> GatewayResult:
        """Remove the stored key for `provider` and reset its validated flag."""

        provider_label = str(getattr(provider, "value", provider))
        try:
            provider_kind = self._parse_provider(provider)
            removed = self.context.credentials.clear_credential(provider_kind)
            self.context.storage.set({validated_key_for(provider_kind): False})
        except ValidationError as exc:
            return self._fail("credentials", ErrorKind.VALIDATION, str(exc), provider_label)
        except (OSError, ValueError) as exc:
            return self._storage_failure("credentials", exc, provider_label)
        return GatewayResult(data={"provider": provider_kind.value, "removed": removed})

    def credential_status(self) -> GatewayResult:
        """Report which providers have a stored key and whether it was validated."""

        try:
            preferences = self.context.preferences.load()
            status = {
                provider.value: {
                    "stored": self.context.credentials.has_credential(provider),
                    "validated": preferences.is_validated(provider),
                }
                for provider in ProviderKind
            }
        except (OSError, ValueError) as exc:
            return self._storage_failure("credentials", exc, "unknown")
        return GatewayResult(
            data={
                "selected_provider": preferences.provider.value,
                "use_own_credential": preferences.use_own_credential,
                "providers": status,
            }
        )

    def list_models(
        self,
        provider: ProviderKind | str | None = None,
        explicit_credential: str | None = None,
    ) -> GatewayResult:
        """List model identifiers available to the selected provider's key."""

        provider_label = str(getattr(provider, "value", provider or "unknown"))
        try:
            preferences = self.context.preferences.load()
            provider_kind = (
                preferences.provider if provider is None else self._parse_provider(provider)
            )
            provider_label = provider_kind.value
            credential = normalize_optional_string(explicit_credential)
            if credential is None:
                credential = self._stored_credential(provider_kind)
            models = self._adapter_for(provider_kind, credential).list_models()
        except ValidationError as exc:
            return self._fail("models", ErrorKind.VALIDATION, str(exc), provider_label)
        except DecryptionError as exc:
            return self._fail(
                "models",
                ErrorKind.DECRYPTION,
                f"{exc} Re-enter your API key.",
                provider_label,
            )
        except ParseError as exc:
            self.context.logger.log_parse_failure(provider_label, exc.raw_payload)
            return self._fail("models", ErrorKind.PARSE, str(exc), provider_label)
        except ProviderHTTPError as exc:
            classified = classify(exc.transport_error, exc.status_code, exc.payload, exc.provider)
            return self._fail_classified("models", classified)
        except (OSError, ValueError) as exc:
            return self._storage_failure("models", exc, provider_label)
        return GatewayResult(data={"provider": provider_label, "models": sorted(models)})

    def load_preferences(self) -> GatewayResult:
        """Return the stored preferences merged over configured defaults."""

        try:
            preferences = self.context.preferences.load()
        except (OSError, ValueError) as exc:
            return self._storage_failure("preferences", exc, "unknown")
        return GatewayResult(data=_preferences_payload(preferences))

    def set_preferences(
        self,
        *,
        provider: ProviderKind | str | None = None,
        openai_model: str | None = None,
        google_model: str | None = None,
        learning_goal: str | None = None,
        use_own_credential: bool | None = None,
    ) -> GatewayResult:
        """Persist preference changes and return the merged preferences."""

        provider_label = str(getattr(provider, "value", provider or "unknown"))
        try:
            provider_kind = None if provider is None else self._parse_provider(provider)
            updated = self.context.preferences.update(
                provider=provider_kind,
                openai_model=openai_model,
                google_model=google_model,
                learning_goal=learning_goal,
                use_own_credential=use_own_credential,
            )
        except ValidationError as exc:
            return self._fail("preferences", ErrorKind.VALIDATION, str(exc), provider_label)
        except (OSError, ValueError) as exc:
            return self._storage_failure("preferences", exc, provider_label)
        return GatewayResult(data=_preferences_payload(updated))

    def _run_exchange(
        self,
        adapter: ProviderAdapter,
        purpose: PurposeType,
        user_id: str,
        text: str,
        language: str,
        preferences: UserPreferences,
    ) -> dict[str, str]:
        """Fetch, exchange, trim, and persist one conversation under its lock."""

        conversations = self.context.conversations
        with conversations.lock_for(user_id, purpose):
            conversation = conversations.get_or_create(user_id, purpose, preferences.learning_goal)
            result, updated = adapter.exchange(
                conversation, purpose, text, language, preferences.learning_goal
            )
            conversations.save(updated)
        return result

    def _resolve_adapter(
        self,
        preferences: UserPreferences,
        user_id: str,
        explicit_credential: str | None,
    ) -> tuple[ProviderAdapter, bool]:
        """Return the adapter for this call and whether it runs in hosted mode."""

        provider = preferences.provider
        credential = normalize_optional_string(explicit_credential)
        if credential is not None:
            return self._adapter_for(provider, credential, preferences), False

        if preferences.use_own_credential:
            if not preferences.is_validated(provider):
                raise ValidationError(
                    f"No validated {provider.value} API key; store a valid key first."
                )
            credential = self._stored_credential(provider)
            return self._adapter_for(provider, credential, preferences), False

        if provider is ProviderKind.GOOGLE:
            raise ValidationError("Google requires your own API key; hosted mode is unavailable.")
        if self.context.quota is None or self.context.config.hosted_base_url is None:
            raise ValidationError(
                "Hosted generation is not configured; set `hosted_base_url` and "
                "`quota_service_url` or store your own API key."
            )
        if not self.context.quota.can_generate(user_id, using_own_credential=False):
            raise QuotaExceededError(
                "Free generation limit reached; add your own API key to continue."
            )
        return (
            self.context.providers.create_hosted_adapter(user_id, self.context.conversations),
            True,
        )

    def _adapter_for(
        self,
        provider: ProviderKind,
        credential: str,
        preferences: UserPreferences | None = None,
    ) -> ProviderAdapter:
        resolved = preferences if preferences is not None else self.context.preferences.load()
        return self.context.providers.create_adapter(
            provider,
            api_key=credential,
            model=resolved.model_for(provider),
            conversations=self.context.conversations,
        )

    def _stored_credential(self, provider: ProviderKind) -> str:
        credential = self.context.credentials.load_credential(provider)
        if credential is None:
            raise ValidationError(f"No stored {provider.value} API key; store one first.")
        return credential

    def _cache_translation(self, text: str, language: str, translation: str) -> None:
        """Store a popup translation; storage failures are logged, not surfaced."""

        try:
            self.context.cache.put(text, language, translation)
        except (OSError, ValueError) as exc:
            self.context.logger.log_warning(
                "cache", "store_failed", language=language, detail=short_message(str(exc), 80)
            )

    def _record_hosted_flashcard(self, user_id: str) -> None:
        """Increment the hosted flashcard count; failures are logged only."""

        if self.context.quota is None:
            return
        try:
            count = self.context.quota.increment_flashcard_count(user_id)
        except QuotaServiceError as exc:
            self.context.logger.log_warning(
                "quota", "increment_failed", user=user_id, detail=short_message(str(exc), 80)
            )
            return
        self.context.logger.log_quota_update(user_id, count.new_count, count.remaining_cards)

    def _fail(
        self,
        purpose_label: str,
        kind: ErrorKind,
        message: str,
        provider: str,
        retryable_hint: bool = False,
    ) -> GatewayResult:
        return self._fail_classified(
            purpose_label,
            ClassifiedError(
                kind=kind,
                message=short_message(message),
                provider=provider,
                retryable_hint=retryable_hint,
            ),
        )

    def _storage_failure(self, stage: str, exc: Exception, provider: str) -> GatewayResult:
        return self._fail(
            stage,
            ErrorKind.UNKNOWN,
            f"Local storage or settings failure: {exc}",
            provider,
        )

    def _fail_classified(self, purpose_label: str, error: ClassifiedError) -> GatewayResult:
        self.context.logger.log_call_failure(purpose_label, error.provider, error.kind.value)
        return GatewayResult(error=error)

    @staticmethod
    def _parse_purpose(purpose: PurposeType | str) -> PurposeType:
        try:
            return PurposeType.parse(purpose)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    @staticmethod
    def _parse_provider(provider: ProviderKind | str) -> ProviderKind:
        try:
            return ProviderKind.parse(provider)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    @staticmethod
    def _require_text(value: str, field_name: str) -> str:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValidationError(f"`{field_name}` must be a non-empty string.")
        return normalized


def _preferences_payload(preferences: UserPreferences) -> dict[str, Any]:
    return {
        "provider": preferences.provider.value,
        "openai_model": preferences.openai_model,
        "google_model": preferences.google_model,
        "learning_goal": preferences.learning_goal,
        "use_own_credential": preferences.use_own_credential,
    }
