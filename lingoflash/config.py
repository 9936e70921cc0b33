"""Configuration model and loaders for Lingoflash.

Responsibilities:
- Define gateway configuration as a typed dataclass.
- Load configuration from YAML files and `LINGOFLASH_*` environment variables.
- Resolve values with deterministic precedence: CLI > env > file > defaults.

Key types:
- `LingoflashConfig`: normalized settings for one gateway instance.
- `ConfigLoader`: static construction helpers for `LingoflashConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .llm.google_client import GOOGLE_BASE_URL
from .llm.openai_client import OPENAI_BASE_URL
from .models.datatypes import ProviderKind
from .parsing import (
    normalize_optional_string,
    parse_permissive_boolean,
    parse_positive_float,
    parse_positive_int,
)


DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GOOGLE_MODEL = "models/gemini-2.5-flash"
DEFAULT_LEARNING_GOAL = "General language learning"
DEFAULT_STORE_PATH = Path.home() / ".lingoflash" / "store.json"
ENV_PREFIX = "LINGOFLASH_"


@dataclass(frozen=True, slots=True)
class LingoflashConfig:
    """Settings for one gateway instance.

    Attributes:
        store_path: JSON file backing the key-value store.
        provider: Default provider when no preference is stored.
        openai_model: Default OpenAI model when no preference is stored.
        google_model: Default Google model when no preference is stored.
        openai_base_url: OpenAI API base URL.
        google_base_url: Google Generative Language API base URL.
        hosted_base_url: Hosted proxy base URL used without an own API key.
        hosted_model: Model requested through the hosted proxy.
        quota_service_url: Quota/profile service base URL.
        free_generation_limit: Free hosted flashcards per user, used when the
            quota service omits `remainingCards`.
        timeout_seconds: Timeout applied to every HTTP call.
        learning_goal: Default learning goal when no preference is stored.
        cache_ttl_hours: Translation cache lifetime.
        use_own_credential: Default for whether calls use the user's own key.
    """

    store_path: Path = DEFAULT_STORE_PATH
    provider: str = ProviderKind.OPENAI.value
    openai_model: str = DEFAULT_OPENAI_MODEL
    google_model: str = DEFAULT_GOOGLE_MODEL
    openai_base_url: str = OPENAI_BASE_URL
    google_base_url: str = GOOGLE_BASE_URL
    hosted_base_url: str | None = None
    hosted_model: str = DEFAULT_OPENAI_MODEL
    quota_service_url: str | None = None
    free_generation_limit: int | None = None
    timeout_seconds: float = 60.0
    learning_goal: str = DEFAULT_LEARNING_GOAL
    cache_ttl_hours: float = 24.0
    use_own_credential: bool = True

    def validate(self) -> None:
        """Validate configuration values before building a gateway."""

        ProviderKind.parse(self.provider)
        self._require_non_empty(self.openai_model, "openai_model")
        self._require_non_empty(self.google_model, "google_model")
        self._require_non_empty(self.hosted_model, "hosted_model")
        self._require_non_empty(self.learning_goal, "learning_goal")
        self._require_url(self.openai_base_url, "openai_base_url")
        self._require_url(self.google_base_url, "google_base_url")
        if self.hosted_base_url is not None:
            self._require_url(self.hosted_base_url, "hosted_base_url")
        if self.quota_service_url is not None:
            self._require_url(self.quota_service_url, "quota_service_url")
        if self.timeout_seconds <= 0:
            raise ValueError("`timeout_seconds` must be a positive number.")
        if self.cache_ttl_hours <= 0:
            raise ValueError("`cache_ttl_hours` must be a positive number.")
        if self.free_generation_limit is not None and self.free_generation_limit <= 0:
            raise ValueError("`free_generation_limit` must be a positive integer.")

    @property
    def provider_kind(self) -> ProviderKind:
        """Return the default provider as a `ProviderKind`."""

        return ProviderKind.parse(self.provider)

    @property
    def cache_ttl_seconds(self) -> float:
        """Return the translation cache lifetime in seconds."""

        return self.cache_ttl_hours * 3600.0

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")

    @staticmethod
    def _require_url(value: str, field_name: str) -> None:
        if not isinstance(value, str) or not value.startswith(("http://", "https://")):
            raise ValueError(f"`{field_name}` must be an http(s) URL.")


def _parse_path(value: Any, key: str) -> Path:
    normalized = normalize_optional_string(value)
    if normalized is None:
        raise ValueError(f"`{key}` must be a non-empty path.")
    return Path(normalized).expanduser()


def _parse_string(value: Any, key: str) -> str:
    normalized = normalize_optional_string(value)
    if normalized is None:
        raise ValueError(f"`{key}` must be a non-empty string.")
    return normalized


def _parse_optional_string(value: Any, _key: str) -> str | None:
    return normalize_optional_string(value)


def _parse_optional_positive_int(value: Any, key: str) -> int | None:
    if normalize_optional_string(value) is None:
        return None
    return parse_positive_int(value, key)


def _parse_boolean(value: Any, key: str) -> bool:
    parsed = parse_permissive_boolean(value)
    if parsed is None:
        raise ValueError(
            f"`{key}` must be a boolean value (`true`/`false`, `1`/`0`, `yes`/`no`)."
        )
    return parsed


_FIELD_PARSERS: dict[str, Callable[[Any, str], Any]] = {
    "store_path": _parse_path,
    "provider": _parse_string,
    "openai_model": _parse_string,
    "google_model": _parse_string,
    "openai_base_url": _parse_string,
    "google_base_url": _parse_string,
    "hosted_base_url": _parse_optional_string,
    "hosted_model": _parse_string,
    "quota_service_url": _parse_optional_string,
    "free_generation_limit": _parse_optional_positive_int,
    "timeout_seconds": parse_positive_float,
    "learning_goal": _parse_string,
    "cache_ttl_hours": parse_positive_float,
    "use_own_credential": _parse_boolean,
}


class ConfigLoader:
    """Factory methods for creating `LingoflashConfig` from external sources."""

    _SUPPORTED_KEYS = frozenset(item.name for item in fields(LingoflashConfig))

    @staticmethod
    def env_key(field_name: str) -> str:
        """Return the environment variable name for a config field."""

        return f"{ENV_PREFIX}{field_name.upper()}"

    @staticmethod
    def from_yaml(path: Path) -> LingoflashConfig:
        """Create a validated config from a YAML file."""

        payload = ConfigLoader._parse_yaml_payload(path.read_text(encoding="utf-8"), path)
        return ConfigLoader._build(LingoflashConfig(), payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> LingoflashConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        return ConfigLoader._build(
            LingoflashConfig(),
            ConfigLoader._env_payload(env_map),
            source_label="environment",
        )

    @staticmethod
    def load(
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> LingoflashConfig:
        """Resolve config with precedence `overrides` > env > YAML file > defaults."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        config = LingoflashConfig()
        if config_path is not None:
            payload = ConfigLoader._parse_yaml_payload(
                config_path.read_text(encoding="utf-8"), config_path
            )
            config = ConfigLoader._build(config, payload, source_label=f"YAML `{config_path}`")
        config = ConfigLoader._build(
            config, ConfigLoader._env_payload(env_map), source_label="environment"
        )
        if overrides:
            cli_payload = {
                key: value for key, value in overrides.items() if value is not None
            }
            config = ConfigLoader._build(config, cli_payload, source_label="command line")
        return config

    @staticmethod
    def _env_payload(env: Mapping[str, str]) -> dict[str, str]:
        """Collect non-blank `LINGOFLASH_*` values keyed by config field name."""

        payload: dict[str, str] = {}
        for field_name in ConfigLoader._SUPPORTED_KEYS:
            value = normalize_optional_string(env.get(ConfigLoader.env_key(field_name)))
            if value is not None:
                payload[field_name] = value
        return payload

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build(
        base: LingoflashConfig,
        payload: Mapping[str, Any],
        source_label: str,
    ) -> LingoflashConfig:
        """Apply `payload` on top of `base` and validate the result."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        updates: dict[str, Any] = {}
        for key, raw_value in payload.items():
            try:
                updates[key] = _FIELD_PARSERS[key](raw_value, key)
            except ValueError as exc:
                raise ValueError(f"{source_label}: {exc}") from exc

        config = replace(base, **updates)
        config.validate()
        return config
