"""Shared pytest fixtures for the full Lingoflash test suite."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from lingoflash.config import LingoflashConfig
from lingoflash.credentials import CredentialStore, CredentialVault
from lingoflash.gateway import Gateway, GatewayContext
from lingoflash.io.storage import InMemoryKeyValueStore


@pytest.fixture
def fast_vault() -> CredentialVault:
    """Provide a vault with a low PBKDF2 iteration count for quick tests."""

    return CredentialVault(iterations=1_000)


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    """Provide an empty in-memory key-value store."""

    return InMemoryKeyValueStore()


@pytest.fixture
def gateway_factory(
    memory_store: InMemoryKeyValueStore,
    fast_vault: CredentialVault,
) -> Callable[..., Gateway]:
    """Build gateways over the shared in-memory store with config overrides."""

    def _build(**config_values: Any) -> Gateway:
        config = LingoflashConfig(**config_values)
        config.validate()
        context = GatewayContext.from_config(config, storage=memory_store)
        context.credentials = CredentialStore(memory_store, fast_vault)
        return Gateway(context)

    return _build
