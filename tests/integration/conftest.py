"""Integration-test fixtures for deterministic CLI environments."""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_lingoflash_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop host `LINGOFLASH_*` variables so CLI config resolution is deterministic."""

    for name in list(os.environ):
        if name.startswith("LINGOFLASH_"):
            monkeypatch.delenv(name, raising=False)
