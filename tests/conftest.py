from __future__ import annotations

from pathlib import Path

import pytest

from core.catalog import CharacterCatalog
from core.local_store import LocalStore
from tests.grid_fixtures import make_catalog

_CONFIG_VARS = (
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "SUPABASE_ANON_KEY",
    "ADMIN_TOKEN",
    "APP_BASE_URL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch) -> None:
    # Tests never talk to a real Supabase project and always run in local mode.
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ROSTER_GRID_CLOUD", "0")


@pytest.fixture
def catalog() -> CharacterCatalog:
    return make_catalog()


@pytest.fixture
def local_store(tmp_path: Path) -> LocalStore:
    return LocalStore("pytest-client", root=tmp_path)
