from __future__ import annotations

import json
from pathlib import Path

from core.local_store import GRID_FILTERS_NS, GRID_STATE_NS, LocalStore


def test_namespaces_are_independent(local_store: LocalStore) -> None:
    local_store.set(GRID_STATE_NS, {"layout": ["a"]})
    local_store.set(GRID_FILTERS_NS, {"checked": {"state": "forced"}})
    local_store.delete(GRID_FILTERS_NS)

    assert local_store.get(GRID_STATE_NS) == {"layout": ["a"]}
    assert local_store.get(GRID_FILTERS_NS) is None


def test_client_id_is_sanitised(tmp_path: Path) -> None:
    store = LocalStore("../../etc/passwd", root=tmp_path)
    assert store.path.parent == tmp_path
    store.set(GRID_STATE_NS, [])
    assert store.path.exists()
    assert not store.path.with_suffix(".tmp").exists()


def test_unreadable_file_starts_empty(tmp_path: Path) -> None:
    store = LocalStore("broken", root=tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.get(GRID_STATE_NS) is None
    store.set(GRID_STATE_NS, {"layout": []})
    assert json.loads(store.path.read_text(encoding="utf-8")) == {GRID_STATE_NS: {"layout": []}}
