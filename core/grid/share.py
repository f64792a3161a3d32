"""
core.grid.share
---------------
Shared grids, addressed by a share id in the URL (`?share=<id>&edit=...`).

Two kinds of share records live under doc_type `grid_share`:

- snapshot:   a deep copy of a grid taken at share time, independently
              editable when its mode is `readwrite`.
- persistent: a pointer to the owner's live profile; viewers always see the
              owner's latest saved grid, and editable links write to it.

Persistent links are only offered to logged-in users (or from an already
editable shared page). Without Supabase (local runs) snapshot records are
kept in `data/shared.json`.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from core import supabase_store
from core.grid.errors import PersistenceFailure, ReadOnlySession
from core.grid.models import GridState
from core.grid.persistence import PROFILE_DOC_TYPE, PROFILE_KEY, Backend
from core.local_store import LocalStore
from core.settings_manager import _has_supabase_config, get_config_str, is_streamlit_cloud

logger = logging.getLogger(__name__)

SHARE_DOC_TYPE = "grid_share"
LOCAL_SHARES = LocalStore("shared", root=Path("data"))

READONLY = "readonly"
READWRITE = "readwrite"

KIND_SNAPSHOT = "snapshot"
KIND_PERSISTENT = "persistent"

_ERRORS = (requests.RequestException, EnvironmentError, ValueError)


@dataclass
class SharedGrid:
    share_id: str
    kind: str
    mode: str
    document: Dict[str, Any]
    owner: Optional[str] = None

    @property
    def editable(self) -> bool:
        return self.mode == READWRITE

    @property
    def persistent(self) -> bool:
        return self.kind == KIND_PERSISTENT


def _use_supabase() -> bool:
    return is_streamlit_cloud() and _has_supabase_config()


def _put_record(share_id: str, record: Dict[str, Any]) -> None:
    try:
        if _use_supabase():
            supabase_store.upsert_document(SHARE_DOC_TYPE, share_id, record)
        else:
            LOCAL_SHARES.set(share_id, record)
    except _ERRORS as exc:
        raise PersistenceFailure(f"Sharing failed: {exc}", backend="share") from exc


def _get_record(share_id: str) -> Optional[Dict[str, Any]]:
    try:
        if _use_supabase():
            record = supabase_store.get_document(SHARE_DOC_TYPE, share_id)
        else:
            record = LOCAL_SHARES.get(share_id)
    except _ERRORS as exc:
        raise PersistenceFailure(f"Could not load shared grid: {exc}", backend="share") from exc
    return record if isinstance(record, dict) else None


def new_share_id() -> str:
    return secrets.token_urlsafe(9)


def share_url(share_id: str, editable: bool, base_url: Optional[str] = None) -> str:
    base = (base_url or get_config_str("APP_BASE_URL") or "http://localhost:8501").rstrip("/")
    query = urlencode({"share": share_id, "edit": "true" if editable else "false"})
    return f"{base}/?{query}"


def create_snapshot(grid: GridState, editable: bool) -> str:
    """Store a deep copy of `grid` and return its share id."""
    share_id = new_share_id()
    record = {
        "kind": KIND_SNAPSHOT,
        "mode": READWRITE if editable else READONLY,
        **grid.copy().to_document(),
    }
    _put_record(share_id, record)
    logger.info("Created %s snapshot %s", record["mode"], share_id)
    return share_id


def create_persistent_share(owner_id: Optional[str], editable: bool) -> str:
    if not owner_id:
        raise PersistenceFailure("Log in to share your live grid.", backend="share")
    if not _use_supabase():
        raise PersistenceFailure("Live grid links need server storage.", backend="share")
    share_id = new_share_id()
    record = {
        "kind": KIND_PERSISTENT,
        "mode": READWRITE if editable else READONLY,
        "owner": owner_id,
    }
    _put_record(share_id, record)
    logger.info("Created persistent %s share %s for %s", record["mode"], share_id, owner_id)
    return share_id


def resolve_share(share_id: str) -> Optional[SharedGrid]:
    """Fetch a share record and the grid document it points to."""
    record = _get_record(share_id)
    if record is None:
        return None

    mode = READWRITE if record.get("mode") == READWRITE else READONLY
    if record.get("kind") == KIND_PERSISTENT:
        owner = record.get("owner")
        if not isinstance(owner, str) or not owner:
            return None
        try:
            doc = supabase_store.get_document(PROFILE_DOC_TYPE, PROFILE_KEY, user_id=owner)
        except _ERRORS as exc:
            raise PersistenceFailure(f"Could not load shared grid: {exc}", backend="share") from exc
        return SharedGrid(share_id, KIND_PERSISTENT, mode, doc if isinstance(doc, dict) else {}, owner=owner)

    doc = {k: record.get(k) for k in ("layout", "marks", "skins") if k in record}
    return SharedGrid(share_id, KIND_SNAPSHOT, mode, doc)


class SharedBackend(Backend):
    """Persistence backend for a grid opened through a share link."""

    name = "snapshot"

    def __init__(self, shared: SharedGrid):
        self.shared = shared

    @property
    def editable(self) -> bool:
        return self.shared.editable

    def load(self) -> Optional[Dict[str, Any]]:
        fresh = resolve_share(self.shared.share_id)
        if fresh is None:
            return None
        self.shared = fresh
        return fresh.document

    def save(self, doc: Dict[str, Any]) -> None:
        if not self.shared.editable:
            raise ReadOnlySession("This shared grid is read-only.", backend=self.name)
        if self.shared.persistent:
            try:
                supabase_store.upsert_document(PROFILE_DOC_TYPE, PROFILE_KEY, doc, user_id=self.shared.owner)
            except _ERRORS as exc:
                raise PersistenceFailure(f"Could not save shared grid: {exc}", backend=self.name) from exc
        else:
            _put_record(self.shared.share_id, {"kind": KIND_SNAPSHOT, "mode": self.shared.mode, **doc})
        self.shared.document = doc
