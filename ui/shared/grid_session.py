"""Per-browser-session wiring of the grid components.

Everything the grid page needs lives in one `GridSession` object kept in
`st.session_state`. It is rebuilt only when the session identity changes
(anonymous device, logged-in user, or a share link), so the projector's cells
and the save queue survive reruns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import streamlit as st

from core import auth
from core.catalog import CharacterCatalog, load_catalog
from core.client_id import get_or_create_client_id
from core.grid.errors import GridError, PersistenceFailure
from core.grid.filters import FilterEngine, grid_dimensions
from core.grid.interaction import ClickDispatcher
from core.grid.models import GridState
from core.grid.persistence import LocalBackend, PersistenceGateway, ServerBackend, SessionKind
from core.grid.projection import ViewProjector
from core.grid.reorder import ReorderController
from core.grid.share import READONLY, SharedBackend, SharedGrid, resolve_share
from core.local_store import GRID_FILTERS_NS, LocalStore
from ui.shared import messages

logger = logging.getLogger(__name__)

_SESSION_KEY = "grid_session"
_CATALOG_KEY = "grid_catalog"
DEFAULT_PROFILE_PATH = Path("data/profiles/default.json")


# -------------------------------------------------------------
# Catalog
# -------------------------------------------------------------
def get_catalog() -> CharacterCatalog:
    catalog = st.session_state.get(_CATALOG_KEY)
    if isinstance(catalog, CharacterCatalog):
        return catalog
    try:
        catalog = load_catalog()
    except (OSError, ValueError) as exc:
        logger.exception("Failed to load the character catalog")
        messages.push(f"Could not load the character catalog: {exc}", messages.ERROR)
        catalog = CharacterCatalog()
    st.session_state[_CATALOG_KEY] = catalog
    return catalog


def refetch_catalog() -> CharacterCatalog:
    """Drop the cached catalog and point the open grid at the fresh one."""
    st.session_state.pop(_CATALOG_KEY, None)
    catalog = get_catalog()
    session = st.session_state.get(_SESSION_KEY)
    if isinstance(session, GridSession):
        session.set_catalog(catalog)
    return catalog


# -------------------------------------------------------------
# Session
# -------------------------------------------------------------
@dataclass
class GridSession:
    identity: str
    kind: SessionKind
    catalog: CharacterCatalog
    grid: GridState
    gateway: PersistenceGateway
    filters: FilterEngine
    shared: Optional[SharedGrid] = None
    projector: ViewProjector = field(default_factory=ViewProjector)
    clicks: ClickDispatcher = field(default_factory=ClickDispatcher)
    reorder: ReorderController = field(default_factory=ReorderController)

    def __post_init__(self):
        self.clicks.on_change = lambda _grid: self.save()
        self.clicks.editable = self.editable
        self.reorder.on_drop = self.apply_drop
        self.reorder.set_enabled(self.editable)

    @property
    def editable(self) -> bool:
        return self.gateway.editable

    def save(self) -> Optional[int]:
        if not self.editable:
            return None
        return self.gateway.save(self.grid)

    def save_now(self) -> bool:
        try:
            self.gateway.save_now(self.grid)
        except PersistenceFailure as exc:
            messages.push(f"Save failed: {exc}", messages.ERROR)
            return False
        return True

    def apply_drop(self, visible_order: List[str]) -> None:
        try:
            self.grid.reorder(visible_order)
        except (GridError, ValueError) as exc:
            logger.warning("Dropped reorder %r: %s", visible_order, exc)
            return
        self.save()

    def replace_grid(self, grid: GridState) -> None:
        self.grid = grid
        self.save()

    def apply_settings(self, settings: dict) -> None:
        self.reorder.drag_threshold_px = float(settings.get("drag_threshold_px", self.reorder.drag_threshold_px))
        self.reorder.long_press_seconds = float(settings.get("long_press_seconds", self.reorder.long_press_seconds))

    def set_catalog(self, catalog: CharacterCatalog) -> None:
        self.catalog = catalog
        self.grid.catalog = catalog

    def predicate(self):
        return self.filters.predicate(self.grid)

    def refresh_view(self, delete_mode: bool = False) -> bool:
        return self.projector.refresh(self.grid, self.catalog, self.predicate(), delete_mode=delete_mode)


def _share_param() -> Optional[str]:
    val = st.query_params.get("share")
    return str(val) if val else None


def _edit_param() -> bool:
    return str(st.query_params.get("edit") or "").strip().lower() in ("1", "true", "yes")


def _identity(client_id: str) -> str:
    share_id = _share_param()
    if share_id:
        return f"share:{share_id}:{_edit_param()}"
    user_id = auth.get_user_id()
    if user_id:
        return f"server:{user_id}"
    return f"local:{client_id}"


def _build_session(identity: str, client_id: str, catalog: CharacterCatalog) -> GridSession:
    store = LocalStore(client_id)
    shared: Optional[SharedGrid] = None

    share_id = _share_param()
    if share_id:
        shared = resolve_share(share_id)
        if shared is None:
            raise PersistenceFailure(f"Shared grid {share_id!r} was not found.", backend="share")
        # A link can narrow the mode it was created with, never widen it.
        if not _edit_param():
            shared.mode = READONLY
        kind = SessionKind.SNAPSHOT
        gateway = PersistenceGateway(SharedBackend(shared))
        grid = GridState.from_document(shared.document, catalog)
    else:
        user_id = auth.get_user_id()
        if user_id:
            kind = SessionKind.SERVER
            gateway = PersistenceGateway(ServerBackend(user_id, auth.get_access_token()))
        else:
            kind = SessionKind.LOCAL
            gateway = PersistenceGateway(LocalBackend(store))
        grid = gateway.load_grid(catalog) or GridState(catalog)

    filters = FilterEngine(grid_dimensions(), store=store, namespace=GRID_FILTERS_NS)
    filters.load_from_store()

    logger.info("Opened %s grid session (%d characters)", kind.value, len(grid.layout))
    return GridSession(
        identity=identity,
        kind=kind,
        catalog=catalog,
        grid=grid,
        gateway=gateway,
        filters=filters,
        shared=shared,
    )


def ensure_grid_session() -> Optional[GridSession]:
    """Return the session's GridSession, (re)building it if the identity changed.

    Returns None when the grid cannot be opened; the reason is queued as a
    message.
    """
    client_id = get_or_create_client_id()
    identity = _identity(client_id)

    session = st.session_state.get(_SESSION_KEY)
    if isinstance(session, GridSession) and session.identity == identity:
        return session
    if isinstance(session, GridSession):
        session.gateway.close()

    try:
        session = _build_session(identity, client_id, get_catalog())
    except PersistenceFailure as exc:
        messages.push(str(exc), messages.ERROR)
        st.session_state.pop(_SESSION_KEY, None)
        return None

    st.session_state[_SESSION_KEY] = session
    return session


def report_save_failures(session: GridSession) -> None:
    messages.push_failures(session.gateway.drain_failures())
