# ui/admin_mode/render.py
"""Catalog administration: art files, catalog entries and uploads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

from core import auth
from core.catalog import CLASSES, RARITIES, CharacterCatalog, load_subclasses, save_catalog
from core.catalog_admin import (
    ArtFile,
    add_alternate_skin,
    admin_dimensions,
    art_files,
    delete_character,
    remove_skin,
    set_default_skin,
    upsert_character,
)
from core.client_id import get_or_create_client_id
from core.grid.filters import FilterEngine
from core.image_cache import delete_art, list_art_files, load_thumbnail, store_uploaded_art
from core.local_store import ADMIN_FILTERS_NS, LocalStore
from ui.grid_mode.filters_panel import render_filters
from ui.shared import messages
from ui.shared.grid_session import get_catalog, refetch_catalog

_ENGINE_KEY = "admin_filters"
_NEW = "__new__"


def _admin_filters() -> FilterEngine:
    engine = st.session_state.get(_ENGINE_KEY)
    if isinstance(engine, FilterEngine):
        return engine
    engine = FilterEngine(
        admin_dimensions(),
        store=LocalStore(get_or_create_client_id()),
        namespace=ADMIN_FILTERS_NS,
    )
    engine.load_from_store()
    st.session_state[_ENGINE_KEY] = engine
    return engine


def _commit(catalog: CharacterCatalog, done: str) -> bool:
    try:
        save_catalog(catalog)
    except (OSError, requests.RequestException) as exc:
        messages.push(f"Could not save the catalog: {exc}", messages.ERROR)
        return False
    refetch_catalog()
    messages.push(done, messages.SUCCESS)
    return True


def _subclass_table() -> Dict[str, List[str]]:
    try:
        return load_subclasses()
    except (OSError, ValueError) as exc:
        st.warning(f"Could not read the subclass table: {exc}")
        return {}


def _files_table(files: List[ArtFile]) -> pd.DataFrame:
    rows = []
    for f in files:
        c = f.character
        rows.append(
            {
                "file": f.filename,
                "indexed": f.indexed,
                "id": c.id if c else "",
                "name": c.name if c else "",
                "class": c.char_class if c else "",
                "rarity": c.rarity if c else None,
                "default": bool(c and c.skins.default == f.filename),
            }
        )
    return pd.DataFrame(rows, columns=["file", "indexed", "id", "name", "class", "rarity", "default"])


# -------------------------------------------------------------
# Art files
# -------------------------------------------------------------
def _render_file_actions(art: ArtFile, catalog: CharacterCatalog) -> None:
    img = load_thumbnail(art.filename)
    left, right = st.columns([1, 3])
    with left:
        if img is not None:
            st.image(img, width=140)
        else:
            st.caption("(unreadable image)")

    with right:
        st.markdown(f"**{art.filename}**")
        c = art.character
        if c is not None:
            st.caption(f"Used by {c.name} ({c.id})")
            b1, b2 = st.columns(2)
            if c.skins.default != art.filename and b1.button("Make default skin", key="admin_set_default"):
                _commit(set_default_skin(catalog, c.id, art.filename), f"{art.filename} is now {c.name}'s default skin.")
                st.rerun()
            if b2.button("Remove from index", key="admin_unindex"):
                _commit(remove_skin(catalog, art.filename), f"Removed {art.filename} from the catalog.")
                st.rerun()
        else:
            ids = catalog.ids()
            target = st.selectbox(
                "Attach to character",
                [""] + ids,
                key="admin_attach_target",
                format_func=lambda cid: catalog.get(cid).name if cid else "—",
            )
            if target and st.button("Attach as skin", key="admin_attach"):
                _commit(add_alternate_skin(catalog, target, art.filename), f"Attached {art.filename}.")
                st.rerun()

            if st.button("Delete file", key="admin_delete_file"):
                if delete_art(art.filename):
                    messages.push(f"Deleted {art.filename}.", messages.SUCCESS)
                st.rerun()


def _render_art_tab(catalog: CharacterCatalog) -> None:
    engine = _admin_filters()
    render_filters(engine, prefix="admin")

    files = art_files(list_art_files(), catalog)
    visible = engine.apply(files)
    st.caption(f"{len(visible)} of {len(files)} art files")
    st.dataframe(_files_table(visible), use_container_width=True, hide_index=True)

    if not visible:
        return
    names = [f.filename for f in visible]
    picked = st.selectbox("Art file", names, key="admin_art_pick")
    art = next((f for f in visible if f.filename == picked), None)
    if art is not None:
        _render_file_actions(art, catalog)


# -------------------------------------------------------------
# Catalog entries
# -------------------------------------------------------------
def _render_entry_form(catalog: CharacterCatalog, char_id: Optional[str]) -> None:
    existing = catalog.get(char_id) if char_id else None
    art_names = [""] + list_art_files()
    subclasses = _subclass_table()
    # Plain widgets rather than st.form so the subclass choices follow the class.
    prefix = f"admin_entry_{char_id or _NEW}"

    cid = st.text_input("Id", value=existing.id if existing else "", disabled=existing is not None, key=f"{prefix}_id")
    name = st.text_input("Name", value=existing.name if existing else "", key=f"{prefix}_name")
    c1, c2, c3 = st.columns(3)
    char_class = c1.selectbox(
        "Class",
        CLASSES,
        index=CLASSES.index(existing.char_class) if existing and existing.char_class in CLASSES else 0,
        key=f"{prefix}_class",
    )
    sub_options = subclasses.get(char_class) or [""]
    subclass = c2.selectbox(
        "Subclass",
        sub_options,
        index=sub_options.index(existing.subclass) if existing and existing.subclass in sub_options else 0,
        key=f"{prefix}_subclass_{char_class}",
        format_func=lambda s: s or "No subclasses available",
    )
    rarity = c3.selectbox(
        "Rarity",
        RARITIES,
        index=RARITIES.index(existing.rarity) if existing and existing.rarity in RARITIES else len(RARITIES) - 1,
        key=f"{prefix}_rarity",
    )
    current_default = existing.skins.default if existing else ""
    default_skin = st.selectbox(
        "Default skin",
        art_names,
        index=art_names.index(current_default) if current_default in art_names else 0,
        key=f"{prefix}_default_skin",
    )

    if st.button("Save entry", type="primary", key=f"{prefix}_save"):
        fields: Dict[str, Any] = {
            "id": existing.id if existing else cid,
            "name": name,
            "class": char_class,
            "subclass": subclass,
            "rarity": rarity,
            "default_skin": default_skin,
        }
        try:
            updated = upsert_character(catalog, fields, create=existing is None, subclasses=subclasses)
        except ValueError as exc:
            st.error(str(exc))
            return
        _commit(updated, f"Saved {fields['id']}.")
        st.rerun()

    if existing is not None and st.button(f"Delete {existing.name}", key="admin_delete_entry"):
        _commit(delete_character(catalog, existing.id), f"Deleted {existing.id}.")
        st.rerun()


def _render_catalog_tab(catalog: CharacterCatalog) -> None:
    options = [_NEW] + catalog.ids()
    pick = st.selectbox(
        "Entry",
        options,
        key="admin_entry_pick",
        format_func=lambda cid: "➕ New character" if cid == _NEW else f"{catalog.get(cid).name} ({cid})",
    )
    _render_entry_form(catalog, None if pick == _NEW else pick)


def _render_upload_tab() -> None:
    upload = st.file_uploader("Character art", type=["png", "jpg", "jpeg", "webp"], key="admin_upload")
    stem = st.text_input("File name (without extension)", key="admin_upload_stem")
    if upload is None or not st.button("Upload", key="admin_upload_go"):
        return
    try:
        name = store_uploaded_art(upload.getvalue(), stem or upload.name)
    except ValueError as exc:
        st.error(str(exc))
        return
    messages.push(f"Uploaded {name}. Attach it to a character from the Art tab.", messages.SUCCESS)
    st.rerun()


def render() -> None:
    st.markdown("## Catalog Admin")

    if not auth.check_admin_token(st.query_params.get("token")):
        st.error("Admin mode needs a valid `token` in the URL.")
        return

    messages.render_messages()
    catalog = get_catalog()

    if st.button("🔄 Reload catalog", key="admin_refetch"):
        catalog = refetch_catalog()
        st.toast(f"Catalog reloaded ({len(catalog)} characters).")

    art_tab, catalog_tab, upload_tab = st.tabs(["Art", "Catalog", "Upload"])
    with art_tab:
        _render_art_tab(catalog)
    with catalog_tab:
        _render_catalog_tab(catalog)
    with upload_tab:
        _render_upload_tab()
