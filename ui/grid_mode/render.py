# ui/grid_mode/render.py
from typing import Any, Dict

import streamlit as st

from core.grid.documents import export_bytes, export_filename, import_grid
from core.grid.errors import InvalidImportDocument
from core.grid.interaction import ClickMode
from core.grid.persistence import SessionKind
from ui.grid_mode.cells import render_cells
from ui.grid_mode.filters_panel import render_filters
from ui.grid_mode.picker import render_character_picker
from ui.grid_mode.share_dialog import share_dialog
from ui.shared import messages
from ui.shared.grid_session import (
    DEFAULT_PROFILE_PATH,
    GridSession,
    ensure_grid_session,
    report_save_failures,
)


def _on_add_random(session: GridSession) -> None:
    added = session.grid.add_random_character()
    if added is None:
        messages.push("Every character is already on the grid.", messages.INFO)
        return
    session.save()


def _on_load_default(session: GridSession) -> None:
    try:
        raw = DEFAULT_PROFILE_PATH.read_bytes()
    except OSError:
        messages.push("No default profile is available.", messages.WARNING)
        return
    try:
        grid = import_grid(raw, session.catalog)
    except InvalidImportDocument as exc:
        messages.push(f"The default profile is invalid: {exc}", messages.ERROR)
        return
    session.replace_grid(grid)
    messages.push("Loaded the default profile.", messages.SUCCESS)


def _on_toggle_delete(session: GridSession) -> None:
    session.clicks.toggle_delete_mode()


def _on_save_now(session: GridSession) -> None:
    if session.save_now():
        messages.push("Grid saved.", messages.SUCCESS)


def _render_import(session: GridSession) -> None:
    upload = st.file_uploader("Import profile (.json)", type=["json"], key="grid_import_file")
    if upload is None:
        return
    if not st.button("Import", key="grid_import_go"):
        return
    try:
        grid = import_grid(upload.getvalue(), session.catalog)
    except InvalidImportDocument as exc:
        st.error("This file is not a valid grid profile:\n\n" + "\n".join(f"- {p}" for p in exc.problems))
        return
    session.replace_grid(grid)
    messages.push(f"Imported {len(grid.layout)} characters.", messages.SUCCESS)
    st.rerun()


def render_toolbar(session: GridSession) -> None:
    delete_mode = session.clicks.mode == ClickMode.DELETE

    cols = st.columns(5)
    with cols[0]:
        st.button("🎲 Add random", key="grid_add_random", on_click=_on_add_random, args=(session,),
                  use_container_width=True)
    with cols[1]:
        st.button(
            "✅ Done deleting" if delete_mode else "🗑 Delete mode",
            key="grid_delete_mode",
            on_click=_on_toggle_delete,
            args=(session,),
            type="primary" if delete_mode else "secondary",
            use_container_width=True,
        )
    with cols[2]:
        st.download_button(
            "⬇️ Export",
            data=export_bytes(session.grid),
            file_name=export_filename(),
            mime="application/json",
            key="grid_export",
            use_container_width=True,
        )
    with cols[3]:
        if st.button("🔗 Share", key="grid_share", use_container_width=True):
            share_dialog(session)
    with cols[4]:
        if session.kind == SessionKind.SERVER:
            st.button("💾 Save", key="grid_save_now", on_click=_on_save_now, args=(session,),
                      use_container_width=True)
        elif session.kind == SessionKind.LOCAL:
            st.caption("Saved on this device")

    with st.expander("📂 Profiles", expanded=False):
        st.button("Load default profile", key="grid_load_default", on_click=_on_load_default, args=(session,))
        st.caption("Replaces the current grid.")
        _render_import(session)

    if delete_mode:
        st.warning("Delete mode: clicking a character removes it from the grid.")


def render_grid(session: GridSession, settings: Dict[str, Any]) -> None:
    """Toolbar, filters and cells for an open grid session."""
    session.apply_settings(settings)
    if session.editable:
        render_character_picker(session)
        render_toolbar(session)
    else:
        if st.button("🔗 Share", key="grid_share_readonly"):
            share_dialog(session)

    render_filters(session.filters, prefix="grid", dynamic_options={"subclass": session.catalog.subclasses()})

    session.refresh_view(delete_mode=session.clicks.mode == ClickMode.DELETE)
    st.caption(f"Showing {len(session.projector.order)} of {len(session.grid.layout)} characters")
    render_cells(session, settings)


def render(settings: Dict[str, Any]) -> None:
    st.markdown("## Roster Grid")

    session = ensure_grid_session()
    if session is not None:
        report_save_failures(session)
    messages.render_messages()
    if session is None:
        return

    render_grid(session, settings)
