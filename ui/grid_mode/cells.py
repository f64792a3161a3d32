# ui/grid_mode/cells.py
"""Rendering of the visible grid cells and their per-cell menus.

Streamlit cannot stream raw pointer events, so the move buttons drive the
`ReorderController` with synthetic pointer events computed from the same
wrapped-grid geometry the page is laid out with.
"""

from typing import Any, Dict, Optional

import streamlit as st

from core.grid.errors import GridError
from core.grid.interaction import ClickMode
from core.grid.projection import Cell
from core.grid.reorder import GestureOutcome, grid_cell_rects
from core.image_cache import load_thumbnail
from ui.shared import messages
from ui.shared.grid_session import GridSession

CELL_ASPECT = 1.0


# -------------------------------------------------------------
# Reordering
# -------------------------------------------------------------
def move_before(session: GridSession, source: str, target: Optional[str], settings: Dict[str, Any]) -> bool:
    """Drag `source` in front of `target` (None drops it after the last cell)."""
    order = list(session.projector.order)
    if len(order) < 2 or source not in order or source == target:
        return False

    width = float(settings.get("cell_width", 96))
    rects = grid_cell_rects(order, int(settings.get("grid_columns", 8)), width, width * CELL_ASPECT)
    src = rects[source]
    ctrl = session.reorder

    if ctrl.pointer_down(source, (src.center_x, src.center_y), order) == GestureOutcome.IGNORED:
        return False

    if target is None:
        last = rects[[cid for cid in order if cid != source][-1]]
        point = (last.right + width, last.center_y)
    else:
        dst = rects[target]
        point = (dst.left + 1, dst.center_y)

    ctrl.pointer_move(point, rects)
    return ctrl.pointer_up() == GestureOutcome.DROP


def _move_step(session: GridSession, cid: str, step: int, settings: Dict[str, Any]) -> None:
    order = list(session.projector.order)
    i = order.index(cid)
    if step < 0 and i > 0:
        move_before(session, cid, order[i - 1], settings)
    elif step > 0 and i < len(order) - 1:
        target = order[i + 2] if i + 2 < len(order) else None
        move_before(session, cid, target, settings)


# -------------------------------------------------------------
# Per-cell actions
# -------------------------------------------------------------
def _on_cell_click(session: GridSession, cid: str) -> None:
    session.clicks.handle_click(session.grid, cid)


def _on_circles(session: GridSession, cid: str, delta: int) -> None:
    try:
        session.grid.set_circles(cid, delta)
    except GridError as exc:
        messages.push(str(exc), messages.WARNING)
        return
    session.save()


def _on_skin(session: GridSession, cid: str, key: str) -> None:
    try:
        session.grid.set_skin(cid, st.session_state[key])
    except GridError as exc:
        messages.push(str(exc), messages.WARNING)
        return
    session.save()


def _on_move_to(session: GridSession, cid: str, key: str, settings: Dict[str, Any]) -> None:
    choice = st.session_state.get(key)
    if not choice:
        return
    move_before(session, cid, None if choice == "__end__" else choice, settings)
    st.session_state.pop(key, None)


def _circle_text(cell: Cell) -> str:
    return "".join("●" if lit else "○" for lit in cell.circle_slots())


def _render_cell_menu(session: GridSession, cell: Cell, settings: Dict[str, Any]) -> None:
    cid = cell.char_id
    character = session.catalog.get(cid)

    with st.popover("⋯", use_container_width=True):
        st.markdown(f"**{cell.name}**")

        c1, c2, c3 = st.columns([1, 2, 1])
        c1.button("−", key=f"cell_{cid}_circle_dec", on_click=_on_circles, args=(session, cid, -1))
        c2.markdown(f"<div style='text-align:center'>{_circle_text(cell)}</div>", unsafe_allow_html=True)
        c3.button("+", key=f"cell_{cid}_circle_inc", on_click=_on_circles, args=(session, cid, 1))

        if character is not None and len(character.skins.all()) > 1:
            key = f"cell_{cid}_skin"
            options = list(character.skins.all())
            if st.session_state.get(key) not in options:
                st.session_state[key] = cell.skin if cell.skin in options else options[0]
            st.selectbox("Skin", options, key=key, on_change=_on_skin, args=(session, cid, key))

        order = list(session.projector.order)
        targets = [t for t in order if t != cid]
        if targets:
            names = {t: session.projector.cell(t).name for t in targets}
            names["__end__"] = "(end of grid)"
            key = f"cell_{cid}_move_to"
            st.selectbox(
                "Move before",
                [""] + targets + ["__end__"],
                key=key,
                format_func=lambda v: names.get(v, "—"),
                on_change=_on_move_to,
                args=(session, cid, key, settings),
            )

        st.button(
            "Remove from grid",
            key=f"cell_{cid}_remove",
            on_click=_on_remove,
            args=(session, cid),
            type="secondary",
        )


def _on_remove(session: GridSession, cid: str) -> None:
    if session.grid.remove_character(cid):
        session.save()


# -------------------------------------------------------------
# Grid
# -------------------------------------------------------------
def _render_cell(session: GridSession, cell: Cell, settings: Dict[str, Any]) -> None:
    width = int(settings.get("cell_width", 96))
    img = load_thumbnail(cell.skin)
    if img is not None:
        st.image(img, width=width)
    else:
        st.markdown(
            f"<div style='width:{width}px;height:{width}px;border:1px dashed #555;"
            f"display:flex;align-items:center;justify-content:center;font-size:0.7rem'>{cell.name}</div>",
            unsafe_allow_html=True,
        )

    badge = ("✔ " if cell.checked else "") + _circle_text(cell)
    if settings.get("show_names"):
        st.caption(f"{cell.name} {badge}")
    else:
        st.caption(badge)

    if not session.editable:
        return

    delete_mode = session.clicks.mode == ClickMode.DELETE
    st.button(
        "🗑" if delete_mode else ("☑" if cell.checked else "☐"),
        key=f"cell_{cell.char_id}_click",
        on_click=_on_cell_click,
        args=(session, cell.char_id),
        type="primary" if delete_mode else "secondary",
        use_container_width=True,
    )

    left, right = st.columns(2)
    left.button("◀", key=f"cell_{cell.char_id}_left", on_click=_move_step, args=(session, cell.char_id, -1, settings))
    right.button("▶", key=f"cell_{cell.char_id}_right", on_click=_move_step, args=(session, cell.char_id, 1, settings))

    if not delete_mode:
        _render_cell_menu(session, cell, settings)


def render_cells(session: GridSession, settings: Dict[str, Any]) -> None:
    cells = session.projector.cells()
    if not cells:
        if session.grid.layout:
            st.info("No characters match the current filters.")
        else:
            st.info("The grid is empty. Add characters from the sidebar.")
        return

    columns = max(1, int(settings.get("grid_columns", 8)))
    for start in range(0, len(cells), columns):
        row = cells[start:start + columns]
        cols = st.columns(columns)
        for col, cell in zip(cols, row):
            with col:
                _render_cell(session, cell, settings)
