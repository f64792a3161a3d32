# ui/grid_mode/picker.py
from typing import List

import streamlit as st

from core.catalog import Character
from core.grid.models import GridState
from ui.shared.grid_session import GridSession

PICKER_LIMIT = 60


def available_characters(grid: GridState, query: str) -> List[Character]:
    """Catalog search results that are not on the grid yet, in catalog order."""
    placed = set(grid.layout)
    return [c for c in grid.catalog.search(query) if c.id not in placed]


def _on_add(session: GridSession, character: Character) -> None:
    if session.grid.add_character(character.id):
        session.save()


def render_character_picker(session: GridSession) -> None:
    """Sidebar list of catalog characters that are not on the grid yet."""
    if not session.editable:
        return

    with st.sidebar.expander("➕ Add characters", expanded=False):
        query = st.text_input("Search by name or id", key="grid_picker_query")
        available = available_characters(session.grid, query)
        if not available:
            st.caption("Every matching character is already on the grid.")
            return

        for character in available[:PICKER_LIMIT]:
            st.button(
                f"{character.name} · {character.rarity}★ {character.char_class}",
                key=f"grid_picker_add_{character.id}",
                on_click=_on_add,
                args=(session, character),
                use_container_width=True,
            )
        if len(available) > PICKER_LIMIT:
            st.caption(f"{len(available) - PICKER_LIMIT} more; refine the search to see them.")
