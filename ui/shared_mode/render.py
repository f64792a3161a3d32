# ui/shared_mode/render.py
from typing import Any, Dict

import streamlit as st

from ui.grid_mode.render import render_grid
from ui.shared import messages
from ui.shared.grid_session import ensure_grid_session, report_save_failures


def _banner(session) -> None:
    shared = session.shared
    what = "a live view of someone's grid" if shared.persistent else "a snapshot of someone's grid"
    if shared.editable:
        st.info(f"You are viewing {what}. Changes you make are saved to the shared link.", icon="✏️")
    else:
        st.info(f"You are viewing {what}. It is read-only.", icon="👁️")


def _leave_share() -> None:
    for key in ("share", "edit"):
        if key in st.query_params:
            del st.query_params[key]


def render(settings: Dict[str, Any]) -> None:
    st.markdown("## Shared Grid")

    session = ensure_grid_session()
    if session is not None:
        report_save_failures(session)
    messages.render_messages()
    if session is None:
        st.button("Open my own grid", key="shared_leave", on_click=_leave_share)
        return

    _banner(session)
    render_grid(session, settings)

    st.markdown("---")
    st.button("Open my own grid", key="shared_leave_bottom", on_click=_leave_share)
