# ui/grid_mode/share_dialog.py
from typing import Optional

import streamlit as st

from core import auth
from core.grid.errors import PersistenceFailure
from core.grid.share import create_persistent_share, create_snapshot, share_url
from ui.shared.grid_session import GridSession

_LINK_KEY = "grid_share_last_link"


def _persistent_owner(session: GridSession) -> Optional[str]:
    # An editable live link can be re-shared on the owner's behalf.
    if session.shared is not None:
        if session.shared.persistent and session.shared.editable:
            return session.shared.owner
        return None
    return auth.get_user_id()


@st.dialog("Share grid")
def share_dialog(session: GridSession) -> None:
    owner = _persistent_owner(session)

    kinds = ["Snapshot"]
    if owner:
        kinds.append("Live link")
    kind = st.radio(
        "Link type",
        kinds,
        horizontal=True,
        key="grid_share_kind",
        help="A snapshot copies the grid as it is now. A live link always shows the latest saved grid.",
    )
    editable = st.toggle("Allow editing", value=False, key="grid_share_editable")
    if not owner:
        st.caption("Log in to share a live link to your grid.")

    if st.button("Create link", type="primary", key="grid_share_create"):
        try:
            if kind == "Live link":
                share_id = create_persistent_share(owner, editable)
            else:
                share_id = create_snapshot(session.grid, editable)
        except PersistenceFailure as exc:
            st.error(str(exc))
        else:
            st.session_state[_LINK_KEY] = share_url(share_id, editable)

    link = st.session_state.get(_LINK_KEY)
    if link:
        st.code(link, language=None)
        st.caption("Copy this link and send it to anyone.")
