#ui/sidebar.py
import streamlit as st

from core import auth
from core.settings_manager import save_settings

CELL_WIDTH_MIN = 48
CELL_WIDTH_MAX = 200


def _sync_settings():
    settings = st.session_state.get("user_settings") or {}
    settings["grid_columns"] = int(st.session_state.get("ui_grid_columns", settings.get("grid_columns", 8)))
    settings["cell_width"] = int(st.session_state.get("ui_cell_width", settings.get("cell_width", 96)))
    settings["show_names"] = bool(st.session_state.get("ui_show_names", settings.get("show_names", False)))
    st.session_state["user_settings"] = settings
    save_settings(settings)


def _render_account():
    if not auth.is_auth_enabled():
        st.caption("Accounts are not configured; your grid is saved on this device.")
        return

    if auth.is_authenticated():
        st.markdown(f"Logged in as **{auth.get_user_email() or auth.get_user_id()}**")
        if st.button("Log out", key="auth_logout"):
            auth.logout()
            st.rerun()
        return

    with st.form("auth_form", clear_on_submit=False):
        email = st.text_input("Email", key="auth_email")
        password = st.text_input("Password", type="password", key="auth_password")
        c1, c2 = st.columns(2)
        do_login = c1.form_submit_button("Log in")
        do_register = c2.form_submit_button("Register")

    if not (do_login or do_register):
        return
    if not email or not password:
        st.warning("Enter an email and a password.")
        return
    try:
        if do_login:
            auth.login(email, password)
        elif auth.register(email, password) is None:
            st.success("Check your inbox to confirm your account, then log in.")
            return
    except auth.AuthError as exc:
        st.error(str(exc))
        return
    st.rerun()


def render_sidebar(settings: dict):
    st.sidebar.header("Settings")

    # One-time init for the widget keys (must happen BEFORE the widgets are created)
    st.session_state.setdefault("ui_grid_columns", int(settings.get("grid_columns", 8)))
    st.session_state.setdefault("ui_cell_width", int(settings.get("cell_width", 96)))
    st.session_state.setdefault("ui_show_names", bool(settings.get("show_names", False)))

    with st.sidebar.expander("🖼️ Grid Display", expanded=False):
        st.slider("Columns", min_value=2, max_value=16, key="ui_grid_columns", on_change=_sync_settings)
        st.slider(
            "Icon size (px)",
            min_value=CELL_WIDTH_MIN,
            max_value=CELL_WIDTH_MAX,
            step=8,
            key="ui_cell_width",
            on_change=_sync_settings,
        )
        st.checkbox("Show names", key="ui_show_names", on_change=_sync_settings)

    # Mutate IN PLACE, do not replace settings dict
    settings["grid_columns"] = int(st.session_state["ui_grid_columns"])
    settings["cell_width"] = int(st.session_state["ui_cell_width"])
    settings["show_names"] = bool(st.session_state["ui_show_names"])

    with st.sidebar.expander("👤 Account", expanded=False):
        _render_account()
