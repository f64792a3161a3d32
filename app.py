# app.py
import logging

import streamlit as st

from ui.sidebar import render_sidebar
from ui.grid_mode.render import render as grid_mode_render
from ui.shared_mode.render import render as shared_mode_render
from ui.admin_mode.render import render as admin_mode_render
from core.settings_manager import get_config_str, load_settings, save_settings

logging.basicConfig(
    level=(get_config_str("LOG_LEVEL") or "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

st.set_page_config(
    page_title="Roster Grid",
    layout="wide",
    initial_sidebar_state="auto",
)

st.markdown("""
    <style>
    .stApp {
        background: radial-gradient(circle at top, #1d2230 0, #0b0d12 60%);
        color: #e4e8f0;
    }

    section[data-testid="stSidebar"] {
        background-color: #07080b !important;
        border-right: 1px solid #2a2f3a !important;
    }

    /* Character icons: square tiles with a soft frame */
    [data-testid="stImage"] img {
        border-radius: 6px;
        box-shadow: 0 0 0 1px rgba(255, 255, 255, 0.08);
    }

    /* Keep per-cell buttons compact */
    [data-testid="column"] .stButton button {
        padding: 0.1rem 0.3rem;
        min-height: 1.6rem;
    }
    </style>
""", unsafe_allow_html=True)

# --- Initialize Settings ---
if "user_settings" not in st.session_state:
    st.session_state.user_settings = load_settings()

settings = st.session_state.user_settings

render_sidebar(settings)
save_settings(settings)

# A share link or an admin token in the URL picks the page; otherwise the
# sidebar radio does.
if st.query_params.get("share"):
    shared_mode_render(settings)
elif st.query_params.get("token"):
    admin_mode_render()
else:
    mode = st.sidebar.radio("Mode", ["Grid", "Admin"], key="mode")
    if mode == "Admin":
        admin_mode_render()
    else:
        grid_mode_render(settings)
