"""Queued user notifications.

Handlers that run in widget callbacks (or on the save worker, via the
gateway's failure list) cannot render anything themselves; they push a
message here and `render_messages` shows it on the next run.
"""

from typing import Iterable

import streamlit as st

_QUEUE_KEY = "grid_messages"

INFO = "info"
SUCCESS = "success"
WARNING = "warning"
ERROR = "error"

_ICONS = {INFO: "ℹ️", SUCCESS: "✅", WARNING: "⚠️", ERROR: "❌"}


def push(text: str, level: str = INFO) -> None:
    st.session_state.setdefault(_QUEUE_KEY, []).append((level, str(text)))


def push_failures(failures: Iterable[Exception]) -> None:
    # Several failed saves in one run collapse to the latest message.
    last = None
    for exc in failures:
        last = exc
    if last is not None:
        push(f"Your changes could not be saved: {last}", ERROR)


def render_messages() -> None:
    queue = st.session_state.pop(_QUEUE_KEY, [])
    for level, text in queue:
        if level == ERROR:
            st.error(text, icon=_ICONS[ERROR])
        elif level == WARNING:
            st.warning(text, icon=_ICONS[WARNING])
        else:
            st.toast(text, icon=_ICONS.get(level))
