"""Stable per-browser id for anonymous sessions.

The id names the device's LocalStore file, so an anonymous grid and its
filter preferences survive page reloads. It lives in browser localStorage
(through `streamlit-javascript`) and is mirrored into the `client_id` query
parameter as a fallback when the JS bridge is unavailable.
"""

import json
import uuid
from typing import Optional

try:
    from streamlit_javascript import st_javascript
except Exception:
    st_javascript = None

try:
    import streamlit as st  # type: ignore
except Exception:  # pragma: no cover
    st = None

LOCALSTORAGE_KEY = "roster_grid_client_id"
_JS_COMPONENT_KEY = "roster_grid_client_id_js"
QUERY_PARAM = "client_id"


def _is_valid_uuid(val: Optional[str]) -> bool:
    if not isinstance(val, str) or not val:
        return False
    try:
        uuid.UUID(val)
        return True
    except ValueError:
        return False


def _js_get_or_create() -> str:
    # Create only if missing, so a refresh never clobbers an existing id.
    return (
        "(() => {"
        f"const k = {json.dumps(LOCALSTORAGE_KEY)};"
        "let v = null;"
        "try { v = window.localStorage.getItem(k); } catch (e) { v = null; }"
        "if (!v || v === 'null' || v === 'undefined') {"
        "  v = (window.crypto && crypto.randomUUID) ? crypto.randomUUID() : null;"
        "  try { if (v) window.localStorage.setItem(k, v); } catch (e) {}"
        "}"
        "return v;"
        "})()"
    )


def _get_query_param(key: str) -> Optional[str]:
    if st is None:
        return None
    val = st.query_params.get(key)
    if isinstance(val, list):
        return str(val[-1]) if val else None
    return str(val) if val else None


def get_or_create_client_id() -> str:
    """Return this browser's client id, creating one on first visit."""
    if st is None:
        raise RuntimeError("core.client_id.get_or_create_client_id requires Streamlit")

    # 1) Already resolved this session
    cid = st.session_state.get("client_id")
    if _is_valid_uuid(cid):
        return cid

    # 2) Query param fallback
    qcid = _get_query_param(QUERY_PARAM)
    if _is_valid_uuid(qcid):
        st.session_state["client_id"] = qcid
        return qcid

    # 3) Browser localStorage
    if st_javascript is not None:
        val = st_javascript(_js_get_or_create(), key=_JS_COMPONENT_KEY)
        if _is_valid_uuid(val):
            st.session_state["client_id"] = val
            st.query_params[QUERY_PARAM] = val
            return val
        # The component returns a placeholder until the frontend has mounted;
        # wait once for the real value instead of minting a new id.
        if not st.session_state.get("_client_id_waited"):
            st.session_state["_client_id_waited"] = True
            st.stop()

    # 4) New id, kept in the URL so it survives refreshes
    new_id = str(uuid.uuid4())
    st.session_state["client_id"] = new_id
    st.query_params[QUERY_PARAM] = new_id
    return new_id
