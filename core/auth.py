"""Email/password accounts via the Supabase auth REST API.

The grid only needs to know whether someone is logged in, their user id and
the access token to send to PostgREST. Sessions are kept in
`st.session_state`; logging out simply forgets them.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from core.settings_manager import get_config_str

try:
    import streamlit as st  # type: ignore
except Exception:  # pragma: no cover
    st = None

logger = logging.getLogger(__name__)

_AUTH_SESSION_KEY = "_grid_auth_session_v1"
TIMEOUT = 10


class AuthError(Exception):
    pass


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    email: Optional[str]
    access_token: str
    refresh_token: Optional[str] = None


def _get_supabase_url() -> Optional[str]:
    url = get_config_str("SUPABASE_URL")
    return url.rstrip("/") if url else None


def _get_supabase_anon_key() -> Optional[str]:
    # Prefer explicit anon key; allow SUPABASE_KEY if that's what the deployment provides.
    return get_config_str("SUPABASE_ANON_KEY") or get_config_str("SUPABASE_KEY")


def is_auth_enabled() -> bool:
    return bool(_get_supabase_url() and _get_supabase_anon_key())


def _coerce_session(payload: Any) -> Optional[AuthSession]:
    if not isinstance(payload, dict):
        return None
    user = payload.get("user")
    if not isinstance(user, dict):
        return None
    user_id = user.get("id")
    if not isinstance(user_id, str) or not user_id:
        return None
    email = user.get("email")
    if email is not None and not isinstance(email, str):
        email = None
    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        return None
    refresh = payload.get("refresh_token")
    return AuthSession(
        user_id=user_id,
        email=email,
        access_token=access_token,
        refresh_token=refresh if isinstance(refresh, str) else None,
    )


def _post(path: str, body: dict) -> dict:
    url = _get_supabase_url()
    key = _get_supabase_anon_key()
    if not url or not key:
        raise AuthError("Accounts are not configured on this deployment.")
    try:
        resp = requests.post(
            f"{url}/auth/v1/{path}",
            headers={"apikey": key, "Content-Type": "application/json"},
            json=body,
            timeout=TIMEOUT,
        )
    except requests.RequestException as exc:
        raise AuthError(f"Authentication service unreachable: {exc}") from exc

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not resp.ok:
        msg = data.get("error_description") or data.get("msg") or data.get("message") if isinstance(data, dict) else None
        raise AuthError(msg or "Authentication failed")
    return data if isinstance(data, dict) else {}


def _remember(session: Optional[AuthSession]) -> None:
    if st is None:
        return
    st.session_state[_AUTH_SESSION_KEY] = session


def login(email: str, password: str) -> AuthSession:
    data = _post("token?grant_type=password", {"email": email, "password": password})
    session = _coerce_session(data)
    if session is None:
        raise AuthError("Authentication failed")
    _remember(session)
    logger.info("User %s logged in", session.user_id)
    return session


def register(email: str, password: str) -> Optional[AuthSession]:
    """Create an account. Returns a session unless email confirmation is required."""
    data = _post("signup", {"email": email, "password": password})
    session = _coerce_session(data)
    if session is not None:
        _remember(session)
    return session


def current_session() -> Optional[AuthSession]:
    if st is None:
        return None
    cached = st.session_state.get(_AUTH_SESSION_KEY)
    return cached if isinstance(cached, AuthSession) else None


def get_user_id() -> Optional[str]:
    s = current_session()
    return s.user_id if s else None


def get_user_email() -> Optional[str]:
    s = current_session()
    return s.email if s else None


def get_access_token() -> Optional[str]:
    s = current_session()
    return s.access_token if s else None


def is_authenticated() -> bool:
    return current_session() is not None


def logout() -> None:
    _remember(None)


def check_admin_token(token: Optional[str]) -> bool:
    expected = get_config_str("ADMIN_TOKEN")
    if not expected or not token:
        return False
    return hmac.compare_digest(str(token), str(expected))
