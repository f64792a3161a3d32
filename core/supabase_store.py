"""Lightweight Supabase/PostgREST helpers for storing JSON documents.

This module uses the Supabase REST API (PostgREST) via `requests` so it
can be invoked from inside Streamlit (using `st.secrets`) or from scripts
that export `SUPABASE_URL` and `SUPABASE_KEY` environment variables.

Expect the following table:
- app_documents(doc_type TEXT, key_name TEXT, user_id TEXT, data JSONB,
  updated_at TIMESTAMPTZ, UNIQUE (doc_type, key_name, user_id))

Document types used by the grid:
- catalog / characters            the shared character catalog
- grid_profile / default          a user's grid (user_id set)
- grid_share / <share id>         shared snapshots and persistent share links

When `access_token` is passed, requests are made on behalf of the logged-in
user (row level security applies); otherwise the service key is used.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

import requests

from core.settings_manager import get_config_str

logger = logging.getLogger(__name__)

TABLE = "app_documents"
TIMEOUT = 10


def _parse_dt(val: Any) -> Optional[datetime]:
    if not isinstance(val, str) or not val:
        return None
    try:
        # Handle common PostgREST/Supabase ISO formats
        s = val.replace("Z", "+00:00")
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def _pick_latest_row(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Choose the most recent row from a list.

    Duplicates can exist if the table lacks the unique constraint that
    `on_conflict` expects. Rows are ranked by updated_at, then created_at,
    then integer id; rows without any of these lose to rows that have them.
    """
    if not rows:
        return None
    if len(rows) == 1:
        return rows[0]

    def _rank(r: Dict[str, Any]):
        updated = _parse_dt(r.get("updated_at"))
        created = _parse_dt(r.get("created_at"))
        rid = r.get("id") if isinstance(r.get("id"), int) else -1
        stamp = updated or created
        return (
            stamp is not None,
            stamp.timestamp() if stamp else 0.0,
            created.timestamp() if created else 0.0,
            rid,
        )

    best = rows[-1]
    best_rank = _rank(best)
    for r in rows:
        rank = _rank(r)
        if rank > best_rank:
            best, best_rank = r, rank
    return best


def _base_url() -> str:
    url = get_config_str("SUPABASE_URL")
    if not url:
        raise EnvironmentError("SUPABASE_URL not set in env or st.secrets")
    return url.rstrip("/")


def _key() -> str:
    key = get_config_str("SUPABASE_KEY")
    if not key:
        raise EnvironmentError("SUPABASE_KEY not set in env or st.secrets")
    return key


def _headers(access_token: Optional[str] = None) -> Dict[str, str]:
    key = _key()
    return {
        "apikey": key,
        "Authorization": f"Bearer {access_token or key}",
        "Content-Type": "application/json",
        # Prefer header is used for return behaviour; override in callers as needed.
        "Prefer": "return=representation",
    }


def _table_url() -> str:
    return f"{_base_url()}/rest/v1/{TABLE}"


def _scope_params(doc_type: str, key_name: Optional[str], user_id: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {"doc_type": f"eq.{doc_type}"}
    if key_name is not None:
        params["key_name"] = f"eq.{key_name}"
    params["user_id"] = "is.null" if user_id is None else f"eq.{user_id}"
    return params


def upsert_document(
    doc_type: str,
    key_name: str,
    data: Any,
    user_id: Optional[str] = None,
    access_token: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Insert or replace a JSON document.

    Uses PostgREST upsert via `on_conflict` and `Prefer: resolution=merge-duplicates`.
    Returns the server representation (list) on success; HTTP errors propagate
    as `requests.HTTPError`.
    """
    payload: Dict[str, Any] = {"doc_type": doc_type, "key_name": key_name, "data": data}
    if user_id is not None:
        payload["user_id"] = user_id

    params = {"on_conflict": "doc_type,key_name,user_id"}
    headers = _headers(access_token)
    headers["Prefer"] = "resolution=merge-duplicates,return=representation"
    resp = requests.post(_table_url(), headers=headers, params=params, json=[payload], timeout=TIMEOUT)
    resp.raise_for_status()
    logger.debug("Upserted %s/%s (user=%s)", doc_type, key_name, user_id)
    return resp.json()


def get_document(
    doc_type: str,
    key_name: str,
    user_id: Optional[str] = None,
    access_token: Optional[str] = None,
) -> Optional[Any]:
    """Fetch a single document's `data` field or None if not found.

    Transport errors and non-2xx responses other than 404/406 propagate.
    """
    params = {"select": "*", **_scope_params(doc_type, key_name, user_id)}
    resp = requests.get(_table_url(), headers=_headers(access_token), params=params, timeout=TIMEOUT)
    if resp.status_code in (404, 406):
        return None
    resp.raise_for_status()
    arr = resp.json()
    if not isinstance(arr, list) or not arr:
        return None
    row = _pick_latest_row(arr)
    if not row or "data" not in row:
        return None
    return row.get("data")

