"""Push the local character catalog from `data/` to Supabase.

Usage:
  SUPABASE_URL=https://... SUPABASE_KEY=yourkey python scripts/migrate_json_to_supabase.py

This script does not require Streamlit and uses the same PostgREST upsert pattern
as `core.supabase_store`.
"""
import os
import sys
import json
import requests
from pathlib import Path


def _base_url():
    url = os.environ.get("SUPABASE_URL")
    if not url:
        print("SUPABASE_URL is not set")
        sys.exit(1)
    return url.rstrip("/")


def _key():
    key = os.environ.get("SUPABASE_KEY")
    if not key:
        print("SUPABASE_KEY is not set")
        sys.exit(1)
    return key


def _table_url():
    return f"{_base_url()}/rest/v1/app_documents"


def _headers():
    k = _key()
    return {"apikey": k, "Authorization": f"Bearer {k}", "Content-Type": "application/json"}


def upsert(payloads):
    url = _table_url()
    params = {"on_conflict": "doc_type,key_name,user_id"}
    headers = _headers()
    headers["Prefer"] = "resolution=merge-duplicates,return=representation"
    resp = requests.post(url, headers=headers, params=params, json=payloads, timeout=30)
    resp.raise_for_status()
    return resp.json()


def push_catalog(path: Path):
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    count = len(data.get("characters") or []) if isinstance(data, dict) else 0
    upsert([{"doc_type": "catalog", "key_name": "characters", "data": data}])
    return f"{count} characters"


def main():
    root = Path(__file__).resolve().parents[1]
    data_dir = root / "data"
    if not data_dir.exists():
        print("data/ directory not found; run from repo root")
        sys.exit(1)

    print("Pushing characters.json...")
    print(push_catalog(data_dir / "characters.json"))

    print("Migration complete.")


if __name__ == "__main__":
    main()
