import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Optional

SETTINGS_FILE = Path("data/user_settings.json")

DEFAULT_SETTINGS = {
    "grid_columns": 8,
    "show_names": False,
    "cell_width": 96,

    # Touch gesture tuning used by the reorder controller.
    "long_press_seconds": 0.5,
    "drag_threshold_px": 10,
}

# (min, max) clamps applied on load.
_CLAMPS = {
    "grid_columns": (2, 16),
    "cell_width": (48, 200),
    "drag_threshold_px": (2, 60),
}


def _maybe_streamlit():
    try:
        import streamlit as st  # type: ignore

        return st
    except Exception:
        return None


def get_config_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read a config value from the environment, then `st.secrets`."""
    val = os.environ.get(name)
    if val:
        return val
    st = _maybe_streamlit()
    if st is not None:
        try:
            secret = st.secrets.get(name)
        except Exception:
            # No secrets.toml outside of Streamlit Cloud.
            secret = None
        if secret:
            return str(secret)
    return default


def is_streamlit_cloud() -> bool:
    flag = (get_config_str("ROSTER_GRID_CLOUD") or "").strip().lower()
    if flag in ("1", "true", "yes"):
        return True
    if flag in ("0", "false", "no"):
        return False
    # Streamlit Community Cloud mounts apps under /mount/src.
    return Path("/mount/src").exists()


def _has_supabase_config() -> bool:
    return bool(get_config_str("SUPABASE_URL") and get_config_str("SUPABASE_KEY"))


def load_settings():
    """Load saved user settings, merged with defaults."""
    merged = deepcopy(DEFAULT_SETTINGS)
    if not SETTINGS_FILE.exists():
        return merged

    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except Exception:
        return merged

    if not isinstance(loaded, dict):
        return merged

    for k, v in loaded.items():
        merged[k] = v

    for key, (lo, hi) in _CLAMPS.items():
        try:
            val = int(merged.get(key, DEFAULT_SETTINGS[key]))
        except Exception:
            val = DEFAULT_SETTINGS[key]
        merged[key] = max(lo, min(val, hi))

    try:
        lp = float(merged.get("long_press_seconds", DEFAULT_SETTINGS["long_press_seconds"]))
    except Exception:
        lp = DEFAULT_SETTINGS["long_press_seconds"]
    merged["long_press_seconds"] = max(0.2, min(lp, 2.0))
    merged["show_names"] = bool(merged.get("show_names"))

    return merged


def save_settings(settings: dict):
    SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(SETTINGS_FILE, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
