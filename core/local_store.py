"""Namespaced JSON store for per-device (client-local) data.

One file per client id under `data/local/`. Each namespace (`gridState`,
`gridFilters`, `adminFilters`) is read and written wholesale, so grid state
and filter preferences never overwrite each other.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

LOCAL_DIR = Path("data/local")

GRID_STATE_NS = "gridState"
GRID_FILTERS_NS = "gridFilters"
ADMIN_FILTERS_NS = "adminFilters"

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")

# Saves run on a worker thread while the script thread may read.
_LOCK = threading.Lock()


class LocalStore:
    def __init__(self, client_id: str, root: Optional[Path] = None):
        name = _SAFE_NAME.sub("_", client_id or "anonymous") or "anonymous"
        self.path = Path(root or LOCAL_DIR) / f"{name}.json"

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("Unreadable local store %s; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, namespace: str) -> Optional[Any]:
        with _LOCK:
            return self._read_all().get(namespace)

    def set(self, namespace: str, value: Any) -> None:
        with _LOCK:
            data = self._read_all()
            data[namespace] = value
            self._write_all(data)

    def delete(self, namespace: str) -> None:
        with _LOCK:
            data = self._read_all()
            if data.pop(namespace, None) is not None:
                self._write_all(data)

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temporary file and atomically replace the target.
        tmp_path = self.path.with_suffix(".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
                f.flush()
                try:
                    os.fsync(f.fileno())
                except OSError:
                    pass
            os.replace(str(tmp_path), str(self.path))
        except Exception:
            try:
                if tmp_path.exists():
                    tmp_path.unlink()
            except OSError:
                pass
            raise
