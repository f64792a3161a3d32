"""
core.grid.persistence
---------------------
Load/save the grid document through a backend chosen by session kind:

- local:    anonymous session, stored in the device's LocalStore
- server:   logged-in user, stored in Supabase under the user's id
- snapshot: shared link, see `core.grid.share`

Saves are fire-and-forget. Every save gets a sequence number and runs on a
single worker thread, so writes reach the backend in issue order; a queued
write that a newer one has superseded is skipped, and acknowledgements or
failures for anything older than the last issued save are discarded.
In-memory state is never rolled back on failure.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

from core import supabase_store
from core.catalog import CharacterCatalog
from core.grid.errors import PersistenceFailure
from core.grid.models import GridState
from core.local_store import GRID_STATE_NS, LocalStore

logger = logging.getLogger(__name__)

PROFILE_DOC_TYPE = "grid_profile"
PROFILE_KEY = "default"


class SessionKind(Enum):
    LOCAL = "local"
    SERVER = "server"
    SNAPSHOT = "snapshot"


class Backend:
    name = "backend"
    editable = True

    def load(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, doc: Dict[str, Any]) -> None:
        raise NotImplementedError


class LocalBackend(Backend):
    name = "local"

    def __init__(self, store: LocalStore, namespace: str = GRID_STATE_NS):
        self.store = store
        self.namespace = namespace

    def load(self) -> Optional[Dict[str, Any]]:
        data = self.store.get(self.namespace)
        return data if isinstance(data, dict) else None

    def save(self, doc: Dict[str, Any]) -> None:
        try:
            self.store.set(self.namespace, doc)
        except OSError as exc:
            raise PersistenceFailure(f"Could not write local grid: {exc}", backend=self.name) from exc


class ServerBackend(Backend):
    name = "server"

    def __init__(self, user_id: Optional[str], access_token: Optional[str] = None, key_name: str = PROFILE_KEY):
        self.user_id = user_id
        self.access_token = access_token
        self.key_name = key_name

    def _require_user(self) -> str:
        if not self.user_id:
            raise PersistenceFailure("Not logged in; cannot use server storage.", backend=self.name)
        return self.user_id

    def load(self) -> Optional[Dict[str, Any]]:
        user_id = self._require_user()
        try:
            data = supabase_store.get_document(
                PROFILE_DOC_TYPE, self.key_name, user_id=user_id, access_token=self.access_token
            )
        except (requests.RequestException, EnvironmentError, ValueError) as exc:
            raise PersistenceFailure(f"Could not load your grid: {exc}", backend=self.name) from exc
        return data if isinstance(data, dict) else None

    def save(self, doc: Dict[str, Any]) -> None:
        user_id = self._require_user()
        try:
            supabase_store.upsert_document(
                PROFILE_DOC_TYPE, self.key_name, doc, user_id=user_id, access_token=self.access_token
            )
        except (requests.RequestException, EnvironmentError, ValueError) as exc:
            raise PersistenceFailure(f"Could not save your grid: {exc}", backend=self.name) from exc


class PersistenceGateway:
    def __init__(self, backend: Backend, *, executor: Optional[Executor] = None):
        self.backend = backend
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._issued = 0
        self._acked = 0
        self._failures: List[PersistenceFailure] = []
        self._futures: List[Future] = []

    @property
    def editable(self) -> bool:
        return self.backend.editable

    @property
    def acked_seq(self) -> int:
        return self._acked

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._acked < self._issued and not self._failures

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="grid-save")
        return self._executor

    # -------------------------------------------------------------
    # Load
    # -------------------------------------------------------------
    def load(self) -> Optional[Dict[str, Any]]:
        try:
            return self.backend.load()
        except PersistenceFailure:
            raise
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(str(exc), backend=self.backend.name) from exc

    def load_grid(self, catalog: CharacterCatalog) -> Optional[GridState]:
        doc = self.load()
        if doc is None:
            return None
        return GridState.from_document(doc, catalog)

    # -------------------------------------------------------------
    # Save
    # -------------------------------------------------------------
    def save(self, grid: GridState) -> int:
        """Queue a whole-document save and return its sequence number."""
        doc = grid.to_document()
        with self._lock:
            self._issued += 1
            seq = self._issued
        future = self._get_executor().submit(self._run, seq, doc)
        self._futures = [f for f in self._futures if not f.done()] + [future]
        return seq

    def save_now(self, grid: GridState) -> int:
        """Save and wait for the write, raising PersistenceFailure on error.

        The write goes through the same worker as queued saves, so an older
        save still in flight cannot land after it.
        """
        doc = grid.to_document()
        with self._lock:
            self._issued += 1
            seq = self._issued
        future = self._get_executor().submit(self._write, seq, doc, raise_errors=True)
        future.result()
        return seq

    def _run(self, seq: int, doc: Dict[str, Any]) -> None:
        with self._lock:
            if seq < self._issued:
                logger.debug("Skipping superseded save #%d (latest #%d)", seq, self._issued)
                return
        self._write(seq, doc, raise_errors=False)

    def _write(self, seq: int, doc: Dict[str, Any], *, raise_errors: bool) -> None:
        try:
            self.backend.save(doc)
        except PersistenceFailure as exc:
            self._record_failure(seq, exc)
            if raise_errors:
                raise
            return
        except (OSError, ValueError) as exc:
            failure = PersistenceFailure(str(exc), backend=self.backend.name)
            self._record_failure(seq, failure)
            if raise_errors:
                raise failure from exc
            return
        self._record_ack(seq)

    def _record_ack(self, seq: int) -> None:
        with self._lock:
            if seq < self._issued:
                logger.debug("Discarding stale ack #%d (latest #%d)", seq, self._issued)
                return
            self._acked = seq
            self._failures.clear()

    def _record_failure(self, seq: int, exc: PersistenceFailure) -> None:
        with self._lock:
            if seq < self._issued:
                logger.debug("Discarding stale failure #%d: %s", seq, exc)
                return
            logger.warning("Save #%d via %s failed: %s", seq, self.backend.name, exc)
            self._failures.append(exc)

    def drain_failures(self) -> List[PersistenceFailure]:
        with self._lock:
            out = list(self._failures)
            self._failures.clear()
        return out

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every queued save has finished (used by tests and shutdown)."""
        if self._futures:
            wait(list(self._futures), timeout=timeout)
        self._futures = [f for f in self._futures if not f.done()]

    def close(self) -> None:
        self.flush()
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
