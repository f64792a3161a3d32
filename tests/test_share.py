from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from core.grid.errors import PersistenceFailure, ReadOnlySession
from core.grid.models import GridState
from core.grid.persistence import PROFILE_DOC_TYPE, PROFILE_KEY, PersistenceGateway
from core.grid.share import (
    KIND_PERSISTENT,
    KIND_SNAPSHOT,
    READONLY,
    READWRITE,
    SHARE_DOC_TYPE,
    SharedBackend,
    create_persistent_share,
    create_snapshot,
    resolve_share,
    share_url,
)
from core.local_store import LocalStore
from tests.grid_fixtures import make_catalog


class LocalSnapshotTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        store = LocalStore("shared", root=Path(self._tmp.name))
        self._patch = patch("core.grid.share.LOCAL_SHARES", store)
        self._patch.start()

        self.catalog = make_catalog()
        self.grid = GridState(self.catalog, layout=["a", "c"])
        self.grid.set_circles("c", 2)

    def tearDown(self) -> None:
        self._patch.stop()
        self._tmp.cleanup()

    def test_read_only_snapshot(self) -> None:
        share_id = create_snapshot(self.grid, editable=False)
        shared = resolve_share(share_id)

        self.assertEqual(shared.kind, KIND_SNAPSHOT)
        self.assertEqual(shared.mode, READONLY)
        self.assertFalse(shared.editable)
        self.assertEqual(shared.document, self.grid.to_document())

        gateway = PersistenceGateway(SharedBackend(shared))
        self.assertFalse(gateway.editable)
        with self.assertRaises(ReadOnlySession):
            gateway.save_now(self.grid)

    def test_snapshot_is_a_copy(self) -> None:
        share_id = create_snapshot(self.grid, editable=True)
        self.grid.remove_character("a")

        self.assertEqual(resolve_share(share_id).document["layout"], ["a", "c"])

    def test_editable_snapshot_saves_back_to_the_link(self) -> None:
        share_id = create_snapshot(self.grid, editable=True)
        shared = resolve_share(share_id)
        viewer_grid = GridState.from_document(shared.document, self.catalog)
        viewer_grid.add_character("d")

        backend = SharedBackend(shared)
        backend.save(viewer_grid.to_document())

        again = resolve_share(share_id)
        self.assertEqual(again.mode, READWRITE)
        self.assertEqual(again.document["layout"], ["a", "c", "d"])
        self.assertEqual(backend.load()["layout"], ["a", "c", "d"])

    def test_unknown_share(self) -> None:
        self.assertIsNone(resolve_share("does-not-exist"))

    def test_persistent_links_need_login_and_server_storage(self) -> None:
        with self.assertRaises(PersistenceFailure):
            create_persistent_share(None, editable=False)
        with self.assertRaises(PersistenceFailure):
            create_persistent_share("user-1", editable=False)


class PersistentShareTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rows = {}
        self.owner_doc = {"layout": ["b"], "marks": {}, "skins": {}}

        def upsert(doc_type, key_name, data, user_id=None, access_token=None):
            self.rows[(doc_type, key_name, user_id)] = data
            return [data]

        def get(doc_type, key_name, user_id=None, access_token=None):
            if doc_type == PROFILE_DOC_TYPE:
                return self.owner_doc
            return self.rows.get((doc_type, key_name, user_id))

        self._patches = [
            patch("core.grid.share._use_supabase", return_value=True),
            patch("core.grid.share.supabase_store.upsert_document", side_effect=upsert),
            patch("core.grid.share.supabase_store.get_document", side_effect=get),
        ]
        self.mocks = [p.start() for p in self._patches]

    def tearDown(self) -> None:
        for p in self._patches:
            p.stop()

    def test_live_link_resolves_to_owner_profile(self) -> None:
        share_id = create_persistent_share("owner-1", editable=False)

        self.assertEqual(
            self.rows[(SHARE_DOC_TYPE, share_id, None)],
            {"kind": KIND_PERSISTENT, "mode": READONLY, "owner": "owner-1"},
        )
        shared = resolve_share(share_id)
        self.assertTrue(shared.persistent)
        self.assertEqual(shared.owner, "owner-1")
        self.assertEqual(shared.document, self.owner_doc)

    def test_editable_live_link_writes_owner_profile(self) -> None:
        share_id = create_persistent_share("owner-1", editable=True)
        backend = SharedBackend(resolve_share(share_id))

        doc = {"layout": ["b", "e"], "marks": {}, "skins": {}}
        backend.save(doc)

        self.assertEqual(self.rows[(PROFILE_DOC_TYPE, PROFILE_KEY, "owner-1")], doc)

    def test_record_without_owner_is_ignored(self) -> None:
        self.rows[(SHARE_DOC_TYPE, "broken", None)] = {"kind": KIND_PERSISTENT, "mode": READWRITE}
        self.assertIsNone(resolve_share("broken"))


class ShareUrlTests(unittest.TestCase):
    def test_explicit_base(self) -> None:
        url = share_url("abc", True, base_url="https://grid.example/")
        parsed = urlparse(url)
        self.assertEqual(parsed.netloc, "grid.example")
        self.assertEqual(parse_qs(parsed.query), {"share": ["abc"], "edit": ["true"]})

    def test_base_from_config(self) -> None:
        with patch.dict(os.environ, {"APP_BASE_URL": "https://roster.example"}):
            self.assertEqual(share_url("xyz", False), "https://roster.example/?share=xyz&edit=false")


if __name__ == "__main__":
    unittest.main()
