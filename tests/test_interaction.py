from __future__ import annotations

import unittest

from core.grid.interaction import ClickDispatcher, ClickMode
from core.grid.models import GridState
from tests.grid_fixtures import make_catalog


class ClickDispatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.changes = []
        self.grid = GridState(make_catalog(), layout=["a", "b"])
        self.clicks = ClickDispatcher(self.changes.append)

    def test_normal_mode_toggles_check(self) -> None:
        self.assertTrue(self.clicks.handle_click(self.grid, "a"))
        self.assertTrue(self.grid.mark("a").checks)
        self.clicks.handle_click(self.grid, "a")
        self.assertFalse(self.grid.mark("a").checks)
        self.assertEqual(len(self.changes), 2)

    def test_delete_mode_removes(self) -> None:
        self.assertEqual(self.clicks.toggle_delete_mode(), ClickMode.DELETE)
        self.assertTrue(self.clicks.handle_click(self.grid, "b"))
        self.assertEqual(self.grid.layout, ["a"])
        self.assertEqual(self.clicks.toggle_delete_mode(), ClickMode.NORMAL)

    def test_mode_survives_grid_replacement(self) -> None:
        self.clicks.toggle_delete_mode()
        replacement = GridState(make_catalog(), layout=["c", "d"])

        self.clicks.handle_click(replacement, "c")

        self.assertEqual(replacement.layout, ["d"])
        self.assertEqual(self.grid.layout, ["a", "b"])

    def test_clicks_outside_the_grid_or_read_only_do_nothing(self) -> None:
        self.assertFalse(self.clicks.handle_click(self.grid, "zz"))

        read_only = ClickDispatcher(self.changes.append, editable=False)
        self.assertFalse(read_only.handle_click(self.grid, "a"))
        self.assertFalse(self.grid.mark("a").checks)
        self.assertEqual(self.changes, [])


if __name__ == "__main__":
    unittest.main()
