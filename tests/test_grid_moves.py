from __future__ import annotations

import unittest

from core.grid.filters import FilterEngine, grid_dimensions
from core.grid.interaction import ClickMode
from core.grid.models import GridState
from core.grid.persistence import PersistenceGateway, SessionKind
from tests.grid_fixtures import MemoryBackend, make_catalog
from ui.grid_mode.cells import _move_step, move_before
from ui.grid_mode.picker import available_characters
from ui.shared.grid_session import GridSession

SETTINGS = {"grid_columns": 2, "cell_width": 96}


class GridSessionMoveTests(unittest.TestCase):
    def _session(self, editable: bool = True) -> GridSession:
        catalog = make_catalog()
        self.backend = MemoryBackend(editable=editable)
        session = GridSession(
            identity="test",
            kind=SessionKind.LOCAL,
            catalog=catalog,
            grid=GridState(catalog, layout=["a", "b", "c", "d"]),
            gateway=PersistenceGateway(self.backend),
            filters=FilterEngine(grid_dimensions()),
        )
        self.addCleanup(session.gateway.close)
        # Hide b (the only caster).
        session.filters.set_values("class", ["guard", "medic", "sniper"])
        session.refresh_view()
        return session

    def test_view_hides_filtered_character(self) -> None:
        session = self._session()
        self.assertEqual(session.projector.order, ("a", "c", "d"))

    def test_drag_before_first_keeps_hidden_neighbour(self) -> None:
        session = self._session()

        self.assertTrue(move_before(session, "d", "a", SETTINGS))
        session.gateway.flush(timeout=5)

        self.assertEqual(session.grid.layout, ["d", "a", "b", "c"])
        self.assertEqual(self.backend.doc["layout"], ["d", "a", "b", "c"])

    def test_drag_to_end(self) -> None:
        session = self._session()
        self.assertTrue(move_before(session, "a", None, SETTINGS))
        self.assertEqual(session.grid.layout, ["b", "c", "d", "a"])

    def test_step_right(self) -> None:
        session = self._session()
        _move_step(session, "a", 1, SETTINGS)
        self.assertEqual([cid for cid in session.grid.layout if cid != "b"], ["c", "a", "d"])

    def test_read_only_session_cannot_move_or_click(self) -> None:
        session = self._session(editable=False)

        self.assertFalse(move_before(session, "d", "a", SETTINGS))
        self.assertFalse(session.clicks.handle_click(session.grid, "a"))
        self.assertIsNone(session.save())
        self.assertEqual(session.grid.layout, ["a", "b", "c", "d"])

    def test_delete_mode_click_saves(self) -> None:
        session = self._session()
        session.clicks.toggle_delete_mode()
        self.assertEqual(session.clicks.mode, ClickMode.DELETE)

        session.clicks.handle_click(session.grid, "c")
        session.gateway.flush(timeout=5)

        self.assertEqual(self.backend.doc["layout"], ["a", "b", "d"])


class CharacterPickerTests(unittest.TestCase):
    def test_search_skips_characters_on_the_grid(self) -> None:
        grid = GridState(make_catalog(), layout=["a", "c"])
        self.assertEqual([c.id for c in available_characters(grid, "")], ["b", "d", "e", "f"])
        self.assertEqual([c.id for c in available_characters(grid, " E ")], ["e"])
        self.assertEqual(available_characters(grid, "A"), [])


if __name__ == "__main__":
    unittest.main()
