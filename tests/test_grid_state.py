from __future__ import annotations

import random
import unittest

from core.grid.errors import UnknownCharacter, UnknownSkin
from core.grid.models import MAX_CIRCLES, GridState, Mark
from tests.grid_fixtures import make_catalog


class GridStateMembershipTests(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = make_catalog()
        self.grid = GridState(self.catalog)

    def test_add_appends_and_initializes_mark(self) -> None:
        self.assertTrue(self.grid.add_character("b"))
        self.assertTrue(self.grid.add_character("a"))

        self.assertEqual(self.grid.layout, ["b", "a"])
        self.assertEqual(self.grid.marks["a"], Mark(checks=False, circles=0))

    def test_add_is_noop_for_duplicates_and_unknown_ids(self) -> None:
        self.grid.add_character("a")
        self.grid.set_check("a", True)

        self.assertFalse(self.grid.add_character("a"))
        self.assertFalse(self.grid.add_character("zz"))
        self.assertEqual(self.grid.layout, ["a"])
        self.assertTrue(self.grid.mark("a").checks)

    def test_remove_drops_marks_and_skin(self) -> None:
        self.grid.add_character("a")
        self.grid.set_skin("a", "a_alt.png")

        self.assertTrue(self.grid.remove_character("a"))
        self.assertEqual(self.grid.layout, [])
        self.assertNotIn("a", self.grid.marks)
        self.assertNotIn("a", self.grid.skins)
        self.assertFalse(self.grid.remove_character("a"))

    def test_add_random_picks_from_characters_not_on_grid(self) -> None:
        for cid in ("a", "b", "c", "d", "e"):
            self.grid.add_character(cid)

        self.assertEqual(self.grid.add_random_character(random.Random(1)), "f")
        self.assertIsNone(self.grid.add_random_character(random.Random(1)))

    def test_characters_not_in_layout_follows_catalog_order(self) -> None:
        self.grid.add_character("c")
        self.grid.add_character("a")

        self.assertEqual([c.id for c in self.grid.characters_not_in_layout()], ["b", "d", "e", "f"])

    def test_constructor_dedupes_layout(self) -> None:
        grid = GridState(self.catalog, layout=["a", "b", "a"])
        self.assertEqual(grid.layout, ["a", "b"])


class GridStateMarkTests(unittest.TestCase):
    def setUp(self) -> None:
        self.grid = GridState(make_catalog(), layout=["a", "b"])

    def test_explicit_edits_on_missing_id_raise(self) -> None:
        with self.assertRaises(UnknownCharacter) as ctx:
            self.grid.set_check("c", True)
        self.assertEqual(ctx.exception.char_id, "c")

        with self.assertRaises(UnknownCharacter):
            self.grid.add_circle("zz")
        with self.assertRaises(UnknownCharacter):
            self.grid.set_skin("c", "c_alt.png")

    def test_unknown_character_is_a_lookup_error(self) -> None:
        with self.assertRaises(LookupError):
            self.grid.toggle_check("nope")

    def test_toggle_check(self) -> None:
        self.assertTrue(self.grid.toggle_check("a"))
        self.assertFalse(self.grid.toggle_check("a"))

    def test_add_circle_saturates_at_max(self) -> None:
        for _ in range(4):
            self.grid.add_circle("a")
        self.assertEqual(self.grid.mark("a").circles, MAX_CIRCLES)

    def test_remove_circle_at_zero_is_noop(self) -> None:
        self.assertEqual(self.grid.remove_circle("a"), 0)
        self.assertEqual(self.grid.mark("a").circles, 0)

    def test_remove_circles_down_from_two(self) -> None:
        self.grid.set_circles("b", 2)

        self.assertEqual(self.grid.remove_circle("b"), 1)
        self.grid.remove_circle("b")
        self.grid.remove_circle("b")
        self.assertEqual(self.grid.mark("b").circles, 0)
        self.assertEqual(self.grid.remove_circle("b"), 0)

    def test_circle_slots_are_a_prefix(self) -> None:
        self.grid.set_circles("a", 2)
        mark = self.grid.mark("a")
        self.assertEqual([i < mark.circles for i in range(MAX_CIRCLES)], [True, True, False])

    def test_mark_from_dict_clamps_out_of_range_circles(self) -> None:
        self.assertEqual(Mark.from_dict({"checks": 1, "circles": 9}), Mark(True, 3))
        self.assertEqual(Mark.from_dict({"circles": -2}), Mark(False, 0))
        self.assertEqual(Mark.from_dict("junk"), Mark())


class GridStateSkinTests(unittest.TestCase):
    def setUp(self) -> None:
        self.grid = GridState(make_catalog(), layout=["a", "c"])

    def test_default_skin_comes_from_catalog(self) -> None:
        self.assertEqual(self.grid.skin("a"), "a.png")

    def test_setting_default_after_alternate_removes_override(self) -> None:
        self.grid.set_skin("a", "a_alt.png")
        self.assertEqual(self.grid.skins, {"a": "a_alt.png"})
        self.assertEqual(self.grid.skin("a"), "a_alt.png")

        self.grid.set_skin("a", "a.png")
        self.assertNotIn("a", self.grid.skins)
        self.assertEqual(self.grid.skin("a"), "a.png")

    def test_unknown_skin_raises(self) -> None:
        with self.assertRaises(UnknownSkin):
            self.grid.set_skin("c", "a_alt.png")
        self.assertEqual(self.grid.skins, {})


class GridStateDocumentTests(unittest.TestCase):
    def test_document_round_trip_and_copy_independence(self) -> None:
        catalog = make_catalog()
        grid = GridState(catalog, layout=["c", "a"])
        grid.set_check("c", True)
        grid.set_circles("c", 2)
        grid.set_skin("c", "c_alt2.png")

        doc = grid.to_document()
        self.assertEqual(
            doc,
            {
                "layout": ["c", "a"],
                "marks": {"c": {"checks": True, "circles": 2}, "a": {"checks": False, "circles": 0}},
                "skins": {"c": "c_alt2.png"},
            },
        )
        self.assertEqual(GridState.from_document(doc, catalog), grid)

        clone = grid.copy()
        clone.add_circle("c")
        clone.remove_character("a")
        self.assertEqual(grid.mark("c").circles, 2)
        self.assertEqual(grid.layout, ["c", "a"])

    def test_document_omits_marks_for_ids_not_on_grid(self) -> None:
        grid = GridState(make_catalog(), layout=["a"], marks={"a": Mark(), "zz": Mark(True, 1)})
        self.assertEqual(list(grid.to_document()["marks"]), ["a"])

    def test_missing_mark_equals_empty_mark(self) -> None:
        catalog = make_catalog()
        bare = GridState(catalog, layout=["a", "b"])
        seeded = GridState(catalog, layout=["a", "b"], marks={"a": Mark(), "b": Mark()})
        self.assertEqual(bare, seeded)
        self.assertEqual(bare.to_document()["marks"]["b"], {"checks": False, "circles": 0})

    def test_from_document_tolerates_garbage(self) -> None:
        grid = GridState.from_document({"layout": ["a", 3, "", "b"], "marks": [], "skins": {"a": 5}}, make_catalog())
        self.assertEqual(grid.layout, ["a", "b"])
        self.assertEqual(grid.marks, {})
        self.assertEqual(grid.skins, {})
        self.assertEqual(GridState.from_document(None, make_catalog()).layout, [])


if __name__ == "__main__":
    unittest.main()
