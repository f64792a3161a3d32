from __future__ import annotations

import unittest

from core.grid.reorder import (
    GestureOutcome,
    GestureState,
    Rect,
    ReorderController,
    grid_cell_rects,
    nearest_insertion_point,
)

ORDER = ["a", "b", "c", "d", "e"]


def _rects(order=ORDER, columns: int = 3):
    return grid_cell_rects(order, columns, 100, 100)


class NearestInsertionPointTests(unittest.TestCase):
    def setUp(self) -> None:
        rects = _rects()
        self.rects = [rects[cid] for cid in ORDER]

    def test_empty(self) -> None:
        self.assertEqual(nearest_insertion_point((5, 5), []), 0)

    def test_before_first_cell_of_second_row(self) -> None:
        self.assertEqual(nearest_insertion_point((10, 150), self.rects), 3)

    def test_after_last_cell_of_a_row(self) -> None:
        self.assertEqual(nearest_insertion_point((280, 150), self.rects), 5)

    def test_row_is_chosen_before_column(self) -> None:
        # Just above the row boundary, far right: stays in the first row even
        # though the second row's first cell is not much further away.
        self.assertEqual(nearest_insertion_point((290, 99), self.rects), 3)
        self.assertEqual(nearest_insertion_point((120, 101), self.rects), 4)

    def test_irregular_rows_group_by_vertical_center(self) -> None:
        rects = [Rect(0, 0, 50, 50), Rect(60, 5, 50, 50), Rect(0, 80, 50, 50)]
        self.assertEqual(nearest_insertion_point((70, 20), rects), 1)
        self.assertEqual(nearest_insertion_point((70, 110), rects), 3)


class ReorderControllerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.drops = []
        self.now = [0.0]
        self.ctrl = ReorderController(self.drops.append, clock=lambda: self.now[0])
        self.rects = _rects()

    def _center(self, cid: str):
        r = self.rects[cid]
        return (r.center_x, r.center_y)

    def test_mouse_drag_reorders_and_drops(self) -> None:
        self.assertEqual(self.ctrl.pointer_down("e", self._center("e"), ORDER), GestureOutcome.NONE)
        self.assertEqual(self.ctrl.state, GestureState.DRAGGING)

        self.ctrl.pointer_move((10, 50), self.rects)
        self.assertEqual(self.ctrl.order, ["e", "a", "b", "c", "d"])

        self.assertEqual(self.ctrl.pointer_up(), GestureOutcome.DROP)
        self.assertEqual(self.drops, [["e", "a", "b", "c", "d"]])
        self.assertEqual(self.ctrl.state, GestureState.IDLE)

    def test_non_cell_source_is_ignored(self) -> None:
        self.assertEqual(self.ctrl.pointer_down("toolbar", (0, 0), ORDER), GestureOutcome.IGNORED)
        self.assertEqual(self.ctrl.state, GestureState.IDLE)
        self.assertEqual(self.ctrl.pointer_up(), GestureOutcome.IGNORED)
        self.assertEqual(self.drops, [])

    def test_disabled_controller_ignores_gestures(self) -> None:
        self.ctrl.set_enabled(False)
        self.assertEqual(self.ctrl.pointer_down("a", self._center("a"), ORDER), GestureOutcome.IGNORED)
        self.assertEqual(self.ctrl.state, GestureState.IDLE)

    def test_second_pointer_down_while_dragging_is_ignored(self) -> None:
        self.ctrl.pointer_down("a", self._center("a"), ORDER)
        self.assertEqual(self.ctrl.pointer_down("b", self._center("b"), ORDER), GestureOutcome.IGNORED)
        self.assertEqual(self.ctrl.source_id, "a")

    def test_touch_tap(self) -> None:
        self.ctrl.pointer_down("b", self._center("b"), ORDER, touch=True, now=0.0)
        self.assertEqual(self.ctrl.state, GestureState.PENDING_GESTURE)
        self.assertEqual(self.ctrl.pointer_up(now=0.1), GestureOutcome.TAP)
        self.assertEqual(self.ctrl.state, GestureState.IDLE)
        self.assertEqual(self.drops, [])

    def test_touch_small_wobble_stays_pending(self) -> None:
        x, y = self._center("b")
        self.ctrl.pointer_down("b", (x, y), ORDER, touch=True, now=0.0)
        self.ctrl.pointer_move((x + 3, y + 4), self.rects, now=0.1)
        self.assertEqual(self.ctrl.state, GestureState.PENDING_GESTURE)

    def test_touch_move_past_threshold_starts_drag(self) -> None:
        x, y = self._center("b")
        self.ctrl.pointer_down("b", (x, y), ORDER, touch=True, now=0.0)
        self.ctrl.pointer_move((x + 150, y), self.rects, now=0.2)

        self.assertEqual(self.ctrl.state, GestureState.DRAGGING)
        self.assertEqual(self.ctrl.order, ["a", "c", "b", "d", "e"])
        # The long-press timer no longer applies once dragging.
        self.assertEqual(self.ctrl.tick(now=5.0), GestureOutcome.NONE)

    def test_long_press_opens_context_menu(self) -> None:
        self.ctrl.pointer_down("c", self._center("c"), ORDER, touch=True, now=0.0)
        self.assertEqual(self.ctrl.tick(now=0.2), GestureOutcome.NONE)
        self.assertEqual(self.ctrl.tick(now=0.6), GestureOutcome.CONTEXT_MENU)
        self.assertEqual(self.ctrl.state, GestureState.CONTEXT_MENU_OPEN)
        self.assertEqual(self.ctrl.context_target, "c")

        # Lifting the finger or moving does not start a drag.
        self.assertEqual(self.ctrl.pointer_up(now=0.7), GestureOutcome.NONE)
        self.ctrl.pointer_move((0, 0), self.rects, now=0.8)
        self.assertEqual(self.ctrl.state, GestureState.CONTEXT_MENU_OPEN)

        self.ctrl.close_context_menu()
        self.assertEqual(self.ctrl.state, GestureState.IDLE)
        self.assertIsNone(self.ctrl.context_target)
        self.assertEqual(self.drops, [])

    def test_timer_wins_over_late_movement(self) -> None:
        x, y = self._center("a")
        self.ctrl.pointer_down("a", (x, y), ORDER, touch=True, now=0.0)
        self.assertEqual(self.ctrl.pointer_move((x + 200, y), self.rects, now=0.9), GestureOutcome.CONTEXT_MENU)
        self.assertEqual(self.ctrl.state, GestureState.CONTEXT_MENU_OPEN)

    def test_clock_is_used_when_no_time_is_given(self) -> None:
        self.ctrl.pointer_down("a", self._center("a"), ORDER, touch=True)
        self.now[0] = 1.0
        self.assertEqual(self.ctrl.tick(), GestureOutcome.CONTEXT_MENU)

    def test_cancelled_drag_still_hands_over_live_order(self) -> None:
        self.ctrl.pointer_down("a", self._center("a"), ORDER)
        self.ctrl.pointer_move((280, 150), self.rects)

        self.assertEqual(self.ctrl.cancel(), GestureOutcome.CANCELLED)
        self.assertEqual(self.ctrl.state, GestureState.IDLE)
        self.assertEqual(self.drops, [["b", "c", "d", "e", "a"]])

    def test_cancel_when_idle(self) -> None:
        self.assertEqual(self.ctrl.cancel(), GestureOutcome.IGNORED)

    def test_disabling_mid_drag_saves_live_order(self) -> None:
        self.ctrl.pointer_down("c", self._center("c"), ORDER)
        self.ctrl.pointer_move((10, 50), self.rects)
        self.ctrl.set_enabled(False)

        self.assertEqual(self.drops, [["c", "a", "b", "d", "e"]])
        self.assertFalse(self.ctrl.enabled)


class GridCellRectsTests(unittest.TestCase):
    def test_wraps_rows(self) -> None:
        rects = grid_cell_rects(["a", "b", "c"], 2, 50, 60, gap=10)
        self.assertEqual(rects["b"], Rect(60, 0, 50, 60))
        self.assertEqual(rects["c"], Rect(0, 70, 50, 60))


if __name__ == "__main__":
    unittest.main()
