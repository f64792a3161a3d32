"""
core.grid.reorder
-----------------
Interactive reordering of the visible grid cells.

The controller is a small state machine fed with pointer events:

    IDLE --pointer_down(mouse)--> DRAGGING --pointer_up/cancel--> IDLE
    IDLE --pointer_down(touch)--> PENDING_GESTURE
    PENDING_GESTURE --moved past threshold--> DRAGGING
    PENDING_GESTURE --long-press timer-----> CONTEXT_MENU_OPEN
    PENDING_GESTURE --pointer_up-----------> IDLE (tap)

While dragging, every move recomputes the insertion point and reorders the
live visible order. Ending a drag, including a cancelled one, hands the live
order to `on_drop`: the visible cells have already moved, so the caller must
get a chance to store them.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DRAG_THRESHOLD_PX = 10
LONG_PRESS_SECONDS = 0.5

Point = Tuple[float, float]


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2

    def contains(self, point: Point) -> bool:
        x, y = point
        return self.left <= x <= self.right and self.top <= y <= self.bottom


def _group_rows(rects: Sequence[Rect]) -> List[List[int]]:
    """Group rect indices into rows; a rect joins a row if its vertical center falls inside it."""
    rows: List[Tuple[float, float, List[int]]] = []
    for idx in sorted(range(len(rects)), key=lambda i: (rects[i].top, rects[i].left)):
        r = rects[idx]
        for i, (top, bottom, members) in enumerate(rows):
            if top <= r.center_y <= bottom:
                members.append(idx)
                rows[i] = (min(top, r.top), max(bottom, r.bottom), members)
                break
        else:
            rows.append((r.top, r.bottom, [idx]))
    return [members for _, _, members in rows]


def nearest_insertion_point(pointer: Point, rects: Sequence[Rect]) -> int:
    """Return the index in `rects` before which a dragged cell should go.

    Two phases: pick the row whose vertical center is closest to the pointer,
    then, inside that row, insert before the first cell whose horizontal
    center lies right of the pointer (or after the row's last cell). A single
    nearest-center search jumps between rows near row boundaries in a wrapped
    grid. `rects` are in display order; the result is in [0, len(rects)].
    """
    if not rects:
        return 0
    px, py = pointer

    rows = _group_rows(rects)

    def _row_center(members: List[int]) -> float:
        top = min(rects[i].top for i in members)
        bottom = max(rects[i].bottom for i in members)
        return (top + bottom) / 2

    row = min(rows, key=lambda members: abs(_row_center(members) - py))
    row = sorted(row, key=lambda i: rects[i].left)

    for idx in row:
        if px < rects[idx].center_x:
            return idx
    return max(row) + 1


def grid_cell_rects(
    order: Sequence[str],
    columns: int,
    cell_width: float,
    cell_height: float,
    gap: float = 0,
) -> Dict[str, Rect]:
    """Geometry of a wrapped grid laid out left-to-right, top-to-bottom."""
    columns = max(1, int(columns))
    out: Dict[str, Rect] = {}
    for i, cid in enumerate(order):
        row, col = divmod(i, columns)
        out[cid] = Rect(
            left=col * (cell_width + gap),
            top=row * (cell_height + gap),
            width=cell_width,
            height=cell_height,
        )
    return out


class GestureState(Enum):
    IDLE = "idle"
    PENDING_GESTURE = "pending_gesture"
    DRAGGING = "dragging"
    CONTEXT_MENU_OPEN = "context_menu_open"


class GestureOutcome(Enum):
    IGNORED = "ignored"
    NONE = "none"
    TAP = "tap"
    DROP = "drop"
    CONTEXT_MENU = "context_menu"
    CANCELLED = "cancelled"


class ReorderController:
    def __init__(
        self,
        on_drop: Optional[Callable[[List[str]], None]] = None,
        *,
        enabled: bool = True,
        drag_threshold_px: float = DRAG_THRESHOLD_PX,
        long_press_seconds: float = LONG_PRESS_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_drop = on_drop
        self.enabled = enabled
        self.drag_threshold_px = drag_threshold_px
        self.long_press_seconds = long_press_seconds
        self.clock = clock

        self.state = GestureState.IDLE
        self.source_id: Optional[str] = None
        self.order: List[str] = []
        self.context_target: Optional[str] = None
        self._origin: Point = (0.0, 0.0)
        self._started_at = 0.0

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def _reset(self) -> None:
        self.state = GestureState.IDLE
        self.source_id = None
        self._origin = (0.0, 0.0)
        self._started_at = 0.0

    def set_enabled(self, enabled: bool) -> None:
        if not enabled and self.state != GestureState.IDLE:
            self.cancel()
        self.enabled = enabled

    # -------------------------------------------------------------
    # Events
    # -------------------------------------------------------------
    def pointer_down(
        self,
        cell_id: str,
        point: Point,
        order: Sequence[str],
        *,
        touch: bool = False,
        now: Optional[float] = None,
    ) -> GestureOutcome:
        if not self.enabled or self.state != GestureState.IDLE:
            return GestureOutcome.IGNORED
        if cell_id not in order:
            logger.debug("Ignoring drag from non-cell %r", cell_id)
            return GestureOutcome.IGNORED

        self.source_id = cell_id
        self.order = list(order)
        self._origin = point
        self._started_at = self._now(now)
        self.state = GestureState.PENDING_GESTURE if touch else GestureState.DRAGGING
        return GestureOutcome.NONE

    def tick(self, now: Optional[float] = None) -> GestureOutcome:
        """Fire the long-press timer if it has elapsed."""
        if self.state != GestureState.PENDING_GESTURE:
            return GestureOutcome.NONE
        if self._now(now) - self._started_at >= self.long_press_seconds:
            self.context_target = self.source_id
            self.state = GestureState.CONTEXT_MENU_OPEN
            return GestureOutcome.CONTEXT_MENU
        return GestureOutcome.NONE

    def pointer_move(
        self,
        point: Point,
        rects: Mapping[str, Rect],
        *,
        now: Optional[float] = None,
    ) -> GestureOutcome:
        if self.state == GestureState.PENDING_GESTURE:
            if self.tick(now) == GestureOutcome.CONTEXT_MENU:
                return GestureOutcome.CONTEXT_MENU
            dist = math.hypot(point[0] - self._origin[0], point[1] - self._origin[1])
            if dist <= self.drag_threshold_px:
                return GestureOutcome.NONE
            self.state = GestureState.DRAGGING

        if self.state != GestureState.DRAGGING:
            return GestureOutcome.NONE

        others = [cid for cid in self.order if cid != self.source_id]
        idx = nearest_insertion_point(point, [rects[cid] for cid in others])
        self.order = others[:idx] + [self.source_id] + others[idx:]
        return GestureOutcome.NONE

    def pointer_up(self, *, now: Optional[float] = None) -> GestureOutcome:
        if self.state == GestureState.PENDING_GESTURE:
            if self.tick(now) == GestureOutcome.CONTEXT_MENU:
                return GestureOutcome.CONTEXT_MENU
            self._reset()
            return GestureOutcome.TAP
        if self.state == GestureState.DRAGGING:
            self._finish_drag()
            return GestureOutcome.DROP
        if self.state == GestureState.CONTEXT_MENU_OPEN:
            # Releasing after a long press leaves the menu open.
            return GestureOutcome.NONE
        return GestureOutcome.IGNORED

    def cancel(self) -> GestureOutcome:
        if self.state == GestureState.IDLE:
            return GestureOutcome.IGNORED
        if self.state == GestureState.DRAGGING:
            self._finish_drag()
        elif self.state == GestureState.CONTEXT_MENU_OPEN:
            self.close_context_menu()
        else:
            self._reset()
        return GestureOutcome.CANCELLED

    def close_context_menu(self) -> None:
        if self.state == GestureState.CONTEXT_MENU_OPEN:
            self.context_target = None
            self._reset()

    def _finish_drag(self) -> None:
        final = list(self.order)
        self._reset()
        if self.on_drop is not None:
            self.on_drop(final)
