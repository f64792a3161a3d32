from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from core.grid.models import GridState


class ClickMode(Enum):
    NORMAL = "normal"
    DELETE = "delete"


class ClickDispatcher:
    """One stable click handler whose behaviour depends on the current mode.

    NORMAL toggles the check mark, DELETE removes the character. `on_change`
    runs after every mutation (the caller saves there).
    """

    def __init__(self, on_change: Optional[Callable[[GridState], None]] = None, *, editable: bool = True):
        self.on_change = on_change
        self.editable = editable
        self.mode = ClickMode.NORMAL

    def toggle_delete_mode(self) -> ClickMode:
        self.mode = ClickMode.NORMAL if self.mode == ClickMode.DELETE else ClickMode.DELETE
        return self.mode

    def handle_click(self, grid: GridState, cell_id: str) -> bool:
        if not self.editable or cell_id not in grid:
            return False

        if self.mode == ClickMode.DELETE:
            changed = grid.remove_character(cell_id)
        else:
            grid.toggle_check(cell_id)
            changed = True

        if changed and self.on_change is not None:
            self.on_change(grid)
        return changed
