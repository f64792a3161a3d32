"""
core.grid.projection
--------------------
Derive the displayed subsequence of the grid.

`project` is the pure contract: the visible ids in layout order. The
`ViewProjector` keeps one `Cell` per visible id across reruns so marks/skins
can be re-applied to existing cells and an unchanged view can skip painting.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from core.catalog import Character, CharacterCatalog
from core.grid.models import MAX_CIRCLES, GridState

Predicate = Callable[[Character], bool]


def project(layout: Sequence[str], catalog: CharacterCatalog, predicate: Optional[Predicate] = None) -> Tuple[str, ...]:
    out: List[str] = []
    seen = set()
    for cid in layout:
        if cid in seen:
            continue
        seen.add(cid)
        character = catalog.get(cid)
        # Dangling ids are tolerated in the layout but never shown.
        if character is None:
            continue
        if predicate is not None and not predicate(character):
            continue
        out.append(cid)
    return tuple(out)


@dataclass
class Cell:
    char_id: str
    name: str
    skin: Optional[str] = None
    checked: bool = False
    circles: int = 0
    deletable: bool = False
    flags: Dict[str, bool] = field(default_factory=dict)

    def circle_slots(self) -> List[bool]:
        return [i < self.circles for i in range(MAX_CIRCLES)]

    def signature(self) -> Tuple:
        return (self.char_id, self.skin, self.checked, self.circles, self.deletable)


class ViewProjector:
    def __init__(self):
        self.order: Tuple[str, ...] = ()
        self._cells: Dict[str, Cell] = {}
        self._signature: Optional[str] = None

    def cell(self, char_id: str) -> Optional[Cell]:
        return self._cells.get(char_id)

    def cells(self) -> List[Cell]:
        return [self._cells[cid] for cid in self.order]

    def refresh(
        self,
        grid: GridState,
        catalog: CharacterCatalog,
        predicate: Optional[Predicate] = None,
        *,
        delete_mode: bool = False,
    ) -> bool:
        """Recompute the visible cells. Returns True if anything visible changed."""
        order = project(grid.layout, catalog, predicate)

        cells: Dict[str, Cell] = {}
        for cid in order:
            cell = self._cells.get(cid)
            if cell is None:
                character = catalog.get(cid)
                cell = Cell(char_id=cid, name=character.name if character else cid)
            self.apply_state(cell, grid, delete_mode=delete_mode)
            cells[cid] = cell

        self.order = order
        self._cells = cells

        sig = json.dumps([list(c.signature()) for c in self.cells()], separators=(",", ":"))
        changed = sig != self._signature
        self._signature = sig
        return changed

    @staticmethod
    def apply_state(cell: Cell, grid: GridState, *, delete_mode: bool = False) -> Cell:
        mark = grid.mark(cell.char_id)
        cell.checked = mark.checks
        cell.circles = mark.circles
        cell.skin = grid.skin(cell.char_id)
        cell.deletable = delete_mode
        cell.flags = {
            "checked": mark.checks,
            "alternate_skin": cell.char_id in grid.skins,
            "delete_mode": delete_mode,
        }
        return cell
