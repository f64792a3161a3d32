"""
core.grid.models
----------------
The grid aggregate: which characters are on the grid, in what order, and with
which per-character annotations (check mark, promotion circles, skin).

Every mutator runs synchronously to completion; persistence is the caller's
job (see `core.grid.persistence`). Mutators treat "already in the desired
state" as a silent no-op and raise `UnknownCharacter` only when an explicit
edit targets an id that is not on the grid.
"""

from __future__ import annotations

import random
from bisect import bisect_left
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from core.catalog import Character, CharacterCatalog
from core.grid.errors import UnknownCharacter, UnknownSkin

MAX_CIRCLES = 3


@dataclass
class Mark:
    checks: bool = False
    circles: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"checks": self.checks, "circles": self.circles}

    @classmethod
    def from_dict(cls, raw: Any) -> "Mark":
        if not isinstance(raw, dict):
            return cls()
        try:
            circles = int(raw.get("circles") or 0)
        except (TypeError, ValueError):
            circles = 0
        return cls(checks=bool(raw.get("checks")), circles=max(0, min(circles, MAX_CIRCLES)))


class GridState:
    def __init__(
        self,
        catalog: CharacterCatalog,
        layout: Optional[Sequence[str]] = None,
        marks: Optional[Dict[str, Mark]] = None,
        skins: Optional[Dict[str, str]] = None,
    ):
        self.catalog = catalog
        self.layout: List[str] = list(dict.fromkeys(layout or []))
        self.marks: Dict[str, Mark] = dict(marks or {})
        self.skins: Dict[str, str] = dict(skins or {})

    # -------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------
    def __contains__(self, char_id: object) -> bool:
        return char_id in self.layout

    def _require(self, char_id: str) -> None:
        if char_id not in self.layout:
            raise UnknownCharacter(char_id)

    def mark(self, char_id: str) -> Mark:
        """Return the mark for `char_id`; a missing entry reads as an empty mark."""
        return self.marks.get(char_id) or Mark()

    def skin(self, char_id: str) -> Optional[str]:
        """Return the effective skin: the override, else the catalog default."""
        if char_id in self.skins:
            return self.skins[char_id]
        character = self.catalog.get(char_id)
        return character.skins.default if character else None

    def characters_not_in_layout(self) -> List[Character]:
        placed = set(self.layout)
        return [c for c in self.catalog if c.id not in placed]

    # -------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------
    def add_character(self, char_id: str) -> bool:
        if char_id in self.layout or char_id not in self.catalog:
            return False
        self.layout.append(char_id)
        self.marks[char_id] = Mark()
        return True

    def add_random_character(self, rng: Optional[random.Random] = None) -> Optional[str]:
        available = self.characters_not_in_layout()
        if not available:
            return None
        pick = (rng or random).choice(available)
        self.add_character(pick.id)
        return pick.id

    def remove_character(self, char_id: str) -> bool:
        if char_id not in self.layout:
            return False
        self.layout.remove(char_id)
        self.marks.pop(char_id, None)
        self.skins.pop(char_id, None)
        return True

    # -------------------------------------------------------------
    # Marks
    # -------------------------------------------------------------
    def set_check(self, char_id: str, value: bool) -> None:
        self._require(char_id)
        self.marks.setdefault(char_id, Mark()).checks = bool(value)

    def toggle_check(self, char_id: str) -> bool:
        self._require(char_id)
        mark = self.marks.setdefault(char_id, Mark())
        mark.checks = not mark.checks
        return mark.checks

    def set_circles(self, char_id: str, delta: int) -> int:
        """Move the circle counter by `delta`, saturating at 0 and MAX_CIRCLES.

        Lit circles are always a prefix, so adding lights the first unset slot
        and removing clears the last set one.
        """
        self._require(char_id)
        mark = self.marks.setdefault(char_id, Mark())
        mark.circles = max(0, min(mark.circles + int(delta), MAX_CIRCLES))
        return mark.circles

    def add_circle(self, char_id: str) -> int:
        return self.set_circles(char_id, 1)

    def remove_circle(self, char_id: str) -> int:
        return self.set_circles(char_id, -1)

    # -------------------------------------------------------------
    # Skins
    # -------------------------------------------------------------
    def set_skin(self, char_id: str, asset: str) -> None:
        self._require(char_id)
        character = self.catalog.get(char_id)
        if character is None:
            raise UnknownCharacter(char_id, where="catalog")
        if not character.has_skin(asset):
            raise UnknownSkin(char_id, asset)

        # Keep the map sparse: the default skin is never stored.
        if asset == character.skins.default:
            self.skins.pop(char_id, None)
        else:
            self.skins[char_id] = asset

    # -------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------
    def reorder(self, new_visible_order: Sequence[str]) -> List[str]:
        """Apply a new relative order for the visible subset of the layout.

        `new_visible_order` is a permutation of the ids currently shown. Ids
        that kept their relative order stay where they are; each moved id is
        re-inserted directly before the id that follows it in the new order
        (or after the last kept id when it ends the order). Hidden ids never
        move relative to each other.
        """
        order = list(new_visible_order)
        if len(set(order)) != len(order):
            raise ValueError("Visible order contains duplicate ids")
        for char_id in order:
            self._require(char_id)
        if len(order) < 2:
            return list(self.layout)

        visible = set(order)
        old_rank = {cid: i for i, cid in enumerate(c for c in self.layout if c in visible)}
        kept = set(_longest_increasing_run(order, old_rank))

        moved = [cid for cid in order if cid not in kept]
        if not moved:
            return list(self.layout)

        moved_set = set(moved)
        placed = [cid for cid in self.layout if cid not in moved_set]

        last_kept = max(i for i, cid in enumerate(order) if cid in kept)
        pos = placed.index(order[last_kept]) + 1
        for cid in order[last_kept + 1:]:
            placed.insert(pos, cid)
            pos += 1

        for i in range(last_kept - 1, -1, -1):
            cid = order[i]
            if cid in kept:
                continue
            placed.insert(placed.index(order[i + 1]), cid)

        self.layout = placed
        return list(self.layout)

    # -------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------
    def to_document(self) -> Dict[str, Any]:
        # Every placed id gets a mark entry, so a missing mark and Mark() compare equal.
        return {
            "layout": list(self.layout),
            "marks": {cid: self.mark(cid).to_dict() for cid in self.layout},
            "skins": {cid: s for cid, s in self.skins.items() if cid in self.layout},
        }

    @classmethod
    def from_document(cls, doc: Any, catalog: CharacterCatalog) -> "GridState":
        if not isinstance(doc, dict):
            return cls(catalog)
        layout = [str(x) for x in (doc.get("layout") or []) if isinstance(x, str) and x]
        marks_raw = doc.get("marks") if isinstance(doc.get("marks"), dict) else {}
        skins_raw = doc.get("skins") if isinstance(doc.get("skins"), dict) else {}
        marks = {str(k): Mark.from_dict(v) for k, v in marks_raw.items()}
        skins = {str(k): str(v) for k, v in skins_raw.items() if isinstance(v, str) and v}
        return cls(catalog, layout=layout, marks=marks, skins=skins)

    def copy(self) -> "GridState":
        return GridState(
            self.catalog,
            layout=list(self.layout),
            marks=deepcopy(self.marks),
            skins=dict(self.skins),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GridState):
            return NotImplemented
        return self.to_document() == other.to_document()

    def __repr__(self) -> str:
        return f"GridState(layout={self.layout!r}, marks={len(self.marks)}, skins={len(self.skins)})"


def _longest_increasing_run(order: Sequence[str], rank: Dict[str, int]) -> List[str]:
    """Longest subsequence of `order` whose `rank` values increase."""
    tails: List[int] = []
    tail_idx: List[int] = []
    prev: List[int] = [-1] * len(order)

    for i, cid in enumerate(order):
        r = rank[cid]
        k = bisect_left(tails, r)
        if k == len(tails):
            tails.append(r)
            tail_idx.append(i)
        else:
            tails[k] = r
            tail_idx[k] = i
        prev[i] = tail_idx[k - 1] if k > 0 else -1

    out: List[str] = []
    i = tail_idx[-1] if tail_idx else -1
    while i != -1:
        out.append(order[i])
        i = prev[i]
    out.reverse()
    return out
