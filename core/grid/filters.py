"""
core.grid.filters
-----------------
Per-dimension tri-state filters combined with AND.

Each dimension has a persisted `FilterSpec` (mode, state, values) and a
resolver that produces the dimension's value for one character. Resolvers get
both the catalog character and the current grid, so a dimension can depend on
session annotations (the `mastery` dimension reads marks) as well as on
immutable catalog fields.

Per-dimension predicate:

- neutral:   always passes
- forced:    no values -> value is truthy; values -> value in values
- discarded: no values -> value is falsy;  values -> value not in values

Twostate (multi-select) dimensions never use `discarded`; their state is
`forced` exactly when at least one value is selected.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from core.catalog import CLASSES, RARITIES, Character
from core.grid.models import GridState
from core.local_store import LocalStore

logger = logging.getLogger(__name__)

TRISTATE = "tristate"
TWOSTATE = "twostate"

NEUTRAL = "neutral"
FORCED = "forced"
DISCARDED = "discarded"

_CYCLES = {
    TRISTATE: [NEUTRAL, FORCED, DISCARDED],
    TWOSTATE: [NEUTRAL, FORCED],
}

MASTERY_TIERS = ["0", "1", "2", "3"]

# Resolvers receive the filtered item (a Character for the grid) and the grid.
Resolver = Callable[[Any, Optional[GridState]], Any]


def next_state(current: str, mode: str = TRISTATE) -> str:
    states = _CYCLES[mode]
    try:
        idx = states.index(current)
    except ValueError:
        idx = -1
    return states[(idx + 1) % len(states)]


@dataclass
class FilterSpec:
    mode: str = TRISTATE
    state: str = NEUTRAL
    values: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"mode": self.mode, "state": self.state, "values": list(self.values)}

    @property
    def active(self) -> bool:
        return self.state != NEUTRAL

    def matches(self, value: Any) -> bool:
        if self.state == FORCED:
            if not self.values:
                return value is not None and bool(value)
            return value in self.values
        if self.state == DISCARDED:
            if not self.values:
                return value is None or not value
            return value not in self.values
        return True


@dataclass(frozen=True)
class FilterDimension:
    name: str
    mode: str
    resolve: Resolver
    options: Optional[Sequence[str]] = None
    label: str = ""

    def default_spec(self) -> FilterSpec:
        return FilterSpec(mode=self.mode)


class FilterEngine:
    def __init__(
        self,
        dimensions: Iterable[FilterDimension],
        store: Optional[LocalStore] = None,
        namespace: Optional[str] = None,
    ):
        self.dimensions: Dict[str, FilterDimension] = {d.name: d for d in dimensions}
        self.filters: Dict[str, FilterSpec] = {n: d.default_spec() for n, d in self.dimensions.items()}
        self.store = store
        self.namespace = namespace
        self.stale: List[str] = []

    # -------------------------------------------------------------
    # Toggling
    # -------------------------------------------------------------
    def _dimension(self, name: str) -> FilterDimension:
        try:
            return self.dimensions[name]
        except KeyError:
            raise KeyError(f"Unknown filter dimension: {name}") from None

    def toggle(self, name: str, value: Optional[str] = None) -> str:
        """Advance a filter on user toggle and return the resulting state.

        For twostate dimensions this is the state of `value` itself
        (neutral/forced), not the aggregate dimension state.
        """
        dim = self._dimension(name)
        spec = self.filters[name]

        if dim.mode == TRISTATE:
            spec.state = next_state(spec.state, TRISTATE)
            result = spec.state
        else:
            if value is None:
                raise ValueError(f"Filter {name!r} needs a value to toggle")
            value = str(value)
            currently = FORCED if value in spec.values else NEUTRAL
            result = next_state(currently, TWOSTATE)
            spec.values = [v for v in spec.values if v != value]
            if result == FORCED:
                spec.values.append(value)
            spec.state = FORCED if spec.values else NEUTRAL

        self.save()
        return result

    def set_values(self, name: str, values: Iterable[str]) -> None:
        """Replace the selected values of a twostate dimension (multi-select widgets)."""
        dim = self._dimension(name)
        if dim.mode != TWOSTATE:
            raise ValueError(f"Filter {name!r} is not a multi-value filter")
        spec = self.filters[name]
        new_values = list(dict.fromkeys(str(v) for v in values))
        if new_values == spec.values:
            return
        spec.values = new_values
        spec.state = FORCED if new_values else NEUTRAL
        self.save()

    def set_state(self, name: str, state: str) -> None:
        dim = self._dimension(name)
        if state not in _CYCLES[dim.mode]:
            raise ValueError(f"State {state!r} is not valid for {dim.mode} filter {name!r}")
        if dim.mode == TWOSTATE:
            raise ValueError(f"Twostate filter {name!r} derives its state from its values")
        if self.filters[name].state == state:
            return
        self.filters[name].state = state
        self.save()

    def reset(self, name: Optional[str] = None) -> None:
        names = [name] if name else list(self.dimensions)
        for n in names:
            self.filters[n] = self._dimension(n).default_spec()
        self.save()

    def value_state(self, name: str, value: str) -> str:
        spec = self.filters[name]
        if spec.mode == TWOSTATE:
            return FORCED if str(value) in spec.values else NEUTRAL
        return spec.state

    # -------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------
    def active_dimensions(self) -> List[str]:
        return [n for n, spec in self.filters.items() if spec.active]

    def resolve(self, name: str, character: Character, grid: Optional[GridState] = None) -> Any:
        return self._dimension(name).resolve(character, grid)

    def passes(self, character: Character, grid: Optional[GridState] = None) -> bool:
        for name in self.active_dimensions():
            if not self.filters[name].matches(self.resolve(name, character, grid)):
                return False
        return True

    def predicate(self, grid: Optional[GridState] = None) -> Callable[[Character], bool]:
        # Freeze the active specs so a predicate handed to the projector is
        # not affected by toggles made while it is in use.
        active = [(self.dimensions[n], deepcopy(self.filters[n])) for n in self.active_dimensions()]

        def _pred(character: Character) -> bool:
            return all(spec.matches(dim.resolve(character, grid)) for dim, spec in active)

        return _pred

    def apply(self, characters: Iterable[Character], grid: Optional[GridState] = None) -> List[Character]:
        pred = self.predicate(grid)
        return [c for c in characters if pred(c)]

    # -------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------
    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {n: spec.to_dict() for n, spec in self.filters.items()}

    def load(self, stored: Any) -> None:
        """Deep-merge stored filter specs over the configured defaults.

        Stored dimensions that are no longer configured are dropped (and
        remembered in `self.stale`); dimensions missing from the stored data
        keep their defaults.
        """
        self.filters = {n: d.default_spec() for n, d in self.dimensions.items()}
        self.stale = []
        if not isinstance(stored, dict):
            return

        for name, raw in stored.items():
            dim = self.dimensions.get(name)
            if dim is None:
                self.stale.append(name)
                continue
            if not isinstance(raw, dict):
                continue
            self.filters[name] = _merge_spec(dim, raw)

        if self.stale:
            logger.info("Ignoring stored filters for unknown dimensions: %s", ", ".join(self.stale))

    def load_from_store(self) -> None:
        if self.store is None or not self.namespace:
            return
        self.load(self.store.get(self.namespace))

    def save(self) -> None:
        if self.store is None or not self.namespace:
            return
        try:
            self.store.set(self.namespace, self.to_dict())
        except OSError:
            # Filter preferences are a convenience; keep the in-memory state.
            logger.exception("Could not persist filter preferences")


def _merge_spec(dim: FilterDimension, raw: Dict[str, Any]) -> FilterSpec:
    spec = dim.default_spec()

    values = raw.get("values")
    if isinstance(values, list):
        clean = [str(v) for v in values if isinstance(v, (str, int)) and not isinstance(v, bool)]
        if dim.options is not None:
            allowed = set(dim.options)
            clean = [v for v in clean if v in allowed]
        spec.values = list(dict.fromkeys(clean))

    if dim.mode == TWOSTATE:
        spec.state = FORCED if spec.values else NEUTRAL
    else:
        state = raw.get("state")
        if state in _CYCLES[TRISTATE]:
            spec.state = state
    return spec


# -------------------------------------------------------------
# Value resolvers
# -------------------------------------------------------------
def mastery_tier(grid: Optional[GridState], char_id: str) -> Optional[str]:
    """Map a character's mark onto a mastery tier.

    Checked with no circles is tier "0", circles 1..3 are tiers "1".."3";
    an untouched character has no tier.
    """
    if grid is None or char_id not in grid.marks:
        return None
    mark = grid.marks[char_id]
    if mark.circles > 0:
        return MASTERY_TIERS[min(mark.circles, len(MASTERY_TIERS) - 1)]
    if mark.checks:
        return MASTERY_TIERS[0]
    return None


def _resolve_class(c: Character, grid: Optional[GridState]) -> Optional[str]:
    return c.char_class or None


def _resolve_rarity(c: Character, grid: Optional[GridState]) -> Optional[str]:
    return str(c.rarity) if c.rarity else None


def _resolve_subclass(c: Character, grid: Optional[GridState]) -> Optional[str]:
    return c.subclass or None


def _resolve_checked(c: Character, grid: Optional[GridState]) -> bool:
    return bool(grid is not None and grid.mark(c.id).checks)


def _resolve_skinned(c: Character, grid: Optional[GridState]) -> bool:
    return bool(grid is not None and c.id in grid.skins)


def _resolve_mastery(c: Character, grid: Optional[GridState]) -> Optional[str]:
    return mastery_tier(grid, c.id)


def grid_dimensions() -> List[FilterDimension]:
    return [
        FilterDimension("checked", TRISTATE, _resolve_checked, label="Checked"),
        FilterDimension("skinned", TRISTATE, _resolve_skinned, label="Alternate skin"),
        FilterDimension("class", TWOSTATE, _resolve_class, options=list(CLASSES), label="Class"),
        FilterDimension("rarity", TWOSTATE, _resolve_rarity, options=[str(r) for r in RARITIES], label="Rarity"),
        FilterDimension("subclass", TWOSTATE, _resolve_subclass, options=None, label="Subclass"),
        FilterDimension("mastery", TWOSTATE, _resolve_mastery, options=list(MASTERY_TIERS), label="Mastery"),
    ]
