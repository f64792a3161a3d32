"""
core.catalog
------------
Read-only character catalog for the grid.

The catalog document has the shape::

    {"characters": [
        {"id": "char_002_amiya", "name": "Amiya", "class": "caster",
         "subclass": "core", "rarity": 5,
         "skins": {"default": "char_002_amiya.png", "alternates": ["char_002_amiya_1.png"]}}
    ]}

It is read from `data/characters.json`, or from the `catalog` document in
Supabase when running on Streamlit Cloud with Supabase configured.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from core import supabase_store
from core.settings_manager import _has_supabase_config, is_streamlit_cloud

logger = logging.getLogger(__name__)

CATALOG_PATH = Path("data/characters.json")
CATALOG_DOC_TYPE = "catalog"
CATALOG_DOC_KEY = "characters"
SUBCLASSES_PATH = Path("data/subclasses.json")

CLASSES = [
    "caster",
    "defender",
    "guard",
    "medic",
    "sniper",
    "specialist",
    "supporter",
    "vanguard",
]
RARITIES = [1, 2, 3, 4, 5, 6]


@dataclass(frozen=True)
class Skins:
    default: str
    alternates: Tuple[str, ...] = ()

    def all(self) -> Tuple[str, ...]:
        return (self.default,) + tuple(a for a in self.alternates if a != self.default)


@dataclass(frozen=True)
class Character:
    id: str
    name: str
    char_class: str
    subclass: str
    rarity: int
    skins: Skins = field(default_factory=lambda: Skins(default=""))

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Character":
        cid = str(raw.get("id") or "").strip()
        if not cid:
            raise ValueError("Character entry is missing an id")

        skins_raw = raw.get("skins") or {}
        if isinstance(skins_raw, str):
            skins_raw = {"default": skins_raw}
        default = str(skins_raw.get("default") or raw.get("image") or "")
        alternates = tuple(str(a) for a in (skins_raw.get("alternates") or []) if a)

        try:
            rarity = int(raw.get("rarity") or 0)
        except (TypeError, ValueError):
            rarity = 0

        return cls(
            id=cid,
            name=str(raw.get("name") or cid),
            char_class=str(raw.get("class") or "").lower(),
            subclass=str(raw.get("subclass") or ""),
            rarity=rarity,
            skins=Skins(default=default, alternates=alternates),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "class": self.char_class,
            "subclass": self.subclass,
            "rarity": self.rarity,
            "skins": {"default": self.skins.default, "alternates": list(self.skins.alternates)},
        }

    def has_skin(self, asset: str) -> bool:
        return asset in self.skins.all()


class CharacterCatalog:
    """Immutable lookup table of characters keyed by id, in document order."""

    def __init__(self, characters: Iterable[Character] = ()):
        by_id: Dict[str, Character] = {}
        for c in characters:
            if c.id in by_id:
                logger.warning("Duplicate catalog id %s; keeping the first entry", c.id)
                continue
            by_id[c.id] = c
        self._by_id = by_id

    @classmethod
    def from_document(cls, doc: Any) -> "CharacterCatalog":
        if isinstance(doc, dict):
            rows = doc.get("characters") or []
        elif isinstance(doc, list):
            rows = doc
        else:
            rows = []

        chars: List[Character] = []
        for raw in rows:
            if not isinstance(raw, dict):
                continue
            try:
                chars.append(Character.from_dict(raw))
            except ValueError as exc:
                logger.warning("Skipping catalog entry: %s", exc)
        return cls(chars)

    def to_document(self) -> Dict[str, Any]:
        return {"characters": [c.to_dict() for c in self]}

    def get(self, char_id: str) -> Optional[Character]:
        return self._by_id.get(char_id)

    def ids(self) -> List[str]:
        return list(self._by_id)

    def subclasses(self) -> List[str]:
        return sorted({c.subclass for c in self if c.subclass})

    def search(self, query: str) -> List[Character]:
        q = (query or "").strip().lower()
        if not q:
            return list(self)
        return [c for c in self if q in c.id.lower() or q in c.name.lower()]

    def with_character(self, character: Character) -> "CharacterCatalog":
        """Return a new catalog with `character` added or replaced in place."""
        out = []
        replaced = False
        for c in self:
            if c.id == character.id:
                out.append(character)
                replaced = True
            else:
                out.append(c)
        if not replaced:
            out.append(character)
        return CharacterCatalog(out)

    def without(self, char_id: str) -> "CharacterCatalog":
        return CharacterCatalog(c for c in self if c.id != char_id)

    def __contains__(self, char_id: object) -> bool:
        return char_id in self._by_id

    def __iter__(self) -> Iterator[Character]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


def _use_supabase() -> bool:
    return is_streamlit_cloud() and _has_supabase_config()


def load_catalog(path: Optional[Path] = None) -> CharacterCatalog:
    """Load the catalog from Supabase (cloud) or the local JSON file.

    Missing sources yield an empty catalog; a malformed local file raises.
    """
    if path is None and _use_supabase():
        doc = supabase_store.get_document(CATALOG_DOC_TYPE, CATALOG_DOC_KEY)
        if doc is not None:
            return CharacterCatalog.from_document(doc)
        logger.info("No catalog document in Supabase; falling back to %s", CATALOG_PATH)

    src = Path(path) if path else CATALOG_PATH
    if not src.exists():
        logger.warning("Catalog file not found: %s", src)
        return CharacterCatalog()

    with src.open("r", encoding="utf-8") as f:
        doc = json.load(f)
    return CharacterCatalog.from_document(doc)


def save_catalog(catalog: CharacterCatalog, path: Optional[Path] = None) -> None:
    doc = catalog.to_document()
    if path is None and _use_supabase():
        supabase_store.upsert_document(CATALOG_DOC_TYPE, CATALOG_DOC_KEY, doc)
        return

    dst = Path(path) if path else CATALOG_PATH
    dst.parent.mkdir(parents=True, exist_ok=True)
    with dst.open("w", encoding="utf-8") as f:
        json.dump(doc, f, ensure_ascii=False, indent=2)


def load_subclasses(path: Optional[Path] = None) -> Dict[str, List[str]]:
    """Subclass choices per class, from `data/subclasses.json`.

    A missing file yields no choices; a file that is not a class -> list
    mapping raises ValueError.
    """
    src = Path(path) if path else SUBCLASSES_PATH
    if not src.exists():
        logger.warning("Subclass table not found: %s", src)
        return {}

    with src.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"{src} must map class names to lists of subclasses")
    return {
        str(cls).lower(): [str(s) for s in subs if s]
        for cls, subs in raw.items()
        if isinstance(subs, list)
    }
