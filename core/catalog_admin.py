"""Catalog maintenance for admin mode.

Every function returns a new `CharacterCatalog`; the caller saves it with
`core.catalog.save_catalog` and tells open grids to re-fetch the catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from core.catalog import CLASSES, RARITIES, Character, CharacterCatalog, Skins
from core.grid.documents import ID_PATTERN
from core.grid.filters import TRISTATE, TWOSTATE, FilterDimension

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtFile:
    filename: str
    character: Optional[Character] = None

    @property
    def indexed(self) -> bool:
        return self.character is not None


def art_files(filenames: List[str], catalog: CharacterCatalog) -> List[ArtFile]:
    owner: Dict[str, Character] = {}
    for c in catalog:
        for asset in c.skins.all():
            owner.setdefault(asset, c)
    return [ArtFile(name, owner.get(name)) for name in filenames]


def admin_dimensions() -> List[FilterDimension]:
    return [
        FilterDimension("indexed", TRISTATE, lambda f, _grid: f.indexed, label="Indexed"),
        FilterDimension(
            "class",
            TWOSTATE,
            lambda f, _grid: f.character.char_class if f.character else None,
            options=list(CLASSES),
            label="Class",
        ),
        FilterDimension(
            "rarity",
            TWOSTATE,
            lambda f, _grid: str(f.character.rarity) if f.character else None,
            options=[str(r) for r in RARITIES],
            label="Rarity",
        ),
    ]


def validate_character_fields(
    fields: Dict[str, Any],
    subclasses: Optional[Dict[str, List[str]]] = None,
) -> List[str]:
    """Every problem with the form fields; subclasses are checked only when a table is given."""
    problems = []
    cid = str(fields.get("id") or "")
    if not ID_PATTERN.match(cid):
        problems.append("Id may only contain letters, digits, '_', '-' and '.'")
    if not str(fields.get("name") or "").strip():
        problems.append("Name is required")
    if str(fields.get("class") or "").lower() not in CLASSES:
        problems.append(f"Class must be one of: {', '.join(CLASSES)}")
    elif subclasses is not None:
        problems.extend(_subclass_problems(fields, subclasses))
    try:
        rarity = int(fields.get("rarity"))
    except (TypeError, ValueError):
        rarity = 0
    if rarity not in RARITIES:
        problems.append("Rarity must be between 1 and 6")
    return problems


def _subclass_problems(fields: Dict[str, Any], subclasses: Dict[str, List[str]]) -> List[str]:
    char_class = str(fields.get("class") or "").lower()
    subclass = str(fields.get("subclass") or "").strip()
    allowed = subclasses.get(char_class, [])
    if not allowed:
        return [f"{char_class} has no subclasses"] if subclass else []
    if subclass not in allowed:
        return [f"Subclass for {char_class} must be one of: {', '.join(allowed)}"]
    return []


def upsert_character(
    catalog: CharacterCatalog,
    fields: Dict[str, Any],
    *,
    create: bool = False,
    subclasses: Optional[Dict[str, List[str]]] = None,
) -> CharacterCatalog:
    """Create or update a character from admin form fields.

    With `create`, an id that is already in the catalog is rejected instead
    of replacing that entry. Raises ValueError with every validation problem
    joined together.
    """
    problems = validate_character_fields(fields, subclasses)
    if create and str(fields.get("id") or "") in catalog:
        problems.append(f"Character with id {fields['id']!r} already exists")
    if problems:
        raise ValueError("; ".join(problems))

    existing = catalog.get(str(fields["id"]))
    skins = existing.skins if existing else Skins(default="")
    default = fields.get("default_skin")
    if default:
        skins = _with_default(skins, str(default))

    character = Character(
        id=str(fields["id"]),
        name=str(fields["name"]).strip(),
        char_class=str(fields["class"]).lower(),
        subclass=str(fields.get("subclass") or "").strip(),
        rarity=int(fields["rarity"]),
        skins=skins,
    )
    logger.info("%s catalog entry %s", "Updated" if existing else "Added", character.id)
    return catalog.with_character(character)


def _with_default(skins: Skins, asset: str) -> Skins:
    alternates = [a for a in skins.all() if a and a != asset]
    return Skins(default=asset, alternates=tuple(alternates))


def set_default_skin(catalog: CharacterCatalog, char_id: str, asset: str) -> CharacterCatalog:
    character = catalog.get(char_id)
    if character is None:
        raise KeyError(char_id)
    return catalog.with_character(replace(character, skins=_with_default(character.skins, asset)))


def add_alternate_skin(catalog: CharacterCatalog, char_id: str, asset: str) -> CharacterCatalog:
    character = catalog.get(char_id)
    if character is None:
        raise KeyError(char_id)
    if character.has_skin(asset):
        return catalog
    if not character.skins.default:
        return set_default_skin(catalog, char_id, asset)
    skins = Skins(default=character.skins.default, alternates=character.skins.alternates + (asset,))
    return catalog.with_character(replace(character, skins=skins))


def remove_skin(catalog: CharacterCatalog, asset: str) -> CharacterCatalog:
    """Drop an art file from whichever character references it ("remove from index")."""
    out = catalog
    for c in catalog:
        if not c.has_skin(asset):
            continue
        remaining = [a for a in c.skins.all() if a != asset]
        skins = Skins(default=remaining[0] if remaining else "", alternates=tuple(remaining[1:]))
        out = out.with_character(replace(c, skins=skins))
    return out


def delete_character(catalog: CharacterCatalog, char_id: str) -> CharacterCatalog:
    if char_id not in catalog:
        return catalog
    logger.info("Deleted catalog entry %s", char_id)
    return catalog.without(char_id)
