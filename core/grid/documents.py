"""Profile import/export.

An exported profile is the same `{layout, marks, skins}` document the
persistence backends store. Imports are validated before anything is merged
into the current grid; a rejected import leaves the grid untouched.
"""

from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, List, Optional, Union

from core.catalog import CharacterCatalog
from core.grid.errors import InvalidImportDocument
from core.grid.models import MAX_CIRCLES, GridState

ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


def export_bytes(grid: GridState) -> bytes:
    return json.dumps(grid.to_document(), ensure_ascii=False, indent=2).encode("utf-8")


def export_filename(now: Optional[float] = None) -> str:
    stamp = int((time.time() if now is None else now) * 1000)
    return f"grid-profile-{stamp}.json"


def validate_document(doc: Any) -> Dict[str, Any]:
    """Check the profile shape and return a normalized copy.

    Raises InvalidImportDocument listing every problem found.
    """
    problems: List[str] = []
    if not isinstance(doc, dict):
        raise InvalidImportDocument(["profile must be a JSON object"])

    layout = doc.get("layout")
    if not isinstance(layout, list):
        problems.append("'layout' must be an array")
        layout = []
    for i, cid in enumerate(layout):
        if not isinstance(cid, str) or not ID_PATTERN.match(cid):
            problems.append(f"layout[{i}] is not a valid character id: {cid!r}")

    marks = doc.get("marks", {})
    if not isinstance(marks, dict):
        problems.append("'marks' must be an object")
        marks = {}
    for cid, mark in marks.items():
        if not isinstance(mark, dict):
            problems.append(f"marks[{cid!r}] must be an object")
            continue
        if not isinstance(mark.get("checks"), bool):
            problems.append(f"marks[{cid!r}].checks must be a boolean")
        circles = mark.get("circles")
        # bool is an int subclass; reject it explicitly.
        if isinstance(circles, bool) or not isinstance(circles, int):
            problems.append(f"marks[{cid!r}].circles must be an integer")
        elif not 0 <= circles <= MAX_CIRCLES:
            problems.append(f"marks[{cid!r}].circles must be between 0 and {MAX_CIRCLES}")

    skins = doc.get("skins", {})
    if not isinstance(skins, dict):
        problems.append("'skins' must be an object")
        skins = {}
    for cid, asset in skins.items():
        if not isinstance(asset, str) or not asset:
            problems.append(f"skins[{cid!r}] must be a non-empty string")

    if problems:
        raise InvalidImportDocument(problems)

    return {
        "layout": list(dict.fromkeys(layout)),
        "marks": {cid: {"checks": m["checks"], "circles": m["circles"]} for cid, m in marks.items()},
        "skins": dict(skins),
    }


def parse_import(raw: Union[str, bytes]) -> Dict[str, Any]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidImportDocument(["file is not UTF-8 text"]) from None
    try:
        doc = json.loads(raw)
    except ValueError as exc:
        raise InvalidImportDocument([f"not valid JSON ({exc.msg})"]) from None
    return validate_document(doc)


def import_grid(raw: Union[str, bytes], catalog: CharacterCatalog) -> GridState:
    """Parse and validate an exported profile into a fresh GridState."""
    return GridState.from_document(parse_import(raw), catalog)
