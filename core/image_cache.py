"""
core.image_cache
-----------------
Character art loading and caching for the grid.

Skins are referenced by file name (an AssetRef) relative to
`assets/characters`. Art is decoded with Pillow, scaled to grid thumbnails
and cached on disk keyed by file mtime; uploads from admin mode are
normalised to PNG before they are written.
"""

from io import BytesIO
from pathlib import Path
import logging
import re
from typing import BinaryIO, List, Optional, Union

from PIL import Image, UnidentifiedImageError
import streamlit as st

logger = logging.getLogger(__name__)

# -------------------------------------------------------------
# Paths and cache directories
# -------------------------------------------------------------
ASSETS = Path("assets")
ART_DIR = ASSETS / "characters"
CACHE_ROOT = Path("data/.cache")
THUMB_DIR = CACHE_ROOT / "thumbnails"

ART_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")
THUMB_SIZE = (180, 180)
_SAFE_STEM = re.compile(r"[^A-Za-z0-9_.-]+")


def art_path(asset: str) -> Path:
    # AssetRefs are bare file names; never follow directories out of ART_DIR.
    return ART_DIR / Path(asset).name


def list_art_files() -> List[str]:
    if not ART_DIR.exists():
        return []
    return sorted(p.name for p in ART_DIR.iterdir() if p.suffix.lower() in ART_SUFFIXES)


# -------------------------------------------------------------
# Thumbnails (cached by file mtime)
# -------------------------------------------------------------
def _stat_mtime_ns(path: Path) -> int:
    try:
        return int(path.stat().st_mtime_ns)
    except OSError:
        return 0


@st.cache_resource(show_spinner=False)
def _load_thumbnail_cached(path_str: str, mtime_ns: int) -> Image.Image:
    """Load a thumbnail from the disk cache, building it from the source art if needed."""
    src = Path(path_str)
    THUMB_DIR.mkdir(parents=True, exist_ok=True)
    dst = THUMB_DIR / f"{src.stem}-{mtime_ns}.png"
    if dst.exists():
        try:
            return Image.open(dst).convert("RGBA")
        except (OSError, UnidentifiedImageError):
            dst.unlink(missing_ok=True)
    if not src.exists():
        raise FileNotFoundError(f"Missing character art: {src}")
    img = Image.open(src).convert("RGBA")
    img.thumbnail(THUMB_SIZE)
    img.save(dst, format="PNG")
    return img


def load_thumbnail(asset: Optional[str]) -> Optional[Image.Image]:
    """Thumbnail for a skin, or None when the art is missing or unreadable."""
    if not asset:
        return None
    p = art_path(asset)
    try:
        return _load_thumbnail_cached(str(p), _stat_mtime_ns(p))
    except (OSError, UnidentifiedImageError) as exc:
        logger.warning("Cannot load art %s: %s", asset, exc)
        return None


# -------------------------------------------------------------
# Uploads
# -------------------------------------------------------------
def store_uploaded_art(upload: Union[BinaryIO, bytes], stem: str) -> str:
    """Decode an uploaded image, write it as PNG and return the new AssetRef.

    Raises ValueError when the upload is not an image Pillow can read.
    """
    data = upload if isinstance(upload, bytes) else upload.read()
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (OSError, UnidentifiedImageError) as exc:
        raise ValueError(f"Upload is not a readable image: {exc}") from exc

    safe = _SAFE_STEM.sub("_", Path(stem).stem).strip("._") or "character"
    ART_DIR.mkdir(parents=True, exist_ok=True)
    name = f"{safe}.png"
    n = 1
    while (ART_DIR / name).exists():
        name = f"{safe}_{n}.png"
        n += 1
    img.convert("RGBA").save(ART_DIR / name, format="PNG")
    logger.info("Stored uploaded art as %s", name)
    return name


def delete_art(asset: str) -> bool:
    p = art_path(asset)
    if not p.exists():
        return False
    p.unlink()
    return True
