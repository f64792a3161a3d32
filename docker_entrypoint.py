import os
import shutil
import sys
from pathlib import Path
from typing import List

# Written by the running app; a seed directory never provides them.
RUNTIME_ENTRIES = {"local", ".cache", "shared.json"}


def app_dir() -> Path:
    return Path(os.getenv("ROSTER_GRID_APP_DIR") or Path(__file__).resolve().parent)


def _copy_tree_missing_only(source_dir: Path, target_dir: Path) -> List[str]:
    target_dir.mkdir(parents=True, exist_ok=True)

    copied = []
    for item in source_dir.iterdir():
        if item.name in RUNTIME_ENTRIES:
            continue
        dest = target_dir / item.name
        if dest.exists():
            continue

        if item.is_dir():
            shutil.copytree(item, dest)
        else:
            shutil.copy2(item, dest)
        copied.append(item.name)
    return copied


def seed_persistent_data_if_needed() -> List[str]:
    """Copy seed files the data volume is missing and return their names.

    Existing files are never overwritten, so a volume created by an older
    image picks up files added later (the subclass table, new profiles)
    without losing catalog edits.
    """
    seed_dir = Path(os.getenv("ROSTER_GRID_SEED_DATA_DIR", "/opt/seed/data"))
    data_dir = Path(os.getenv("ROSTER_GRID_DATA_DIR") or app_dir() / "data")
    marker_file = data_dir / os.getenv("ROSTER_GRID_DATA_MARKER", "characters.json")

    if not seed_dir.exists():
        if not marker_file.exists():
            print(
                f"[roster-grid] Seed directory missing: {seed_dir}. "
                "Container image may be incomplete.",
                file=sys.stderr,
            )
        return []

    fresh = not marker_file.exists()
    copied = _copy_tree_missing_only(seed_dir, data_dir)
    if fresh:
        print(f"[roster-grid] Initialized data volume at {data_dir}.")
    elif copied:
        print(f"[roster-grid] Added {', '.join(sorted(copied))} to {data_dir}.")
    return copied


def streamlit_args(app_path: str = "app.py") -> List[str]:
    port = os.getenv("STREAMLIT_SERVER_PORT", "8501")
    address = os.getenv("STREAMLIT_SERVER_ADDRESS", "0.0.0.0")
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        app_path,
        "--server.port",
        str(port),
        "--server.address",
        str(address),
    ]


def main() -> None:
    # The app reads data/ relative to the working directory.
    os.chdir(app_dir())
    seed_persistent_data_if_needed()
    args = streamlit_args()
    os.execvp(args[0], args)


if __name__ == "__main__":
    main()
