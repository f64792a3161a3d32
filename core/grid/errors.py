from typing import List, Optional


class GridError(Exception):
    """Base class for grid state errors surfaced to the UI layer."""


class UnknownCharacter(GridError, LookupError):
    def __init__(self, char_id: str, where: str = "layout"):
        self.char_id = char_id
        self.where = where
        super().__init__(f"Unknown character {char_id!r} (not in {where})")


class UnknownSkin(GridError, LookupError):
    def __init__(self, char_id: str, asset: str):
        self.char_id = char_id
        self.asset = asset
        super().__init__(f"Skin {asset!r} is not available for {char_id!r}")


class PersistenceFailure(GridError):
    """A load/save call against a storage backend failed.

    In-memory state is never rolled back when this is raised; the caller
    reports it and the user can retry.
    """

    def __init__(self, message: str, *, backend: Optional[str] = None):
        self.backend = backend
        super().__init__(message)


class ReadOnlySession(PersistenceFailure):
    pass


class InvalidImportDocument(GridError, ValueError):
    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f" (+{len(self.problems) - 5} more)"
        super().__init__(f"Invalid profile document: {summary}")
