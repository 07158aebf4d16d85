"""Error kinds raised by the rem store."""

from __future__ import annotations


class RemError(Exception):
    """Base class for all store errors."""


class InvalidPathError(RemError, ValueError):
    """A path is absolute, empty, or escapes the filesystem root."""

    def __init__(self, op: str, path: str, reason: str = "invalid path") -> None:
        self.op = op
        self.path = path
        super().__init__(f"{op} {path!r}: {reason}")


class NotFoundError(RemError, LookupError):
    """The named file or item does not exist."""


class OutOfRangeError(RemError, IndexError):
    """A stack index is outside [0, size)."""

    def __init__(self, index: int, size: int) -> None:
        self.index = index
        self.size = size
        if size == 0:
            msg = f"index {index} out of range (stack is empty)"
        else:
            msg = f"index {index} out of range (0-{size - 1})"
        super().__init__(msg)


class EmptyContentError(RemError, ValueError):
    """A push stream produced zero bytes."""


class MigrationConflictError(RemError):
    """Both the legacy and the history directory contain files."""


class SeekUnsupportedError(RemError):
    """A content stream cannot seek as requested."""


class StoreIOError(RemError):
    """Any other filesystem failure."""
