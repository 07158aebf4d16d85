"""Filesystem capability protocol shared by the on-disk and in-memory backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable

from rem.errors import InvalidPathError

ROOT = "."
DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755


@dataclass(frozen=True)
class DirEntry:
    """A single entry returned by read_dir."""

    name: str
    is_dir: bool


@runtime_checkable
class FileSystem(Protocol):
    """Narrow set of operations the stack needs from its storage.

    Every name is relative to the filesystem root and validated with
    validate_path before use.
    """

    def open(self, name: str) -> BinaryIO: ...

    def read_dir(self, name: str = ROOT) -> list[DirEntry]: ...

    def write_file(self, name: str, data: bytes, mode: int = DEFAULT_FILE_MODE) -> None: ...

    def remove(self, name: str) -> None: ...

    def mkdir_all(self, name: str, mode: int = DEFAULT_DIR_MODE) -> None: ...

    def root(self) -> str: ...


def validate_path(op: str, name: str, allow_root: bool = False) -> list[str]:
    """Validate a root-relative path and return its segments.

    Rejects empty, absolute and NUL-containing names, and any name with an
    empty, "." or ".." segment. The bare name "." refers to the root itself
    and is only accepted when allow_root is set.
    """
    if not isinstance(name, str) or not name:
        raise InvalidPathError(op, str(name), "empty path")
    if "\x00" in name:
        raise InvalidPathError(op, name, "embedded NUL")
    if name == ROOT:
        if allow_root:
            return []
        raise InvalidPathError(op, name, "path refers to the root")
    if name.startswith("/") or name.startswith("\\"):
        raise InvalidPathError(op, name, "absolute path")

    segments = name.split("/")
    for segment in segments:
        if segment == "":
            raise InvalidPathError(op, name, "empty segment")
        if segment == "..":
            raise InvalidPathError(op, name, "parent traversal")
        if segment == ".":
            raise InvalidPathError(op, name, "dot segment")
    return segments
