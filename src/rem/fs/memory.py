"""In-memory filesystem with the same capabilities as ScopedFS."""

from __future__ import annotations

import io
from typing import BinaryIO

from rem.errors import NotFoundError, StoreIOError
from rem.fs.base import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    ROOT,
    DirEntry,
    validate_path,
)


class _MemoryFile(io.RawIOBase):
    """Forward-only reader over a snapshot of a file's bytes."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._data = data
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed file")
        chunk = self._data[self._pos : self._pos + len(buffer)]
        n = len(chunk)
        buffer[:n] = chunk
        self._pos += n
        return n


class InMemoryFS:
    """Dictionary-backed filesystem.

    Files map a slash-joined path to (bytes, mode); directories are tracked
    explicitly so empty ones can be listed. Streams returned by open() do not
    support seeking.
    """

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self._files: dict[str, tuple[bytes, int]] = {}
        self._dirs: set[str] = set()
        for name, data in (files or {}).items():
            self.write_file(name, data)

    def _key(self, op: str, name: str, allow_root: bool = False) -> str:
        return "/".join(validate_path(op, name, allow_root=allow_root))

    def _add_parents(self, key: str) -> None:
        parts = key.split("/")[:-1]
        for i in range(1, len(parts) + 1):
            self._dirs.add("/".join(parts[:i]))

    def open(self, name: str) -> BinaryIO:
        key = self._key("open", name)
        if key not in self._files:
            raise NotFoundError(f"open {name}: no such file")
        data, _ = self._files[key]
        return _MemoryFile(data)  # type: ignore[return-value]

    def read_dir(self, name: str = ROOT) -> list[DirEntry]:
        key = self._key("readdir", name, allow_root=True)
        if key and key not in self._dirs:
            if key in self._files:
                raise StoreIOError(f"readdir {name}: not a directory")
            raise NotFoundError(f"readdir {name}: no such directory")

        prefix = f"{key}/" if key else ""
        entries: dict[str, bool] = {}
        for path in list(self._files) + list(self._dirs):
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix):]
            if not rest:
                continue
            head, sep, _ = rest.partition("/")
            entries[head] = entries.get(head, False) or bool(sep) or path in self._dirs
        return [DirEntry(name=n, is_dir=d) for n, d in entries.items()]

    def write_file(self, name: str, data: bytes, mode: int = DEFAULT_FILE_MODE) -> None:
        key = self._key("writefile", name)
        if key in self._dirs:
            raise StoreIOError(f"writefile {name}: is a directory")
        self._add_parents(key)
        self._files[key] = (bytes(data), mode)

    def remove(self, name: str) -> None:
        key = self._key("remove", name)
        if key in self._files:
            del self._files[key]
            return
        if key in self._dirs:
            prefix = f"{key}/"
            if any(p.startswith(prefix) for p in list(self._files) + list(self._dirs)):
                raise StoreIOError(f"remove {name}: directory not empty")
            self._dirs.discard(key)
            return
        raise NotFoundError(f"remove {name}: no such file")

    def mkdir_all(self, name: str, mode: int = DEFAULT_DIR_MODE) -> None:
        key = self._key("mkdirall", name, allow_root=True)
        if not key:
            return
        if key in self._files:
            raise StoreIOError(f"mkdirall {name}: is a file")
        self._add_parents(f"{key}/_")

    def root(self) -> str:
        return "memory://"

    def mode(self, name: str) -> int:
        """Return the permission bits a file was written with."""
        key = self._key("stat", name)
        if key not in self._files:
            raise NotFoundError(f"stat {name}: no such file")
        return self._files[key][1]
