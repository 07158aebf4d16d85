"""On-disk filesystem confined to a single root directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO

from rem.errors import NotFoundError, StoreIOError
from rem.fs.base import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    ROOT,
    DirEntry,
    validate_path,
)
from rem.fs.migrate import MIGRATION_MARKER, Migrator

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(".config") / "rem"
DEFAULT_HISTORY_DIR = "history"
LEGACY_HISTORY_DIR = "content"


def config_root() -> Path:
    """Return $HOME/.config/rem."""
    return Path.home() / CONFIG_DIR


def resolve_history_dir(history_path: str = "") -> Path:
    """Resolve the store root for a history path setting.

    Empty selects the default $HOME/.config/rem/history. Absolute paths are
    used as-is; relative paths are joined under $HOME/.config/rem.
    """
    if not history_path:
        return config_root() / DEFAULT_HISTORY_DIR
    path = Path(history_path).expanduser()
    if path.is_absolute():
        return path
    return config_root() / path


def _translate(op: str, name: str, exc: OSError) -> Exception:
    if isinstance(exc, FileNotFoundError):
        return NotFoundError(f"{op} {name}: no such file")
    return StoreIOError(f"{op} {name}: {exc}")


class ScopedFS:
    """Filesystem rooted at a directory; every name is resolved beneath it."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser().absolute()

    @classmethod
    def for_history(cls, history_path: str = "") -> ScopedFS:
        """Open the store root selected by history_path, creating it if missing.

        Migration from the legacy content/ directory only runs for the
        default location.
        """
        history_dir = resolve_history_dir(history_path)
        try:
            history_dir.mkdir(mode=DEFAULT_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"cannot create history directory {history_dir}: {e}") from e

        fs = cls(history_dir)
        if not history_path:
            base = config_root()
            Migrator(
                legacy_dir=base / LEGACY_HISTORY_DIR,
                history_dir=history_dir,
                marker_path=base / MIGRATION_MARKER,
            ).run()
        return fs

    def _full_path(self, op: str, name: str, allow_root: bool = False) -> Path:
        segments = validate_path(op, name, allow_root=allow_root)
        return self._root.joinpath(*segments)

    def open(self, name: str) -> BinaryIO:
        path = self._full_path("open", name)
        try:
            return open(path, "rb")
        except OSError as e:
            raise _translate("open", name, e) from e

    def read_dir(self, name: str = ROOT) -> list[DirEntry]:
        path = self._full_path("readdir", name, allow_root=True)
        try:
            with os.scandir(path) as it:
                return [DirEntry(name=entry.name, is_dir=entry.is_dir()) for entry in it]
        except OSError as e:
            raise _translate("readdir", name, e) from e

    def write_file(self, name: str, data: bytes, mode: int = DEFAULT_FILE_MODE) -> None:
        path = self._full_path("writefile", name)
        try:
            path.parent.mkdir(mode=DEFAULT_DIR_MODE, parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            raise _translate("writefile", name, e) from e

    def remove(self, name: str) -> None:
        path = self._full_path("remove", name)
        try:
            path.unlink()
        except OSError as e:
            raise _translate("remove", name, e) from e

    def mkdir_all(self, name: str, mode: int = DEFAULT_DIR_MODE) -> None:
        path = self._full_path("mkdirall", name, allow_root=True)
        try:
            path.mkdir(mode=mode, parents=True, exist_ok=True)
        except OSError as e:
            raise _translate("mkdirall", name, e) from e

    def root(self) -> str:
        return str(self._root)

    def __repr__(self) -> str:
        return f"ScopedFS({str(self._root)!r})"
