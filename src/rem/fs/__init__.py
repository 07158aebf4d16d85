"""Root-confined filesystems backing the history store."""

from rem.fs.base import DirEntry, FileSystem, validate_path
from rem.fs.memory import InMemoryFS
from rem.fs.migrate import Migrator
from rem.fs.scoped import ScopedFS

__all__ = ["DirEntry", "FileSystem", "InMemoryFS", "Migrator", "ScopedFS", "validate_path"]
