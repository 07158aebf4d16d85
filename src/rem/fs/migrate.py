"""One-shot migration of history files from the legacy content/ directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rem.errors import MigrationConflictError, StoreIOError

logger = logging.getLogger(__name__)

MIGRATION_MARKER = ".migration_complete"
MIGRATED_FILE_MODE = 0o644
MARKER_TEXT = "Migration from content/ to history/ completed\n"


def _regular_files(directory: Path) -> list[Path]:
    if not directory.exists():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file())


class Migrator:
    """Copies legacy history files into the new history directory.

    The marker file suppresses any further attempt once a migration has
    completed. Legacy files are never deleted.
    """

    def __init__(self, legacy_dir: Path, history_dir: Path, marker_path: Path) -> None:
        self.legacy_dir = Path(legacy_dir)
        self.history_dir = Path(history_dir)
        self.marker_path = Path(marker_path)

    def needed(self) -> bool:
        """True when a legacy directory exists and no marker has been written."""
        return self.legacy_dir.is_dir() and not self.marker_path.exists()

    def run(self) -> int:
        """Migrate if needed. Returns the number of files copied."""
        if not self.needed():
            return 0

        try:
            legacy_files = _regular_files(self.legacy_dir)
            existing = _regular_files(self.history_dir)
        except OSError as e:
            raise StoreIOError(f"failed to scan history directories: {e}") from e

        if legacy_files and existing:
            raise MigrationConflictError(
                f"both legacy ({self.legacy_dir}) and new ({self.history_dir}) "
                "directories contain files; manual migration required"
            )

        copied = 0
        for src in legacy_files:
            dst = self.history_dir / src.name
            try:
                data = src.read_bytes()
                self.history_dir.mkdir(parents=True, exist_ok=True)
                fd = os.open(dst, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, MIGRATED_FILE_MODE)
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
            except OSError as e:
                raise StoreIOError(f"failed to migrate {src.name}: {e}") from e
            copied += 1

        if copied:
            logger.info("Migrated %d history files from %s to %s", copied, self.legacy_dir, self.history_dir)

        self._write_marker()
        return copied

    def _write_marker(self) -> None:
        try:
            self.marker_path.parent.mkdir(parents=True, exist_ok=True)
            self.marker_path.write_text(MARKER_TEXT)
        except OSError as e:
            logger.warning("Could not write migration marker %s: %s", self.marker_path, e)
