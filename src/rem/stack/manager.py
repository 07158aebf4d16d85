"""Persistent bounded LIFO stack of content blobs."""

from __future__ import annotations

import hashlib
import io
import logging
from typing import BinaryIO

from rem.errors import (
    EmptyContentError,
    NotFoundError,
    OutOfRangeError,
    RemError,
    StoreIOError,
)
from rem.fs.base import ROOT, FileSystem
from rem.fs.scoped import ScopedFS
from rem.stack.content import (
    BINARY_TITLE,
    MAX_TITLE_LENGTH,
    SAMPLE_BYTES,
    generate_title,
    is_binary,
    sanitize_title,
    truncate_title,
)
from rem.stack.item import (
    PROCESS_CLOCK,
    Item,
    StampClock,
    filename_for,
    format_stamp,
    id_from_filename,
    parse_stamp,
)
from rem.stack.reader import seekable_stream

logger = logging.getLogger(__name__)

DEFAULT_MAX_STACK_SIZE = 20
CONTENT_FILE_MODE = 0o644
_CHUNK_SIZE = 64 * 1024


def _read_sample(stream: BinaryIO, limit: int) -> bytes:
    """Read up to limit bytes, tolerating short reads."""
    parts: list[bytes] = []
    remaining = limit
    while remaining > 0:
        data = stream.read(remaining)
        if not data:
            break
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


class StackManager:
    """Bounded LIFO store over a root-confined filesystem.

    Each item is one file named after its push timestamp. The filename is
    the only source of ordering and identity; files that do not parse as a
    timestamp are ignored and never deleted.
    """

    def __init__(
        self,
        fs: FileSystem,
        max_size: int = DEFAULT_MAX_STACK_SIZE,
        clock: StampClock | None = None,
    ) -> None:
        self.fs = fs
        self.max_size = max_size if max_size > 0 else DEFAULT_MAX_STACK_SIZE
        self._clock = clock or PROCESS_CLOCK

    def push(self, stream: BinaryIO, title: str | None = None) -> Item:
        """Store the whole stream as a new top item and return its descriptor."""
        ts = self._clock.next()
        item_id = format_stamp(ts)
        name = filename_for(item_id)

        hasher = hashlib.sha256()
        buffer = io.BytesIO()
        try:
            sample = _read_sample(stream, SAMPLE_BYTES)
            chunk = sample
            while chunk:
                hasher.update(chunk)
                buffer.write(chunk)
                chunk = stream.read(_CHUNK_SIZE)
        except OSError as e:
            raise StoreIOError(f"failed to read content: {e}") from e

        size = buffer.tell()
        if size == 0:
            raise EmptyContentError("no content to store")

        try:
            self.fs.write_file(name, buffer.getvalue(), CONTENT_FILE_MODE)
        except RemError:
            self._discard(name)
            raise

        binary = is_binary(sample)
        if binary:
            item_title = BINARY_TITLE
        else:
            item_title = generate_title(sample, False)
            if title:
                item_title = sanitize_title(title) or item_title
        item = Item(
            timestamp=ts,
            id=item_id,
            title=truncate_title(item_title, MAX_TITLE_LENGTH),
            size=size,
            is_binary=binary,
            sha256=hasher.hexdigest(),
        )
        logger.debug("Pushed %s (%d bytes, binary=%s)", item.id, size, binary)

        self._evict()
        return item

    def _discard(self, name: str) -> None:
        """Remove a partially written file, if one exists."""
        try:
            self.fs.remove(name)
        except NotFoundError:
            pass
        except RemError as e:
            logger.warning("Could not remove partial file %s: %s", name, e)

    def _content_files(self) -> list[tuple[str, str]]:
        """Return (id, filename) for every valid content file, unordered."""
        try:
            entries = self.fs.read_dir(ROOT)
        except NotFoundError as e:
            raise StoreIOError(f"failed to read history directory: {e}") from e

        files = []
        for entry in entries:
            if entry.is_dir:
                continue
            item_id = id_from_filename(entry.name)
            if item_id is None:
                continue
            files.append((item_id, entry.name))
        return files

    def _evict(self) -> int:
        files = self._content_files()
        excess = len(files) - self.max_size
        if excess <= 0:
            return 0

        # Oldest first
        files.sort(key=lambda f: (parse_stamp(f[0]), f[1]))
        for _, name in files[:excess]:
            try:
                self.fs.remove(name)
            except NotFoundError:
                continue
            except RemError as e:
                raise StoreIOError(f"failed to remove old file {name}: {e}") from e
        logger.info("Evicted %d old items (limit %d)", excess, self.max_size)
        return excess

    def _describe(self, item_id: str, name: str) -> Item:
        hasher = hashlib.sha256()
        with self.fs.open(name) as f:
            sample = _read_sample(f, SAMPLE_BYTES)
            size = len(sample)
            hasher.update(sample)
            while True:
                chunk = f.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                hasher.update(chunk)

        binary = is_binary(sample)
        return Item(
            timestamp=parse_stamp(item_id),
            id=item_id,
            title=truncate_title(generate_title(sample, binary), MAX_TITLE_LENGTH),
            size=size,
            is_binary=binary,
            sha256=hasher.hexdigest(),
        )

    def list(self) -> list[Item]:
        """All items, newest first."""
        items = []
        for item_id, name in self._content_files():
            try:
                items.append(self._describe(item_id, name))
            except (RemError, OSError) as e:
                logger.debug("Skipping unreadable history file %s: %s", name, e)
        items.sort(key=lambda item: (item.timestamp, item.filename), reverse=True)
        return items

    def get(self, index: int) -> Item:
        """Item at index, where 0 is the newest."""
        items = self.list()
        if index < 0 or index >= len(items):
            raise OutOfRangeError(index, len(items))
        return items[index]

    def size(self) -> int:
        return len(self.list())

    def get_content(self, item_id: str) -> BinaryIO:
        """Open an item's payload. The caller owns and must close the stream."""
        if id_from_filename(filename_for(item_id)) is None:
            raise NotFoundError(f"item not found: {item_id}")
        return seekable_stream(self.fs, filename_for(item_id))

    def delete(self, index: int) -> None:
        item = self.get(index)
        self.fs.remove(item.filename)
        logger.info("Deleted item %s", item.id)

    def delete_by_id(self, item_id: str) -> None:
        if id_from_filename(filename_for(item_id)) is None:
            raise NotFoundError(f"item not found: {item_id}")
        try:
            self.fs.remove(filename_for(item_id))
        except NotFoundError as e:
            raise NotFoundError(f"item not found: {item_id}") from e
        logger.info("Deleted item %s", item_id)

    def clear(self) -> int:
        """Remove every item. Returns the number removed."""
        files = self._content_files()
        removed = 0
        for _, name in files:
            try:
                self.fs.remove(name)
            except NotFoundError:
                continue
            except RemError as e:
                raise StoreIOError(f"failed to remove file {name}: {e}") from e
            removed += 1
        logger.info("Cleared %d items", removed)
        return removed


def open_store(history_path: str = "", max_size: int = DEFAULT_MAX_STACK_SIZE) -> StackManager:
    """Open the on-disk store selected by history_path."""
    return StackManager(ScopedFS.for_history(history_path), max_size=max_size)
