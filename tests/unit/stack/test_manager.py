"""Tests for the stack manager."""

import hashlib
import io
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from rem.errors import (
    EmptyContentError,
    NotFoundError,
    OutOfRangeError,
    StoreIOError,
)
from rem.fs.memory import InMemoryFS
from rem.fs.scoped import ScopedFS
from rem.stack.content import BINARY_TITLE
from rem.stack.item import StampClock, format_stamp
from rem.stack.manager import DEFAULT_MAX_STACK_SIZE, StackManager, open_store


def _push(manager: StackManager, data: bytes, title: str | None = None):
    return manager.push(io.BytesIO(data), title)


def _read(manager: StackManager, item_id: str) -> bytes:
    with manager.get_content(item_id) as f:
        return f.read()


class _TrickleReader(io.RawIOBase):
    """Returns at most a few bytes per read call."""

    def __init__(self, data: bytes, step: int = 7) -> None:
        super().__init__()
        self._data = data
        self._step = step

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        n = min(len(buffer), self._step, len(self._data))
        buffer[:n] = self._data[:n]
        self._data = self._data[n:]
        return n


class _FailingReader(io.RawIOBase):
    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        raise OSError("device unplugged")


class TestConstruction:
    def test_default_limit(self):
        assert StackManager(InMemoryFS()).max_size == DEFAULT_MAX_STACK_SIZE

    @pytest.mark.parametrize("limit", [0, -5])
    def test_non_positive_limit_uses_default(self, limit: int):
        assert StackManager(InMemoryFS(), max_size=limit).max_size == DEFAULT_MAX_STACK_SIZE

    def test_open_store(self, home: Path):
        manager = open_store(max_size=7)
        assert manager.max_size == 7
        assert manager.fs.root() == str(home / ".config" / "rem" / "history")


class TestPush:
    def test_returns_descriptor(self, manager: StackManager):
        item = _push(manager, b"Hello, World!")
        assert item.title == "Hello, World!"
        assert item.size == 13
        assert item.is_binary is False
        assert item.sha256 == hashlib.sha256(b"Hello, World!").hexdigest()
        assert item.timestamp.tzinfo is not None
        assert item.id == format_stamp(item.timestamp)

    def test_empty_stream_rejected(self, manager: StackManager):
        with pytest.raises(EmptyContentError):
            _push(manager, b"")
        assert manager.fs.read_dir() == []

    def test_large_payload_streams(self, manager: StackManager):
        data = (b"x" * 1000 + b"\n") * 300
        item = _push(manager, data)
        assert item.size == len(data)
        assert item.sha256 == hashlib.sha256(data).hexdigest()
        assert _read(manager, item.id) == data

    def test_short_reads(self, manager: StackManager):
        data = b"first line\n" + b"y" * 10000
        item = manager.push(_TrickleReader(data))
        assert item.title == "first line"
        assert item.size == len(data)
        assert _read(manager, item.id) == data

    def test_title_override(self, manager: StackManager):
        item = _push(manager, b"body text", title="My\tSnippet")
        assert item.title == "My Snippet"

    def test_blank_override_ignored(self, manager: StackManager):
        item = _push(manager, b"body text", title="   ")
        assert item.title == "body text"

    def test_override_ignored_for_binary(self, manager: StackManager):
        item = _push(manager, b"\x00\x01\x02", title="named")
        assert item.title == BINARY_TITLE

    def test_override_truncated(self, manager: StackManager):
        item = _push(manager, b"a", title="t" * 200)
        assert len(item.title) == 80
        assert item.title.endswith("...")

    def test_classification_uses_sample_only(self, manager: StackManager):
        data = b"plain text " * 400 + b"\x00" * 5000
        item = _push(manager, data)
        assert item.is_binary is False

    def test_read_failure_leaves_no_file(self, manager: StackManager):
        with pytest.raises(StoreIOError, match="device unplugged"):
            manager.push(_FailingReader())
        assert manager.fs.read_dir() == []

    def test_write_failure_leaves_no_file(self):
        fs = InMemoryFS()
        manager = StackManager(fs)
        with patch.object(fs, "write_file", side_effect=StoreIOError("disk full")):
            with pytest.raises(StoreIOError, match="disk full"):
                _push(manager, b"data")
        assert fs.read_dir() == []

    def test_monotonic_with_frozen_clock(self):
        frozen = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        manager = StackManager(InMemoryFS(), clock=StampClock(now=lambda: frozen))
        first = _push(manager, b"one")
        second = _push(manager, b"two")
        assert second.timestamp == first.timestamp + timedelta(microseconds=1)
        assert first.id != second.id
        assert [i.title for i in manager.list()] == ["two", "one"]

    def test_empty_push_keeps_item_with_same_stamp(self):
        frozen = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        fs = InMemoryFS()
        first = StackManager(fs, clock=StampClock(now=lambda: frozen))
        second = StackManager(fs, clock=StampClock(now=lambda: frozen))
        kept = _push(first, b"precious")
        with pytest.raises(EmptyContentError):
            _push(second, b"")
        assert first.size() == 1
        assert _read(first, kept.id) == b"precious"

    def test_file_written_with_mode(self):
        fs = InMemoryFS()
        item = _push(StackManager(fs), b"data")
        assert fs.mode(item.filename) == 0o644


class TestList:
    def test_empty(self, manager: StackManager):
        assert manager.list() == []
        assert manager.size() == 0

    def test_newest_first(self, manager: StackManager):
        for i in range(5):
            _push(manager, f"Item {i}".encode())
        items = manager.list()
        assert [i.title for i in items] == [f"Item {n}" for n in range(4, -1, -1)]
        for newer, older in zip(items, items[1:]):
            assert newer.timestamp > older.timestamp

    def test_metadata_rederived(self, manager: StackManager):
        data = b"\n\nSecond paragraph title\nbody"
        pushed = _push(manager, data)
        listed = manager.list()[0]
        assert listed == pushed

    def test_ignores_stray_files(self, manager: StackManager):
        _push(manager, b"real")
        fs = manager.fs
        fs.write_file("notes.txt", b"stray")
        fs.write_file("2024-01-15T10-30-45.123456Z.rem", b"old extension")
        fs.write_file(".migration_complete", b"marker")
        fs.mkdir_all("2024-01-15T10-30-45.123456Z.txt")
        assert [i.title for i in manager.list()] == ["real"]

    def test_includes_migrated_files(self, manager: StackManager):
        manager.fs.write_file("2020-01-01T00-00-00.000000Z.txt", b"from before")
        _push(manager, b"recent")
        items = manager.list()
        assert [i.title for i in items] == ["recent", "from before"]
        assert items[1].id == "2020-01-01T00-00-00.000000Z"

    def test_orders_across_offsets(self, manager: StackManager):
        # 10:00+02:00 is 08:00 UTC, older than 09:00Z
        manager.fs.write_file("2024-01-01T10-00-00.000000+02-00.txt", b"earlier")
        manager.fs.write_file("2024-01-01T09-00-00.000000Z.txt", b"later")
        assert [i.title for i in manager.list()] == ["later", "earlier"]

    def test_equal_instants_break_ties_by_filename(self, manager: StackManager):
        manager.fs.write_file("2024-01-01T10-00-00.000000+01-00.txt", b"plus one")
        manager.fs.write_file("2024-01-01T09-00-00.000000Z.txt", b"utc")
        items = manager.list()
        assert [i.filename for i in items] == sorted((i.filename for i in items), reverse=True)

    def test_skips_unreadable_files(self):
        fs = InMemoryFS()
        manager = StackManager(fs)
        good = _push(manager, b"good")
        bad = _push(manager, b"bad")
        real_open = fs.open

        def flaky_open(name):
            if name == bad.filename:
                raise StoreIOError("permission denied")
            return real_open(name)

        with patch.object(fs, "open", side_effect=flaky_open):
            assert [i.id for i in manager.list()] == [good.id]

    def test_missing_root_is_io_error(self, tmp_path: Path):
        manager = StackManager(ScopedFS(tmp_path / "gone"))
        with pytest.raises(StoreIOError):
            manager.list()


class TestGet:
    def test_by_index(self, manager: StackManager):
        _push(manager, b"older")
        _push(manager, b"newer")
        assert manager.get(0).title == "newer"
        assert manager.get(1).title == "older"

    @pytest.mark.parametrize("index", [-1, 2, 100])
    def test_out_of_range(self, manager: StackManager, index: int):
        _push(manager, b"a")
        _push(manager, b"b")
        with pytest.raises(OutOfRangeError):
            manager.get(index)

    def test_out_of_range_on_empty(self, manager: StackManager):
        with pytest.raises(OutOfRangeError, match="empty"):
            manager.get(0)

    def test_out_of_range_is_index_error(self, manager: StackManager):
        with pytest.raises(IndexError):
            manager.get(manager.size())


class TestGetContent:
    def test_roundtrip(self, manager: StackManager):
        data = bytes(range(256)) * 40
        item = _push(manager, data)
        assert _read(manager, manager.list()[0].id) == data
        assert item.is_binary is True

    def test_stream_is_seekable(self, manager: StackManager):
        item = _push(manager, b"0123456789")
        with manager.get_content(item.id) as f:
            assert f.seekable()
            f.read(6)
            f.seek(2)
            assert f.read(3) == b"234"

    def test_unknown_id(self, manager: StackManager):
        with pytest.raises(NotFoundError):
            manager.get_content("2024-01-01T00-00-00.000000Z")

    @pytest.mark.parametrize("bad_id", ["", "../../etc/passwd", "notes"])
    def test_malformed_id(self, manager: StackManager, bad_id: str):
        with pytest.raises(NotFoundError):
            manager.get_content(bad_id)


class TestDelete:
    def test_delete_middle(self, manager: StackManager):
        for i in range(3):
            _push(manager, f"Item {i}".encode())
        manager.delete(1)
        assert [i.title for i in manager.list()] == ["Item 2", "Item 0"]

    def test_delete_out_of_range(self, manager: StackManager):
        with pytest.raises(OutOfRangeError):
            manager.delete(0)

    def test_delete_by_id(self, manager: StackManager):
        keep = _push(manager, b"keep")
        drop = _push(manager, b"drop")
        manager.delete_by_id(drop.id)
        assert [i.id for i in manager.list()] == [keep.id]
        with pytest.raises(NotFoundError):
            manager.delete_by_id(drop.id)

    def test_delete_by_malformed_id(self, manager: StackManager):
        with pytest.raises(NotFoundError):
            manager.delete_by_id("notes")


class TestClear:
    def test_clear_removes_items_only(self, manager: StackManager):
        for i in range(4):
            _push(manager, f"{i}".encode())
        manager.fs.write_file("notes.txt", b"keep me")
        assert manager.clear() == 4
        assert manager.size() == 0
        assert [e.name for e in manager.fs.read_dir()] == ["notes.txt"]

    def test_clear_empty(self, manager: StackManager):
        assert manager.clear() == 0

    def test_missing_root_is_io_error(self, tmp_path: Path):
        manager = StackManager(ScopedFS(tmp_path / "gone"))
        with pytest.raises(StoreIOError):
            manager.clear()

    def test_remove_failure_surfaces(self):
        fs = InMemoryFS()
        manager = StackManager(fs)
        _push(manager, b"a")
        with patch.object(fs, "remove", side_effect=StoreIOError("read-only")):
            with pytest.raises(StoreIOError, match="read-only"):
                manager.clear()


class TestEviction:
    def test_bound_holds_after_every_push(self, stack_fs):
        manager = StackManager(stack_fs, max_size=5)
        for i in range(12):
            _push(manager, f"Content {i}".encode())
            assert manager.size() <= 5
        assert [i.title for i in manager.list()] == [f"Content {n}" for n in range(11, 6, -1)]

    def test_stray_files_not_counted_or_evicted(self, stack_fs):
        manager = StackManager(stack_fs, max_size=2)
        stack_fs.write_file("notes.txt", b"stray")
        for i in range(4):
            _push(manager, f"{i}".encode())
        names = {e.name for e in stack_fs.read_dir()}
        assert "notes.txt" in names
        assert len(names) == 3

    def test_preexisting_overflow_trimmed_on_push(self, stack_fs):
        for n in range(6):
            stack_fs.write_file(f"2020-01-0{n + 1}T00-00-00.000000Z.txt", f"old {n}".encode())
        manager = StackManager(stack_fs, max_size=3)
        _push(manager, b"fresh")
        assert [i.title for i in manager.list()] == ["fresh", "old 5", "old 4"]

    def test_removal_error_aborts(self):
        fs = InMemoryFS()
        manager = StackManager(fs, max_size=1)
        _push(manager, b"first")
        with patch.object(fs, "remove", side_effect=StoreIOError("busy")):
            with pytest.raises(StoreIOError, match="failed to remove old file"):
                _push(manager, b"second")
        # The new item stays; the next push restores the bound
        assert manager.size() == 2
        _push(manager, b"third")
        assert [i.title for i in manager.list()] == ["third"]
