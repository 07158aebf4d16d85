"""Seekable view over forward-only content streams."""

from __future__ import annotations

import io
import os
from typing import BinaryIO

from rem.errors import SeekUnsupportedError
from rem.fs.base import FileSystem

_SKIP_CHUNK = 64 * 1024


class ReopenSeekReader(io.RawIOBase):
    """Emulates seeking on a stream that cannot seek.

    Forward seeks read and discard bytes; backward seeks reopen the file
    through the filesystem and skip to the target. Seeking relative to the
    end is not possible without knowing the size and raises
    SeekUnsupportedError.
    """

    def __init__(self, fs: FileSystem, name: str, stream: BinaryIO | None = None) -> None:
        super().__init__()
        self._fs = fs
        self._name = name
        self._stream = stream if stream is not None else fs.open(name)
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed file")
        data = self._stream.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        self._pos += n
        return n

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed file")
        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._pos + offset
        elif whence == os.SEEK_END:
            raise SeekUnsupportedError(f"{self._name}: seek from end is not supported")
        else:
            raise ValueError(f"invalid whence ({whence})")
        if target < 0:
            raise ValueError(f"negative seek position {target}")

        if target < self._pos:
            self._stream.close()
            self._stream = self._fs.open(self._name)
            self._pos = 0
        self._skip(target - self._pos)
        return self._pos

    def _skip(self, count: int) -> None:
        while count > 0:
            data = self._stream.read(min(count, _SKIP_CHUNK))
            if not data:
                break
            self._pos += len(data)
            count -= len(data)

    def close(self) -> None:
        stream = getattr(self, "_stream", None)
        if stream is not None and not self.closed:
            stream.close()
        super().close()


def seekable_stream(fs: FileSystem, name: str) -> BinaryIO:
    """Open name on fs, wrapping it when the backend stream cannot seek."""
    stream = fs.open(name)
    seekable = getattr(stream, "seekable", None)
    if callable(seekable) and seekable():
        return stream
    return ReopenSeekReader(fs, name, stream)  # type: ignore[return-value]
