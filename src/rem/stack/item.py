"""Stack item descriptor and the timestamp filenames that identify items."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

FILE_EXTENSION = ".txt"

_STAMP_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"T(?P<hour>\d{2})-(?P<minute>\d{2})-(?P<second>\d{2})"
    r"\.(?P<micro>\d{6})"
    r"(?P<tz>Z|[+-]\d{2}-\d{2})$"
)


@dataclass(frozen=True)
class Item:
    """One pushed payload as seen by consumers of the stack."""

    timestamp: datetime
    id: str
    title: str
    size: int
    is_binary: bool
    sha256: str

    @property
    def filename(self) -> str:
        return filename_for(self.id)


def format_stamp(ts: datetime) -> str:
    """Format an aware datetime as a filename stem.

    Layout is YYYY-MM-DDTHH-MM-SS.ffffff followed by the UTC offset as
    +HH-MM / -HH-MM, or Z for a zero offset.
    """
    if ts.tzinfo is None or ts.utcoffset() is None:
        ts = ts.astimezone()
    offset = ts.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        tz = "Z"
    else:
        total = int(offset.total_seconds()) // 60
        sign = "+" if total >= 0 else "-"
        hours, minutes = divmod(abs(total), 60)
        tz = f"{sign}{hours:02d}-{minutes:02d}"
    return ts.strftime("%Y-%m-%dT%H-%M-%S.") + f"{ts.microsecond:06d}" + tz


def parse_stamp(stem: str) -> datetime:
    """Parse a filename stem produced by format_stamp.

    Raises ValueError for anything that would not format back to the same
    stem, so every accepted stem round-trips exactly.
    """
    match = _STAMP_RE.match(stem)
    if not match:
        raise ValueError(f"not a timestamp stem: {stem!r}")

    tz_text = match.group("tz")
    if tz_text == "Z":
        tz = timezone.utc
    else:
        sign = -1 if tz_text[0] == "-" else 1
        hours, minutes = int(tz_text[1:3]), int(tz_text[4:6])
        if minutes >= 60:
            raise ValueError(f"bad offset in stem: {stem!r}")
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    ts = datetime(
        int(match.group("year")),
        int(match.group("month")),
        int(match.group("day")),
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second")),
        int(match.group("micro")),
        tzinfo=tz,
    )
    if format_stamp(ts) != stem:
        raise ValueError(f"non-canonical timestamp stem: {stem!r}")
    return ts


def filename_for(item_id: str) -> str:
    return item_id + FILE_EXTENSION


def id_from_filename(name: str) -> str | None:
    """Return the item id for a content filename, or None for stray files."""
    if not name.endswith(FILE_EXTENSION):
        return None
    stem = name[: -len(FILE_EXTENSION)]
    try:
        parse_stamp(stem)
    except ValueError:
        return None
    return stem


def _local_now() -> datetime:
    return datetime.now().astimezone()


class StampClock:
    """Hands out strictly increasing timestamps.

    When the wall clock has not moved past the last stamp issued, the next
    stamp is the last one plus a microsecond.
    """

    def __init__(self, now: Callable[[], datetime] = _local_now) -> None:
        self._now = now
        self._last: datetime | None = None

    def next(self) -> datetime:
        ts = self._now()
        if ts.tzinfo is None:
            ts = ts.astimezone()
        if self._last is not None and ts <= self._last:
            ts = (self._last + timedelta(microseconds=1)).astimezone(ts.tzinfo)
        self._last = ts
        return ts


# Shared by every manager in the process
PROCESS_CLOCK = StampClock()
