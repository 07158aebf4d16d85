"""Binary classification and title derivation over a content sample."""

from __future__ import annotations

import re
import unicodedata

SAMPLE_BYTES = 4096
MAX_TITLE_LENGTH = 80
BINARY_THRESHOLD = 0.3

BINARY_TITLE = "[binary content]"
EMPTY_TITLE = "[empty]"

# Control bytes that still count as text
_TEXT_CONTROLS = frozenset(b"\t\n\r")
_WHITESPACE_RE = re.compile(r"\s+")


def is_binary(sample: bytes) -> bool:
    """Classify a sample as binary.

    Any NUL byte makes it binary; otherwise it is binary when more than 30%
    of the bytes are control characters other than tab, newline and CR.
    """
    if not sample:
        return False
    if b"\x00" in sample:
        return True

    non_text = sum(1 for b in sample if (b < 0x20 or b == 0x7F) and b not in _TEXT_CONTROLS)
    return non_text > len(sample) * BINARY_THRESHOLD


def _is_control(ch: str) -> bool:
    return unicodedata.category(ch) == "Cc"


def sanitize_title(text: str) -> str:
    """Replace control characters with spaces and collapse whitespace runs."""
    text = "".join(" " if _is_control(ch) else ch for ch in text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_title(title: str, max_len: int = MAX_TITLE_LENGTH) -> str:
    """Trim a title to at most max_len characters, marking cuts with "..."."""
    title = title.strip()
    if len(title) <= max_len:
        return title
    if max_len < 3:
        return "." * max(max_len, 0)
    return title[: max_len - 3] + "..."


def generate_title(sample: bytes, binary: bool) -> str:
    """Derive a display title from the first bytes of a payload.

    Binary content gets a fixed sentinel. Text content uses the first
    non-blank line, falling back to the whole sample.
    """
    if binary:
        return BINARY_TITLE
    if not sample:
        return EMPTY_TITLE

    text = sample.decode("utf-8", errors="replace")
    for line in text.split("\n"):
        if line.strip():
            return sanitize_title(line) or EMPTY_TITLE

    return sanitize_title(text) or EMPTY_TITLE
