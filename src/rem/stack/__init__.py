"""The history stack: items, content classification and the manager."""

from rem.stack.content import generate_title, is_binary, sanitize_title, truncate_title
from rem.stack.item import Item, StampClock
from rem.stack.manager import DEFAULT_MAX_STACK_SIZE, StackManager, open_store

__all__ = [
    "DEFAULT_MAX_STACK_SIZE",
    "Item",
    "StackManager",
    "StampClock",
    "generate_title",
    "is_binary",
    "open_store",
    "sanitize_title",
    "truncate_title",
]
