"""Event mask flags and helpers for naming and parsing them."""

from __future__ import annotations

import enum


class EventMask(enum.IntFlag):
    """Filesystem event flags, bit-compatible with the kernel's inotify values."""

    ACCESS = 0x00000001
    MODIFY = 0x00000002
    ATTRIB = 0x00000004
    CLOSE_WRITE = 0x00000008
    CLOSE_NOWRITE = 0x00000010
    OPEN = 0x00000020
    MOVED_FROM = 0x00000040
    MOVED_TO = 0x00000080
    CREATE = 0x00000100
    DELETE = 0x00000200
    DELETE_SELF = 0x00000400
    MOVE_SELF = 0x00000800

    UNMOUNT = 0x00002000
    Q_OVERFLOW = 0x00004000
    IGNORED = 0x00008000

    ONLYDIR = 0x01000000
    DONT_FOLLOW = 0x02000000
    MASK_ADD = 0x20000000
    ISDIR = 0x40000000
    ONESHOT = 0x80000000

    CLOSE = CLOSE_WRITE | CLOSE_NOWRITE
    MOVE = MOVED_FROM | MOVED_TO
    ALL_EVENTS = (
        ACCESS
        | MODIFY
        | ATTRIB
        | CLOSE_WRITE
        | CLOSE_NOWRITE
        | OPEN
        | MOVED_FROM
        | MOVED_TO
        | DELETE
        | CREATE
        | DELETE_SELF
        | MOVE_SELF
    )


EMPTY_MASK = 0
MAX_RECURSIVE_DEPTH = 127

# Events needed to notice changes in the layout of a watched tree.
SYS_MASK = (
    EventMask.MOVED_FROM
    | EventMask.MOVED_TO
    | EventMask.CREATE
    | EventMask.DELETE
    | EventMask.DELETE_SELF
    | EventMask.MOVE_SELF
)

_DISPLAY_NAMES = (
    (EventMask.ACCESS, "access"),
    (EventMask.MODIFY, "modify"),
    (EventMask.ATTRIB, "attrib"),
    (EventMask.CLOSE_WRITE, "close write"),
    (EventMask.CLOSE_NOWRITE, "close nowrite"),
    (EventMask.OPEN, "open"),
    (EventMask.MOVED_FROM, "moved from"),
    (EventMask.MOVED_TO, "moved to"),
    (EventMask.CREATE, "create"),
    (EventMask.DELETE, "delete"),
    (EventMask.DELETE_SELF, "delete self"),
    (EventMask.MOVE_SELF, "move self"),
)

_KEYWORDS = (
    ("ACCESS", EventMask.ACCESS),
    ("MODIFY", EventMask.MODIFY),
    ("ATTRIB", EventMask.ATTRIB),
    ("CLOSE_WRITE", EventMask.CLOSE_WRITE),
    ("CLOSE_NOWRITE", EventMask.CLOSE_NOWRITE),
    ("OPEN", EventMask.OPEN),
    ("MOVED_FROM", EventMask.MOVED_FROM),
    ("MOVED_TO", EventMask.MOVED_TO),
    ("CREATE", EventMask.CREATE),
    ("DELETE", EventMask.DELETE),
    ("DELETE_SELF", EventMask.DELETE_SELF),
    ("MOVE_SELF", EventMask.MOVE_SELF),
)


def mask_name(mask: int) -> str:
    """Return a human readable description of the events set in ``mask``."""
    names = [name for flag, name in _DISPLAY_NAMES if mask & flag]
    if names:
        return " | ".join(names)
    value = int(mask) & 0xFFFFFFFF
    shown = f"{value:#x}" if value else "0"
    return f"unknown ({shown})"


def parse_masks(text: str) -> EventMask:
    """Build a mask from the event keywords found anywhere in ``text``.

    Keywords are matched as case-sensitive substrings, so ``DELETE_SELF``
    also selects ``DELETE``. Symbolic links are never followed.
    """
    result = EventMask.DONT_FOLLOW
    for keyword, flag in _KEYWORDS:
        if keyword in text:
            result |= flag
    return result