"""Watch rules: their representation, configuration parsing and command expansion."""

from __future__ import annotations

import enum
import json
import re
import stat
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from .masks import EMPTY_MASK, MAX_RECURSIVE_DEPTH, parse_masks

_BLANKS = re.compile(r"[ \t]+")
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


class RuleError(ValueError):
    """Raised when a rule or configuration file is invalid."""


class LookAt(enum.IntEnum):
    """Kind of filesystem entry a watch is interested in."""

    DIRS = stat.S_IFDIR
    FILES = stat.S_IFREG
    SYMLINKS = stat.S_IFLNK


def _compile(rule: str) -> re.Pattern[str]:
    try:
        return re.compile(rule)
    except re.error as exc:
        raise RuleError(f'"{rule}": {exc}') from exc


@dataclass(eq=False)
class Watch:
    """A directory being watched and the action taken on its events."""

    target: str = ""
    mask: int = 0
    spawn: str = ""
    lookat: LookAt | None = None
    regex_rule: str = ""
    depth: int = 0
    wd: int = -1
    root: Watch | None = field(default=None, repr=False)
    description: str = field(default="", repr=False)
    regex: re.Pattern[str] | None = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.regex = _compile(self.regex_rule) if self.regex_rule else None

    @property
    def uses_entry_variable(self) -> bool:
        """True when the spawn command refers to the affected entry."""
        return "$ENTRY" in self.spawn

    def matches(self, name: str) -> bool:
        """Tell whether ``name`` passes this watch's name filter."""
        return self.regex is None or self.regex.search(name) is not None

    def wants(self, mode: int) -> bool:
        """Tell whether an entry with stat mode ``mode`` is of the watched kind."""
        return self.lookat is not None and stat.S_IFMT(mode) == self.lookat


def tokenize_command(cmd: str) -> list[str]:
    """Split a spawn command on blanks."""
    return [word for word in _BLANKS.split(cmd or "") if word]


def expand_token(token: str, target: str, offending_name: str) -> str:
    """Substitute ``$ENTRY_RELATIVE`` and ``$ENTRY`` (first occurrence each)."""
    expanded = token.replace("$ENTRY_RELATIVE", offending_name, 1)
    return expanded.replace("$ENTRY", f"{target}/{offending_name}", 1)


def build_command(spawn: str, target: str, offending_name: str) -> str:
    """Return the shell command line for an event on ``offending_name``."""
    return " ".join(
        expand_token(word, target, offending_name) for word in tokenize_command(spawn)
    )


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _map_description(value: str) -> dict[str, Any]:
    return {"description": value}


def _map_target(value: str) -> dict[str, Any]:
    return {"target": value}


def _map_watches(value: str) -> dict[str, Any]:
    mask = parse_masks(value)
    if mask == EMPTY_MASK:
        raise RuleError(f"{value}: invalid mask(s)")
    return {"mask": mask}


def _map_spawn(value: str) -> dict[str, Any]:
    return {"spawn": value}


def _map_lookat(value: str) -> dict[str, Any]:
    try:
        return {"lookat": LookAt[value.upper()]}
    except KeyError:
        raise RuleError(f"{value}: invalid value for 'lookat' option") from None


def _map_regex(value: str) -> dict[str, Any]:
    _compile(value)
    return {"regex_rule": value}


def _map_depth(value: str) -> dict[str, Any]:
    depth = _atoi(value)
    if not 0 <= depth <= MAX_RECURSIVE_DEPTH:
        raise RuleError(f"{value}: invalid depth")
    return {"depth": depth}


_MAPPERS: dict[str, Callable[[str], dict[str, Any]]] = {
    "description": _map_description,
    "target": _map_target,
    "watches": _map_watches,
    "spawn": _map_spawn,
    "lookat": _map_lookat,
    "regex": _map_regex,
    "depth": _map_depth,
}

_REQUIRED = (
    ("target", "target"),
    ("mask", "watches"),
    ("spawn", "spawn"),
    ("lookat", "lookat"),
)


def parse_rule(obj: Any) -> Watch:
    """Build a :class:`Watch` from one decoded JSON rule object."""
    if not isinstance(obj, Mapping):
        raise RuleError(f"Expected a JSON object, found something different: {obj!r}")
    fields: dict[str, Any] = {}
    for key, value in obj.items():
        if not isinstance(value, str):
            raise RuleError(f"Unexpected JSON object found: {key}: {value!r}")
        mapper = _MAPPERS.get(str(key).lower())
        if mapper is None:
            raise RuleError(f"{key}: unknown option")
        fields.update(mapper(value))
    for name, option in _REQUIRED:
        if not fields.get(name):
            raise RuleError(f"Config file error: '{option}' option is not set")
    return Watch(**fields)


def parse_config(data: Any) -> list[Watch]:
    """Build the watch list from a decoded configuration document.

    The document must be an object whose first member is a non-empty
    array of rule objects.
    """
    if not isinstance(data, Mapping) or not data:
        raise RuleError("Config file parsing error")
    rules = next(iter(data.values()))
    if not isinstance(rules, list) or not rules:
        raise RuleError("Config file parsing error")
    return [parse_rule(rule) for rule in rules]


def read_config(path: str) -> list[Watch]:
    """Read and parse the JSON configuration file at ``path``."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise RuleError(f"{path}: {exc.strerror or exc}") from exc
    except ValueError as exc:
        raise RuleError(f"{path}: {exc}") from exc
    return parse_config(data)