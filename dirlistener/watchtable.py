"""Lookup of watches by their watch descriptor."""

from __future__ import annotations

from collections.abc import Iterable

from .rules import Watch


class WatchTable:
    """Index of watches keyed by watch descriptor; later entries win."""

    def __init__(self, watches: Iterable[Watch]) -> None:
        self._by_wd: dict[int, Watch] = {watch.wd: watch for watch in watches}

    def get(self, wd: int) -> Watch | None:
        """Return the watch registered under ``wd``, or None."""
        return self._by_wd.get(wd)

    def __len__(self) -> int:
        return len(self._by_wd)

    def __contains__(self, wd: object) -> bool:
        return wd in self._by_wd