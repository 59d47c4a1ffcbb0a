"""Watching directories and running the configured commands on their events."""

from __future__ import annotations

import contextlib
import dataclasses
import errno
import os
import queue
import stat
import subprocess
import sys
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .masks import SYS_MASK, EventMask, mask_name
from .rules import Watch, build_command
from .watchtable import WatchTable

_POLL_INTERVAL = 0.5

_SIMPLE_EVENTS = {
    "created": EventMask.CREATE,
    "modified": EventMask.MODIFY,
    "opened": EventMask.OPEN,
    "closed": EventMask.CLOSE_WRITE,
    "closed_no_write": EventMask.CLOSE_NOWRITE,
}


@dataclass(frozen=True)
class Event:
    """One filesystem event reported for a watch descriptor."""

    wd: int
    mask: int
    name: str = ""
    cookie: int = 0


def _translate(path: str, event: FileSystemEvent) -> list[tuple[int, str]]:
    """Turn a watchdog event on the watched ``path`` into (mask, name) pairs."""
    isdir = EventMask.ISDIR if event.is_directory else 0

    def child(candidate: str) -> str | None:
        if candidate == path:
            return ""
        if os.path.dirname(candidate) == path:
            return os.path.basename(candidate)
        return None

    src = os.path.abspath(os.fsdecode(event.src_path))
    kind = event.event_type

    if kind == "moved":
        if src == path:
            return [(EventMask.MOVE_SELF, "")]
        pairs = []
        name = child(src)
        if name:
            pairs.append((EventMask.MOVED_FROM | isdir, name))
        dest = os.path.abspath(os.fsdecode(event.dest_path))
        name = child(dest)
        if name:
            pairs.append((EventMask.MOVED_TO | isdir, name))
        return pairs

    name = child(src)
    if name is None:
        return []
    if kind == "deleted":
        if name == "":
            return [(EventMask.DELETE_SELF, "")]
        return [(EventMask.DELETE | isdir, name)]
    if kind == "modified" and name == "" and event.is_directory:
        return []
    flag = _SIMPLE_EVENTS.get(kind)
    if flag is None:
        return []
    return [(flag | (isdir if name else 0), name)]


class _Handler(FileSystemEventHandler):
    def __init__(self, backend: WatchdogBackend, wd: int, path: str) -> None:
        super().__init__()
        self._backend = backend
        self._wd = wd
        self._path = path

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._backend._dispatch(self._wd, self._path, event)


class WatchdogBackend:
    """Event source that hands out watch descriptors over a watchdog observer."""

    def __init__(self) -> None:
        self._observer = Observer()
        self._observer.start()
        self._queue: queue.Queue[Event | None] = queue.Queue()
        self._lock = threading.Lock()
        self._masks: dict[int, int] = {}
        self._paths: dict[str, int] = {}
        self._scheduled: dict[int, object] = {}
        self._next_wd = 1
        self._closed = False

    def add_watch(self, path: str, mask: int) -> int:
        """Watch ``path`` for the events in ``mask`` and return its descriptor.

        Watching a path again replaces its mask and keeps its descriptor.
        """
        if not os.path.exists(path):
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        key = os.path.abspath(path)
        with self._lock:
            wd = self._paths.get(key)
            if wd is not None:
                self._masks[wd] = int(mask)
                return wd
            wd = self._next_wd
            self._next_wd += 1
            self._masks[wd] = int(mask)
            self._paths[key] = wd
        self._scheduled[wd] = self._observer.schedule(
            _Handler(self, wd, key), path, recursive=False
        )
        return wd

    def remove_watch(self, wd: int) -> None:
        """Stop watching the path registered under ``wd``."""
        with self._lock:
            if wd not in self._masks:
                raise OSError(errno.EINVAL, os.strerror(errno.EINVAL))
            del self._masks[wd]
            self._paths = {p: w for p, w in self._paths.items() if w != wd}
        observed = self._scheduled.pop(wd)
        with contextlib.suppress(KeyError):
            self._observer.unschedule(observed)

    def read_events(self, timeout: float | None) -> list[Event] | None:
        """Wait up to ``timeout`` seconds for events.

        Returns the pending events, an empty list on timeout, or None once
        the backend is closed.
        """
        try:
            first = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None if self._closed else []
        if first is None:
            return None
        events = [first]
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is None:
                self._queue.put(None)
                break
            events.append(item)
        return events

    def close(self) -> None:
        """Stop the observer and wake any reader."""
        if self._closed:
            return
        self._closed = True
        self._observer.stop()
        self._observer.join()
        self._queue.put(None)

    def _dispatch(self, wd: int, path: str, event: FileSystemEvent) -> None:
        with self._lock:
            mask = self._masks.get(wd)
        if mask is None:
            return
        for flags, name in _translate(path, event):
            if flags & mask:
                self._queue.put(Event(wd, int(flags), name))


def _run_shell(command: str) -> None:
    subprocess.run(["/bin/sh", "-c", command], check=False)


class Listener:
    """Keeps the watches registered and runs their commands on events."""

    def __init__(
        self,
        backend: WatchdogBackend | None = None,
        debug: bool = False,
        runner: Callable[[str], object] | None = None,
    ) -> None:
        self.backend = backend if backend is not None else WatchdogBackend()
        self.debug = debug
        self.runner = runner or _run_shell
        self.watches: list[Watch] = []
        self.table = WatchTable([])
        self._threads: list[threading.Thread] = []

    def __enter__(self) -> Listener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _debug(self, text: str) -> None:
        if self.debug:
            print(text, end="", flush=True)

    def _reindex(self) -> None:
        self.table = WatchTable(self.watches)

    @staticmethod
    def _walk(top: str, depth: int) -> Iterator[str]:
        for dirpath, dirnames, _ in os.walk(top, followlinks=True):
            rel = os.path.relpath(dirpath, top)
            level = 0 if rel == os.curdir else rel.count(os.sep) + 1
            if level >= depth:
                dirnames.clear()
            else:
                dirnames.sort()
            yield dirpath

    def monitor_directory(self, watch: Watch, verbose: bool = False) -> list[Watch]:
        """Register ``watch`` with the backend.

        A watch with a depth is replaced, for event purposes, by one copy per
        directory of its tree down to that depth; the copies are placed right
        after it in the watch list. Returns the watches that hold descriptors.
        """
        if not any(w is watch for w in self.watches):
            self.watches.append(watch)

        current = 0
        for other in self.watches:
            if other.target == watch.target:
                current |= other.mask
        mask = int(watch.mask) | current
        watch.root = watch

        if not watch.depth:
            watch.wd = self.backend.add_watch(watch.target, mask)
            if verbose:
                self._debug(f"Monitoring {watch.target} on watch {watch.wd}\n")
            return [watch]

        added: list[Watch] = []
        previous = watch
        for path in self._walk(watch.target, watch.depth):
            copy = dataclasses.replace(previous, target=path)
            copy.wd = self.backend.add_watch(path, mask | int(SYS_MASK))
            added.append(copy)
            previous = copy
            if verbose:
                self._debug(f"[recursive] Monitoring {copy.target} on watch {copy.wd}\n")
        position = next(i for i, w in enumerate(self.watches) if w is watch)
        self.watches[position + 1:position + 1] = added
        return added

    def load(self, watches: Iterable[Watch]) -> None:
        """Register every watch in ``watches``."""
        for watch in watches:
            self.monitor_directory(watch, verbose=True)
        self._reindex()

    def handle_event(self, event: Event) -> threading.Thread | None:
        """Act on one event; returns the thread running the command, if any."""
        watch = self.table.get(event.wd)
        if watch is None:
            return None

        if not watch.mask & event.mask:
            self._debug(
                f"watch mask mismatch on {watch.wd}: watch={mask_name(watch.mask)}, "
                f"event={mask_name(event.mask)}\n"
            )
            return None

        if not event.mask & (EventMask.DELETE_SELF | EventMask.MOVE_SELF):
            name = event.name
            if not watch.matches(name):
                return None
            path = f"{watch.target}/{name}"
            try:
                mode: int | None = os.stat(path).st_mode
            except OSError as exc:
                if watch.uses_entry_variable and not watch.mask & (
                    EventMask.DELETE | EventMask.DELETE_SELF
                ):
                    print(f"stat {path}: {exc.strerror}", file=sys.stderr)
                    return None
                mode = None
            if mode is not None and not watch.wants(mode):
                kind = (
                    "DIRS" if stat.S_ISDIR(mode)
                    else "FILES" if stat.S_ISREG(mode)
                    else "SYMLINKS"
                )
                self._debug(f"watch {watch.wd} doesn't want to process {kind}, skipping event\n")
                return None
        else:
            name = watch.target

        rebuild = bool(watch.depth) and bool(event.mask & SYS_MASK)

        snapshot = dataclasses.replace(watch)
        event_msg = (
            f"-> event on dir {watch.target}, watch {watch.wd}\n"
            f"-> filename:    {name}\n"
            f"-> event mask:  {int(event.mask):#X} ({mask_name(event.mask)})\n"
        )
        self._threads = [t for t in self._threads if t.is_alive()]
        thread = threading.Thread(
            target=self.perform_action, args=(snapshot, name, event_msg), daemon=True
        )
        self._threads.append(thread)
        thread.start()

        if rebuild:
            self.rebuild_tree(watch)
        return thread

    def rebuild_tree(self, watch: Watch) -> None:
        """Drop every watch of ``watch``'s tree and register the tree anew."""
        root = watch.root or watch
        kept: list[Watch] = []
        for other in self.watches:
            if other is not root and other.root is root:
                with contextlib.suppress(OSError):
                    self.backend.remove_watch(other.wd)
            else:
                kept.append(other)
        self.watches = kept
        self.monitor_directory(root, verbose=False)
        self._reindex()

    def perform_action(self, watch: Watch, offending_name: str, event_msg: str) -> str:
        """Run ``watch``'s command for ``offending_name`` and return the command line."""
        command = build_command(watch.spawn, watch.target, offending_name)
        self._debug(f"{event_msg}-> spawn: /bin/sh -c '{command}'\n\n")
        self.runner(command)
        return command

    def run(self) -> None:
        """Handle events until the backend is closed."""
        while True:
            events = self.backend.read_events(_POLL_INTERVAL)
            if events is None:
                return
            for event in events:
                self.handle_event(event)

    def close(self) -> None:
        """Wait for running commands and release the backend."""
        for thread in self._threads:
            thread.join()
        self._threads.clear()
        self.backend.close()