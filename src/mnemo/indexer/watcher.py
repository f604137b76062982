"""Filesystem watchers feeding the project indexer.

A watcher delivers :class:`FsEvent` objects for the directories it has been
told to watch. :class:`WatchdogWatcher` is backed by ``watchdog`` with one
non-recursive watch per directory; :class:`QueueWatcher` is fed by hand.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

log = logging.getLogger(__name__)


class EventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    MOVED = "moved"
    DELETED = "deleted"


@dataclass(frozen=True)
class FsEvent:
    """A change under a watched directory.

    For ``MOVED`` events ``path`` is the destination and ``src_path`` the
    former location.
    """

    kind: EventKind
    path: Path
    src_path: Path | None = None


class Watcher(ABC):
    @abstractmethod
    def add(self, directory: Path) -> None:
        """Start watching *directory* (not its subdirectories)."""

    @abstractmethod
    def remove(self, directory: Path) -> None:
        """Stop watching *directory*. Unknown directories are ignored."""

    @abstractmethod
    def events(self) -> Iterator[FsEvent]:
        """Block for events until :meth:`close` is called."""

    @abstractmethod
    def close(self) -> None: ...


_CLOSED = object()


class QueueWatcher(Watcher):
    """Watcher whose events are put in by the caller.

    Events already queued when :meth:`close` is called are still delivered
    before :meth:`events` returns.
    """

    def __init__(self) -> None:
        self.watched: set[Path] = set()
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = False

    def add(self, directory: Path) -> None:
        self.watched.add(Path(directory))

    def remove(self, directory: Path) -> None:
        self.watched.discard(Path(directory))

    def put(self, event: FsEvent) -> None:
        self._queue.put(event)

    def events(self) -> Iterator[FsEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put(_CLOSED)


_KINDS = {
    "created": EventKind.CREATED,
    "modified": EventKind.MODIFIED,
    "moved": EventKind.MOVED,
    "deleted": EventKind.DELETED,
}


class _Forwarder(FileSystemEventHandler):
    """Translates watchdog events into FsEvents on a QueueWatcher."""

    def __init__(self, sink: QueueWatcher) -> None:
        super().__init__()
        self._sink = sink

    def on_any_event(self, event: FileSystemEvent) -> None:
        kind = _KINDS.get(event.event_type)
        if kind is None:
            return
        if kind is EventKind.MOVED:
            self._sink.put(
                FsEvent(
                    kind,
                    Path(os.fsdecode(event.dest_path)),
                    src_path=Path(os.fsdecode(event.src_path)),
                )
            )
        else:
            self._sink.put(FsEvent(kind, Path(os.fsdecode(event.src_path))))


class WatchdogWatcher(QueueWatcher):
    """Native filesystem notifications through a watchdog Observer."""

    def __init__(self) -> None:
        super().__init__()
        self._observer = Observer()
        self._observer.daemon = True
        self._handler = _Forwarder(self)
        self._watches: dict[Path, ObservedWatch] = {}
        self._lock = threading.Lock()
        self._observer.start()

    def add(self, directory: Path) -> None:
        directory = Path(directory)
        with self._lock:
            if directory in self._watches:
                return
            self._watches[directory] = self._observer.schedule(
                self._handler, str(directory), recursive=False
            )
            self.watched.add(directory)
        log.debug("Watching %s", directory)

    def remove(self, directory: Path) -> None:
        directory = Path(directory)
        with self._lock:
            watch = self._watches.pop(directory, None)
            self.watched.discard(directory)
        if watch is None:
            return
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as exc:
            # The directory may already be gone, taking its native watch with it.
            log.debug("Unschedule %s: %s", directory, exc)

    def close(self) -> None:
        if self._closed:
            return
        self._observer.stop()
        self._observer.join()
        super().close()
