"""Project Indexer — keeps a ``project_files:<root>`` collection in step with disk.

Lifecycle::

    UNINITIALIZED ──bulk_index()──▶ BULK_INDEXING ──watch_forever()──▶ WATCHING
                                                                          │
                                                         stop() ──────────┴──▶ STOPPED

Each indexed file becomes one Document whose ID is its absolute path.
"""

from __future__ import annotations

import logging
import os
import stat
import threading
from collections.abc import Iterator
from enum import Enum
from pathlib import Path

from mnemo.db.models import Document
from mnemo.db.repository import Collection, EmbeddingStore
from mnemo.db.vectors import project_collection
from mnemo.errors import IndexPrecondition
from mnemo.indexer.ignore import GIT_DIR, IgnoreRules
from mnemo.indexer.sniff import is_binary
from mnemo.indexer.watcher import EventKind, FsEvent, Watcher, WatchdogWatcher

log = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


class IndexerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    BULK_INDEXING = "bulk_indexing"
    WATCHING = "watching"
    STOPPED = "stopped"


class ProjectIndexer:
    """Bulk-indexes a git checkout, then follows filesystem events.

    Args:
        root: The project directory; must contain ``.git``.
        collection: The ``project_files:<root>`` collection. Its store must
            have an embedding function, file documents are embedded on upsert.
        watcher: Event source for :meth:`watch_forever`. Defaults to a
            :class:`WatchdogWatcher` created on first use.
        concurrency: Parallel embedding calls during bulk indexing.

    Raises:
        IndexPrecondition: If *root* is not a git checkout or its
            ``.gitignore`` cannot be read or parsed.
    """

    def __init__(
        self,
        root: Path | str,
        collection: Collection,
        watcher: Watcher | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        rules: IgnoreRules | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        root = self.check_root(root)

        self.root = root
        self.rules = rules if rules is not None else IgnoreRules.load(root)
        self.collection = collection
        self.concurrency = concurrency
        self.state = IndexerState.UNINITIALIZED
        self._watcher = watcher
        self._watched: set[Path] = set()
        self._thread: threading.Thread | None = None

    @staticmethod
    def check_root(root: Path | str) -> Path:
        """Resolve *root* and make sure it is a git checkout.

        Raises:
            IndexPrecondition: If *root* is not a directory or has no ``.git``.
        """
        root = Path(root).expanduser().resolve()
        if not root.is_dir():
            raise IndexPrecondition(f"Project root {root} is not a directory.")
        if not (root / GIT_DIR).exists():
            raise IndexPrecondition(
                f"Project root {root} is not a git checkout (no {GIT_DIR} directory)."
            )
        return root

    @classmethod
    def open(
        cls,
        root: Path | str,
        store: EmbeddingStore,
        watcher: Watcher | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> ProjectIndexer:
        """Validate *root*, then open its ``project_files:<root>`` collection.

        The collection is only created for roots that pass every precondition.

        Raises:
            IndexPrecondition: As for the constructor.
            StorageUnavailable: If the collection cannot be opened.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        root = cls.check_root(root)
        rules = IgnoreRules.load(root)
        collection = store.open_or_create_collection(project_collection(str(root)))
        return cls(root, collection, watcher=watcher, concurrency=concurrency, rules=rules)

    @property
    def watcher(self) -> Watcher:
        if self._watcher is None:
            self._watcher = WatchdogWatcher()
        return self._watcher

    # ------------------------------------------------------------------
    # Eligibility and conversion
    # ------------------------------------------------------------------

    def can_index(self, path: Path) -> bool:
        """True if *path* is a readable, non-ignored, non-empty text file."""
        path = Path(path)
        if GIT_DIR in path.parts:
            return False
        if self.rules.is_ignored(path, is_dir=path.is_dir()):
            return False
        try:
            st = path.stat()
            if not stat.S_ISREG(st.st_mode) or st.st_size == 0:
                return False
            return not is_binary(path)
        except OSError as exc:
            log.warning("Skipping unreadable file %s: %s", path, exc)
            return False

    def to_document(self, path: Path) -> Document:
        """Read *path* as UTF-8 (invalid bytes replaced). Raises OSError."""
        text = Path(path).read_bytes().decode("utf-8", errors="replace")
        key = str(path)
        return Document(id=key, content=text, metadata={"hash": key})

    def index_path(self, path: Path) -> bool:
        """Upsert *path* if eligible. Returns whether it was indexed."""
        if not self.can_index(path):
            return False
        try:
            doc = self.to_document(path)
        except OSError as exc:
            log.warning("Cannot read %s: %s", path, exc)
            return False
        self.collection.upsert([doc])
        log.debug("Indexed %s", path)
        return True

    def remove_path(self, path: Path) -> None:
        self.collection.delete(str(path))

    # ------------------------------------------------------------------
    # Bulk indexing
    # ------------------------------------------------------------------

    def walk(self, start: Path | None = None) -> Iterator[tuple[Path, list[Path]]]:
        """Yield ``(directory, files)`` below *start*, pruning ``.git`` and ignored dirs."""
        for dirpath, dirnames, filenames in os.walk(start or self.root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if d != GIT_DIR and not self.rules.is_ignored(current / d, is_dir=True)
            )
            yield current, [current / name for name in sorted(filenames)]

    def bulk_index(self) -> int:
        """Index every eligible file under the root in one upsert.

        A file whose embedding fails is logged and skipped. Returns the number
        of documents written.
        """
        self._enter(IndexerState.BULK_INDEXING)
        count = self._upsert_all(self._collect(self.root, watch=False))
        log.info("Indexed %d file(s) under %s", count, self.root)
        return count

    def _collect(self, start: Path, watch: bool) -> list[Document]:
        docs: list[Document] = []
        for directory, files in self.walk(start):
            if watch:
                self._add_watch(directory)
            for path in files:
                if not self.can_index(path):
                    continue
                try:
                    docs.append(self.to_document(path))
                except OSError as exc:
                    log.warning("Cannot read %s: %s", path, exc)
        return docs

    def _upsert_all(self, docs: list[Document]) -> int:
        if not docs:
            return 0
        return self.collection.upsert(docs, concurrency=self.concurrency, skip_failed=True)

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def _add_watch(self, directory: Path) -> None:
        if directory in self._watched:
            return
        self.watcher.add(directory)
        self._watched.add(directory)

    def _remove_watches(self, directory: Path) -> None:
        """Detach *directory* and every watched directory beneath it."""
        for watched in [w for w in self._watched if w == directory or w.is_relative_to(directory)]:
            self.watcher.remove(watched)
            self._watched.discard(watched)

    def watch_tree(self) -> None:
        """Watch the root and every non-ignored directory below it."""
        for directory, _ in self.walk(self.root):
            self._add_watch(directory)

    def handle_event(self, event: FsEvent) -> None:
        """Apply one filesystem event to the index."""
        if event.kind is EventKind.DELETED:
            self._handle_deleted(event.path)
            return
        if event.kind is EventKind.MOVED and event.src_path is not None:
            self._forget(event.src_path)
        self._handle_changed(event.path)

    def _handle_changed(self, path: Path) -> None:
        try:
            st = path.stat()
        except OSError as exc:
            log.debug("Cannot stat %s, skipping event: %s", path, exc)
            return

        if not stat.S_ISDIR(st.st_mode):
            self.index_path(path)
            return
        if path in self._watched:
            # Already tracked; its files report their own changes.
            return
        if GIT_DIR in path.parts or self.rules.is_ignored(path, is_dir=True):
            return
        count = self._upsert_all(self._collect(path, watch=True))
        log.info("Now watching %s (%d file(s) indexed)", path, count)

    def _handle_deleted(self, path: Path) -> None:
        if not path.exists():
            self._forget(path)
        elif path.is_dir():
            self._remove_watches(path)
        else:
            self.remove_path(path)

    def _forget(self, path: Path) -> None:
        """Drop *path* from the index; a watched directory takes its files with it."""
        self.remove_path(path)
        if path in self._watched:
            self._remove_watches(path)
            removed = self.collection.delete_by_prefix(f"{path}{os.sep}")
            log.info("Stopped watching %s (%d file(s) removed)", path, removed)

    def watch_forever(self) -> None:
        """Handle events until the watcher is closed.

        A failing event is logged and the loop moves on to the next one.
        """
        self._enter(IndexerState.WATCHING)
        for event in self.watcher.events():
            try:
                self.handle_event(event)
            except Exception:
                log.exception("Failed to handle %s event for %s", event.kind.value, event.path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Watch the tree, bulk index it, then follow events until stopped.

        Watches go in before the bulk scan so changes made during the scan
        are replayed afterwards.
        """
        self.watch_tree()
        try:
            self.bulk_index()
        except Exception:
            log.exception("Bulk indexing of %s failed", self.root)
        self.watch_forever()

    def start(self) -> None:
        """Run :meth:`run` on a daemon thread and return immediately."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError(f"Indexer for {self.root} is already running.")
        # Create the watcher here so stop() can always close it.
        if self._watcher is None:
            self._watcher = WatchdogWatcher()
        self._thread = threading.Thread(
            target=self.run, name=f"mnemo-indexer:{self.root}", daemon=True
        )
        self._thread.start()

    def _enter(self, state: IndexerState) -> None:
        # STOPPED is terminal.
        if self.state is not IndexerState.STOPPED:
            self.state = state

    def stop(self, timeout: float | None = None) -> None:
        """Close the watcher and wait for the indexing thread to finish."""
        self.state = IndexerState.STOPPED
        if self._watcher is not None:
            self._watcher.close()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        log.debug("Indexer for %s stopped", self.root)
