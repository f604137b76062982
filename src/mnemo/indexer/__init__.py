"""Project indexer: ignore rules, binary sniffing, bulk scan and watch loop."""

from mnemo.indexer.ignore import IgnoreRules
from mnemo.indexer.indexer import IndexerState, ProjectIndexer
from mnemo.indexer.sniff import is_binary
from mnemo.indexer.watcher import (
    EventKind,
    FsEvent,
    QueueWatcher,
    WatchdogWatcher,
    Watcher,
)

__all__ = [
    "EventKind",
    "FsEvent",
    "IgnoreRules",
    "IndexerState",
    "ProjectIndexer",
    "QueueWatcher",
    "WatchdogWatcher",
    "Watcher",
    "is_binary",
]
