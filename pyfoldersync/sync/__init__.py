"""Sync engine for pyfoldersync - two-way and one-way folder synchronization."""

from .comparator import FileComparator, SyncAction, SyncDecision, resolve_conflict
from .engine import SyncEngine
from .modes import SyncMode
from .operations import TransferExecutor, copy_stream
from .progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker
from .result import SyncResult
from .scanner import FlattenedEntry, TreeEnumerator

__all__ = [
    "SyncEngine",
    "SyncMode",
    "SyncResult",
    "SyncAction",
    "SyncDecision",
    "FileComparator",
    "resolve_conflict",
    "TransferExecutor",
    "copy_stream",
    "TreeEnumerator",
    "FlattenedEntry",
    "SyncProgressEvent",
    "SyncProgressInfo",
    "SyncProgressTracker",
]
