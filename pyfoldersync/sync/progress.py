"""Progress events emitted during a sync pass.

The engine does not print anything. It reports what it is doing through a
``SyncProgressTracker``; the CLI turns those events into a Rich display, and
any other consumer can do the same by passing its own callback.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncProgressEvent(str, Enum):
    """Kinds of progress events."""

    SCAN_START = "scan_start"
    SCAN_COMPLETE = "scan_complete"
    ACTIONS_PLANNED = "actions_planned"
    FILE_COPIED = "file_copied"
    FILE_UPDATED = "file_updated"
    FILE_SKIPPED = "file_skipped"
    FILE_FAILED = "file_failed"
    SYNC_COMPLETE = "sync_complete"


@dataclass
class SyncProgressInfo:
    """Snapshot of progress sent with every event."""

    event: SyncProgressEvent
    relative_path: str = ""
    message: str = ""
    total_actions: int = 0
    completed_actions: int = 0
    files_copied: int = 0
    files_updated: int = 0
    errors: int = 0


class SyncProgressTracker:
    """Accumulates counters for one pass and forwards events to a callback."""

    def __init__(
        self, callback: Optional[Callable[[SyncProgressInfo], None]] = None
    ) -> None:
        """Initialize progress tracker.

        Args:
            callback: Function called with a SyncProgressInfo per event
        """
        self.callback = callback
        self.reset()

    def reset(self) -> None:
        """Clear counters before a new pass."""
        self.total_actions = 0
        self.completed_actions = 0
        self.files_copied = 0
        self.files_updated = 0
        self.errors = 0

    def _emit(
        self, event: SyncProgressEvent, relative_path: str = "", message: str = ""
    ) -> None:
        if self.callback is None:
            return
        info = SyncProgressInfo(
            event=event,
            relative_path=relative_path,
            message=message,
            total_actions=self.total_actions,
            completed_actions=self.completed_actions,
            files_copied=self.files_copied,
            files_updated=self.files_updated,
            errors=self.errors,
        )
        try:
            self.callback(info)
        except Exception:
            # A broken display must not abort the pass
            logger.exception("Progress callback failed for %s", event.value)

    def on_scan_start(self, label: str) -> None:
        self._emit(SyncProgressEvent.SCAN_START, message=label)

    def on_scan_complete(self, label: str, count: int) -> None:
        self._emit(
            SyncProgressEvent.SCAN_COMPLETE,
            message=f"Found {count} file(s) in {label}",
        )

    def on_actions_planned(self, total: int) -> None:
        self.total_actions = total
        self._emit(SyncProgressEvent.ACTIONS_PLANNED)

    def on_file_copied(self, relative_path: str) -> None:
        self.completed_actions += 1
        self.files_copied += 1
        self._emit(SyncProgressEvent.FILE_COPIED, relative_path)

    def on_file_updated(self, relative_path: str) -> None:
        self.completed_actions += 1
        self.files_updated += 1
        self._emit(SyncProgressEvent.FILE_UPDATED, relative_path)

    def on_file_skipped(self, relative_path: str, reason: str = "") -> None:
        self.completed_actions += 1
        self._emit(SyncProgressEvent.FILE_SKIPPED, relative_path, reason)

    def on_file_failed(self, relative_path: str, message: str) -> None:
        self.completed_actions += 1
        self.errors += 1
        self._emit(SyncProgressEvent.FILE_FAILED, relative_path, message)

    def on_sync_complete(self) -> None:
        self._emit(SyncProgressEvent.SYNC_COMPLETE)
