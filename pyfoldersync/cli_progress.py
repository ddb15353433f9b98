"""CLI progress display for sync operations.

This module provides a Rich-based progress display that works with
the SyncProgressTracker from the sync engine.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .handles import Handle
from .sync.engine import SyncEngine
from .sync.modes import SyncMode
from .sync.progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker
from .sync.result import SyncResult


class SyncProgressDisplay:
    """Rich-based progress display for sync operations.

    Scanning is shown as a spinner; once the actions are planned the
    spinner becomes a bar over the number of copies and updates.
    """

    def __init__(self) -> None:
        """Initialize the progress display."""
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def create_tracker(self) -> SyncProgressTracker:
        """Create a SyncProgressTracker that updates this display."""
        return SyncProgressTracker(callback=self._handle_event)

    def _summary(self, info: SyncProgressInfo) -> str:
        text = f"{info.files_copied} copied, {info.files_updated} updated"
        if info.errors:
            text += f", {info.errors} failed"
        return text

    def _handle_event(self, info: SyncProgressInfo) -> None:
        """Handle a progress event from the tracker."""
        if self._progress is None or self._task is None:
            return

        if info.event == SyncProgressEvent.SCAN_START:
            self._progress.update(
                self._task, description=f"Scanning {info.message}...", total=None
            )
        elif info.event == SyncProgressEvent.SCAN_COMPLETE:
            self._progress.update(self._task, description=info.message)
        elif info.event == SyncProgressEvent.ACTIONS_PLANNED:
            self._progress.update(
                self._task,
                description="Syncing",
                total=info.total_actions,
                completed=0,
                summary="",
            )
        elif info.event in (
            SyncProgressEvent.FILE_COPIED,
            SyncProgressEvent.FILE_UPDATED,
            SyncProgressEvent.FILE_FAILED,
            SyncProgressEvent.FILE_SKIPPED,
        ):
            self._progress.update(
                self._task,
                completed=info.completed_actions,
                description=f"Syncing: {info.relative_path}",
                summary=self._summary(info),
            )
        elif info.event == SyncProgressEvent.SYNC_COMPLETE:
            self._progress.update(
                self._task, description="Done", summary=self._summary(info)
            )

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[summary]}"),
            TimeElapsedColumn(),
            transient=True,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task("Starting...", total=None, summary="")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
        self._progress = None
        self._task = None


def run_sync_with_progress(
    engine: SyncEngine,
    source: Optional[Handle],
    dest: Optional[Handle],
    mode: SyncMode,
    dry_run: bool,
) -> SyncResult:
    """Run a sync pass with a Rich progress display.

    Args:
        engine: SyncEngine instance
        source: Source tree root
        dest: Destination tree root
        mode: Sync mode
        dry_run: If True, only count what would be done

    Returns:
        SyncResult of the pass
    """
    # For dry-run, don't show progress bar (just the summary)
    if dry_run:
        return engine.synchronize(source, dest, mode, dry_run=True)

    previous = engine.progress
    with SyncProgressDisplay() as display:
        engine.progress = display.create_tracker()
        try:
            return engine.synchronize(source, dest, mode)
        finally:
            engine.progress = previous
