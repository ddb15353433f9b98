"""Core sync engine for executing sync operations."""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import FolderSyncError
from ..handles import Handle
from ..utils import TIME_TOLERANCE_MS, join_relative
from .comparator import FileComparator, SyncAction, SyncDecision
from .modes import SyncMode
from .operations import TransferExecutor
from .progress import SyncProgressTracker
from .result import SyncResult
from .scanner import TreeEnumerator

logger = logging.getLogger(__name__)


@dataclass
class _PassStats:
    """Mutable counters owned by a single pass."""

    scanned: int = 0
    copied: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    def to_result(self) -> SyncResult:
        return SyncResult.from_counts(
            self.scanned, self.copied, self.updated, self.errors
        )


class SyncEngine:
    """Core sync engine that orchestrates folder synchronization."""

    def __init__(
        self,
        executor: Optional[TransferExecutor] = None,
        tolerance: int = TIME_TOLERANCE_MS,
        progress: Optional[SyncProgressTracker] = None,
    ):
        """Initialize sync engine.

        Args:
            executor: Transfer executor (a default one is created if omitted)
            tolerance: Modification time window in milliseconds
            progress: Tracker receiving progress events
        """
        self.executor = executor or TransferExecutor()
        self.tolerance = tolerance
        self.progress = progress or SyncProgressTracker()
        self._pool: Optional[ThreadPoolExecutor] = None

    def synchronize(
        self,
        source: Optional[Handle],
        dest: Optional[Handle],
        mode: SyncMode = SyncMode.TWO_WAY,
        dry_run: bool = False,
    ) -> SyncResult:
        """Synchronize two directory trees.

        Args:
            source: Root directory of the source tree
            dest: Root directory of the destination tree
            mode: TWO_WAY or ONE_WAY (source to destination)
            dry_run: If True, decide actions and count them without
                changing either tree

        Returns:
            SyncResult with counters and error messages

        Examples:
            >>> engine = SyncEngine()
            >>> result = engine.synchronize(
            ...     resolve_tree_handle("/photos"), resolve_tree_handle("/backup")
            ... )
            >>> print(result.status_line())
        """
        if source is None or not self._is_accessible(source):
            return SyncResult.failure("Source folder not accessible")
        if dest is None or not self._is_accessible(dest):
            return SyncResult.failure("Destination folder not accessible")

        start_time = time.time()
        logger.debug(
            "Starting sync: %s -> %s (mode=%s, dry_run=%s)",
            source.name,
            dest.name,
            mode.value,
            dry_run,
        )
        self.progress.reset()

        try:
            if mode.is_two_way:
                result = self._sync_two_way(source, dest, dry_run)
            else:
                stats = _PassStats()
                self._sync_one_way(source, dest, stats, dry_run)
                result = stats.to_result()
        except Exception as e:
            logger.exception("Sync failed")
            return SyncResult.failure(f"Sync failed: {e}")

        logger.debug(
            "Sync finished in %.2fs: %d scanned, %d copied, %d updated, %d error(s)",
            time.time() - start_time,
            result.files_scanned,
            result.files_copied,
            result.files_updated,
            len(result.errors),
        )
        self.progress.on_sync_complete()
        return result

    def submit(
        self,
        source: Optional[Handle],
        dest: Optional[Handle],
        mode: SyncMode = SyncMode.TWO_WAY,
        dry_run: bool = False,
    ) -> "Future[SyncResult]":
        """Run ``synchronize`` on the engine's dedicated I/O thread.

        Passes submitted to the same engine run one after another.

        Returns:
            Future resolving to the SyncResult
        """
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="pyfoldersync-io"
            )
        return self._pool.submit(self.synchronize, source, dest, mode, dry_run)

    def shutdown(self) -> None:
        """Wait for submitted passes and release the I/O thread."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    @staticmethod
    def _is_accessible(handle: Handle) -> bool:
        try:
            return handle.exists() and handle.is_directory
        except (FolderSyncError, OSError) as e:
            logger.debug("Root handle not accessible: %s", e)
            return False

    # ------------------------------------------------------------------
    # Two-way sync
    # ------------------------------------------------------------------

    def _sync_two_way(self, source: Handle, dest: Handle, dry_run: bool) -> SyncResult:
        enumerator = TreeEnumerator()

        self.progress.on_scan_start("source")
        source_files = enumerator.flatten(source)
        self.progress.on_scan_complete("source", len(source_files))

        self.progress.on_scan_start("destination")
        dest_files = enumerator.flatten(dest)
        self.progress.on_scan_complete("destination", len(dest_files))

        logger.debug(
            "Source has %d files, destination has %d files",
            len(source_files),
            len(dest_files),
        )

        stats = _PassStats(scanned=max(len(source_files), len(dest_files)))

        decisions = FileComparator(self.tolerance).compare_files(
            source_files, dest_files
        )
        pending = [
            d for d in decisions if d.action != SyncAction.NO_OP or d.error is not None
        ]
        self.progress.on_actions_planned(len(pending))

        for decision in decisions:
            if decision.error is not None:
                path = decision.relative_path
                stats.errors.append(f"Failed to compare {path}: {decision.error}")
                self.progress.on_file_failed(path, decision.error)
                continue
            if decision.action == SyncAction.NO_OP:
                logger.debug("%s: %s", decision.relative_path, decision.reason)
                continue
            self._execute_decision(decision, source, dest, stats, dry_run)

        return stats.to_result()

    def _execute_decision(
        self,
        decision: SyncDecision,
        source_root: Handle,
        dest_root: Handle,
        stats: _PassStats,
        dry_run: bool,
    ) -> None:
        """Execute one action, recording failures without raising."""
        path = decision.relative_path
        action = decision.action

        if dry_run:
            logger.debug("Would %s: %s", action.value, path)
        else:
            try:
                self._apply(decision, source_root, dest_root)
            except (FolderSyncError, OSError) as e:
                message = f"Failed to {action.value.replace('_', ' ')} {path}: {e}"
                logger.warning(message)
                stats.errors.append(message)
                self.progress.on_file_failed(path, str(e))
                return
            logger.debug("%s: %s (%s)", action.value, path, decision.reason)

        if action.is_copy:
            stats.copied += 1
            self.progress.on_file_copied(path)
        else:
            stats.updated += 1
            self.progress.on_file_updated(path)

    def _apply(
        self, decision: SyncDecision, source_root: Handle, dest_root: Handle
    ) -> None:
        src = decision.source_entry
        dst = decision.dest_entry
        path = decision.relative_path

        if decision.action == SyncAction.COPY_TO_DESTINATION and src:
            self.executor.copy_to_path(src.handle, dest_root, path)
        elif decision.action == SyncAction.COPY_TO_SOURCE and dst:
            self.executor.copy_to_path(dst.handle, source_root, path)
        elif decision.action == SyncAction.UPDATE_DESTINATION and src and dst:
            self.executor.update_in_place(src.handle, dst)
        elif decision.action == SyncAction.UPDATE_SOURCE and src and dst:
            self.executor.update_in_place(dst.handle, src)
        else:
            raise FolderSyncError(
                f"Inconsistent decision {decision.action.value}", path
            )

    # ------------------------------------------------------------------
    # One-way sync
    # ------------------------------------------------------------------

    def _sync_one_way(
        self,
        source: Handle,
        dest: Handle,
        stats: _PassStats,
        dry_run: bool,
        prefix: str = "",
    ) -> None:
        """Mirror ``source`` into ``dest`` recursively, never touching source."""
        try:
            children = source.list_children()
        except (FolderSyncError, OSError) as e:
            message = f"Error scanning {source.name}: {e}"
            logger.warning(message)
            stats.errors.append(message)
            return

        for child in children:
            stats.scanned += 1
            name = child.name
            if not name:
                logger.debug("Skipping unnamed entry in %s", prefix or "<root>")
                continue
            path = join_relative(prefix, name)

            try:
                if child.is_directory:
                    self._sync_one_way_directory(
                        child, dest, name, path, stats, dry_run
                    )
                elif child.is_file:
                    self._sync_one_way_file(child, dest, name, path, stats, dry_run)
                else:
                    logger.debug("Skipping unclassifiable node: %s", path)
            except (FolderSyncError, OSError) as e:
                message = f"Error syncing {name}: {e}"
                logger.warning(message)
                stats.errors.append(message)
                self.progress.on_file_failed(path, str(e))

    def _sync_one_way_directory(
        self,
        child: Handle,
        dest: Handle,
        name: str,
        path: str,
        stats: _PassStats,
        dry_run: bool,
    ) -> None:
        if dry_run:
            existing = dest.find_child(name)
            if existing is None or not existing.is_directory:
                # Nothing exists on the destination side yet, every file is new
                self._count_new_files(child, path, stats)
                return
            self._sync_one_way(child, existing, stats, dry_run, path)
            return

        dest_dir = self.executor.ensure_directory(dest, name)
        self._sync_one_way(child, dest_dir, stats, dry_run, path)

    def _sync_one_way_file(
        self,
        child: Handle,
        dest: Handle,
        name: str,
        path: str,
        stats: _PassStats,
        dry_run: bool,
    ) -> None:
        existing = dest.find_child(name)

        if existing is None:
            if not dry_run:
                self.executor.copy_into(child, dest, name)
            stats.copied += 1
            self.progress.on_file_copied(path)
            logger.debug("Copied: %s", path)
            return

        if existing.is_directory:
            raise FolderSyncError("A directory with this name exists", path)

        source_time = child.last_modified
        dest_time = existing.last_modified
        if source_time > dest_time + self.tolerance:
            if not dry_run:
                self.executor.replace_file(child, existing, dest)
            stats.updated += 1
            self.progress.on_file_updated(path)
            logger.debug("Updated: %s (src: %d, dst: %d)", path, source_time, dest_time)
        else:
            self.progress.on_file_skipped(path, "Destination is up to date")

    def _count_new_files(
        self, directory: Handle, prefix: str, stats: _PassStats
    ) -> None:
        """Count what a dry run would copy into a missing directory."""
        try:
            children = directory.list_children()
        except (FolderSyncError, OSError) as e:
            stats.errors.append(f"Error scanning {directory.name}: {e}")
            return

        for child in children:
            stats.scanned += 1
            name = child.name
            if not name:
                continue
            path = join_relative(prefix, name)
            if child.is_directory:
                self._count_new_files(child, path, stats)
            elif child.is_file:
                stats.copied += 1
                self.progress.on_file_copied(path)
