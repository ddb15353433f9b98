"""File comparison logic for sync operations."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import FolderSyncError
from ..utils import TIME_TOLERANCE_MS, format_timestamp
from .scanner import FlattenedEntry

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    COPY_TO_DESTINATION = "copy_to_destination"
    """Copy a source-only file into the destination tree"""

    COPY_TO_SOURCE = "copy_to_source"
    """Copy a destination-only file into the source tree"""

    UPDATE_DESTINATION = "update_destination"
    """Replace the destination file with the newer source file"""

    UPDATE_SOURCE = "update_source"
    """Replace the source file with the newer destination file"""

    NO_OP = "no_op"
    """Files are already synchronized"""

    @property
    def is_copy(self) -> bool:
        return self in (SyncAction.COPY_TO_DESTINATION, SyncAction.COPY_TO_SOURCE)

    @property
    def is_update(self) -> bool:
        return self in (SyncAction.UPDATE_DESTINATION, SyncAction.UPDATE_SOURCE)


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    source_entry: Optional[FlattenedEntry]
    """Source file (if exists)"""

    dest_entry: Optional[FlattenedEntry]
    """Destination file (if exists)"""

    relative_path: str
    """Relative path of the file"""

    error: Optional[str] = None
    """Why the file could not be compared (the action is then NO_OP)"""


def resolve_conflict(
    source_time: int, dest_time: int, tolerance: int = TIME_TOLERANCE_MS
) -> SyncAction:
    """Decide which side of a file present in both trees wins.

    Timestamps within ``tolerance`` of each other are treated as equal.
    Otherwise the strictly newer side overwrites the other; there is no
    further tie-break.

    Examples:
        >>> resolve_conflict(1000, 5000)
        <SyncAction.UPDATE_SOURCE: 'update_source'>
        >>> resolve_conflict(5000, 3000)
        <SyncAction.NO_OP: 'no_op'>
    """
    if abs(source_time - dest_time) <= tolerance:
        return SyncAction.NO_OP
    if source_time > dest_time:
        return SyncAction.UPDATE_DESTINATION
    return SyncAction.UPDATE_SOURCE


class FileComparator:
    """Compares source and destination trees to determine sync actions."""

    def __init__(self, tolerance: int = TIME_TOLERANCE_MS):
        """Initialize file comparator.

        Args:
            tolerance: Modification time window in milliseconds within which
                two files are considered synchronized
        """
        self.tolerance = tolerance

    def compare_files(
        self,
        source_files: dict[str, FlattenedEntry],
        dest_files: dict[str, FlattenedEntry],
    ) -> list[SyncDecision]:
        """Compare source and destination files and determine sync actions.

        Args:
            source_files: Dictionary mapping relative_path to source entry
            dest_files: Dictionary mapping relative_path to destination entry

        Returns:
            One SyncDecision per path in the union of both mappings
        """
        decisions: list[SyncDecision] = []

        all_paths = set(source_files.keys()) | set(dest_files.keys())

        for path in sorted(all_paths):
            decisions.append(
                self._compare_single_file(
                    path, source_files.get(path), dest_files.get(path)
                )
            )

        return decisions

    def _compare_single_file(
        self,
        path: str,
        source_entry: Optional[FlattenedEntry],
        dest_entry: Optional[FlattenedEntry],
    ) -> SyncDecision:
        # Case 1: File exists in both trees
        if source_entry and dest_entry:
            return self._compare_existing_files(path, source_entry, dest_entry)

        # Case 2: File only exists in source
        if source_entry:
            return SyncDecision(
                action=SyncAction.COPY_TO_DESTINATION,
                reason="New source file",
                source_entry=source_entry,
                dest_entry=None,
                relative_path=path,
            )

        # Case 3: File only exists in destination
        return SyncDecision(
            action=SyncAction.COPY_TO_SOURCE,
            reason="New destination file",
            source_entry=None,
            dest_entry=dest_entry,
            relative_path=path,
        )

    def _compare_existing_files(
        self, path: str, source_entry: FlattenedEntry, dest_entry: FlattenedEntry
    ) -> SyncDecision:
        """Compare files that exist in both trees."""
        try:
            source_time = source_entry.last_modified
            dest_time = dest_entry.last_modified
        except (FolderSyncError, OSError) as e:
            logger.warning("Cannot compare %s: %s", path, e)
            return SyncDecision(
                action=SyncAction.NO_OP,
                reason="Modification time unavailable",
                source_entry=source_entry,
                dest_entry=dest_entry,
                relative_path=path,
                error=str(e),
            )
        action = resolve_conflict(source_time, dest_time, self.tolerance)

        if action == SyncAction.NO_OP:
            reason = f"Files in sync (difference: {abs(source_time - dest_time)}ms)"
        elif action == SyncAction.UPDATE_DESTINATION:
            reason = (
                f"Source file is newer ({format_timestamp(source_time)} "
                f"vs {format_timestamp(dest_time)})"
            )
        else:
            reason = (
                f"Destination file is newer ({format_timestamp(dest_time)} "
                f"vs {format_timestamp(source_time)})"
            )

        return SyncDecision(
            action=action,
            reason=reason,
            source_entry=source_entry,
            dest_entry=dest_entry,
            relative_path=path,
        )
