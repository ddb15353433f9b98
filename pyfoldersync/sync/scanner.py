"""Tree enumeration for sync operations."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..exceptions import FolderSyncError, InvalidEntryError
from ..handles import Handle
from ..utils import join_relative

logger = logging.getLogger(__name__)


@dataclass
class FlattenedEntry:
    """A file found while enumerating a tree."""

    relative_path: str
    """Path relative to the tree root, using forward slashes"""

    handle: Handle
    """Handle of the file itself"""

    parent: Optional[Handle] = None
    """Directory the file was listed from"""

    @property
    def name(self) -> Optional[str]:
        return self.handle.name

    @property
    def last_modified(self) -> int:
        return self.handle.last_modified


class TreeEnumerator:
    """Flattens a directory handle into a mapping of relative path to file.

    Examples:
        >>> enumerator = TreeEnumerator()
        >>> files = enumerator.flatten(resolve_tree_handle("/sync/folder"))
        >>> sorted(files)
        ['a.txt', 'dir/x.txt']
    """

    def __init__(self) -> None:
        self.skipped_entries = 0
        self.failed_directories = 0

    def flatten(
        self, directory: Handle, prefix: str = ""
    ) -> dict[str, FlattenedEntry]:
        """Recursively enumerate all files below a directory.

        A directory that cannot be listed contributes nothing; its siblings
        are still enumerated.

        Args:
            directory: Directory handle to enumerate
            prefix: Relative path of ``directory`` (empty at the root)

        Returns:
            Dictionary mapping relative_path to FlattenedEntry
        """
        if not prefix:
            self.skipped_entries = 0
            self.failed_directories = 0

        files: dict[str, FlattenedEntry] = {}

        try:
            children = directory.list_children()
        except (FolderSyncError, OSError) as e:
            self.failed_directories += 1
            logger.warning("Error listing %s: %s", prefix or "<root>", e)
            return files

        for child in children:
            try:
                child_path = join_relative(prefix, self._child_name(child))
            except InvalidEntryError as e:
                self.skipped_entries += 1
                logger.debug("Skipping entry in %s: %s", prefix or "<root>", e)
                continue

            if child.is_directory:
                files.update(self.flatten(child, child_path))
            elif child.is_file:
                files[child_path] = FlattenedEntry(
                    relative_path=child_path, handle=child, parent=directory
                )
            else:
                self.skipped_entries += 1
                logger.debug("Skipping unclassifiable node: %s", child_path)

        return files

    @staticmethod
    def _child_name(child: Handle) -> str:
        name = child.name
        if not name:
            raise InvalidEntryError("Entry has no name")
        return name
