"""Transfer operations: create, copy and replace files through handles."""

import logging
from typing import BinaryIO

from ..exceptions import (
    DeleteFailedError,
    DirectoryCreateError,
    FileCreateError,
    ParentLookupUnsupportedError,
    StreamOpenError,
    TransferError,
)
from ..handles import Handle
from ..utils import DEFAULT_BUFFER_SIZE, split_relative
from .scanner import FlattenedEntry

logger = logging.getLogger(__name__)


def copy_stream(
    reader: BinaryIO, writer: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE
) -> int:
    """Copy bytes from reader to writer until the reader is exhausted.

    Returns:
        Number of bytes copied
    """
    total = 0
    while True:
        chunk = reader.read(buffer_size)
        if not chunk:
            break
        writer.write(chunk)
        total += len(chunk)
    return total


class TransferExecutor:
    """Executes copy and update actions between two trees."""

    def __init__(
        self, buffer_size: int = DEFAULT_BUFFER_SIZE, preserve_times: bool = True
    ):
        """Initialize transfer executor.

        Args:
            buffer_size: Buffer size for stream copies
            preserve_times: Give copied files the source's modification time
        """
        self.buffer_size = buffer_size
        self.preserve_times = preserve_times

    def copy_to_path(
        self, source: Handle, dest_root: Handle, relative_path: str
    ) -> Handle:
        """Copy a file to a relative path below a tree root.

        Missing intermediate directories are created.

        Args:
            source: File to copy
            dest_root: Root directory of the target tree
            relative_path: Target path relative to ``dest_root``

        Returns:
            Handle of the new file

        Raises:
            DirectoryCreateError: If an intermediate directory cannot be created
            FileCreateError: If the target file cannot be created
            StreamOpenError: If either stream cannot be opened
        """
        dir_parts, file_name = split_relative(relative_path)

        current = dest_root
        for dir_name in dir_parts:
            current = self.ensure_directory(current, dir_name)

        return self.copy_into(source, current, file_name)

    def update_in_place(self, source: Handle, target: FlattenedEntry) -> Handle:
        """Replace an existing file with the content of a newer one.

        The target is deleted and a same-named file is recreated in the
        directory it was listed from.

        Args:
            source: Authoritative file
            target: Entry of the file to replace

        Returns:
            Handle of the recreated file

        Raises:
            ParentLookupUnsupportedError: If the target's parent is unknown
            DeleteFailedError: If the target cannot be deleted
            FileCreateError: If the replacement cannot be created
            StreamOpenError: If either stream cannot be opened
        """
        if target.parent is None:
            raise ParentLookupUnsupportedError(
                "Parent directory unknown", path=target.relative_path
            )
        _, file_name = split_relative(target.relative_path)

        self.delete_file(target.handle, target.relative_path)
        return self.copy_into(source, target.parent, file_name)

    def replace_file(
        self, source: Handle, existing: Handle, dest_dir: Handle
    ) -> Handle:
        """Delete ``existing`` and copy ``source`` into ``dest_dir`` in its place."""
        name = existing.name or source.name or ""
        self.delete_file(existing, name)
        return self.copy_into(source, dest_dir, name)

    def delete_file(self, handle: Handle, label: str) -> None:
        if not handle.delete():
            raise DeleteFailedError("Failed to delete existing file", path=label)
        logger.debug("Deleted %s", label)

    def ensure_directory(self, parent: Handle, name: str) -> Handle:
        """Find a child directory by name, creating it when missing.

        Raises:
            DirectoryCreateError: If the directory cannot be created
        """
        existing = parent.find_child(name)
        if existing is not None and existing.is_directory:
            return existing

        created = parent.create_child_directory(name)
        if created is None:
            raise DirectoryCreateError(
                f"Failed to create directory {name}", path=name
            )
        logger.debug("Created directory %s", name)
        return created

    def copy_into(self, source: Handle, dest_dir: Handle, name: str) -> Handle:
        """Create a file named ``name`` in ``dest_dir`` and copy content into it.

        If the content cannot be copied, the partially written file is
        removed again so that no empty or truncated file is left behind.

        Raises:
            FileCreateError: If the file cannot be created
            StreamOpenError: If either stream cannot be opened
            TransferError: If copying the content fails
        """
        new_file = dest_dir.create_child_file(source.mime_type, name)
        if new_file is None:
            raise FileCreateError(f"Failed to create file {name}", path=name)

        try:
            copied = self._copy_content(source, new_file, name)
        except TransferError:
            self._discard(new_file, name)
            raise
        logger.debug("Copied %d bytes to %s", copied, name)

        if self.preserve_times and not new_file.set_last_modified(
            source.last_modified
        ):
            logger.debug("Could not preserve modification time of %s", name)
        return new_file

    @staticmethod
    def _discard(handle: Handle, label: str) -> None:
        if handle.delete():
            logger.debug("Removed incomplete copy %s", label)
        else:
            logger.warning("Could not remove incomplete copy %s", label)

    def _copy_content(self, source: Handle, target: Handle, label: str) -> int:
        try:
            reader = source.open_read_stream()
        except OSError as e:
            raise StreamOpenError(f"Cannot open source stream: {e}", path=label) from e

        with reader:
            try:
                writer = target.open_write_stream()
            except OSError as e:
                raise StreamOpenError(
                    f"Cannot open target stream: {e}", path=label
                ) from e
            with writer:
                try:
                    return copy_stream(reader, writer, self.buffer_size)
                except OSError as e:
                    raise TransferError(f"Copy failed: {e}", path=label) from e
