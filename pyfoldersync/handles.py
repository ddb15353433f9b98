"""Handle abstraction for tree nodes.

The sync engine never touches raw filesystem paths. It works on handles:
capability-scoped references to a file or directory that expose a name,
type, modification time and stream-open operations. Handles are borrowed
from a provider for the duration of one pass.

``LocalHandle`` implements the contract on top of :mod:`pathlib` so that
local directories can be synchronized directly.
"""

import logging
import mimetypes
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional, Union

import send2trash

from .exceptions import ListingFailedError, NotAccessibleError, StreamOpenError
from .utils import DEFAULT_MIME_TYPE, reference_to_path

logger = logging.getLogger(__name__)


class Handle(ABC):
    """Reference to one node (file or directory) in a tree."""

    @property
    @abstractmethod
    def name(self) -> Optional[str]:
        """Name of the node, or None when unknown."""

    @property
    @abstractmethod
    def is_directory(self) -> bool:
        """Whether the node is a directory."""

    @property
    @abstractmethod
    def is_file(self) -> bool:
        """Whether the node is a regular file."""

    @property
    @abstractmethod
    def last_modified(self) -> int:
        """Last modification time in epoch milliseconds."""

    @property
    def mime_type(self) -> str:
        """Mime type of the node's content."""
        return DEFAULT_MIME_TYPE

    @abstractmethod
    def exists(self) -> bool:
        """Check whether the node still exists and is reachable."""

    @abstractmethod
    def list_children(self) -> list["Handle"]:
        """List direct children of a directory.

        Raises:
            ListingFailedError: If the directory cannot be listed
        """

    def find_child(self, name: str) -> Optional["Handle"]:
        """Find a direct child by name.

        Args:
            name: Child name to look for

        Returns:
            Child handle if found, None otherwise
        """
        for child in self.list_children():
            if child.name == name:
                return child
        return None

    @abstractmethod
    def open_read_stream(self) -> BinaryIO:
        """Open the file's content for reading.

        Raises:
            StreamOpenError: If the stream cannot be opened
        """

    @abstractmethod
    def open_write_stream(self) -> BinaryIO:
        """Open the file's content for writing, truncating it.

        Raises:
            StreamOpenError: If the stream cannot be opened
        """

    @abstractmethod
    def create_child_file(self, mime_type: str, name: str) -> Optional["Handle"]:
        """Create an empty file inside this directory.

        Returns:
            Handle of the new file, or None if it could not be created
        """

    @abstractmethod
    def create_child_directory(self, name: str) -> Optional["Handle"]:
        """Create a directory inside this directory.

        Returns:
            Handle of the new directory, or None if it could not be created
        """

    @abstractmethod
    def delete(self) -> bool:
        """Delete the node.

        Returns:
            True if the node was deleted
        """

    def set_last_modified(self, millis: int) -> bool:
        """Set the modification time of the node.

        Providers without this capability keep the default, which
        leaves the node untouched.

        Returns:
            True if the timestamp was applied
        """
        return False


class LocalHandle(Handle):
    """Handle backed by a local filesystem path."""

    def __init__(self, path: Union[str, Path], use_trash: bool = False):
        """Initialize local handle.

        Args:
            path: Filesystem path of the node
            use_trash: Move deleted files to the system trash instead of
                removing them permanently
        """
        self.path = Path(path)
        self.use_trash = use_trash

    def __repr__(self) -> str:
        return f"LocalHandle({str(self.path)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalHandle):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    def _child(self, name: str) -> "LocalHandle":
        return LocalHandle(self.path / name, use_trash=self.use_trash)

    @property
    def name(self) -> Optional[str]:
        return self.path.name or None

    @property
    def is_directory(self) -> bool:
        # Symlinked directories are not descended into
        return self.path.is_dir() and not self.path.is_symlink()

    @property
    def is_file(self) -> bool:
        return self.path.is_file()

    @property
    def last_modified(self) -> int:
        try:
            return self.path.stat().st_mtime_ns // 1_000_000
        except OSError as e:
            raise NotAccessibleError(
                f"Cannot stat {self.path}: {e}", path=str(self.path)
            ) from e

    @property
    def mime_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self.path.name)
        return guessed or DEFAULT_MIME_TYPE

    def exists(self) -> bool:
        return self.path.exists()

    def list_children(self) -> list[Handle]:
        try:
            entries = sorted(self.path.iterdir())
        except OSError as e:
            raise ListingFailedError(
                f"Cannot list {self.path}: {e}", path=str(self.path)
            ) from e
        return [LocalHandle(entry, use_trash=self.use_trash) for entry in entries]

    def find_child(self, name: str) -> Optional[Handle]:
        child = self._child(name)
        return child if child.exists() else None

    def open_read_stream(self) -> BinaryIO:
        try:
            return self.path.open("rb")
        except OSError as e:
            raise StreamOpenError(
                f"Cannot open {self.path} for reading: {e}", path=str(self.path)
            ) from e

    def open_write_stream(self) -> BinaryIO:
        try:
            return self.path.open("wb")
        except OSError as e:
            raise StreamOpenError(
                f"Cannot open {self.path} for writing: {e}", path=str(self.path)
            ) from e

    def create_child_file(self, mime_type: str, name: str) -> Optional[Handle]:
        child = self._child(name)
        try:
            child.path.touch(exist_ok=False)
        except OSError as e:
            logger.debug("Cannot create file %s: %s", child.path, e)
            return None
        return child

    def create_child_directory(self, name: str) -> Optional[Handle]:
        child = self._child(name)
        try:
            child.path.mkdir()
        except OSError as e:
            logger.debug("Cannot create directory %s: %s", child.path, e)
            return None
        return child

    def delete(self) -> bool:
        try:
            if self.use_trash:
                send2trash.send2trash(str(self.path))
            elif self.path.is_dir():
                self.path.rmdir()
            else:
                self.path.unlink()
        except OSError as e:
            logger.debug("Cannot delete %s: %s", self.path, e)
            return False
        return True

    def set_last_modified(self, millis: int) -> bool:
        nanos = millis * 1_000_000
        try:
            os.utime(self.path, ns=(nanos, nanos))
        except OSError as e:
            logger.debug("Cannot set mtime on %s: %s", self.path, e)
            return False
        return True


def resolve_tree_handle(
    reference: Optional[str], use_trash: bool = False
) -> Optional[Handle]:
    """Resolve a stored tree reference to a directory handle.

    Args:
        reference: Filesystem path or ``file://`` URI
        use_trash: Passed on to the created handle

    Returns:
        LocalHandle for an existing directory, None otherwise

    Examples:
        >>> resolve_tree_handle("/nonexistent/folder") is None
        True
    """
    if not reference:
        return None
    path = Path(reference_to_path(reference)).expanduser().resolve()
    if not path.is_dir():
        logger.debug("Tree reference does not resolve to a directory: %s", reference)
        return None
    return LocalHandle(path, use_trash=use_trash)
