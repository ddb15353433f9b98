"""Exceptions raised by pyfoldersync."""

from typing import Optional


class FolderSyncError(Exception):
    """Base exception for all pyfoldersync errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        """Initialize the error.

        Args:
            message: Human-readable error message
            path: Relative path or node name the error refers to (if any)
        """
        super().__init__(message)
        self.message = message
        self.path = path


class NotAccessibleError(FolderSyncError):
    """A node is missing or cannot be accessed."""


class InvalidEntryError(FolderSyncError):
    """A tree entry has no usable name."""


class ListingFailedError(FolderSyncError):
    """Listing the children of a directory failed."""


class TransferError(FolderSyncError):
    """Base class for single-file transfer failures."""


class DirectoryCreateError(TransferError):
    """An intermediate directory could not be created."""


class FileCreateError(TransferError):
    """The target file could not be created."""


class StreamOpenError(TransferError):
    """A read or write stream could not be opened."""


class ParentLookupUnsupportedError(TransferError):
    """The parent directory of a file to replace is unknown."""


class DeleteFailedError(TransferError):
    """A file to be replaced could not be deleted."""


class SyncConfigError(FolderSyncError):
    """The sync pair document is malformed."""
