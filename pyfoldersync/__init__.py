"""PyFolderSync - synchronize folder trees through capability-based handles."""

from .config import SyncPairConfig, SyncPairRepository
from .exceptions import (
    DeleteFailedError,
    DirectoryCreateError,
    FileCreateError,
    FolderSyncError,
    InvalidEntryError,
    ListingFailedError,
    NotAccessibleError,
    ParentLookupUnsupportedError,
    StreamOpenError,
    SyncConfigError,
    TransferError,
)
from .handles import Handle, LocalHandle, resolve_tree_handle
from .sync import SyncEngine, SyncMode, SyncResult

__all__ = [
    "Handle",
    "LocalHandle",
    "resolve_tree_handle",
    "SyncEngine",
    "SyncMode",
    "SyncResult",
    "SyncPairConfig",
    "SyncPairRepository",
    "FolderSyncError",
    "NotAccessibleError",
    "InvalidEntryError",
    "ListingFailedError",
    "TransferError",
    "DirectoryCreateError",
    "FileCreateError",
    "StreamOpenError",
    "ParentLookupUnsupportedError",
    "DeleteFailedError",
    "SyncConfigError",
]
