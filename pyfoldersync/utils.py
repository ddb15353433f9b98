"""Utility functions and constants for pyfoldersync."""

from datetime import datetime
from typing import Optional
from urllib.parse import unquote, urlparse

# =============================================================================
# Constants for sync operations
# =============================================================================

# Buffer size for stream copies (8 KiB)
DEFAULT_BUFFER_SIZE: int = 8 * 1024

# Two copies whose modification times differ by at most this many
# milliseconds are considered synchronized
TIME_TOLERANCE_MS: int = 2000

# Mime type used when a handle does not report one
DEFAULT_MIME_TYPE: str = "application/octet-stream"

# Path separator used in relative paths
PATH_SEPARATOR: str = "/"


# =============================================================================
# Path utilities
# =============================================================================


def join_relative(prefix: str, name: str) -> str:
    """Append a child name to a relative path prefix.

    Examples:
        >>> join_relative("", "a.txt")
        'a.txt'
        >>> join_relative("dir/sub", "a.txt")
        'dir/sub/a.txt'
    """
    if not prefix:
        return name
    return f"{prefix}{PATH_SEPARATOR}{name}"


def split_relative(relative_path: str) -> tuple[list[str], str]:
    """Split a relative path into directory segments and the final name.

    Empty segments (from doubled or trailing separators) are dropped.

    Examples:
        >>> split_relative("dir/sub/a.txt")
        (['dir', 'sub'], 'a.txt')
        >>> split_relative("a.txt")
        ([], 'a.txt')
    """
    parts = [part for part in relative_path.split(PATH_SEPARATOR) if part]
    if not parts:
        raise ValueError(f"Invalid relative path: {relative_path!r}")
    return parts[:-1], parts[-1]


def reference_to_path(reference: str) -> str:
    """Convert a tree reference (plain path or file:// URI) to a path string.

    Examples:
        >>> reference_to_path("file:///home/user/My%20Docs")
        '/home/user/My Docs'
        >>> reference_to_path("/home/user/docs")
        '/home/user/docs'
    """
    if reference.startswith("file://"):
        return unquote(urlparse(reference).path)
    return reference


# =============================================================================
# Formatting utilities
# =============================================================================


def format_timestamp(millis: Optional[int]) -> str:
    """Format an epoch-milliseconds timestamp for display.

    Args:
        millis: Timestamp in milliseconds since the epoch

    Returns:
        Local time as ``YYYY-MM-DD HH:MM:SS`` or ``"-"`` when unknown
    """
    if millis is None:
        return "-"
    return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d %H:%M:%S")
