"""Result of a synchronization pass."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one pass, handed back to the driver."""

    success: bool
    """True if no errors were recorded"""

    files_scanned: int = 0
    """Number of items considered during the pass"""

    files_copied: int = 0
    """Files created on the side where they were missing"""

    files_updated: int = 0
    """Files replaced by a newer version"""

    errors: tuple[str, ...] = field(default_factory=tuple)
    """Error messages in the order they occurred"""

    def __post_init__(self) -> None:
        if self.success == bool(self.errors):
            raise ValueError("success must be True exactly when errors is empty")

    @classmethod
    def from_counts(
        cls,
        files_scanned: int,
        files_copied: int,
        files_updated: int,
        errors: list[str],
    ) -> "SyncResult":
        """Build a result whose success flag follows the error list."""
        return cls(
            success=not errors,
            files_scanned=files_scanned,
            files_copied=files_copied,
            files_updated=files_updated,
            errors=tuple(errors),
        )

    @classmethod
    def failure(cls, message: str) -> "SyncResult":
        """Build a failed result carrying a single error."""
        return cls(success=False, errors=(message,))

    @property
    def first_error(self) -> str:
        return self.errors[0] if self.errors else ""

    def status_line(self) -> str:
        """Short status line for display.

        Examples:
            >>> SyncResult(True, 3, 1, 1).status_line()
            '✓ Synced: 1 copied, 1 updated (3 scanned)'
            >>> SyncResult.failure("Source folder not accessible").status_line()
            '✗ Sync failed: Source folder not accessible'
        """
        if self.success:
            return (
                f"✓ Synced: {self.files_copied} copied, "
                f"{self.files_updated} updated ({self.files_scanned} scanned)"
            )
        return f"✗ Sync failed: {self.first_error}"

    def to_dict(self) -> dict[str, Any]:
        """Convert result to a dictionary for JSON output."""
        return {
            "success": self.success,
            "files_scanned": self.files_scanned,
            "files_copied": self.files_copied,
            "files_updated": self.files_updated,
            "errors": list(self.errors),
        }
