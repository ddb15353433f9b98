"""Sync modes."""

from enum import Enum


class SyncMode(str, Enum):
    """Direction of a synchronization pass."""

    TWO_WAY = "twoWay"
    """Copy and update in both directions"""

    ONE_WAY = "oneWay"
    """Mirror source into destination only"""

    @property
    def is_two_way(self) -> bool:
        """Whether changes flow in both directions."""
        return self == SyncMode.TWO_WAY

    @classmethod
    def from_string(cls, value: str) -> "SyncMode":
        """Parse a sync mode from its name or abbreviation.

        Args:
            value: ``twoWay``/``tw`` or ``oneWay``/``ow`` (case-insensitive)

        Returns:
            Matching SyncMode

        Raises:
            ValueError: If the value is not a known mode
        """
        normalized = value.strip().lower()
        aliases = {
            "twoway": cls.TWO_WAY,
            "tw": cls.TWO_WAY,
            "oneway": cls.ONE_WAY,
            "ow": cls.ONE_WAY,
        }
        if normalized not in aliases:
            valid = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Invalid sync mode: {value!r} (expected one of {valid})")
        return aliases[normalized]
