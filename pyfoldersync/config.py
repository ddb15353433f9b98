"""Sync pair configuration and persistence.

Sync pairs are stored as an ordered JSON list of objects::

    [
      {
        "id": 1,
        "source": "/home/user/Photos",
        "sourceLabel": "Photos",
        "dest": "file:///mnt/usb/Photos",
        "destLabel": "USB stick",
        "syncMode": "twoWay"
      }
    ]

The engine never reads this document; the CLI loads it, resolves the
references to handles and saves it back after every change.
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import SyncConfigError
from .sync.modes import SyncMode

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PYFOLDERSYNC_CONFIG"


def default_config_path() -> Path:
    """Location of the sync pair document.

    ``$PYFOLDERSYNC_CONFIG`` overrides the default
    ``~/.config/pyfoldersync/sync_pairs.json``.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "pyfoldersync" / "sync_pairs.json"


@dataclass(frozen=True)
class SyncPairConfig:
    """A stored pair of folders to keep in sync."""

    id: int
    source: Optional[str] = None
    source_label: Optional[str] = None
    dest: Optional[str] = None
    dest_label: Optional[str] = None
    sync_mode: SyncMode = SyncMode.TWO_WAY

    @property
    def display_name(self) -> str:
        source = self.source_label or self.source or "?"
        dest = self.dest_label or self.dest or "?"
        arrow = "<->" if self.sync_mode.is_two_way else "->"
        return f"{source} {arrow} {dest}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncPairConfig":
        """Create a sync pair from its JSON object.

        Raises:
            ValueError: If ``id`` is missing or a field has the wrong type
        """
        if "id" not in data:
            raise ValueError("Missing required fields: id")
        try:
            pair_id = int(data["id"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid id: {data['id']!r}") from e

        for key in ("source", "sourceLabel", "dest", "destLabel", "syncMode"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Field {key} must be a string, got {value!r}")

        mode = data.get("syncMode")
        return cls(
            id=pair_id,
            source=data.get("source"),
            source_label=data.get("sourceLabel"),
            dest=data.get("dest"),
            dest_label=data.get("destLabel"),
            sync_mode=SyncMode.from_string(mode) if mode else SyncMode.TWO_WAY,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert sync pair to its JSON object."""
        return {
            "id": self.id,
            "source": self.source,
            "sourceLabel": self.source_label,
            "dest": self.dest,
            "destLabel": self.dest_label,
            "syncMode": self.sync_mode.value,
        }


class SyncPairRepository:
    """Loads and saves the list of sync pairs."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """Initialize repository.

        Args:
            path: JSON document location (defaults to ``default_config_path()``)
        """
        self.path = Path(path) if path is not None else default_config_path()

    def load(self) -> list[SyncPairConfig]:
        """Load all sync pairs.

        Returns:
            Sync pairs in stored order (empty if the document does not exist)

        Raises:
            SyncConfigError: If the document is not a valid list of pairs
        """
        if not self.path.exists():
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError as e:
            raise SyncConfigError(f"Invalid JSON in {self.path}: {e}") from e
        except OSError as e:
            raise SyncConfigError(f"Cannot read {self.path}: {e}") from e

        if not isinstance(data, list):
            raise SyncConfigError(f"Expected a list of sync pairs in {self.path}")

        pairs = []
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                raise SyncConfigError(f"Sync pair at index {index} must be an object")
            try:
                pairs.append(SyncPairConfig.from_dict(item))
            except ValueError as e:
                raise SyncConfigError(f"Invalid sync pair at index {index}: {e}") from e
        return pairs

    def save(self, pairs: list[SyncPairConfig]) -> None:
        """Write all sync pairs, replacing the stored document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps([pair.to_dict() for pair in pairs], indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(self.path)
        logger.debug("Saved %d sync pair(s) to %s", len(pairs), self.path)

    def get(self, pair_id: int) -> Optional[SyncPairConfig]:
        for pair in self.load():
            if pair.id == pair_id:
                return pair
        return None

    def add(
        self,
        source: Optional[str] = None,
        dest: Optional[str] = None,
        source_label: Optional[str] = None,
        dest_label: Optional[str] = None,
        sync_mode: SyncMode = SyncMode.TWO_WAY,
    ) -> SyncPairConfig:
        """Append a new sync pair with the next free id."""
        pairs = self.load()
        new_id = max((pair.id for pair in pairs), default=0) + 1
        pair = SyncPairConfig(
            id=new_id,
            source=source,
            source_label=source_label,
            dest=dest,
            dest_label=dest_label,
            sync_mode=sync_mode,
        )
        pairs.append(pair)
        self.save(pairs)
        return pair

    def update(self, pair_id: int, **changes: Any) -> SyncPairConfig:
        """Change fields of an existing sync pair.

        Raises:
            KeyError: If no pair has this id
        """
        pairs = self.load()
        for index, pair in enumerate(pairs):
            if pair.id == pair_id:
                updated = replace(pair, **changes)
                pairs[index] = updated
                self.save(pairs)
                return updated
        raise KeyError(pair_id)

    def remove(self, pair_id: int) -> bool:
        """Remove a sync pair.

        Returns:
            True if a pair was removed
        """
        pairs = self.load()
        remaining = [pair for pair in pairs if pair.id != pair_id]
        if len(remaining) == len(pairs):
            return False
        self.save(remaining)
        return True
