"""Per-note property dictionary with O(1) key removal.

Each note owns an ordered key list, a key -> value map and a key -> position
map. A key exists exactly when it is in the key list, and its position always
equals its index in that list. Removal moves the last key into the vacated
slot, so key order is not stable across deletions.

The index does no locking and no ownership checks; NoteRepository holds the
per-note lock around every call.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from notekeeper.exceptions import CapacityError, ErrorCode, PropertyNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class _PropertySlot:
    keys: List[str] = field(default_factory=list)
    values: Dict[str, str] = field(default_factory=dict)
    positions: Dict[str, int] = field(default_factory=dict)


class PropertyIndex:
    """Key/value properties for every note in a repository."""

    def __init__(self, max_properties: int = 32):
        self.max_properties = max_properties
        self._slots: Dict[int, _PropertySlot] = {}

    def _slot(self, note_id: int) -> _PropertySlot:
        slot = self._slots.get(note_id)
        if slot is None:
            slot = self._slots.setdefault(note_id, _PropertySlot())
        return slot

    def has(self, note_id: int, key: str) -> bool:
        """Return True if the note has a property with this key."""
        slot = self._slots.get(note_id)
        return slot is not None and key in slot.positions

    def set(self, note_id: int, key: str, value: str) -> bool:
        """Set a property, appending the key if it is new.

        Returns:
            True if the key was added, False if an existing value was overwritten.

        Raises:
            CapacityError: If the key is new and the note is already full.
        """
        slot = self._slot(note_id)
        if key in slot.positions:
            slot.values[key] = value
            return False

        if len(slot.keys) >= self.max_properties:
            raise CapacityError(
                f"Note {note_id} already has {self.max_properties} properties",
                note_id=note_id,
                limit=self.max_properties,
                code=ErrorCode.TOO_MANY_PROPERTIES,
            )
        slot.positions[key] = len(slot.keys)
        slot.keys.append(key)
        slot.values[key] = value
        return True

    def delete(self, note_id: int, key: str) -> None:
        """Remove a property by swapping the last key into its slot.

        Raises:
            PropertyNotFoundError: If the note has no such key.
        """
        slot = self._slots.get(note_id)
        if slot is None or key not in slot.positions:
            raise PropertyNotFoundError(note_id, key)

        index = slot.positions[key]
        last = len(slot.keys) - 1
        if index != last:
            moved = slot.keys[last]
            slot.keys[index] = moved
            slot.positions[moved] = index
        slot.keys.pop()
        del slot.positions[key]
        del slot.values[key]

    def get(self, note_id: int, key: str) -> str:
        """Return the value for a key, or an empty string if absent."""
        slot = self._slots.get(note_id)
        if slot is None:
            return ""
        return slot.values.get(key, "")

    def position(self, note_id: int, key: str) -> Optional[int]:
        """Return the current index of a key in the note's key list."""
        slot = self._slots.get(note_id)
        if slot is None:
            return None
        return slot.positions.get(key)

    def keys(self, note_id: int) -> List[str]:
        """Return a copy of the note's keys in their current order."""
        slot = self._slots.get(note_id)
        return list(slot.keys) if slot else []

    def items(self, note_id: int) -> List[Tuple[str, str]]:
        """Return (key, value) pairs in current key order."""
        slot = self._slots.get(note_id)
        if slot is None:
            return []
        return [(k, slot.values[k]) for k in slot.keys]

    def count(self, note_id: int) -> int:
        slot = self._slots.get(note_id)
        return len(slot.keys) if slot else 0

    def purge(self, note_id: int) -> int:
        """Drop every property of a note.

        Returns:
            Number of properties removed.
        """
        slot = self._slots.pop(note_id, None)
        if slot is None:
            return 0
        removed = len(slot.keys)
        if removed:
            logger.debug(f"Purged {removed} properties from note {note_id}")
        return removed
