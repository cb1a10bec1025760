"""Repository for note storage and retrieval.

Notes live in an append-only arena indexed by their id, so ids are allocated
monotonically and never reused: deleting a note leaves a tombstone in its
slot. Each owner has an index of currently active ids; deletion removes an id
from it by swapping the owner's last id into the vacated position.

Locking:
    - a reentrant lock per note guards the note and its property entries
    - a lock per owner guards that owner's index
    - a short allocation lock guards appends to the arena
    Note locks are always taken before owner locks, and no operation holds
    locks belonging to two owners. A new note's lock is taken under the
    allocation lock and held until the id is in the owner index, so no other
    thread sees a live note missing from its owner's index.
"""
import logging
import threading
import weakref
from typing import Dict, Iterator, List, Optional, Tuple, Union

from notekeeper.config import NotekeeperConfig, config
from notekeeper.events import EventRegistry
from notekeeper.exceptions import (
    AuthorizationError,
    CapacityError,
    ErrorCode,
    NoteDeletedError,
    NoteNotFoundError,
    ValidationError,
)
from notekeeper.models.schema import Note, NoteEventType, Priority, utc_now
from notekeeper.storage.property_index import PropertyIndex

logger = logging.getLogger(__name__)


def validate_length(field: str, value: str, min_length: int, max_length: int) -> None:
    """Check that a string's length lies in [min_length, max_length].

    Raises:
        ValidationError: With code INVALID_LENGTH if it does not.
    """
    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be a string",
            field=field,
            value=value,
            code=ErrorCode.INVALID_LENGTH,
        )
    if not min_length <= len(value) <= max_length:
        raise ValidationError(
            f"{field} length must be between {min_length} and {max_length} "
            f"characters (got {len(value)})",
            field=field,
            value=value,
            code=ErrorCode.INVALID_LENGTH,
        )


def validate_priority(priority: Union[Priority, int]) -> Priority:
    """Convert an int or Priority to a Priority.

    Raises:
        ValidationError: With code INVALID_PRIORITY for anything else.
    """
    if not isinstance(priority, bool):
        try:
            return Priority(priority)
        except ValueError:
            pass
    raise ValidationError(
        f"Invalid priority: {priority}",
        field="priority",
        value=priority,
        code=ErrorCode.INVALID_PRIORITY,
    )


class NoteRepository:
    """In-process store of notes, owner indexes and note properties."""

    def __init__(
        self,
        settings: Optional[NotekeeperConfig] = None,
        events: Optional[EventRegistry] = None,
    ):
        """Initialize the repository.

        Args:
            settings: Limits to enforce. Defaults to the global config.
            events: Registry notified after each mutation. A private one is
                created if None.
        """
        self.settings = settings or config
        self.events = events or EventRegistry()

        self._notes: List[Note] = []
        self.properties = PropertyIndex(max_properties=self.settings.max_properties)

        # owner -> active ids, and owner -> {id: index in that list}
        self._owner_index: Dict[str, List[int]] = {}
        self._owner_positions: Dict[str, Dict[int, int]] = {}

        self._alloc_lock = threading.Lock()

        # Per-note and per-owner locks (WeakValueDictionary so locks are
        # garbage collected when no longer held by any thread)
        self._note_locks: weakref.WeakValueDictionary[int, threading.RLock] = (
            weakref.WeakValueDictionary()
        )
        self._note_locks_lock = threading.Lock()
        self._owner_locks: weakref.WeakValueDictionary[str, threading.RLock] = (
            weakref.WeakValueDictionary()
        )
        self._owner_locks_lock = threading.Lock()

        logger.info(
            f"NoteRepository initialized: max_properties={self.settings.max_properties}, "
            f"max_title_length={self.settings.max_title_length}, "
            f"max_content_length={self.settings.max_content_length}"
        )

    # ------------------------------------------------------------------ #
    # locks
    # ------------------------------------------------------------------ #
    def _get_note_lock(self, note_id: int) -> threading.RLock:
        """Get or create the lock for a specific note."""
        with self._note_locks_lock:
            lock = self._note_locks.get(note_id)
            if lock is None:
                lock = threading.RLock()
                self._note_locks[note_id] = lock
            return lock

    def _get_owner_lock(self, owner: str) -> threading.RLock:
        """Get or create the lock for an owner's index."""
        with self._owner_locks_lock:
            lock = self._owner_locks.get(owner)
            if lock is None:
                lock = threading.RLock()
                self._owner_locks[owner] = lock
            return lock

    # ------------------------------------------------------------------ #
    # lookups (callers hold the note lock)
    # ------------------------------------------------------------------ #
    def _load(self, note_id: int) -> Note:
        if not isinstance(note_id, int) or note_id < 0 or note_id >= len(self._notes):
            raise NoteNotFoundError(note_id)
        note = self._notes[note_id]
        if not note.is_valid:
            raise NoteDeletedError(note_id)
        return note

    def _load_owned(self, note_id: int, owner: str) -> Note:
        note = self._load(note_id)
        if note.owner != owner:
            raise AuthorizationError(note_id, owner)
        return note

    def _snapshot(self, note: Note) -> Note:
        return note.model_copy(
            update={"property_keys": self.properties.keys(note.id)}, deep=True
        )

    @staticmethod
    def _validate_owner(owner: str) -> None:
        if not isinstance(owner, str) or not owner:
            raise ValidationError("owner cannot be empty", field="owner")

    def _validate_note_fields(self, title: str, content: str) -> None:
        validate_length("title", title, 1, self.settings.max_title_length)
        validate_length("content", content, 0, self.settings.max_content_length)

    # ------------------------------------------------------------------ #
    # note lifecycle
    # ------------------------------------------------------------------ #
    def create(self, owner: str, title: str, content: str) -> int:
        """Create a note and return its id."""
        self._validate_owner(owner)
        self._validate_note_fields(title, content)

        now = utc_now()
        with self._alloc_lock:
            note_id = len(self._notes)
            note = Note(
                id=note_id,
                owner=owner,
                title=title,
                content=content,
                created_at=now,
                updated_at=now,
            )
            # Hold the new note's lock until it is in the owner index
            note_lock = self._get_note_lock(note_id)
            note_lock.acquire()
            self._notes.append(note)

        try:
            with self._get_owner_lock(owner):
                ids = self._owner_index.setdefault(owner, [])
                self._owner_positions.setdefault(owner, {})[note_id] = len(ids)
                ids.append(note_id)
        finally:
            note_lock.release()

        logger.debug(f"Created note {note_id} for owner {owner}")
        self.events.emit(NoteEventType.CREATED, note_id, owner, timestamp=now)
        return note_id

    def get(self, note_id: int) -> Note:
        """Return a copy of a live note.

        Raises:
            NoteNotFoundError: If the id was never allocated.
            NoteDeletedError: If the note has been deleted.
        """
        with self._get_note_lock(note_id):
            return self._snapshot(self._load(note_id))

    def get_many(self, note_ids: List[int]) -> List[Note]:
        """Return copies of the given notes, skipping any deleted meanwhile."""
        notes = []
        for note_id in note_ids:
            with self._get_note_lock(note_id):
                note = self._notes[note_id]
                if note.is_valid:
                    notes.append(self._snapshot(note))
        return notes

    def update(self, note_id: int, owner: str, title: str, content: str) -> None:
        """Replace a note's title and content.

        Raises:
            NoteNotFoundError, NoteDeletedError: As for get().
            AuthorizationError: If owner does not own the note.
            ValidationError: If title or content is out of bounds.
        """
        with self._get_note_lock(note_id):
            note = self._load_owned(note_id, owner)
            self._validate_note_fields(title, content)
            now = utc_now()
            note.title = title
            note.content = content
            note.updated_at = now

        self.events.emit(NoteEventType.UPDATED, note_id, owner, timestamp=now)

    def delete(self, note_id: int, owner: str) -> None:
        """Tombstone a note, dropping its properties and its owner index entry."""
        with self._get_note_lock(note_id):
            note = self._load_owned(note_id, owner)

            with self._get_owner_lock(owner):
                ids = self._owner_index[owner]
                positions = self._owner_positions[owner]
                index = positions.pop(note_id)
                last_id = ids.pop()
                if last_id != note_id:
                    ids[index] = last_id
                    positions[last_id] = index

            self.properties.purge(note_id)
            now = utc_now()
            note.tags = []
            note.is_valid = False
            note.updated_at = now

        logger.debug(f"Deleted note {note_id} for owner {owner}")
        self.events.emit(NoteEventType.DELETED, note_id, owner, timestamp=now)

    def list_owner_ids(self, owner: str) -> List[int]:
        """Return the owner's active note ids in owner-index order."""
        with self._get_owner_lock(owner):
            return list(self._owner_index.get(owner, ()))

    def total_count(self) -> int:
        """Number of ids ever allocated, tombstones included."""
        return len(self._notes)

    def owner_count(self, owner: str) -> int:
        """Number of active notes the owner has."""
        with self._get_owner_lock(owner):
            return len(self._owner_index.get(owner, ()))

    # ------------------------------------------------------------------ #
    # properties
    # ------------------------------------------------------------------ #
    def set_property(self, note_id: int, owner: str, key: str, value: str) -> bool:
        """Set a property on an owned note.

        Returns:
            True if the key was new, False if its value was overwritten.

        Raises:
            CapacityError: If adding a new key would exceed the per-note cap.
        """
        with self._get_note_lock(note_id):
            self._load_owned(note_id, owner)
            validate_length("key", key, 1, self.settings.max_key_length)
            validate_length("value", value, 1, self.settings.max_value_length)
            added = self.properties.set(note_id, key, value)

        self.events.emit(NoteEventType.UPDATED, note_id, owner)
        return added

    def delete_property(self, note_id: int, owner: str, key: str) -> None:
        """Remove a property from an owned note.

        Raises:
            PropertyNotFoundError: If the note has no such key.
        """
        with self._get_note_lock(note_id):
            self._load_owned(note_id, owner)
            self.properties.delete(note_id, key)

        self.events.emit(NoteEventType.UPDATED, note_id, owner)

    def get_property(self, note_id: int, key: str) -> str:
        """Return a property value, or an empty string if the key is absent."""
        with self._get_note_lock(note_id):
            self._load(note_id)
            return self.properties.get(note_id, key)

    def get_all_properties(self, note_id: int) -> Tuple[List[str], List[str]]:
        """Return the note's keys in current order with their values."""
        with self._get_note_lock(note_id):
            self._load(note_id)
            items = self.properties.items(note_id)
        return [k for k, _ in items], [v for _, v in items]

    def iter_owner_properties(self, owner: str) -> Iterator[Tuple[int, List[Tuple[str, str]]]]:
        """Yield (note id, properties) for each active note of the owner.

        Notes come in owner-index order; each note's properties are read under
        its lock. Notes deleted after the index was read are skipped.
        """
        for note_id in self.list_owner_ids(owner):
            with self._get_note_lock(note_id):
                if not self._notes[note_id].is_valid:
                    continue
                items = self.properties.items(note_id)
            yield note_id, items

    # ------------------------------------------------------------------ #
    # tags and priority
    # ------------------------------------------------------------------ #
    def add_tag(self, note_id: int, owner: str, tag: str) -> bool:
        """Add a tag to an owned note.

        Returns:
            True if the tag was added, False if the note already had it.
        """
        with self._get_note_lock(note_id):
            note = self._load_owned(note_id, owner)
            validate_length("tag", tag, 1, self.settings.max_key_length)
            if tag in note.tags:
                return False
            if len(note.tags) >= self.settings.max_tags:
                raise CapacityError(
                    f"Note {note_id} already has {self.settings.max_tags} tags",
                    note_id=note_id,
                    limit=self.settings.max_tags,
                    code=ErrorCode.TOO_MANY_TAGS,
                )
            note.tags = note.tags + [tag]

        self.events.emit(NoteEventType.UPDATED, note_id, owner)
        return True

    def get_tags(self, note_id: int) -> List[str]:
        with self._get_note_lock(note_id):
            return list(self._load(note_id).tags)

    def set_priority(
        self, note_id: int, owner: str, priority: Union[Priority, int]
    ) -> None:
        """Set the priority of an owned note."""
        with self._get_note_lock(note_id):
            note = self._load_owned(note_id, owner)
            note.priority = validate_priority(priority)

        self.events.emit(NoteEventType.UPDATED, note_id, owner)

    def get_priority(self, note_id: int) -> Priority:
        with self._get_note_lock(note_id):
            return self._load(note_id).priority

    def iter_owner_priorities(self, owner: str) -> Iterator[Tuple[int, Priority]]:
        """Yield (note id, priority) for each active note of the owner."""
        for note_id in self.list_owner_ids(owner):
            with self._get_note_lock(note_id):
                note = self._notes[note_id]
                if not note.is_valid:
                    continue
                priority = note.priority
            yield note_id, priority
