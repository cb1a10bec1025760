"""Service layer for note store operations."""

import logging
from typing import List, Optional, Tuple, Union

from notekeeper.config import NotekeeperConfig
from notekeeper.events import EventHandler, EventRegistry
from notekeeper.models.schema import (
    Note,
    NoteEventType,
    Page,
    Priority,
    PropertyStatistics,
)
from notekeeper.observability import traced
from notekeeper.services.filter_service import FilterService
from notekeeper.services.pagination import paginate, validate_limit
from notekeeper.services.statistics_service import StatisticsService
from notekeeper.storage.note_repository import NoteRepository, validate_priority

logger = logging.getLogger(__name__)

# Version of the storage layout (2 added tags and priority)
SCHEMA_VERSION = 2


class NoteService:
    """Service for managing notes, their properties and statistics.

    Every operation takes the already-authenticated owner identity as an
    explicit argument; mutations are refused for notes the owner does not own.
    """

    def __init__(
        self,
        repository: Optional[NoteRepository] = None,
        settings: Optional[NotekeeperConfig] = None,
    ):
        """Initialize the service.

        Args:
            repository: Note storage backend. Created with defaults if None.
            settings: Limits for a repository created here. Ignored when a
                repository is given.
        """
        self.repository = repository or NoteRepository(settings=settings)
        self.filters = FilterService(self.repository)
        self.statistics = StatisticsService(self.repository)

    def initialize(self) -> None:
        """Initialize the service."""
        logger.info(f"NoteService ready (schema version {SCHEMA_VERSION})")

    @property
    def events(self) -> EventRegistry:
        return self.repository.events

    def subscribe(self, handler: EventHandler, *event_types: NoteEventType) -> None:
        """Register an observer for note lifecycle events."""
        self.events.subscribe(handler, *event_types)

    def get_version(self) -> int:
        return SCHEMA_VERSION

    # Notes

    @traced("create_note")
    def create_note(self, owner: str, title: str, content: str = "") -> int:
        """Create a note and return its id."""
        return self.repository.create(owner, title, content)

    def get_note(self, note_id: int) -> Note:
        return self.repository.get(note_id)

    def update_note(self, note_id: int, owner: str, title: str, content: str) -> None:
        self.repository.update(note_id, owner, title, content)

    @traced("delete_note")
    def delete_note(self, note_id: int, owner: str) -> None:
        self.repository.delete(note_id, owner)

    @traced("list_owner_notes")
    def list_owner_notes(self, owner: str, offset: int = 0, limit: int = 10) -> Page[Note]:
        """Return one page of the owner's notes in owner-index order."""
        max_limit = self.repository.settings.max_page_limit
        validate_limit(limit, max_limit)
        page = paginate(self.repository.list_owner_ids(owner), offset, limit, max_limit)
        return Page(
            items=self.repository.get_many(page.items),
            next_offset=page.next_offset,
            has_more=page.has_more,
        )

    def total_note_count(self) -> int:
        """Number of notes ever created, deleted ones included."""
        return self.repository.total_count()

    def owner_note_count(self, owner: str) -> int:
        """Number of live notes the owner has."""
        return self.repository.owner_count(owner)

    # Properties

    @traced("set_property")
    def set_property(self, note_id: int, owner: str, key: str, value: str) -> bool:
        return self.repository.set_property(note_id, owner, key, value)

    def delete_property(self, note_id: int, owner: str, key: str) -> None:
        self.repository.delete_property(note_id, owner, key)

    def get_property(self, note_id: int, key: str) -> str:
        return self.repository.get_property(note_id, key)

    def get_all_properties(self, note_id: int) -> Tuple[List[str], List[str]]:
        return self.repository.get_all_properties(note_id)

    @traced("filter_notes")
    def filter_notes(
        self,
        owner: str,
        key: str = "",
        value: str = "",
        offset: int = 0,
        limit: int = 10,
    ) -> Page[Note]:
        """Return one page of the owner's notes matching a key/value predicate."""
        return self.filters.filter_notes(owner, key, value, offset, limit)

    @traced("top_property_statistics")
    def top_property_statistics(self, owner: str, max_results: int = 0) -> PropertyStatistics:
        return self.statistics.top_property_statistics(owner, max_results)

    def property_pairs_count(self, owner: str) -> int:
        return self.statistics.property_pairs_count(owner)

    # Tags and priority

    def add_tag(self, note_id: int, owner: str, tag: str) -> bool:
        return self.repository.add_tag(note_id, owner, tag)

    def get_tags(self, note_id: int) -> List[str]:
        return self.repository.get_tags(note_id)

    def set_priority(self, note_id: int, owner: str, priority: Union[Priority, int]) -> None:
        self.repository.set_priority(note_id, owner, priority)

    def get_priority(self, note_id: int) -> Priority:
        return self.repository.get_priority(note_id)

    @traced("list_notes_by_priority")
    def list_notes_by_priority(
        self,
        owner: str,
        priority: Union[Priority, int],
        offset: int = 0,
        limit: int = 10,
    ) -> Page[Note]:
        """Return one page of the owner's notes with the given priority."""
        level = validate_priority(priority)
        max_limit = self.repository.settings.max_page_limit
        validate_limit(limit, max_limit)
        ids = [
            note_id
            for note_id, note_level in self.repository.iter_owner_priorities(owner)
            if note_level == level
        ]
        page = paginate(ids, offset, limit, max_limit)
        return Page(
            items=self.repository.get_many(page.items),
            next_offset=page.next_offset,
            has_more=page.has_more,
        )
