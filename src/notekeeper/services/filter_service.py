"""Predicate filtering over an owner's notes."""
import logging
from typing import List, Tuple

from notekeeper.models.schema import Note, Page
from notekeeper.services.pagination import paginate, validate_limit
from notekeeper.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


def matches(properties: List[Tuple[str, str]], key: str, value: str) -> bool:
    """Return True if a note's properties satisfy a key/value predicate.

    An empty key or value means "any". With both set, the key must exist and
    hold exactly that value. With only a value, any property holding it
    matches, and the note counts once however many keys hold it.
    """
    if not key and not value:
        return True
    for k, v in properties:
        if key and k != key:
            continue
        if not value or v == value:
            return True
        if key:
            # Keys are unique per note, so there is nothing left to check
            return False
    return False


class FilterService:
    """Finds an owner's notes by property and pages through the matches."""

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def matching_ids(self, owner: str, key: str = "", value: str = "") -> List[int]:
        """Return every matching note id in owner-index order."""
        return [
            note_id
            for note_id, properties in self.repository.iter_owner_properties(owner)
            if matches(properties, key, value)
        ]

    def filter_notes(
        self,
        owner: str,
        key: str = "",
        value: str = "",
        offset: int = 0,
        limit: int = 10,
    ) -> Page[Note]:
        """Return one page of the owner's notes that match the predicate.

        The full match set is built first, independent of offset and limit,
        and only then windowed.
        """
        max_limit = self.repository.settings.max_page_limit
        validate_limit(limit, max_limit)
        ids = self.matching_ids(owner, key, value)
        page = paginate(ids, offset, limit, max_limit)
        logger.debug(
            f"Filter key={key!r} value={value!r} for {owner}: "
            f"{len(ids)} matches, returning {len(page)}"
        )
        return Page(
            items=self.repository.get_many(page.items),
            next_offset=page.next_offset,
            has_more=page.has_more,
        )
