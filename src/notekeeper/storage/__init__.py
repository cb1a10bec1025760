"""Storage layer for the note store."""

from notekeeper.storage.note_repository import NoteRepository
from notekeeper.storage.property_index import PropertyIndex

__all__ = [
    "NoteRepository",
    "PropertyIndex",
]
