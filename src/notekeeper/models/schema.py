"""Data models for the note store."""

import datetime
from dataclasses import dataclass, field
from datetime import timezone
from enum import Enum, IntEnum
from typing import Dict, Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


class Priority(IntEnum):
    """Priority levels a note can be assigned."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2


class Note(BaseModel):
    """A note owned by a single caller.

    Length bounds are enforced by the repository before a note is created or
    mutated, so the model itself only carries the data.
    """

    id: int = Field(..., ge=0, description="Monotonic ID, never reused")
    owner: str = Field(..., description="Resolved identity of the owner")
    title: str = Field(..., description="Title of the note")
    content: str = Field(default="", description="Body of the note")
    is_valid: bool = Field(default=True, description="False once the note is deleted")
    property_keys: List[str] = Field(
        default_factory=list,
        description="Property keys in their current order",
    )
    tags: List[str] = Field(default_factory=list, description="Tags in insertion order")
    priority: Priority = Field(default=Priority.LOW, description="Priority level")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last modified (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}


@dataclass(frozen=True)
class Page(Generic[T]):
    """One window of an ordered result set.

    Attributes:
        items: The items inside the window.
        next_offset: Offset to request the following window with.
        has_more: Whether items remain past this window.
    """

    items: List[T]
    next_offset: int
    has_more: bool

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class PropertyStatistics:
    """Distinct (key, value) pairs ranked by how many times they occur.

    The three lists are parallel: ``keys[i]``, ``values[i]`` and ``counts[i]``
    describe one pair, and ``counts`` is non-increasing.
    """

    keys: List[str] = field(default_factory=list)
    values: List[str] = field(default_factory=list)
    counts: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.keys)

    def to_dict(self) -> List[Dict[str, object]]:
        """Convert to a list of ``{"key", "value", "count"}`` rows."""
        return [
            {"key": k, "value": v, "count": c}
            for k, v, c in zip(self.keys, self.values, self.counts)
        ]


class NoteEventType(str, Enum):
    """Kinds of mutation a note can go through."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class NoteEvent:
    """Notification emitted after a mutation has been applied."""

    event_type: NoteEventType
    note_id: int
    owner: str
    timestamp: datetime.datetime = field(default_factory=utc_now)
