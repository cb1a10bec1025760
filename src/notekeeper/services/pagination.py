"""Offset/limit windowing shared by listing and filtering."""
from typing import Optional, Sequence, TypeVar

from notekeeper.config import config
from notekeeper.exceptions import ErrorCode, ValidationError
from notekeeper.models.schema import Page

T = TypeVar("T")


def _is_count(value) -> bool:
    # bool is an int subclass but never a valid count
    return isinstance(value, int) and not isinstance(value, bool)


def validate_limit(limit: int, max_limit: Optional[int] = None) -> None:
    """Check that a page limit lies in [1, max_limit].

    Raises:
        ValidationError: With code INVALID_LIMIT otherwise.
    """
    max_limit = max_limit or config.max_page_limit
    if not _is_count(limit) or not 1 <= limit <= max_limit:
        raise ValidationError(
            f"limit must be between 1 and {max_limit}",
            field="limit",
            value=limit,
            code=ErrorCode.INVALID_LIMIT,
        )


def paginate(
    items: Sequence[T], offset: int, limit: int, max_limit: Optional[int] = None
) -> Page[T]:
    """Cut one window out of an ordered sequence.

    An offset at or past the end yields an empty page whose next_offset is
    ``max(offset, len(items))``; otherwise the page ends at
    ``min(offset + limit, len(items))`` and ``has_more`` says whether
    anything lies beyond it.

    Raises:
        ValidationError: If limit is out of range or offset is negative.
    """
    validate_limit(limit, max_limit)
    if not _is_count(offset) or offset < 0:
        raise ValidationError(
            "offset must be a non-negative integer",
            field="offset",
            value=offset,
            code=ErrorCode.VALIDATION_FAILED,
        )

    total = len(items)
    if offset >= total:
        return Page(items=[], next_offset=max(offset, total), has_more=False)

    end = min(offset + limit, total)
    return Page(items=list(items[offset:end]), next_offset=end, has_more=end < total)
