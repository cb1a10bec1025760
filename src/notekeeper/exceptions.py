"""Custom exceptions for the note store.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every error is raised before any
state is mutated, so a failed call never leaves a note half-updated.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_DELETED = 1002

    # Authorization errors (2xxx)
    NOT_OWNER = 2001

    # Property errors (3xxx)
    PROPERTY_NOT_FOUND = 3001
    TOO_MANY_PROPERTIES = 3002
    TOO_MANY_TAGS = 3003

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    INVALID_LENGTH = 7002
    INVALID_LIMIT = 7003
    INVALID_PRIORITY = 7004


class NotekeeperError(Exception):
    """Base exception for all note store errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class ValidationError(NotekeeperError):
    """Raised when a string length or page limit is out of bounds."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class NoteNotFoundError(NotekeeperError):
    """Raised when a note id was never allocated."""

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID {note_id} not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class NoteDeletedError(NotekeeperError):
    """Raised when a note id refers to a tombstone."""

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID {note_id} has been deleted",
            code=ErrorCode.NOTE_DELETED,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class AuthorizationError(NotekeeperError):
    """Raised when the caller does not own the note it is mutating."""

    def __init__(self, note_id: int, owner: str):
        super().__init__(
            f"Owner '{owner}' is not allowed to modify note {note_id}",
            code=ErrorCode.NOT_OWNER,
            details={"note_id": note_id, "owner": owner}
        )
        self.note_id = note_id
        self.owner = owner


class CapacityError(NotekeeperError):
    """Raised when a note already holds the maximum number of entries."""

    def __init__(
        self,
        message: str,
        note_id: int,
        limit: int,
        code: ErrorCode = ErrorCode.TOO_MANY_PROPERTIES
    ):
        super().__init__(
            message,
            code=code,
            details={"note_id": note_id, "limit": limit}
        )
        self.note_id = note_id
        self.limit = limit


class PropertyNotFoundError(NotekeeperError):
    """Raised when deleting a property key the note does not have."""

    def __init__(self, note_id: int, key: str):
        super().__init__(
            f"Property '{key}' not found on note {note_id}",
            code=ErrorCode.PROPERTY_NOT_FOUND,
            details={"note_id": note_id, "key": key}
        )
        self.note_id = note_id
        self.key = key


class ConfigurationError(NotekeeperError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
