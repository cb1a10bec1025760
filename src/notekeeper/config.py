"""Configuration module for the note store."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from notekeeper import __version__
from notekeeper.exceptions import ConfigurationError

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config
_USER_ENV = Path.home() / ".notekeeper" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class NotekeeperConfig(BaseModel):
    """Configuration for the note store and its MCP server."""

    # Server configuration
    server_name: str = Field(default=os.getenv("NOTEKEEPER_SERVER_NAME", "notekeeper"))
    server_version: str = Field(default=__version__)
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTEKEEPER_LOG_LEVEL", "INFO").upper()
    )
    # Directory for rotated log files; None keeps the default under ~/.notekeeper
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEKEEPER_LOG_DIR"))
            if os.getenv("NOTEKEEPER_LOG_DIR")
            else None
        )
    )

    # Record limits
    max_title_length: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_TITLE_LENGTH", 256)
    )
    max_content_length: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_CONTENT_LENGTH", 20480)
    )
    # Property limits
    max_key_length: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_KEY_LENGTH", 32)
    )
    max_value_length: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_VALUE_LENGTH", 2048)
    )
    max_properties: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_PROPERTIES", 32)
    )
    # Tags share the key length bound
    max_tags: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_TAGS", 32)
    )
    # Pagination
    max_page_limit: int = Field(
        default_factory=lambda: _env_int("NOTEKEEPER_MAX_PAGE_LIMIT", 20)
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotekeeperConfig":
        """Reject limits that would make every write or page request fail."""
        for name in (
            "max_title_length",
            "max_key_length",
            "max_value_length",
            "max_properties",
            "max_tags",
            "max_page_limit",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.max_content_length < 0:
            raise ValueError("max_content_length must be >= 0")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return self


def load_config(**overrides) -> NotekeeperConfig:
    """Build a config from the environment, applying explicit overrides.

    Raises:
        ConfigurationError: If a value from the environment or the overrides
            is out of range.
    """
    try:
        return NotekeeperConfig(**overrides)
    except (PydanticValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


# Create a global config instance
config = load_config()
