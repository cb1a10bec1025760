"""Common test fixtures for the note store."""

import pytest

from notekeeper.config import NotekeeperConfig, config
from notekeeper.events import EventRegistry
from notekeeper.observability import metrics
from notekeeper.services.note_service import NoteService
from notekeeper.storage.note_repository import NoteRepository


@pytest.fixture
def test_config():
    """Config with the default limits, independent of the environment."""
    return NotekeeperConfig(
        max_title_length=256,
        max_content_length=20480,
        max_key_length=32,
        max_value_length=2048,
        max_properties=32,
        max_tags=32,
        max_page_limit=20,
    )


@pytest.fixture(autouse=True)
def _default_page_limit(monkeypatch):
    """Keep module-level helpers on the default page limit."""
    monkeypatch.setattr(config, "max_page_limit", 20)


@pytest.fixture
def events():
    return EventRegistry()


@pytest.fixture
def recorded_events(events):
    """List that receives every event emitted through the events fixture."""
    received = []
    events.subscribe(received.append)
    return received


@pytest.fixture
def note_repository(test_config, events):
    """Create a test note repository."""
    yield NoteRepository(settings=test_config, events=events)


@pytest.fixture
def note_service(note_repository):
    """Create a test NoteService."""
    yield NoteService(repository=note_repository)


@pytest.fixture
def reset_metrics():
    metrics.reset()
    yield metrics
    metrics.reset()
