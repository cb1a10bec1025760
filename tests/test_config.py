"""Tests for configuration loading."""
import pytest

from notekeeper.config import NotekeeperConfig, load_config
from notekeeper.exceptions import ConfigurationError, ErrorCode


class TestConfig:
    """Tests for NotekeeperConfig."""

    def test_defaults(self, monkeypatch):
        for name in (
            "NOTEKEEPER_MAX_TITLE_LENGTH",
            "NOTEKEEPER_MAX_PROPERTIES",
            "NOTEKEEPER_MAX_PAGE_LIMIT",
        ):
            monkeypatch.delenv(name, raising=False)
        cfg = NotekeeperConfig()
        assert cfg.max_title_length == 256
        assert cfg.max_properties == 32
        assert cfg.max_page_limit == 20

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("NOTEKEEPER_MAX_PROPERTIES", "8")
        monkeypatch.setenv("NOTEKEEPER_LOG_LEVEL", "debug")
        cfg = load_config()
        assert cfg.max_properties == 8
        assert cfg.log_level == "DEBUG"

    def test_rejects_zero_limit(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(max_page_limit=0)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ConfigurationError):
            load_config(log_level="LOUD")

    def test_rejects_non_numeric_environment(self, monkeypatch):
        monkeypatch.setenv("NOTEKEEPER_MAX_TAGS", "many")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_smaller_limits_apply_to_repository(self):
        from notekeeper.exceptions import CapacityError
        from notekeeper.storage.note_repository import NoteRepository

        repo = NoteRepository(settings=load_config(max_properties=2))
        note_id = repo.create("alice", "N", "")
        repo.set_property(note_id, "alice", "a", "1")
        repo.set_property(note_id, "alice", "b", "2")
        with pytest.raises(CapacityError):
            repo.set_property(note_id, "alice", "c", "3")
