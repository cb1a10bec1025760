"""Tests for property pair statistics."""
import pytest

from notekeeper.services.statistics_service import StatisticsService


@pytest.fixture
def statistics_service(note_repository):
    return StatisticsService(note_repository)


def _note_with(repo, owner, **props):
    note_id = repo.create(owner, "Note", "")
    for key, value in props.items():
        repo.set_property(note_id, owner, key, value)
    return note_id


class TestTopPropertyStatistics:
    """Tests for ranking (key, value) pairs."""

    def test_most_common_pair_first(self, statistics_service, note_repository):
        _note_with(note_repository, "alice", priority="high", category="work")
        _note_with(note_repository, "alice", priority="high")
        _note_with(note_repository, "alice", priority="high")

        stats = statistics_service.top_property_statistics("alice", 0)
        assert (stats.keys[0], stats.values[0], stats.counts[0]) == ("priority", "high", 3)
        assert stats.counts == sorted(stats.counts, reverse=True)
        assert len(stats) == 2

    def test_ties_keep_first_seen_order(self, statistics_service, note_repository):
        _note_with(note_repository, "alice", b="1", a="1")
        _note_with(note_repository, "alice", c="1")
        _note_with(note_repository, "alice", c="1")

        stats = statistics_service.top_property_statistics("alice")
        assert list(zip(stats.keys, stats.counts)) == [("c", 2), ("b", 1), ("a", 1)]

    def test_same_key_different_values_are_distinct(self, statistics_service, note_repository):
        _note_with(note_repository, "alice", priority="high")
        _note_with(note_repository, "alice", priority="High")
        stats = statistics_service.top_property_statistics("alice")
        assert stats.values == ["high", "High"]
        assert stats.counts == [1, 1]

    def test_truncation(self, statistics_service, note_repository):
        for i in range(5):
            _note_with(note_repository, "alice", **{f"k{i}": "v"})
        assert len(statistics_service.top_property_statistics("alice", 3)) == 3
        assert len(statistics_service.top_property_statistics("alice", 10)) == 5
        assert len(statistics_service.top_property_statistics("alice", 0)) == 5

    def test_only_owner_and_live_notes_counted(self, statistics_service, note_repository):
        _note_with(note_repository, "alice", status="open")
        gone = _note_with(note_repository, "alice", status="open")
        _note_with(note_repository, "bob", status="open")
        note_repository.delete(gone, "alice")

        stats = statistics_service.top_property_statistics("alice")
        assert stats.counts == [1]

    def test_empty_owner(self, statistics_service):
        stats = statistics_service.top_property_statistics("nobody", 5)
        assert len(stats) == 0
        assert stats.to_dict() == []

    def test_reflects_property_deletes(self, statistics_service, note_repository):
        note_id = _note_with(note_repository, "alice", a="1", b="2")
        note_repository.delete_property(note_id, "alice", "a")
        stats = statistics_service.top_property_statistics("alice")
        assert stats.to_dict() == [{"key": "b", "value": "2", "count": 1}]


class TestPropertyPairsCount:
    """Tests for the distinct pair count."""

    def test_matches_unlimited_statistics(self, statistics_service, note_repository):
        _note_with(note_repository, "alice", priority="high", category="work")
        _note_with(note_repository, "alice", priority="high", category="home")
        assert statistics_service.property_pairs_count("alice") == 3
        assert statistics_service.property_pairs_count("alice") == len(
            statistics_service.top_property_statistics("alice", 0).keys
        )
