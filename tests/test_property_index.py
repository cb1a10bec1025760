"""Tests for the per-note property index."""
import pytest

from notekeeper.exceptions import CapacityError, ErrorCode, PropertyNotFoundError
from notekeeper.storage.property_index import PropertyIndex


def assert_consistent(index: PropertyIndex, note_id: int) -> None:
    """Every listed key exists and sits at its recorded position."""
    keys = index.keys(note_id)
    assert len(keys) == len(set(keys))
    for i, key in enumerate(keys):
        assert index.has(note_id, key)
        assert index.position(note_id, key) == i


class TestPropertyIndexSet:
    """Tests for adding and overwriting properties."""

    def test_set_new_key_appends(self):
        index = PropertyIndex()
        assert index.set(0, "priority", "high") is True
        assert index.set(0, "category", "work") is True
        assert index.keys(0) == ["priority", "category"]
        assert index.get(0, "priority") == "high"
        assert index.position(0, "category") == 1
        assert_consistent(index, 0)

    def test_overwrite_keeps_key_count(self):
        """Re-setting an existing key only changes its value."""
        index = PropertyIndex()
        index.set(0, "priority", "low")
        assert index.set(0, "priority", "high") is False
        assert index.keys(0) == ["priority"]
        assert index.get(0, "priority") == "high"

    def test_capacity_enforced_for_new_keys_only(self):
        index = PropertyIndex(max_properties=3)
        for i in range(3):
            index.set(0, f"k{i}", "v")
        with pytest.raises(CapacityError) as exc_info:
            index.set(0, "k3", "v")
        assert exc_info.value.code == ErrorCode.TOO_MANY_PROPERTIES
        assert index.count(0) == 3
        # Overwriting at capacity is still allowed
        assert index.set(0, "k1", "changed") is False
        assert index.get(0, "k1") == "changed"

    def test_notes_are_independent(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        index.set(1, "a", "2")
        assert index.get(0, "a") == "1"
        assert index.get(1, "a") == "2"


class TestPropertyIndexDelete:
    """Tests for swap-remove deletion."""

    def test_delete_middle_key_moves_last_into_slot(self):
        index = PropertyIndex()
        for key in ("a", "b", "c", "d"):
            index.set(0, key, key.upper())
        index.delete(0, "b")
        assert index.keys(0) == ["a", "d", "c"]
        assert index.position(0, "d") == 1
        assert not index.has(0, "b")
        assert index.get(0, "b") == ""
        assert index.position(0, "b") is None
        assert_consistent(index, 0)

    def test_delete_last_key(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        index.set(0, "b", "2")
        index.delete(0, "b")
        assert index.keys(0) == ["a"]
        assert_consistent(index, 0)

    def test_delete_only_key(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        index.delete(0, "a")
        assert index.keys(0) == []
        assert index.count(0) == 0

    def test_delete_leaves_other_values(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        index.set(0, "b", "2")
        index.set(0, "c", "3")
        index.delete(0, "a")
        assert dict(index.items(0)) == {"b": "2", "c": "3"}

    def test_delete_missing_key_raises(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        with pytest.raises(PropertyNotFoundError):
            index.delete(0, "missing")
        with pytest.raises(PropertyNotFoundError):
            index.delete(5, "a")

    def test_delete_then_readd(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        index.set(0, "b", "2")
        index.delete(0, "a")
        index.set(0, "a", "3")
        assert index.keys(0) == ["b", "a"]
        assert_consistent(index, 0)

    def test_interleaved_operations_stay_consistent(self):
        index = PropertyIndex(max_properties=8)
        for i in range(8):
            index.set(0, f"k{i}", str(i))
        for key in ("k0", "k7", "k3", "k5"):
            index.delete(0, key)
            assert_consistent(index, 0)
        index.set(0, "new", "x")
        assert_consistent(index, 0)
        assert set(index.keys(0)) == {"k1", "k2", "k4", "k6", "new"}


class TestPropertyIndexQueries:
    """Tests for read helpers."""

    def test_get_absent_returns_empty_string(self):
        index = PropertyIndex()
        assert index.get(0, "anything") == ""

    def test_purge_clears_everything(self):
        index = PropertyIndex()
        index.set(0, "a", "1")
        index.set(0, "b", "2")
        assert index.purge(0) == 2
        assert index.keys(0) == []
        assert not index.has(0, "a")
        assert index.get(0, "a") == ""
        assert index.purge(0) == 0
