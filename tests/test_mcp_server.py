# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
import json
from unittest.mock import MagicMock, patch

import pytest

from notekeeper.exceptions import AuthorizationError
from notekeeper.models.schema import Priority
from notekeeper.server.mcp_server import NotekeeperMcpServer


class TestMcpServer:
    """Tests for the NotekeeperMcpServer class, backed by a real service."""

    @pytest.fixture(autouse=True)
    def server(self, note_service):
        """Create a server whose FastMCP tool decorator captures functions."""
        self.registered_tools = {}
        self.mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                self.registered_tools[kwargs.get("name")] = func
                return func
            return tool_wrapper
        self.mock_mcp.tool = mock_tool_decorator

        with patch("notekeeper.server.mcp_server.FastMCP", return_value=self.mock_mcp):
            self.server = NotekeeperMcpServer(service=note_service)
        self.service = note_service
        yield self.server

    def call(self, name, **kwargs):
        return self.registered_tools[name](**kwargs)

    def test_all_tools_registered(self):
        expected = {
            "nk_create_note", "nk_get_note", "nk_update_note", "nk_delete_note",
            "nk_set_property", "nk_delete_property", "nk_get_property",
            "nk_get_all_properties", "nk_list_notes", "nk_filter_notes",
            "nk_property_statistics", "nk_note_counts", "nk_add_tag",
            "nk_get_tags", "nk_set_priority", "nk_notes_by_priority", "nk_metrics",
        }
        assert expected <= set(self.registered_tools)

    def test_create_and_get_note(self):
        result = self.call("nk_create_note", owner="alice", title="Hello", content="World")
        assert "successfully" in result
        assert "0" in result

        self.call("nk_set_property", note_id=0, owner="alice", key="priority", value="high")
        text = self.call("nk_get_note", note_id=0)
        assert "# Hello" in text
        assert "Owner: alice" in text
        assert "priority: high" in text
        assert "World" in text

    def test_validation_error_is_reported(self):
        result = self.call("nk_create_note", owner="alice", title="", content="")
        assert result.startswith("Error:")
        assert self.service.total_note_count() == 0

    def test_update_by_non_owner(self):
        self.call("nk_create_note", owner="alice", title="Mine")
        result = self.call("nk_update_note", note_id=0, owner="bob", title="X", content="")
        assert result.startswith("Error:")
        assert "not allowed" in result

    def test_delete_then_get(self):
        self.call("nk_create_note", owner="alice", title="Temp")
        assert "deleted" in self.call("nk_delete_note", note_id=0, owner="alice")
        assert "has been deleted" in self.call("nk_get_note", note_id=0)

    def test_property_tools(self):
        self.call("nk_create_note", owner="alice", title="N")
        assert "added to" in self.call(
            "nk_set_property", note_id=0, owner="alice", key="a", value="1"
        )
        assert "updated on" in self.call(
            "nk_set_property", note_id=0, owner="alice", key="a", value="2"
        )
        assert self.call("nk_get_property", note_id=0, key="a") == "2"
        assert json.loads(self.call("nk_get_all_properties", note_id=0)) == {"a": "2"}
        assert "removed" in self.call("nk_delete_property", note_id=0, owner="alice", key="a")
        assert "not set" in self.call("nk_get_property", note_id=0, key="a")
        assert self.call("nk_delete_property", note_id=0, owner="alice", key="a").startswith("Error:")

    def test_list_and_filter(self):
        for i in range(3):
            self.call("nk_create_note", owner="alice", title=f"N{i}")
        self.call("nk_set_property", note_id=1, owner="alice", key="kind", value="x")

        listing = self.call("nk_list_notes", owner="alice", offset=0, limit=2)
        assert "Found 2 note(s)" in listing
        assert "next offset: 2" in listing

        filtered = self.call("nk_filter_notes", owner="alice", key="kind", value="x")
        assert "[1] N1" in filtered
        assert "No more results" in filtered

        assert self.call("nk_list_notes", owner="alice", limit=21).startswith("Error:")
        assert "No notes found" in self.call("nk_list_notes", owner="nobody")

    def test_statistics_and_counts(self):
        for i in range(2):
            self.call("nk_create_note", owner="alice", title=f"N{i}")
            self.call("nk_set_property", note_id=i, owner="alice", key="priority", value="high")

        stats = self.call("nk_property_statistics", owner="alice", max_results=5)
        assert "| priority | high | 2 |" in stats
        assert "1 distinct" in stats
        counts = self.call("nk_note_counts", owner="alice")
        assert "Total notes (including deleted): 2" in counts
        assert "Notes owned by alice: 2" in counts

    def test_tags_and_priority(self):
        self.call("nk_create_note", owner="alice", title="N")
        assert "added" in self.call("nk_add_tag", note_id=0, owner="alice", tag="urgent")
        assert "already has" in self.call("nk_add_tag", note_id=0, owner="alice", tag="urgent")
        assert self.call("nk_get_tags", note_id=0) == "urgent"

        assert "high" in self.call("nk_set_priority", note_id=0, owner="alice", priority="High")
        assert self.service.get_priority(0) == Priority.HIGH
        assert "Invalid priority" in self.call(
            "nk_set_priority", note_id=0, owner="alice", priority="urgent"
        )
        assert "[0] N" in self.call("nk_notes_by_priority", owner="alice", priority="high")

    def test_metrics_tool(self):
        self.call("nk_create_note", owner="alice", title="N")
        data = json.loads(self.call("nk_metrics"))
        assert "nk_create_note" in data["operations"]

    def test_format_error_response(self):
        domain = self.server.format_error_response(AuthorizationError(3, "bob"))
        assert domain == "Error: Owner 'bob' is not allowed to modify note 3"
        generic = self.server.format_error_response(ValueError("internal detail"))
        assert "internal detail" not in generic
        assert "ref:" in generic
        unexpected = self.server.format_error_response(RuntimeError("boom"))
        assert "unexpected" in unexpected
