"""MCP server implementation for the note store."""

import json
import logging
import uuid
from typing import Optional

from mcp.server.fastmcp import FastMCP

from notekeeper.config import config
from notekeeper.exceptions import NotekeeperError
from notekeeper.models.schema import Note, Page, Priority
from notekeeper.observability import metrics, timed_operation
from notekeeper.services.note_service import NoteService

logger = logging.getLogger(__name__)


def _format_page(page: Page[Note], empty_message: str) -> str:
    """Render a page of notes as a short listing with its continuation."""
    if not page.items:
        return empty_message
    result = f"Found {len(page.items)} note(s):\n"
    for note in page.items:
        result += f"- [{note.id}] {note.title}"
        if note.property_keys:
            result += f" (properties: {', '.join(note.property_keys)})"
        result += "\n"
    if page.has_more:
        result += f"\nMore results available; next offset: {page.next_offset}"
    else:
        result += "\nNo more results."
    return result


class NotekeeperMcpServer:
    """MCP server exposing the note store as tools.

    Caller identity is resolved outside this server; each tool takes the
    resulting owner string as its ``owner`` argument.
    """

    def __init__(self, service: Optional[NoteService] = None):
        self.mcp = FastMCP(config.server_name)
        self.note_service = service or NoteService()
        self.initialize()
        self._register_tools()

    def initialize(self) -> None:
        """Initialize services."""
        self.note_service.initialize()
        logger.info("Notekeeper MCP server initialized")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Domain errors are reported with their message; anything else is
        logged in full and reported by reference only.
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotekeeperError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="nk_create_note")
        def nk_create_note(owner: str, title: str, content: str = "") -> str:
            """Create a new note.
            Args:
                owner: Identity of the caller creating the note
                title: Title of the note (1-256 characters)
                content: Body of the note (up to 20480 characters)
            """
            with timed_operation("nk_create_note", owner=owner) as op:
                try:
                    note_id = self.note_service.create_note(owner, title, content)
                    op["note_id"] = note_id
                    return f"Note created successfully with ID: {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_get_note")
        def nk_get_note(note_id: int) -> str:
            """Retrieve a note by ID.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_get_note", note_id=note_id):
                try:
                    note = self.note_service.get_note(note_id)
                    result = f"# {note.title}\n"
                    result += f"ID: {note.id}\n"
                    result += f"Owner: {note.owner}\n"
                    result += f"Priority: {note.priority.name.lower()}\n"
                    result += f"Created: {note.created_at.isoformat()}\n"
                    result += f"Updated: {note.updated_at.isoformat()}\n"
                    if note.tags:
                        result += f"Tags: {', '.join(note.tags)}\n"
                    if note.property_keys:
                        keys, values = self.note_service.get_all_properties(note_id)
                        result += "Properties:\n"
                        for k, v in zip(keys, values):
                            result += f"  {k}: {v}\n"
                    result += f"\n{note.content}\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_update_note")
        def nk_update_note(note_id: int, owner: str, title: str, content: str) -> str:
            """Replace the title and content of a note you own.
            Args:
                note_id: The ID of the note
                owner: Identity of the caller; must own the note
                title: New title (1-256 characters)
                content: New content (up to 20480 characters)
            """
            with timed_operation("nk_update_note", note_id=note_id):
                try:
                    self.note_service.update_note(note_id, owner, title, content)
                    return f"Note {note_id} updated successfully"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_delete_note")
        def nk_delete_note(note_id: int, owner: str) -> str:
            """Delete a note you own. Its ID is never reused.
            Args:
                note_id: The ID of the note
                owner: Identity of the caller; must own the note
            """
            with timed_operation("nk_delete_note", note_id=note_id):
                try:
                    self.note_service.delete_note(note_id, owner)
                    return f"Note {note_id} deleted successfully"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_set_property")
        def nk_set_property(note_id: int, owner: str, key: str, value: str) -> str:
            """Set a key/value property on a note you own.
            Args:
                note_id: The ID of the note
                owner: Identity of the caller; must own the note
                key: Property key (1-32 characters)
                value: Property value (1-2048 characters)
            """
            with timed_operation("nk_set_property", note_id=note_id, key=key) as op:
                try:
                    added = self.note_service.set_property(note_id, owner, key, value)
                    op["added"] = added
                    action = "added to" if added else "updated on"
                    return f"Property '{key}' {action} note {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_delete_property")
        def nk_delete_property(note_id: int, owner: str, key: str) -> str:
            """Remove a property from a note you own.
            Args:
                note_id: The ID of the note
                owner: Identity of the caller; must own the note
                key: Property key to remove
            """
            with timed_operation("nk_delete_property", note_id=note_id, key=key):
                try:
                    self.note_service.delete_property(note_id, owner, key)
                    return f"Property '{key}' removed from note {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_get_property")
        def nk_get_property(note_id: int, key: str) -> str:
            """Read one property of a note (empty if the key is not set).
            Args:
                note_id: The ID of the note
                key: Property key
            """
            with timed_operation("nk_get_property", note_id=note_id, key=key):
                try:
                    value = self.note_service.get_property(note_id, key)
                    if not value:
                        return f"Property '{key}' is not set on note {note_id}"
                    return value
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_get_all_properties")
        def nk_get_all_properties(note_id: int) -> str:
            """List every property of a note as a JSON object.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_get_all_properties", note_id=note_id):
                try:
                    keys, values = self.note_service.get_all_properties(note_id)
                    return json.dumps(dict(zip(keys, values)), indent=2)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_list_notes")
        def nk_list_notes(owner: str, offset: int = 0, limit: int = 10) -> str:
            """List an owner's notes one page at a time.
            Args:
                owner: Identity of the owner
                offset: Position to start from (use next offset from the previous page)
                limit: Page size (1-20)
            """
            with timed_operation("nk_list_notes", owner=owner) as op:
                try:
                    page = self.note_service.list_owner_notes(owner, offset, limit)
                    op["result_count"] = len(page)
                    return _format_page(page, f"No notes found for {owner}.")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_filter_notes")
        def nk_filter_notes(
            owner: str,
            key: str = "",
            value: str = "",
            offset: int = 0,
            limit: int = 10,
        ) -> str:
            """Find an owner's notes by property.
            Args:
                owner: Identity of the owner
                key: Property key that must be present (empty for any)
                value: Exact property value to match (empty for any)
                offset: Position to start from
                limit: Page size (1-20)
            """
            with timed_operation("nk_filter_notes", owner=owner, key=key) as op:
                try:
                    page = self.note_service.filter_notes(owner, key, value, offset, limit)
                    op["result_count"] = len(page)
                    return _format_page(page, "No matching notes found.")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_property_statistics")
        def nk_property_statistics(owner: str, max_results: int = 10) -> str:
            """Show the most common property key/value pairs across an owner's notes.
            Args:
                owner: Identity of the owner
                max_results: Number of pairs to show (0 for all)
            """
            with timed_operation("nk_property_statistics", owner=owner) as op:
                try:
                    stats = self.note_service.top_property_statistics(owner, max_results)
                    total = self.note_service.property_pairs_count(owner)
                    op["result_count"] = len(stats)
                    if not stats:
                        return f"No properties found for {owner}."
                    result = f"Property pairs for {owner} ({total} distinct):\n\n"
                    result += "| Key | Value | Count |\n"
                    result += "|-----|-------|-------|\n"
                    for k, v, c in zip(stats.keys, stats.values, stats.counts):
                        result += f"| {k} | {v} | {c} |\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_note_counts")
        def nk_note_counts(owner: Optional[str] = None) -> str:
            """Show how many notes exist overall and, optionally, for one owner.
            Args:
                owner: Identity of the owner to count (optional)
            """
            with timed_operation("nk_note_counts"):
                try:
                    result = f"Total notes (including deleted): {self.note_service.total_note_count()}"
                    if owner:
                        result += f"\nNotes owned by {owner}: {self.note_service.owner_note_count(owner)}"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_add_tag")
        def nk_add_tag(note_id: int, owner: str, tag: str) -> str:
            """Add a tag to a note you own.
            Args:
                note_id: The ID of the note
                owner: Identity of the caller; must own the note
                tag: Tag to add (1-32 characters)
            """
            with timed_operation("nk_add_tag", note_id=note_id):
                try:
                    if self.note_service.add_tag(note_id, owner, tag):
                        return f"Tag '{tag}' added to note {note_id}"
                    return f"Note {note_id} already has tag '{tag}'"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_get_tags")
        def nk_get_tags(note_id: int) -> str:
            """List the tags of a note.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nk_get_tags", note_id=note_id):
                try:
                    tags = self.note_service.get_tags(note_id)
                    if not tags:
                        return f"Note {note_id} has no tags"
                    return ", ".join(tags)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_set_priority")
        def nk_set_priority(note_id: int, owner: str, priority: str) -> str:
            """Set the priority of a note you own.
            Args:
                note_id: The ID of the note
                owner: Identity of the caller; must own the note
                priority: One of low, medium, high
            """
            with timed_operation("nk_set_priority", note_id=note_id):
                try:
                    try:
                        level = Priority[priority.upper()]
                    except KeyError:
                        return f"Invalid priority: {priority}. Valid priorities are: {', '.join(p.name.lower() for p in Priority)}"
                    self.note_service.set_priority(note_id, owner, level)
                    return f"Priority of note {note_id} set to {level.name.lower()}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_notes_by_priority")
        def nk_notes_by_priority(
            owner: str, priority: str, offset: int = 0, limit: int = 10
        ) -> str:
            """List an owner's notes with a given priority.
            Args:
                owner: Identity of the owner
                priority: One of low, medium, high
                offset: Position to start from
                limit: Page size (1-20)
            """
            with timed_operation("nk_notes_by_priority", owner=owner) as op:
                try:
                    try:
                        level = Priority[priority.upper()]
                    except KeyError:
                        return f"Invalid priority: {priority}. Valid priorities are: {', '.join(p.name.lower() for p in Priority)}"
                    page = self.note_service.list_notes_by_priority(owner, level, offset, limit)
                    op["result_count"] = len(page)
                    return _format_page(page, f"No {level.name.lower()} priority notes found.")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nk_metrics")
        def nk_metrics() -> str:
            """Show operation counts, error rates and timings for this server."""
            return json.dumps(
                {"summary": metrics.get_summary(), "operations": metrics.get_metrics()},
                indent=2,
                default=str,
            )

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
