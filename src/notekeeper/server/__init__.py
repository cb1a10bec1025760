"""MCP server for the note store."""
