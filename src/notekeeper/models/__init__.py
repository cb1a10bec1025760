"""Data models for the note store."""
