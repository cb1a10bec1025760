"""Service layer for the note store."""
