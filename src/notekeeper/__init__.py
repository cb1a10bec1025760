"""
Notekeeper - a per-owner note store with bounded key/value properties.

Notes are kept in an append-only arena keyed by monotonic ids; each owner has
an index of active notes, and every note carries a small property dictionary
that supports paginated filtering and frequency statistics.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notekeeper")
except PackageNotFoundError:
    __version__ = "0.2.0"
