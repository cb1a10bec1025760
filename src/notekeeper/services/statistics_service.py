"""Frequency statistics over the property pairs of an owner's notes."""
import logging
from typing import Dict, Tuple

from notekeeper.models.schema import PropertyStatistics
from notekeeper.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


class StatisticsService:
    """Counts distinct (key, value) pairs across an owner's notes."""

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def count_pairs(self, owner: str) -> Dict[Tuple[str, str], int]:
        """Count each exact (key, value) pair, keyed in first-seen order.

        Notes are scanned in owner-index order and each note's properties in
        their current key order.
        """
        counts: Dict[Tuple[str, str], int] = {}
        for _note_id, properties in self.repository.iter_owner_properties(owner):
            for pair in properties:
                counts[pair] = counts.get(pair, 0) + 1
        return counts

    def top_property_statistics(
        self, owner: str, max_results: int = 0
    ) -> PropertyStatistics:
        """Return the most frequent pairs, most frequent first.

        Ties keep first-seen order. ``max_results`` of 0 returns every pair.
        """
        if max_results < 0:
            max_results = 0
        counts = self.count_pairs(owner)
        # sorted() is stable, so equal counts stay in first-seen order
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        if 0 < max_results < len(ranked):
            ranked = ranked[:max_results]

        logger.debug(
            f"Property statistics for {owner}: {len(counts)} distinct pairs, "
            f"returning {len(ranked)}"
        )
        return PropertyStatistics(
            keys=[k for (k, _), _ in ranked],
            values=[v for (_, v), _ in ranked],
            counts=[c for _, c in ranked],
        )

    def property_pairs_count(self, owner: str) -> int:
        """Number of distinct (key, value) pairs across the owner's notes."""
        return len(self.top_property_statistics(owner, 0))
