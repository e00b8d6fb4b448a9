"""Derive per-syllable accuracy statistics from stored practice records."""

from __future__ import annotations

import logging
from typing import List, Optional

from .accumulation import require_identifier
from .practice_store import PronunciationStore, pronunciation_store
from .pronunciation import MAX_USERNAME_LENGTH, SyllableStat

logger = logging.getLogger(__name__)


class StatsAggregator:
    def __init__(self, store: Optional[PronunciationStore] = None) -> None:
        self._store = store or pronunciation_store

    def collect_stats(self, username: str) -> List[SyllableStat]:
        """Return stats for every syllable with enough attempts to be meaningful.

        Order follows the store cursor and carries no meaning.
        """
        username = require_identifier(username, "username", MAX_USERNAME_LENGTH)
        stats: List[SyllableStat] = []
        skipped = 0
        for record in self._store.find(username):
            stat = SyllableStat.from_record(record)
            if stat.is_reliable:
                stats.append(stat)
            else:
                skipped += 1
        logger.debug(
            "Aggregated practice stats (username=%s, included=%s, below_threshold=%s)",
            username,
            len(stats),
            skipped,
        )
        return stats


stats_aggregator = StatsAggregator()

__all__ = ["StatsAggregator", "stats_aggregator"]
