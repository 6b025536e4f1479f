"""
Database sink: deduplicating upsert of parsed records.
"""

import logging
from typing import Any, Dict, Optional, Set, Tuple

from pydantic import BaseModel

from ingest.interfaces import Sink
from ingest.store import RecordStore, UpsertOutcome


logger = logging.getLogger(__name__)


class RecordSink(Sink):
    """Upserts one run's records into a table and tallies the outcomes.

    A natural key seen earlier in the same run is dropped, so the first
    occurrence on a page wins.
    """

    def __init__(self, store: RecordStore, table: str):
        self.store = store
        self.table = table
        self.counts: Dict[str, int] = {"new": 0, "updated": 0, "unchanged": 0, "duplicate": 0}
        self._seen: Set[Tuple[Any, ...]] = set()

    @property
    def name(self) -> str:
        return f"RecordSink[{self.table}]"

    async def handle(self, item: BaseModel) -> Optional[UpsertOutcome]:
        """Persist *item*; ``None`` when it repeats a key from this run."""
        key = tuple(item.natural_key().values())
        if key in self._seen:
            self.counts["duplicate"] += 1
            logger.debug("Duplicate %s in run: %s", self.table, key)
            return None
        self._seen.add(key)

        outcome = await self.store.upsert(self.table, item)
        self.counts[outcome] += 1
        if outcome != "unchanged":
            logger.debug("%s %s: %s", outcome.capitalize(), self.table, key)
        return outcome

    async def clear_seed(self) -> int:
        removed = await self.store.clear_seed(self.table)
        if removed:
            logger.info("Cleared %d seed rows from %s", removed, self.table)
        return removed
