"""
Bounded per-type history of scraper runs.
"""

from __future__ import annotations

import json
import logging
from typing import List

from .infra.db import Database
from .models import ScraperRunLog
from .store import check_type, from_db, to_db

logger = logging.getLogger(__name__)

KEEP_PER_TYPE = 50
RECENT_LIMIT = 3


class RunLogStore:
    """Append-only run log, pruned to the newest entries of each type."""

    def __init__(self, db: Database, keep: int = KEEP_PER_TYPE) -> None:
        self.db = db
        self.keep = keep

    async def record(self, entry: ScraperRunLog) -> int:
        """Insert *entry*, then drop anything beyond the newest ``keep`` for its type.

        Returns the number of pruned entries.
        """
        await self.db.write(
            "INSERT INTO scraper_logs "
            "(type, status, message, duration, items_processed, error_messages, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                entry.type,
                entry.status,
                entry.message,
                entry.duration,
                entry.items_processed,
                json.dumps(entry.error_messages),
                to_db(entry.created_at),
            ),
        )
        pruned = await self.db.write(
            "DELETE FROM scraper_logs WHERE type = ? AND id NOT IN ("
            "  SELECT id FROM scraper_logs WHERE type = ?"
            "  ORDER BY created_at DESC, id DESC LIMIT ?"
            ")",
            (entry.type, entry.type, self.keep),
        )
        if pruned:
            logger.debug("Pruned %d old %s log entries", pruned, entry.type)
        return pruned

    async def recent(self, type_: str, limit: int = RECENT_LIMIT) -> List[ScraperRunLog]:
        """Newest entries for *type_*, newest first."""
        check_type(type_)
        rows = await self.db.fetch_all(
            "SELECT * FROM scraper_logs WHERE type = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (type_, limit),
        )
        return [
            ScraperRunLog(
                type=row["type"],
                status=row["status"],
                message=row["message"],
                duration=row["duration"],
                items_processed=row["items_processed"],
                error_messages=json.loads(row["error_messages"]),
                created_at=from_db(row["created_at"]),
            )
            for row in rows
        ]

    async def count(self, type_: str) -> int:
        row = await self.db.fetch_one("SELECT COUNT(*) AS n FROM scraper_logs WHERE type = ?", (check_type(type_),))
        return row["n"]
