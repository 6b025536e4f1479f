"""
Record and config persistence over :class:`~ingest.infra.db.Database`.

Datetimes are stored as UTC ISO-8601 strings so they compare and sort as
text.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

import aiosqlite
from pydantic import BaseModel

from .infra.db import Database
from .models import SOURCE_TYPES, ScraperConfig, utcnow

logger = logging.getLogger(__name__)

UpsertOutcome = Literal["new", "updated", "unchanged"]

TABLES: Dict[str, Dict[str, Any]] = {
    "businesses": {
        "key": ["source_url", "name_key", "address"],
        "mutable": ["phone", "address", "contact"],
        "cols": ["name", "name_key", "contact", "phone", "address", "category", "source_url"],
    },
    "events": {
        "key": ["source_url", "title"],
        "mutable": ["description", "date", "time", "location"],
        "cols": [
            "title",
            "description",
            "date",
            "time",
            "location",
            "category",
            "organizer",
            "website",
            "source_url",
            "source_name",
        ],
    },
    "news_articles": {
        "key": ["source_url", "title"],
        "mutable": ["summary", "published_at", "category"],
        "cols": [
            "title",
            "summary",
            "category",
            "author",
            "published_at",
            "image_url",
            "source_url",
            "source_name",
        ],
    },
}

# Records with these source URLs (or none at all) were hand-seeded, not scraped.
SEED_SOURCE_URLS: Tuple[str, ...] = ("", "seed", "placeholder", "sample")

DEFAULT_INTERVALS: Dict[str, float] = {"news": 6, "events": 6, "businesses": 168}


def to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    return value


def from_db(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _table(name: str) -> Dict[str, Any]:
    try:
        return TABLES[name]
    except KeyError:
        raise ValueError(f"Unknown table: {name}") from None


def record_row(table: str, record: BaseModel) -> Dict[str, Any]:
    """Column values for *record*, in storage form."""
    meta = _table(table)
    data = record.model_dump()
    if "name_key" in meta["cols"]:
        data["name_key"] = record.name_key
    return {col: to_db(data.get(col)) for col in meta["cols"]}


def _match(columns: Sequence[str]) -> str:
    # IS so a NULL key column still matches itself
    return " AND ".join(f"{col} IS ?" for col in columns)


class RecordStore:
    """Natural-key access to the scraped-record tables."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def find_by_key(self, table: str, key: Mapping[str, Any]) -> Optional[aiosqlite.Row]:
        meta = _table(table)
        cols = meta["key"]
        return await self.db.fetch_one(
            f"SELECT * FROM {table} WHERE {_match(cols)}",
            tuple(to_db(key[c]) for c in cols),
        )

    async def insert(self, table: str, row: Mapping[str, Any]) -> bool:
        """Insert unless the natural key exists. Returns whether a row was added."""
        meta = _table(table)
        now = to_db(utcnow())
        columns = [*row.keys(), "created_at", "updated_at"]
        placeholders = ", ".join("?" * len(columns))
        sql = (
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(meta['key'])}) DO NOTHING"
        )
        return await self.db.write(sql, (*row.values(), now, now)) == 1

    async def update(self, table: str, key: Mapping[str, Any], values: Mapping[str, Any]) -> bool:
        """Write *values* to the keyed row only where at least one of them differs."""
        meta = _table(table)
        if not values:
            return False
        assignments = ", ".join(f"{col} = ?" for col in values)
        differs = " OR ".join(f"{col} IS NOT ?" for col in values)
        vals = tuple(to_db(v) for v in values.values())
        sql = (
            f"UPDATE {table} SET {assignments}, updated_at = ? "
            f"WHERE {_match(meta['key'])} AND ({differs})"
        )
        params = (*vals, to_db(utcnow()), *(to_db(key[c]) for c in meta["key"]), *vals)
        return await self.db.write(sql, params) == 1

    async def delete_many_where(self, table: str, where: str, params: Sequence[Any] = ()) -> int:
        _table(table)
        return await self.db.write(f"DELETE FROM {table} WHERE {where}", tuple(to_db(p) for p in params))

    async def upsert(self, table: str, record: BaseModel) -> UpsertOutcome:
        """Insert *record*, or update its mutable fields, by natural key.

        Both statements are conditional, so racing runs on the same key can
        never produce a second row.
        """
        meta = _table(table)
        row = record_row(table, record)
        if await self.insert(table, row):
            return "new"
        key = {c: row[c] for c in meta["key"]}
        changed = {c: row[c] for c in meta["mutable"]}
        if await self.update(table, key, changed):
            return "updated"
        return "unchanged"

    async def clear_seed(self, table: str) -> int:
        """Delete hand-seeded rows (no source URL or a placeholder one)."""
        placeholders = ", ".join("?" * len(SEED_SOURCE_URLS))
        return await self.delete_many_where(
            table,
            f"source_url IS NULL OR source_url IN ({placeholders})",
            SEED_SOURCE_URLS,
        )

    async def purge_older_than(self, table: str, column: str, cutoff: datetime) -> int:
        if column not in _table(table)["cols"]:
            raise ValueError(f"Unknown column {column!r} for {table}")
        return await self.delete_many_where(table, f"{column} < ?", (cutoff,))

    async def count(self, table: str) -> int:
        _table(table)
        row = await self.db.fetch_one(f"SELECT COUNT(*) AS n FROM {table}")
        return row["n"]


def check_type(type_: str) -> str:
    if type_ not in SOURCE_TYPES:
        raise ValueError(f"Unknown scraper type: {type_!r} (expected one of {', '.join(SOURCE_TYPES)})")
    return type_


def _config_from_row(row: aiosqlite.Row) -> ScraperConfig:
    return ScraperConfig(
        type=row["type"],
        interval_hours=row["interval_hours"],
        is_enabled=bool(row["is_enabled"]),
        last_run=from_db(row["last_run"]),
        next_run=from_db(row["next_run"]),
        last_success=from_db(row["last_success"]),
    )


class ConfigStore:
    """Per-type schedule settings, created with defaults on first access."""

    def __init__(self, db: Database, defaults: Optional[Mapping[str, float]] = None) -> None:
        self.db = db
        self.defaults = {**DEFAULT_INTERVALS, **(defaults or {})}

    async def get(self, type_: str) -> ScraperConfig:
        check_type(type_)
        row = await self.db.fetch_one("SELECT * FROM scraper_configs WHERE type = ?", (type_,))
        if row is None:
            default = ScraperConfig(type=type_, interval_hours=self.defaults[type_])
            await self.db.write(
                "INSERT INTO scraper_configs (type, interval_hours, is_enabled) VALUES (?, ?, ?) "
                "ON CONFLICT(type) DO NOTHING",
                (type_, default.interval_hours, int(default.is_enabled)),
            )
            logger.info("Created %s config (every %sh)", type_, default.interval_hours)
            row = await self.db.fetch_one("SELECT * FROM scraper_configs WHERE type = ?", (type_,))
        return _config_from_row(row)

    async def all(self) -> List[ScraperConfig]:
        return [await self.get(t) for t in SOURCE_TYPES]

    async def update(
        self,
        type_: str,
        *,
        interval_hours: Optional[float] = None,
        is_enabled: Optional[bool] = None,
    ) -> ScraperConfig:
        """Change schedule settings; raises ``pydantic.ValidationError`` on bad values."""
        current = await self.get(type_)
        changes: Dict[str, Any] = {}
        if interval_hours is not None:
            changes["interval_hours"] = interval_hours
        if is_enabled is not None:
            changes["is_enabled"] = is_enabled
        config = ScraperConfig.model_validate({**current.model_dump(), **changes})
        await self.db.write(
            "UPDATE scraper_configs SET interval_hours = ?, is_enabled = ? WHERE type = ?",
            (config.interval_hours, int(config.is_enabled), type_),
        )
        return config

    async def mark_run(
        self,
        type_: str,
        *,
        ran_at: datetime,
        next_run: Optional[datetime],
        success: bool,
    ) -> None:
        await self.get(type_)
        if success:
            await self.db.write(
                "UPDATE scraper_configs SET last_run = ?, next_run = ?, last_success = ? WHERE type = ?",
                (to_db(ran_at), to_db(next_run), to_db(ran_at), type_),
            )
        else:
            await self.db.write(
                "UPDATE scraper_configs SET last_run = ?, next_run = ? WHERE type = ?",
                (to_db(ran_at), to_db(next_run), type_),
            )
