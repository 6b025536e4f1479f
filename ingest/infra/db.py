"""
Database infrastructure with SQLite and async support.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

import aiosqlite


logger = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 30000

# (version, statements); applied in order, each version once
MIGRATIONS: List[Tuple[int, Tuple[str, ...]]] = [
    (1, (
        """
        CREATE TABLE IF NOT EXISTS businesses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            name_key TEXT NOT NULL,
            contact TEXT NOT NULL DEFAULT '',
            phone TEXT,
            address TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'other',
            source_url TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS ux_businesses_key
            ON businesses (source_url, name_key, address)
        """,
        """
        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            date TEXT NOT NULL,
            time TEXT NOT NULL,
            location TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'community',
            organizer TEXT NOT NULL,
            website TEXT,
            source_url TEXT,
            source_name TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS ux_events_key
            ON events (source_url, title)
        """,
        """
        CREATE TABLE IF NOT EXISTS news_articles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            summary TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'local-news',
            author TEXT,
            published_at TEXT NOT NULL,
            image_url TEXT,
            source_url TEXT,
            source_name TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS ux_news_articles_key
            ON news_articles (source_url, title)
        """,
        """
        CREATE TABLE IF NOT EXISTS scraper_configs (
            type TEXT PRIMARY KEY,
            interval_hours REAL NOT NULL CHECK (interval_hours > 0),
            is_enabled INTEGER NOT NULL DEFAULT 1,
            last_run TEXT,
            next_run TEXT,
            last_success TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS scraper_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL,
            status TEXT NOT NULL,
            message TEXT NOT NULL,
            duration INTEGER NOT NULL DEFAULT 0,
            items_processed INTEGER NOT NULL DEFAULT 0,
            error_messages TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS ix_scraper_logs_type_created
            ON scraper_logs (type, created_at)
        """,
    )),
]


class Database:
    """Async SQLite database wrapper."""

    def __init__(self, db_path: str = "ingest.db"):
        # Handle SQLite URL format if provided
        if db_path.startswith("sqlite"):
            # Handle sqlite+aiosqlite:///path format
            if "///" in db_path:
                actual_path = db_path.split("///")[-1]
            else:
                actual_path = db_path.split("//")[-1]
            self.db_path = Path(actual_path)
        else:
            self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Connect to the database and run migrations."""
        if self._connection:
            return

        self._connection = await aiosqlite.connect(self.db_path, timeout=BUSY_TIMEOUT_MS / 1000)
        self._connection.row_factory = aiosqlite.Row
        # Improve concurrency: use WAL journal mode and set busy timeout (ms)
        await self._connection.execute("PRAGMA journal_mode=WAL;")
        await self._connection.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS};")
        await self._run_migrations()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def execute(self, sql: str, params: Tuple[Any, ...] = ()) -> aiosqlite.Cursor:
        """Execute a SQL statement."""
        if not self._connection:
            await self.connect()
        return await self._connection.execute(sql, params)

    async def write(self, sql: str, params: Tuple[Any, ...] = ()) -> int:
        """Execute a data-modifying statement, commit, and return the row count."""
        cursor = await self.execute(sql, params)
        # Execute and immediately commit to persist data
        await self._connection.commit()
        return cursor.rowcount

    async def fetch_one(self, sql: str, params: Tuple[Any, ...] = ()) -> Optional[aiosqlite.Row]:
        """Fetch one row."""
        cursor = await self.execute(sql, params)
        return await cursor.fetchone()

    async def fetch_all(self, sql: str, params: Tuple[Any, ...] = ()) -> List[aiosqlite.Row]:
        """Fetch all rows."""
        cursor = await self.execute(sql, params)
        return await cursor.fetchall()

    async def _run_migrations(self) -> None:
        """Run database migrations."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS migrations (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor = await self._connection.execute("SELECT version FROM migrations")
        applied = {row[0] for row in await cursor.fetchall()}

        for version, statements in MIGRATIONS:
            if version in applied:
                continue
            for sql in statements:
                await self._connection.execute(sql)
            await self._connection.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
            logger.info("Applied migration %d to %s", version, self.db_path)
        await self._connection.commit()
