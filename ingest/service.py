"""
Run and status entry points for the ingest pipeline.

One run processes every source of one type end to end: interval gate,
fetch, block extraction, per-block parse, upsert, run log, config
timestamps. A type can be fed by several sites; they run in sequence and
share one sink, so a record seen on two sites is stored once.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import aiosqlite

from sinks.database_sink import RecordSink
from sources.connect_wetaskiwin import ConnectWetaskiwinSource
from sources.wetaskiwin_business import BusinessDirectorySource
from sources.wetaskiwin_events import CityCalendarSource
from sources.wetaskiwin_news import NEWS_SITES, NewsSiteSource

from .config import Settings, load_settings
from .infra.db import Database
from .infra.http import HttpClient
from .interfaces import Source
from .models import SOURCE_TYPES, RunResult, ScraperRunLog, SourceStatus, utcnow
from .runlog import RunLogStore
from .scheduling import compute_next_scheduled_run, format_countdown, should_skip
from .store import ConfigStore, RecordStore, check_type

logger = logging.getLogger(__name__)


def default_sources(settings: Optional[Settings] = None) -> Dict[str, List[Source]]:
    settings = settings or Settings()
    return {
        "news": [NewsSiteSource(site) for site in NEWS_SITES],
        "events": [ConnectWetaskiwinSource(), CityCalendarSource()],
        "businesses": [BusinessDirectorySource(city=settings.city, province=settings.province)],
    }


class IngestService:
    """Runs sources against one database and reports their status."""

    def __init__(
        self,
        db: Database,
        http: HttpClient,
        *,
        sources: Optional[Mapping[str, Sequence[Source]]] = None,
        configs: Optional[ConfigStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.http = http
        registry = default_sources() if sources is None else sources
        self.sources: Dict[str, List[Source]] = {t: list(s) for t, s in registry.items() if s}
        self.records = RecordStore(db)
        self.configs = configs or ConfigStore(db)
        self.run_log = RunLogStore(db)
        self.clock = clock
        # runs in flight per type; a manual and a scheduled run may overlap
        self._running: Counter = Counter()

    @classmethod
    def from_settings(cls, settings: Settings) -> "IngestService":
        db = Database(settings.db_path)
        http = HttpClient(timeout=settings.http.timeout, retry=settings.http.retry.policy())
        return cls(
            db,
            http,
            sources=default_sources(settings),
            configs=ConfigStore(db, settings.intervals),
        )

    async def close(self) -> None:
        await self.http.close()
        await self.db.close()

    async def __aenter__(self) -> "IngestService":
        await self.db.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def sources_for(self, type_: str) -> List[Source]:
        check_type(type_)
        try:
            return self.sources[type_]
        except KeyError:
            raise ValueError(f"No source registered for {type_!r}") from None

    # ------------------------------------------------------------------ #
    async def run(self, type_: str, *, force: bool = False, clear_seed: bool = False) -> RunResult:
        """Run every source of one type unless the interval gate says it ran recently."""
        sources = self.sources_for(type_)
        now = self.clock()
        config = await self.configs.get(type_)

        if not force:
            skip = None if config.is_enabled else f"Skipped {type_} scraping - disabled"
            skip = skip or should_skip(type_, config.last_success, config.interval_hours, now)
            if skip:
                logger.info(skip)
                return RunResult(type=type_, skipped=True, message=skip, status="skipped")

        self._running[type_] += 1
        try:
            return await self._run(type_, sources, now, clear_seed=clear_seed, enabled=config.is_enabled)
        finally:
            self._running[type_] -= 1
            if self._running[type_] <= 0:
                del self._running[type_]

    async def _run(
        self,
        type_: str,
        sources: Sequence[Source],
        now: datetime,
        *,
        clear_seed: bool,
        enabled: bool,
    ) -> RunResult:
        started = time.monotonic()
        result = RunResult(type=type_)
        table = sources[0].table
        sink = RecordSink(self.records, table)
        failures: List[str] = []
        logger.info("Starting %s run (%s)", type_, ", ".join(s.name for s in sources))

        try:
            if clear_seed:
                result.cleared_seed = await sink.clear_seed()
            retained = next((s for s in sources if s.retention is not None), None)
            if retained is not None:
                purged = await self.records.purge_older_than(
                    table, retained.retention_column, now - retained.retention
                )
                if purged:
                    logger.info("Purged %d %s older than %s", purged, table, retained.retention)
        except aiosqlite.Error as e:
            logger.error("Store error before %s run: %s", type_, e)
            result.errors.append(f"store: {e}")

        for source in sources:
            try:
                async for item in source.fetch(self.http):
                    for block in source.extract_blocks(item):
                        await self._handle_block(source, sink, block, now, result)
            except Exception as e:  # a failing site must not stop the others
                logger.exception("%s failed during %s run", source.name, type_)
                failures.append(str(e) or type(e).__name__)
                result.errors.append(f"Error in {source.name}: {e}")

        result.new = sink.counts["new"]
        result.updated = sink.counts["updated"]
        failed = len(failures) == len(sources)
        if failed:
            result.status = "error"
            result.message = "; ".join(failures)
        else:
            result.message = (
                f"Processed {result.total} {type_}: {result.new} new, {result.updated} updated"
                + (f", {len(result.errors)} errors" if result.errors else "")
            )

        duration_ms = int((time.monotonic() - started) * 1000)
        await self._finish(result, now, duration_ms, enabled=enabled, success=not failed)
        logger.info("Finished %s run in %d ms: %s", type_, duration_ms, result.message)
        return result

    async def _finish(self, result: RunResult, now: datetime, duration_ms: int, *, enabled: bool, success: bool) -> None:
        """Write the run log entry and move the config timestamps."""
        await self.run_log.record(
            ScraperRunLog(
                type=result.type,
                status="success" if success else "error",
                message=result.message,
                duration=duration_ms,
                items_processed=result.total,
                error_messages=result.errors,
                created_at=now,
            )
        )
        await self.configs.mark_run(
            result.type,
            ran_at=now,
            next_run=compute_next_scheduled_run(result.type, now, enabled),
            success=success,
        )

    async def _handle_block(self, source: Source, sink: RecordSink, block, now: datetime, result: RunResult) -> None:
        try:
            record = source.parse_block(block, now=now)
        except Exception as e:  # one bad block must not end the run
            logger.warning("Failed to parse %s block: %s", source.type, e)
            result.errors.append(f"parse: {e}")
            return
        if record is None:
            return

        result.total += 1
        try:
            await sink.handle(record)
        except aiosqlite.Error as e:
            logger.error("Failed to store %s record: %s", source.type, e)
            result.errors.append(f"store: {e}")

    async def run_all(self, *, force: bool = False) -> List[RunResult]:
        """Run every registered type concurrently; one failing type never hides the others."""
        types = [t for t in SOURCE_TYPES if t in self.sources]
        outcomes = await asyncio.gather(*(self.run(t, force=force) for t in types), return_exceptions=True)
        results: List[RunResult] = []
        for type_, outcome in zip(types, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                outcome = await self._run_failed(type_, outcome)
            results.append(outcome)
        return results

    async def _run_failed(self, type_: str, exc: Exception) -> RunResult:
        logger.error("%s run failed: %s", type_, exc)
        result = RunResult(type=type_, status="error", message=str(exc) or type(exc).__name__, errors=[f"run: {exc}"])
        try:
            await self.run_log.record(
                ScraperRunLog(type=type_, status="error", message=result.message, error_messages=result.errors,
                              created_at=self.clock())
            )
        except aiosqlite.Error as e:
            logger.error("Could not log failed %s run: %s", type_, e)
        return result

    # ------------------------------------------------------------------ #
    async def status(self, type_: str) -> SourceStatus:
        check_type(type_)
        now = self.clock()
        config = await self.configs.get(type_)
        next_run = compute_next_scheduled_run(type_, now, config.is_enabled)
        if not config.is_enabled:
            state = "disabled"
        elif self._running[type_] > 0:
            state = "running"
        else:
            state = "idle"
        return SourceStatus(
            type=type_,
            last_run=config.last_run,
            next_scheduled=next_run,
            countdown=format_countdown(next_run, now) if next_run else None,
            status=state,
        )


async def scheduled_run(type_: str, config_path: Optional[str] = None) -> RunResult:
    """Job target for the daemon; opens its own service so jobs can be persisted."""
    settings = load_settings(config_path)
    async with IngestService.from_settings(settings) as service:
        return await service.run(type_)
