from datetime import timedelta

import pytest

from ingest.models import ScraperRunLog
from ingest.runlog import KEEP_PER_TYPE, RunLogStore


def entry(type_, created_at, status="success", **kwargs):
    return ScraperRunLog(
        type=type_,
        status=status,
        message=kwargs.pop("message", f"run at {created_at.isoformat()}"),
        created_at=created_at,
        **kwargs,
    )


async def test_keeps_newest_fifty_per_type(db, now):
    log = RunLogStore(db)
    pruned = 0
    for i in range(KEEP_PER_TYPE + 1):
        pruned += await log.record(entry("news", now + timedelta(minutes=i)))

    assert pruned == 1
    assert await log.count("news") == KEEP_PER_TYPE
    messages = [e.message for e in await log.recent("news", limit=KEEP_PER_TYPE)]
    assert f"run at {now.isoformat()}" not in messages


async def test_pruning_is_per_type(db, now):
    log = RunLogStore(db, keep=2)
    await log.record(entry("events", now))
    for i in range(3):
        await log.record(entry("news", now + timedelta(minutes=i)))
    assert await log.count("news") == 2
    assert await log.count("events") == 1


async def test_recent_returns_three_newest_first(db, now):
    log = RunLogStore(db)
    for i in range(5):
        await log.record(entry("businesses", now + timedelta(hours=i)))
    recent = await log.recent("businesses")
    assert [e.created_at for e in recent] == [now + timedelta(hours=h) for h in (4, 3, 2)]


async def test_error_messages_round_trip(db, now):
    log = RunLogStore(db)
    await log.record(
        entry("events", now, status="error", message="Failed", duration=1200, items_processed=4,
              error_messages=["parse: bad date", "store: locked"])
    )
    (stored,) = await log.recent("events")
    assert stored.status == "error"
    assert stored.duration == 1200
    assert stored.items_processed == 4
    assert stored.error_messages == ["parse: bad date", "store: locked"]


async def test_unknown_type_rejected(db):
    with pytest.raises(ValueError):
        await RunLogStore(db).recent("weather")
