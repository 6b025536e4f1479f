import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from ingest.models import BusinessRecord, EventRecord, NewsArticle
from ingest.store import ConfigStore, RecordStore, to_db

SOURCE = "https://www.wetaskiwin.ca/businessdirectoryii.aspx"


def business(**overrides):
    data = dict(
        name="Acme Fence & Welding Ltd.",
        contact="Larry",
        phone="780-352-1234",
        address="4702 51 Avenue Wetaskiwin, AB T9A 0V4",
        category="construction",
        source_url=SOURCE,
    )
    data.update(overrides)
    return BusinessRecord(**data)


def event(now, **overrides):
    data = dict(
        title="Canada Day Parade",
        description="Parade down Main Street",
        date=now + timedelta(days=3),
        time="10:00 AM",
        location="Main Street",
        organizer="City of Wetaskiwin",
        source_url="https://wetaskiwin.ca/calendar",
        source_name="City of Wetaskiwin",
    )
    data.update(overrides)
    return EventRecord(**data)


async def test_upsert_new_unchanged_updated(db, now):
    store = RecordStore(db)
    assert await store.upsert("events", event(now)) == "new"
    assert await store.upsert("events", event(now)) == "unchanged"
    assert await store.upsert("events", event(now, location="Centennial Park")) == "updated"
    assert await store.count("events") == 1

    row = await store.find_by_key("events", event(now).natural_key())
    assert row["location"] == "Centennial Park"
    assert row["date"] == to_db(now + timedelta(days=3))


async def test_business_key_ignores_name_case_and_spacing(db):
    store = RecordStore(db)
    assert await store.upsert("businesses", business()) == "new"
    assert await store.upsert("businesses", business(name="ACME  Fence & Welding LTD.")) == "unchanged"
    assert await store.upsert("businesses", business(phone="780-352-9999")) == "updated"
    assert await store.count("businesses") == 1

    row = await store.find_by_key("businesses", business().natural_key())
    assert row["phone"] == "780-352-9999"
    assert row["name_key"] == "acme fence & welding ltd."


async def test_new_address_is_a_new_business(db):
    store = RecordStore(db)
    await store.upsert("businesses", business())
    assert await store.upsert("businesses", business(address="5502 36 Avenue Wetaskiwin, AB T9A 3C7")) == "new"
    assert await store.count("businesses") == 2


async def test_clear_seed_removes_only_placeholder_rows(db, now):
    store = RecordStore(db)
    await store.upsert("businesses", business())
    await store.upsert("businesses", business(name="Sample Shop", source_url="sample"))
    await store.upsert("businesses", business(name="Blank Shop", source_url=""))
    stamp = to_db(now)
    await db.write(
        "INSERT INTO businesses (name, name_key, address, source_url, created_at, updated_at) "
        "VALUES (?, ?, ?, NULL, ?, ?)",
        ("Old Entry", "old entry", "1 Main Street", stamp, stamp),
    )

    assert await store.clear_seed("businesses") == 3
    assert await store.count("businesses") == 1


async def test_purge_older_than(db, now):
    store = RecordStore(db)
    for days, title in ((1, "Fresh story from this week"), (20, "Stale story from last month")):
        await store.upsert(
            "news_articles",
            NewsArticle(
                title=title,
                summary="Summary",
                published_at=now - timedelta(days=days),
                source_url=f"https://www.wetaskiwintimes.com/news/local-news/{days}",
                source_name="Wetaskiwin Times",
            ),
        )
    assert await store.purge_older_than("news_articles", "published_at", now - timedelta(days=14)) == 1
    assert await store.count("news_articles") == 1
    with pytest.raises(ValueError):
        await store.purge_older_than("news_articles", "password", now)


async def test_unknown_table_rejected(db):
    with pytest.raises(ValueError):
        await RecordStore(db).count("users")


async def test_config_defaults(db):
    configs = ConfigStore(db)
    by_type = {c.type: c for c in await configs.all()}
    assert by_type["news"].interval_hours == 6
    assert by_type["events"].interval_hours == 6
    assert by_type["businesses"].interval_hours == 168
    assert all(c.is_enabled for c in by_type.values())
    assert by_type["news"].last_run is None


async def test_config_update_and_validation(db):
    configs = ConfigStore(db)
    updated = await configs.update("news", interval_hours=12, is_enabled=False)
    assert updated.interval_hours == 12
    stored = await configs.get("news")
    assert stored.interval_hours == 12
    assert stored.is_enabled is False

    with pytest.raises(ValidationError):
        await configs.update("news", interval_hours=0)
    assert (await configs.get("news")).interval_hours == 12

    with pytest.raises(ValueError):
        await configs.get("weather")


async def test_mark_run_only_moves_last_success_on_success(db, now):
    configs = ConfigStore(db)
    await configs.mark_run("events", ran_at=now, next_run=now + timedelta(hours=18), success=True)
    later = now + timedelta(hours=1)
    await configs.mark_run("events", ran_at=later, next_run=None, success=False)

    config = await configs.get("events")
    assert config.last_run == later
    assert config.last_success == now
    assert config.next_run is None


async def test_configured_defaults_override(db):
    configs = ConfigStore(db, {"businesses": 24})
    assert (await configs.get("businesses")).interval_hours == 24
    assert (await configs.get("news")).interval_hours == 6


async def test_concurrent_upserts_on_one_key_store_one_row(db):
    store = RecordStore(db)
    outcomes = await asyncio.gather(*(store.upsert("businesses", business()) for _ in range(5)))
    assert sorted(outcomes) == ["new"] + ["unchanged"] * 4
    assert await store.count("businesses") == 1
