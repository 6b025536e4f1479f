import asyncio
from datetime import timedelta

import aiosqlite
import pytest

from conftest import BUSINESS_PAGE, FakeHttp
from ingest.infra.http import FetchError
from ingest.service import IngestService
from sources.connect_wetaskiwin import ConnectWetaskiwinSource
from sources.connect_wetaskiwin.parser import TOCKIFY_URL
from sources.wetaskiwin_business import BusinessDirectorySource
from sources.wetaskiwin_business.source import DIRECTORY_URL
from sources.wetaskiwin_events import CityCalendarSource
from sources.wetaskiwin_events.source import CALENDAR_URL

LISTING_URL = DIRECTORY_URL + "?ysnShowAll=1"


class Clock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock(now):
    return Clock(now)


@pytest.fixture
def http():
    return FakeHttp({LISTING_URL: BUSINESS_PAGE})


@pytest.fixture
def service(db, http, clock):
    return IngestService(db, http, sources={"businesses": [BusinessDirectorySource()]}, clock=clock)


async def test_first_run_stores_records(service, http):
    result = await service.run("businesses")
    assert result.status == "success"
    assert result.total == 2
    assert result.new == 2
    assert result.updated == 0
    assert result.message == "Processed 2 businesses: 2 new, 0 updated"
    assert http.requested == [LISTING_URL]
    assert await service.records.count("businesses") == 2

    (entry,) = await service.run_log.recent("businesses")
    assert entry.status == "success"
    assert entry.items_processed == 2


async def test_second_run_inside_interval_is_skipped(service, http, clock):
    await service.run("businesses")
    clock.advance(hours=2)
    result = await service.run("businesses")
    assert result.skipped is True
    assert result.status == "skipped"
    assert result.message == "Skipped businesses scraping - last run was 2.0 hours ago"
    assert len(http.requested) == 1
    assert await service.run_log.count("businesses") == 1


async def test_forced_rerun_is_idempotent(service, clock):
    await service.run("businesses")
    clock.advance(hours=1)
    result = await service.run("businesses", force=True)
    assert result.total == 2
    assert result.new == 0
    assert result.updated == 0
    assert await service.records.count("businesses") == 2


async def test_disabled_source_skipped_unless_forced(service):
    await service.configs.update("businesses", is_enabled=False)
    result = await service.run("businesses")
    assert result.status == "skipped"
    assert result.message == "Skipped businesses scraping - disabled"

    forced = await service.run("businesses", force=True)
    assert forced.status == "success"
    config = await service.configs.get("businesses")
    assert config.next_run is None


async def test_clear_seed_before_run(service, db, now):
    stamp = now.isoformat()
    await db.write(
        "INSERT INTO businesses (name, name_key, address, source_url, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        ("Placeholder", "placeholder", "1 Main Street", "placeholder", stamp, stamp),
    )
    result = await service.run("businesses", clear_seed=True)
    assert result.cleared_seed == 1
    assert await service.records.count("businesses") == 2


async def test_fetch_failure_is_logged_as_error(db, clock):
    http = FakeHttp({LISTING_URL: FetchError(LISTING_URL, "HTTP 503", status=503, attempts=3)})
    service = IngestService(db, http, sources={"businesses": [BusinessDirectorySource()]}, clock=clock)

    result = await service.run("businesses")
    assert result.status == "error"
    assert "HTTP 503" in result.message

    (entry,) = await service.run_log.recent("businesses")
    assert entry.status == "error"
    config = await service.configs.get("businesses")
    assert config.last_run == clock()
    assert config.last_success is None


async def test_status_reports_countdown(service, now):
    status = await service.status("businesses")
    # Thursday noon UTC; next Monday 06:00 MDT is 2025-07-14 12:00 UTC
    assert status.next_scheduled == now.replace(day=14)
    assert status.countdown == "4 days"
    assert status.status == "idle"

    await service.configs.update("businesses", is_enabled=False)
    disabled = await service.status("businesses")
    assert disabled.status == "disabled"
    assert disabled.next_scheduled is None
    assert disabled.countdown is None


async def test_run_all_covers_registered_sources(service):
    results = await service.run_all()
    assert [r.type for r in results] == ["businesses"]
    assert results[0].new == 2


async def test_unknown_type_rejected(service):
    with pytest.raises(ValueError):
        await service.run("weather")
    with pytest.raises(ValueError):
        await service.run("news")
    with pytest.raises(ValueError):
        await service.status("weather")


CITY_CALENDAR = """
<h3><a href="/Calendar.aspx?EID=101">Summer Concert in the Park</a></h3>
<p>August 15, 2025, 7:00 PM - 9:00 PM @ Peace Cairn Park</p>
"""


class PickyDirectory(BusinessDirectorySource):
    """Chokes on one row of the directory page."""

    def parse_block(self, block, *, now):
        if "Acme" in block:
            raise ValueError("unreadable row")
        return super().parse_block(block, now=now)


class BrokenLayout(BusinessDirectorySource):
    def extract_blocks(self, item):
        raise RuntimeError("layout changed")


class GatedDirectory(BusinessDirectorySource):
    """Each fetch waits on its own gate, so runs can be held open."""

    def __init__(self, gates):
        super().__init__()
        self.gates = list(gates)

    async def fetch(self, http):
        gate = self.gates.pop(0)
        await gate.wait()
        async for item in super().fetch(http):
            yield item


async def test_parse_error_recorded_and_next_block_stored(db, http, clock):
    service = IngestService(db, http, sources={"businesses": [PickyDirectory()]}, clock=clock)
    result = await service.run("businesses")
    assert result.status == "success"
    assert result.errors == ["parse: unreadable row"]
    assert result.total == 1
    assert await service.records.count("businesses") == 1

    (entry,) = await service.run_log.recent("businesses")
    assert entry.error_messages == ["parse: unreadable row"]


async def test_store_error_recorded_and_earlier_writes_kept(service, monkeypatch):
    upsert = service.records.upsert
    calls = []

    async def flaky_upsert(table, record):
        calls.append(record)
        if len(calls) == 2:
            raise aiosqlite.OperationalError("database is locked")
        return await upsert(table, record)

    monkeypatch.setattr(service.records, "upsert", flaky_upsert)
    result = await service.run("businesses")
    assert result.status == "success"
    assert result.errors == ["store: database is locked"]
    assert result.total == 2
    assert result.new == 1
    assert await service.records.count("businesses") == 1


async def test_unexpected_error_still_logged(db, http, clock):
    service = IngestService(db, http, sources={"businesses": [BrokenLayout()]}, clock=clock)
    result = await service.run("businesses")
    assert result.status == "error"
    assert result.message == "layout changed"
    assert result.errors == ["Error in Wetaskiwin Business Directory: layout changed"]

    (entry,) = await service.run_log.recent("businesses")
    assert entry.status == "error"
    config = await service.configs.get("businesses")
    assert config.last_run == clock()
    assert config.last_success is None


async def test_failing_site_does_not_stop_the_others(db, clock):
    http = FakeHttp({CALENDAR_URL: CITY_CALENDAR})
    service = IngestService(
        db, http, sources={"events": [ConnectWetaskiwinSource(), CityCalendarSource()]}, clock=clock
    )
    result = await service.run("events")
    assert result.status == "success"
    assert result.new == 1
    assert result.errors == [f"Error in Connect Wetaskiwin: Failed to fetch {TOCKIFY_URL}: HTTP 404"]
    assert http.requested == [TOCKIFY_URL, CALENDAR_URL]
    assert await service.records.count("events") == 1

    config = await service.configs.get("events")
    assert config.last_success == clock()


async def test_run_is_an_error_only_when_every_site_fails(db, clock):
    service = IngestService(
        db, FakeHttp(), sources={"events": [ConnectWetaskiwinSource(), CityCalendarSource()]}, clock=clock
    )
    result = await service.run("events")
    assert result.status == "error"
    assert len(result.errors) == 2
    assert result.errors[1].startswith("Error in City of Wetaskiwin: ")
    assert result.message.count("HTTP 404") == 2

    (entry,) = await service.run_log.recent("events")
    assert entry.status == "error"


async def test_run_all_reports_every_type_when_one_raises(db, http, clock, monkeypatch):
    service = IngestService(
        db,
        http,
        sources={"events": [CityCalendarSource()], "businesses": [BusinessDirectorySource()]},
        clock=clock,
    )
    get = service.configs.get

    async def failing_get(type_):
        if type_ == "events":
            raise RuntimeError("config table missing")
        return await get(type_)

    monkeypatch.setattr(service.configs, "get", failing_get)
    events, businesses = await service.run_all()
    assert businesses.status == "success"
    assert businesses.new == 2
    assert events.type == "events"
    assert events.status == "error"
    assert events.message == "config table missing"

    (entry,) = await service.run_log.recent("events")
    assert entry.status == "error"
    assert entry.message == "config table missing"


async def test_status_stays_running_while_any_run_is_open(db, http, clock):
    gates = [asyncio.Event(), asyncio.Event()]
    source = GatedDirectory(gates)
    service = IngestService(db, http, sources={"businesses": [source]}, clock=clock)

    runs = {asyncio.create_task(service.run("businesses", force=True)) for _ in range(2)}
    for _ in range(200):
        if not source.gates:
            break
        await asyncio.sleep(0.01)
    assert (await service.status("businesses")).status == "running"

    gates[0].set()
    done, pending = await asyncio.wait(runs, return_when=asyncio.FIRST_COMPLETED)
    assert len(done) == 1
    assert (await service.status("businesses")).status == "running"

    gates[1].set()
    await asyncio.gather(*pending)
    assert (await service.status("businesses")).status == "idle"
