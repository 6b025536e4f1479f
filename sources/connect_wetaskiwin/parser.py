"""
JSON-LD event parser for the Connect Wetaskiwin community calendar.

The calendar is hosted on Tockify, which embeds every upcoming event as
schema.org ``Event`` data in ``<script type="application/ld+json">`` tags.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from ingest.blocks import TreeNode
from ingest.models import EventRecord
from ingest.text import fix_spaces
from sources.wetaskiwin_events.parser import FALLBACK_LOCATION, categorize_event

logger = logging.getLogger(__name__)

CALENDAR_URL = "https://connectwetaskiwin.com/calendar-of-events.html"
TOCKIFY_URL = "https://tockify.com/connectwetaskiwin"
SOURCE_NAME = "Connect Wetaskiwin"
LOCAL_TZ = ZoneInfo("America/Edmonton")

LD_JSON = 'script[type="application/ld+json"]'


def extract_ld_events(root: TreeNode) -> List[Dict[str, Any]]:
    """Every ``Event`` object found in the page's JSON-LD scripts."""
    events: List[Dict[str, Any]] = []
    for i, script in enumerate(root.select(LD_JSON)):
        raw = script.text().strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Bad JSON-LD in script %d: %s", i, e)
            continue
        for entry in data if isinstance(data, list) else [data]:
            if isinstance(entry, dict) and entry.get("@type") == "Event":
                events.append(entry)
    return events


def parse_iso(value: str, tz: tzinfo = LOCAL_TZ) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def clock_time(moment: datetime) -> str:
    """``7:00 PM`` style wall-clock time."""
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment.minute:02d} {'AM' if moment.hour < 12 else 'PM'}"


def _place(location: Any) -> Optional[Dict[str, Any]]:
    # events with a livestream list a VirtualLocation next to the Place
    candidates = location if isinstance(location, list) else [location]
    for loc in candidates:
        if isinstance(loc, dict) and loc.get("@type") == "Place":
            return loc
    return None


def event_location(data: Dict[str, Any]) -> str:
    place = _place(data.get("location"))
    if place is None:
        return FALLBACK_LOCATION
    name = fix_spaces(place.get("name") or "") or FALLBACK_LOCATION
    address = place.get("address")
    street = fix_spaces(address.get("streetAddress") or "") if isinstance(address, dict) else ""
    if street and street != name:
        return f"{name}, {street}"
    return name


def parse_ld_event(
    data: Dict[str, Any],
    *,
    now: datetime,
    page_url: str = CALENDAR_URL,
    tz: tzinfo = LOCAL_TZ,
) -> Optional[EventRecord]:
    """Turn one schema.org Event into a record; ``None`` if undated or past."""
    title = fix_spaces(data.get("name") or "") or "Untitled Event"
    start = data.get("startDate")
    if not isinstance(start, str) or not start.strip():
        logger.debug("Skipping event without start date: %s", title)
        return None
    date = parse_iso(start, tz)
    if date is None:
        logger.debug("Skipping event with invalid date: %s (%s)", title, start)
        return None
    if date <= now:
        return None

    description = fix_spaces(data.get("description") or "") or title
    # date-only start means an all-day event
    time = clock_time(date.astimezone(tz)) if "T" in start else "All Day"

    return EventRecord(
        title=title,
        description=description,
        date=date,
        time=time,
        location=event_location(data),
        category=categorize_event(title, description),
        organizer=SOURCE_NAME,
        website=data.get("url") or page_url,
        source_url=page_url,
        source_name=SOURCE_NAME,
    )
