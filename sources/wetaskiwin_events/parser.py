"""
Calendar heading parser.

A calendar entry is an ``h3`` heading holding the detail link, followed by a
handful of sibling elements: the date line, a description and noise such as
"More Details". Only the date line is structured; the rest is free text.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, tzinfo
from typing import Optional, Tuple
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

from ingest.blocks import HEADING_TAGS, TreeNode, bounded_forward_scan
from ingest.models import EventRecord
from ingest.text import normalize_text

logger = logging.getLogger(__name__)

SITE_ROOT = "https://wetaskiwin.ca/"
SOURCE_NAME = "City of Wetaskiwin"
ORGANIZER = "City of Wetaskiwin"
FALLBACK_LOCATION = "Wetaskiwin, AB"
LOCAL_TZ = ZoneInfo("America/Edmonton")

DETAIL_LINK = 'a[href*="Calendar.aspx"]'
SCAN_LIMIT = 5
MIN_DESCRIPTION = 10

_MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
    r"|Aug(?:ust)?|Sep(?:tember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
_DATE = rf"{_MONTH} \d{{1,2}}, \d{{4}}"
_TIME = r"\d{1,2}:\d{2}\s?[AP]M"

# (i) date, start, optional end, optional "@ location" and nothing else
SINGLE_DAY_RE = re.compile(
    rf"(?P<date>{_DATE}),\s*(?P<start>{_TIME})"
    rf"(?:\s*-\s*(?P<end>{_TIME}))?"
    rf"\s*(?:@\s*(?P<location>.+))?",
    re.I,
)
# (ii) two full date-time expressions
MULTI_DAY_RE = re.compile(
    rf"(?P<date>{_DATE}),\s*(?P<start>{_TIME})\s*-\s*(?P<end>{_DATE},\s*{_TIME})",
    re.I,
)
# (iii) date and time only
MINIMAL_RE = re.compile(rf"(?P<date>{_DATE}),\s*(?P<start>{_TIME})", re.I)

_LOCATION_RE = re.compile(r"@\s*(.+)$")

CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("music", ("music", "concert", "band")),
    ("sports", ("sport", "hockey", "baseball", "soccer")),
    ("arts", ("art", "gallery", "exhibition")),
    ("food", ("food", "restaurant", "dining", "market")),
    ("education", ("education", "school", "learning", "workshop")),
    ("business", ("business", "networking", "conference")),
    ("family", ("family", "kids", "children")),
    ("health", ("health", "fitness", "wellness")),
)


def to_24_hour(hour: int, meridiem: str) -> int:
    """12 AM is midnight, 12 PM is noon."""
    meridiem = meridiem.upper()
    if hour == 12:
        return 0 if meridiem == "AM" else 12
    return hour + 12 if meridiem == "PM" else hour


def _parse_calendar_date(text: str) -> datetime:
    for fmt in ("%B %d, %Y", "%b %d, %Y"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognised calendar date: {text!r}")


def to_timestamp(date_text: str, time_text: str, tz: tzinfo = LOCAL_TZ) -> datetime:
    """Combine ``"August 15, 2025"`` and ``"7:00 PM"`` into an aware datetime."""
    m = re.fullmatch(r"(\d{1,2}):(\d{2})\s?([AP]M)", time_text.strip(), re.I)
    if not m:
        raise ValueError(f"unrecognised clock time: {time_text!r}")
    hour, minute = int(m.group(1)), int(m.group(2))
    if not 1 <= hour <= 12 or minute > 59:
        raise ValueError(f"clock time out of range: {time_text!r}")
    day = _parse_calendar_date(date_text.strip())
    return day.replace(hour=to_24_hour(hour, m.group(3)), minute=minute, tzinfo=tz)


def match_date_line(text: str) -> Optional[re.Match]:
    """Try the three date-line shapes in priority order."""
    m = SINGLE_DAY_RE.fullmatch(text)
    if m:
        return m
    m = MULTI_DAY_RE.search(text)
    if m:
        return m
    return MINIMAL_RE.search(text)


def categorize_event(title: str, description: str) -> str:
    text = f"{title} {description}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return "community"


def _usable_description(text: str) -> bool:
    return len(text) > MIN_DESCRIPTION and "More Details" not in text


def parse_event_heading(
    heading: TreeNode,
    *,
    now: datetime,
    page_url: str,
    site_root: str = SITE_ROOT,
    tz: tzinfo = LOCAL_TZ,
) -> Optional[EventRecord]:
    """Parse one heading block.

    Returns ``None`` when the heading has no detail link, no date line is
    found within the scan window, or the event is not after *now*.
    """
    links = heading.select(DETAIL_LINK)
    if not links:
        return None
    link = links[0]
    title = normalize_text(link.text())
    href = link.attr("href")
    if not title or not href:
        return None

    description = ""
    match = None
    date_line = ""
    for node in bounded_forward_scan(heading, limit=SCAN_LIMIT):
        text = normalize_text(node.text())
        if not text:
            continue
        match = match_date_line(text)
        if match:
            date_line = text
            following = node.next_sibling()
            if following is not None and following.tag_name() not in HEADING_TAGS:
                desc = normalize_text(following.text())
                if _usable_description(desc):
                    description = desc
            break
        if not description and _usable_description(text):
            description = text

    if match is None:
        logger.debug("No date line for %r", title)
        return None

    start = match.group("start")
    date = to_timestamp(match.group("date"), start, tz)
    if date <= now:
        return None

    end = match.groupdict().get("end")
    time = f"{start} - {end}" if end else start

    location_match = _LOCATION_RE.search(date_line)
    location = location_match.group(1).strip() if location_match else ""

    description = description or title
    return EventRecord(
        title=title,
        description=description,
        date=date,
        time=time,
        location=location or FALLBACK_LOCATION,
        category=categorize_event(title, description),
        organizer=ORGANIZER,
        website=urljoin(site_root, href),
        source_url=page_url,
        source_name=SOURCE_NAME,
    )
