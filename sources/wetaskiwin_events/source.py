"""
City of Wetaskiwin calendar source.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, List, Optional

from ingest.blocks import TreeNode, parse_html
from ingest.infra.http import HttpClient
from ingest.interfaces import Source
from ingest.models import EventRecord, RawItem

from .parser import DETAIL_LINK, SITE_ROOT, SOURCE_NAME, parse_event_heading

logger = logging.getLogger(__name__)

__all__ = ["CityCalendarSource"]

# City (25) and Community (23) calendars, upcoming only
CALENDAR_URL = "https://wetaskiwin.ca/calendar.aspx?CID=25,23&showPastEvents=false"


class CityCalendarSource(Source):
    """Event headings from the municipal calendar page."""

    type = "events"
    table = "events"

    def __init__(self, *, url: str = CALENDAR_URL, site_root: str = SITE_ROOT) -> None:
        self.url = url
        self.site_root = site_root

    @property
    def name(self) -> str:
        return SOURCE_NAME

    async def fetch(self, http: HttpClient) -> AsyncIterator[RawItem]:
        html, status = await http.fetch(self.url)
        logger.info("Fetched calendar page (%d bytes)", len(html))
        yield RawItem(source=self.type, url=self.url, html=html, status=status)

    def extract_blocks(self, item: RawItem) -> List[TreeNode]:
        root = parse_html(item.html)
        headings = [h for h in root.select("h3") if h.select(DETAIL_LINK)]
        logger.debug("Found %d calendar headings", len(headings))
        return headings

    def parse_block(self, block: TreeNode, *, now: datetime) -> Optional[EventRecord]:
        return parse_event_heading(block, now=now, page_url=self.url, site_root=self.site_root)
