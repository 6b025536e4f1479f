"""
Connect Wetaskiwin community calendar source.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from ingest.blocks import parse_html
from ingest.infra.http import HttpClient
from ingest.interfaces import Source
from ingest.models import EventRecord, RawItem

from .parser import CALENDAR_URL, SOURCE_NAME, TOCKIFY_URL, extract_ld_events, parse_ld_event

logger = logging.getLogger(__name__)

__all__ = ["ConnectWetaskiwinSource"]


class ConnectWetaskiwinSource(Source):
    """Structured events from the Tockify page behind the community calendar."""

    type = "events"
    table = "events"

    def __init__(self, *, url: str = TOCKIFY_URL, page_url: str = CALENDAR_URL) -> None:
        self.url = url
        self.page_url = page_url

    @property
    def name(self) -> str:
        return SOURCE_NAME

    async def fetch(self, http: HttpClient) -> AsyncIterator[RawItem]:
        html, status = await http.fetch(self.url)
        logger.info("Fetched Tockify calendar (%d bytes)", len(html))
        yield RawItem(source=self.type, url=self.url, html=html, status=status)

    def extract_blocks(self, item: RawItem) -> List[Dict[str, Any]]:
        events = extract_ld_events(parse_html(item.html))
        logger.debug("Found %d JSON-LD events", len(events))
        return events

    def parse_block(self, block: Dict[str, Any], *, now: datetime) -> Optional[EventRecord]:
        return parse_ld_event(block, now=now, page_url=self.page_url)
