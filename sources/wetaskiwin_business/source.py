"""
Wetaskiwin business directory source.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, List, Optional

from ingest.blocks import parse_html, select_text_blocks
from ingest.infra.http import HttpClient
from ingest.interfaces import Source
from ingest.models import BusinessRecord, RawItem

from .parser import parse_business_block
from .vocabulary import DEFAULT_CITY, DEFAULT_PROVINCE

logger = logging.getLogger(__name__)

__all__ = ["BusinessDirectorySource"]

DIRECTORY_URL = "https://www.wetaskiwin.ca/businessdirectoryii.aspx"
ROW_SELECTOR = ".listItemsRow"
MIN_ROW_LENGTH = 20


class BusinessDirectorySource(Source):
    """Municipal business directory, fetched in one show-all page."""

    type = "businesses"
    table = "businesses"

    def __init__(
        self,
        *,
        url: str = DIRECTORY_URL,
        city: str = DEFAULT_CITY,
        province: str = DEFAULT_PROVINCE,
    ) -> None:
        self.url = url
        self.city = city
        self.province = province

    @property
    def name(self) -> str:
        return "Wetaskiwin Business Directory"

    @property
    def listing_url(self) -> str:
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}ysnShowAll=1"

    async def fetch(self, http: HttpClient) -> AsyncIterator[RawItem]:
        html, status = await http.fetch(self.listing_url)
        logger.info("Fetched business directory (%d bytes)", len(html))
        yield RawItem(source=self.type, url=self.url, html=html, status=status)

    def extract_blocks(self, item: RawItem) -> List[str]:
        root = parse_html(item.html)
        return select_text_blocks(
            root,
            ROW_SELECTOR,
            must_contain=self.city,
            min_length=MIN_ROW_LENGTH,
        )

    def parse_block(self, block: str, *, now: datetime) -> Optional[BusinessRecord]:
        return parse_business_block(block, self.url, city=self.city, province=self.province)
