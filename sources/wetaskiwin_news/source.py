"""
News site source: listing pages lead to article pages.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import AsyncIterator, List, Optional

from ingest.blocks import parse_html
from ingest.infra.http import FetchError, HttpClient
from ingest.interfaces import Source
from ingest.models import NewsArticle, RawItem

from .parser import find_article_links, parse_article
from .sites import WETASKIWIN_TIMES, NewsSite

logger = logging.getLogger(__name__)

__all__ = ["NewsSiteSource"]

RETENTION = timedelta(days=14)


class NewsSiteSource(Source):
    """Recent local stories from one site, one article page per block."""

    type = "news"
    table = "news_articles"
    retention = RETENTION
    retention_column = "published_at"

    def __init__(self, site: NewsSite = WETASKIWIN_TIMES) -> None:
        self.site = site

    @property
    def name(self) -> str:
        return self.site.name

    async def _article_links(self, http: HttpClient) -> List[str]:
        links: List[str] = []
        for i, (url, limit) in enumerate(self.site.listings):
            try:
                html, _status = await http.fetch(url)
            except FetchError:
                if i == 0:
                    raise
                logger.warning("Skipping %s listing %s", self.site.name, url)
                continue
            for link in find_article_links(parse_html(html), self.site, limit):
                if link not in links:
                    links.append(link)
        return links

    async def fetch(self, http: HttpClient) -> AsyncIterator[RawItem]:
        links = await self._article_links(http)
        logger.info("Found %d %s article links", len(links), self.site.name)
        for url in links:
            try:
                html, status = await http.fetch(url)
            except FetchError as e:
                logger.warning("Skipping article: %s", e)
                continue
            yield RawItem(source=self.type, url=url, html=html, status=status)

    def extract_blocks(self, item: RawItem) -> List[RawItem]:
        return [item]

    def parse_block(self, block: RawItem, *, now: datetime) -> Optional[NewsArticle]:
        article = parse_article(block.html, block.url, now=now, site=self.site)
        if article is None:
            return None
        if article.published_at < now - self.retention:
            logger.debug("Article older than %s: %s", self.retention, block.url)
            return None
        return article
