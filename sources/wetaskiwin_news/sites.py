"""
Local news sites covering Wetaskiwin and the shape of their article URLs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

__all__ = ["NewsSite", "WETASKIWIN_TIMES", "PIPESTONE_FLYER", "CENTRAL_ALBERTA_ONLINE", "NEWS_SITES"]

_FILE_LINK = re.compile(r"\.(jpg|jpeg|png|gif|pdf)$", re.I)


@dataclass(frozen=True)
class NewsSite:
    """Where a site lists its stories and how to tell a story URL apart."""

    name: str
    root: str
    # (listing url, max articles taken from it); the first entry is required
    listings: Tuple[Tuple[str, int], ...]
    article_patterns: Tuple[Pattern[str], ...]
    exclude_patterns: Tuple[Pattern[str], ...] = ()
    link_selector: str = "a[href]"
    # stripped from <title> when the page has no headline element
    title_suffixes: Tuple[str, ...] = ()
    invalid_titles: Tuple[Pattern[str], ...] = ()
    # (url fragment, category); overrides keyword categories, later entries win
    url_categories: Tuple[Tuple[str, str], ...] = ()

    def is_article_url(self, url: str) -> bool:
        if _FILE_LINK.search(url):
            return False
        return any(p.search(url) for p in self.article_patterns) and not any(
            p.search(url) for p in self.exclude_patterns
        )


_WT_ROOT = "https://www.wetaskiwintimes.com"
WETASKIWIN_TIMES = NewsSite(
    name="Wetaskiwin Times",
    root=_WT_ROOT,
    listings=((_WT_ROOT, 6), (f"{_WT_ROOT}/category/news/local-news/", 5)),
    article_patterns=(
        re.compile(r"/news/[^/]+/[^/]+$"),
        re.compile(r"/sports/[^/]+/[^/]+$"),
        re.compile(r"/entertainment/[^/]+/[^/]+$"),
        re.compile(r"/life/[^/]+/[^/]+$"),
        re.compile(r"/opinion/[^/]+/[^/]+$"),
    ),
    exclude_patterns=(
        re.compile(r"/category/"),
        re.compile(r"/tag/"),
        re.compile(r"/page/"),
        re.compile(r"/author/"),
        re.compile(r"/search"),
        re.compile(r"/weather/"),
        re.compile(r"/contests/"),
        re.compile(r"/newsletters/"),
    ),
    title_suffixes=(" | Wetaskiwin Times",),
)

_PF_ROOT = "https://www.pipestoneflyer.ca"
PIPESTONE_FLYER = NewsSite(
    name="Pipestone Flyer",
    root=_PF_ROOT,
    listings=((_PF_ROOT, 6), (f"{_PF_ROOT}/local-news", 5)),
    # story slugs end in a numeric id: /local-news/some-headline-7992950
    article_patterns=tuple(
        re.compile(rf"/{section}/[^/]+-\d+$")
        for section in ("news", "local-news", "sports", "home", "home2", "entertainment", "opinion")
    ),
    exclude_patterns=(
        re.compile(r"/(local-news|news|sports|community|obituaries|contests)/?$"),
        re.compile(r"/polls/"),
        re.compile(r"/newsletters/"),
        re.compile(r"/tags/"),
        re.compile(r"/category/"),
        re.compile(r"/marketplace/"),
        re.compile(r"/e-editions/"),
    ),
    title_suffixes=(" - Pipestone Flyer",),
    invalid_titles=(
        re.compile(r"^(News|Sports|Entertainment|Life|Opinion|Community)\s*$", re.I),
        re.compile(r"More\s+\w+\s*>", re.I),
        re.compile(r"QUIZ:", re.I),
    ),
    url_categories=(("/local-news/", "local-news"), ("/sports/", "sports"), ("/business/", "business")),
)

_CAO_ROOT = "https://centralalbertaonline.com"
CENTRAL_ALBERTA_ONLINE = NewsSite(
    name="Central Alberta Online",
    root=_CAO_ROOT,
    listings=((_CAO_ROOT, 10), (f"{_CAO_ROOT}/local-news", 10)),
    article_patterns=(re.compile(r"/articles/"),),
    exclude_patterns=(
        re.compile(r"/local-news"),
        re.compile(r"/national-news"),
        re.compile(r"/ag-news"),
        re.compile(r"/community"),
        re.compile(r"/sponsored"),
        re.compile(r"\?page="),
    ),
    link_selector='a[href*="/articles/"]',
    invalid_titles=(re.compile(r"advertisement", re.I), re.compile(r"contest", re.I)),
)

NEWS_SITES: Tuple[NewsSite, ...] = (WETASKIWIN_TIMES, PIPESTONE_FLYER, CENTRAL_ALBERTA_ONLINE)
