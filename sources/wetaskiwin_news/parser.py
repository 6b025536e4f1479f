"""
Article page parser for local news sites.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

from ingest.blocks import TreeNode, parse_html
from ingest.models import NewsArticle
from ingest.text import fix_spaces

from .sites import WETASKIWIN_TIMES, NewsSite

logger = logging.getLogger(__name__)

LOCAL_TZ = ZoneInfo("America/Edmonton")
SUMMARY_LENGTH = 200
MIN_CONTENT = 50

# section fronts and navigation that slip through the URL filter
INVALID_TITLES = [
    re.compile(r"^(News|Sports|Entertainment|Life|Opinion)\s*\|", re.I),
    re.compile(r"Latest\s+(Local\s+)?Headlines", re.I),
    re.compile(r"News\s*\|\s*Latest", re.I),
    re.compile(r"More\s+\w+\s+stories", re.I),
]

TITLE_SELECTORS = ("h1", ".article-title", ".headline")
CONTENT_SELECTORS = (
    ".article-content p",
    ".entry-content p",
    ".post-content p",
    ".story-content p",
    "article p",
    ".content p",
    "main p",
)
DATE_SELECTORS = (".article-date", ".published-date", ".post-date", ".entry-date", "time[datetime]", ".date", ".timestamp")
AUTHOR_SELECTORS = (".author", ".author-name", ".byline", ".article-author", ".post-author", ".entry-author", ".story-byline")
IMAGE_SELECTORS = (
    ".article-image img",
    ".featured-image img",
    ".story-image img",
    ".hero-image img",
    ".post-thumbnail img",
    ".post-image img",
    "article img",
)

_PUBLISHED_RE = re.compile(r"Published\s+([A-Za-z]{3,9}\.?\s+\d{1,2},\s+\d{4})")
_AGO_RE = re.compile(r"(\d+)\s+(minute|hour|day|week)s?\s+ago", re.I)


def is_article_url(url: str, site: NewsSite = WETASKIWIN_TIMES) -> bool:
    return site.is_article_url(url)


def find_article_links(root: TreeNode, site: NewsSite = WETASKIWIN_TIMES, limit: int = 6) -> List[str]:
    """Unique article URLs on a listing page, in page order."""
    seen: List[str] = []
    for a in root.select(site.link_selector):
        url = urljoin(site.root + "/", a.attr("href") or "")
        if site.is_article_url(url) and url not in seen:
            seen.append(url)
    return seen[:limit]


def _first_match(root: TreeNode, selectors: Iterable[str]) -> Optional[TreeNode]:
    for sel in selectors:
        found = root.select(sel)
        if found:
            return found[0]
    return None


def _meta(root: TreeNode, selector: str) -> str:
    for el in root.select(selector)[:1]:
        return fix_spaces(el.attr("content") or "")
    return ""


def parse_published(text: str, *, now: datetime, tz: tzinfo = LOCAL_TZ) -> Optional[datetime]:
    """Read the date formats seen on article pages.

    ``Published Jul 04, 2025 • 4 minute read``, ``July 5, 2025``, ISO 8601,
    ``3 days ago`` and ``MM/DD/YYYY``. Returns ``None`` when nothing fits.
    """
    text = text.strip()
    if not text:
        return None

    m = _PUBLISHED_RE.search(text)
    candidate = m.group(1).replace(".", "") if m else text

    for fmt in ("%b %d, %Y", "%B %d, %Y", "%m/%d/%Y"):
        try:
            return datetime.strptime(candidate, fmt).replace(tzinfo=tz)
        except ValueError:
            continue

    m = _AGO_RE.search(text)
    if m:
        amount, unit = int(m.group(1)), m.group(2).lower()
        return now - timedelta(**{f"{unit}s": amount})

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def categorize_news(title: str, content: str) -> str:
    t = title.lower()
    if "sports" in t or any(k in t for k in ("hockey", "nhl", "football", "cfl", "nfl", "soccer", "mls",
                                             "baseball", "mlb", "basketball", "nba", "curling")):
        return "sports"
    if any(k in t for k in ("latest local headlines", "wetaskiwin news", "world news", "international headlines",
                            "canada news", "national headlines")):
        return "local-news"
    if "health" in t:
        return "health"
    if any(k in t for k in ("employment", "business spotlight", "business news")):
        return "business"
    if "festival" in t or "celebration" in t:
        return "community"
    if "alberta news" in t or "provincial news" in t or "separation" in t or ("alberta" in t and "surplus" in t):
        return "city-council"
    if any(k in t for k in ("collision", "dies", "killed", "funnel cloud")):
        return "weather"

    text = f"{title} {content}".lower()
    sporty = "sports" in text
    if any(k in text for k in ("school", "collegiate", "education", "student", "teacher")):
        return "education"
    if any(k in text for k in ("council", "mayor", "municipal", "city hall")):
        return "city-council"
    if ("government" in text or "provincial" in text) and not sporty:
        return "city-council"
    if ("business" in text and not sporty) or any(k in text for k in ("economic", "company", "employment centre")):
        return "business"
    if any(k in text for k in ("community", "event", "festival", "volunteer")):
        return "community"
    return "local-news"


def parse_article(html: str, url: str, *, now: datetime, site: NewsSite = WETASKIWIN_TIMES) -> Optional[NewsArticle]:
    """Parse one article page; ``None`` for section fronts and empty pages."""
    root = parse_html(html)

    node = _first_match(root, TITLE_SELECTORS)
    title = fix_spaces(node.text()) if node else ""
    title = title or _meta(root, 'meta[property="og:title"]')
    if not title:
        node = _first_match(root, ("title",))
        title = fix_spaces(node.text()) if node else ""
        for suffix in site.title_suffixes:
            title = title.replace(suffix, "")
        title = title.strip()
    if len(title) <= 10 or any(p.search(title) for p in (*INVALID_TITLES, *site.invalid_titles)):
        logger.debug("Not an article: %s (%r)", url, title)
        return None

    content = ""
    for sel in CONTENT_SELECTORS:
        paragraphs = root.select(sel)
        if paragraphs:
            content = " ".join(fix_spaces(p.text()) for p in paragraphs).strip()
            break
    if len(content) <= MIN_CONTENT:
        logger.debug("Article body too short: %s", url)
        return None
    summary = content[:SUMMARY_LENGTH] + ("..." if len(content) > SUMMARY_LENGTH else "")

    published_at = None
    for sel in DATE_SELECTORS:
        for el in root.select(sel)[:1]:
            published_at = parse_published(el.attr("datetime") or el.text(), now=now)
        if published_at:
            break
    if published_at is None:
        published_at = parse_published(_meta(root, 'meta[property="article:published_time"]'), now=now)

    author_node = _first_match(root, AUTHOR_SELECTORS)
    author = fix_spaces(author_node.text()) if author_node else _meta(root, 'meta[name="author"]')
    author = re.sub(r"^by\s*", "", author, flags=re.I)

    image_url = None
    for sel in IMAGE_SELECTORS:
        imgs = root.select(sel)
        src = (imgs[0].attr("src") or imgs[0].attr("data-src")) if imgs else None
        if src:
            image_url = urljoin(site.root + "/", src)
            break
    if image_url is None and _meta(root, 'meta[property="og:image"]'):
        image_url = urljoin(site.root + "/", _meta(root, 'meta[property="og:image"]'))

    category = categorize_news(title, content)
    for fragment, section in site.url_categories:
        if fragment in url:
            category = section

    return NewsArticle(
        title=title,
        summary=summary,
        category=category,
        author=author or None,
        published_at=(published_at or now).astimezone(timezone.utc),
        image_url=image_url,
        source_url=url,
        source_name=site.name,
    )
