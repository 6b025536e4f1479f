"""
Wetaskiwin-area news sites - article parser and source registration.
"""

from .parser import parse_article
from .sites import CENTRAL_ALBERTA_ONLINE, NEWS_SITES, PIPESTONE_FLYER, WETASKIWIN_TIMES, NewsSite
from .source import NewsSiteSource

__all__ = [
    "NewsSiteSource",
    "NewsSite",
    "NEWS_SITES",
    "WETASKIWIN_TIMES",
    "PIPESTONE_FLYER",
    "CENTRAL_ALBERTA_ONLINE",
    "parse_article",
]
