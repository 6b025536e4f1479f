"""
text.py – whitespace and boilerplate cleanup for scraped DOM text.
"""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple

# NBSP, ogham space, en/em/thin/hair spaces, narrow NBSP, math space,
# ideographic space
_UNICODE_SPACES = re.compile(r"[\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]")
# zero-width space/joiners, word joiner and BOM; removed, not spaced
_ZERO_WIDTH = re.compile(r"[\u200b-\u200d\u2060\ufeff]")
_WHITESPACE = re.compile(r"\s+")

BOILERPLATE: List[Tuple[str, Pattern[str]]] = [
    ("html comment", re.compile(r"<!--.*?-->", re.S)),
    ("map link", re.compile(r"\[View Map[^\]]*\]")),
    ("map caption", re.compile(r"View Map")),
    ("new window caption", re.compile(r"\(?Opens in new window\)?", re.I)),
    ("website link", re.compile(r"Link:.*?(?=Phone:|$)")),
    ("script variable", re.compile(r"\bvar\s+\w+\s*=[^;]*;")),
    ("document.write", re.compile(r"document\.write[^;]*;")),
    ("email link", re.compile(r"Email:.*?</a>")),
    ("facebook link", re.compile(r"Facebook:.*?(?=Phone:|$)")),
    ("url", re.compile(r"https?://\S+")),
]


def fix_spaces(text: str) -> str:
    """Map unicode space variants to ASCII and collapse runs of whitespace."""
    if not text:
        return ""
    text = _ZERO_WIDTH.sub("", text)
    text = _UNICODE_SPACES.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_text(text: str, *, strip_boilerplate: bool = True) -> str:
    """Return *text* as a trimmed single line with known noise removed."""
    text = fix_spaces(text)
    if strip_boilerplate:
        for _label, pattern in BOILERPLATE:
            text = pattern.sub(" ", text)
        text = _WHITESPACE.sub(" ", text).strip()
    return text
