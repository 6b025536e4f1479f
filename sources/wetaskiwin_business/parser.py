"""
Business directory row parser.

A directory row arrives as one run of text, often with fields glued together
("Amen Thrift ShopTammy Becsko4702 51 AvenueWetaskiwin, AB ..."). Parsing is
done in a fixed order: phone, address, space reinsertion, then the
name/contact split.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from ingest.models import BusinessRecord
from ingest.text import normalize_text

from .vocabulary import (
    BUSINESS_SUFFIXES,
    CATEGORY_KEYWORDS,
    DEFAULT_CITY,
    DEFAULT_PROVINCE,
    address_pattern,
)

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"Phone:\s*(\d{3}[-.\s]?\d{3}[-.\s]?\d{4})", re.I)
_PHONE_CLAUSE_RE = re.compile(r"Phone:.*$", re.I)

_SUFFIX_ALT = "|".join(re.escape(s) for s in sorted(BUSINESS_SUFFIXES, key=len, reverse=True))
_SUFFIX_SET = frozenset(BUSINESS_SUFFIXES)

_NAME_WORD = r"(?:Mc|Mac)?[A-Z][a-z]+"
_CONTACT_TOKEN = rf"(?:{_NAME_WORD}|and|&)"
_SUFFIX_SPLIT_RE = re.compile(
    rf"^(?P<name>.+\b(?i:{_SUFFIX_ALT})\b\.?)"
    rf"(?:\s+(?P<contact>{_NAME_WORD}(?:\s+{_CONTACT_TOKEN}){{0,2}}))?$"
)
_TAIL_TOKEN_RE = re.compile(rf"^(?:{_NAME_WORD}|and|&)$")

# a lowercase/closing character glued to a capitalized word, except the
# inner capital of a Mc/Mac surname
_GLUED_WORD_RE = re.compile(r"([a-z0-9)\].!?])(?<!\bMc)(?<!\bMac)([A-Z][a-z]+)")
_GLUED_SUFFIX_RE = re.compile(rf"(?<![A-Za-z])({_SUFFIX_ALT})(?=[A-Z][a-z])")
_GLUED_CAPS_RE = re.compile(r"([a-z])([A-Z]{2,})")


def normalize_phone(raw: str) -> str:
    digits = re.sub(r"\D", "", raw)
    if len(digits) != 10:
        raise ValueError(f"not a 10-digit phone number: {raw!r}")
    return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"


def extract_phone(text: str) -> Tuple[Optional[str], str]:
    """Return (phone, text with the phone clause and trailing fields removed)."""
    m = PHONE_RE.search(text)
    if not m:
        return None, text
    return normalize_phone(m.group(1)), _PHONE_CLAUSE_RE.sub("", text).strip()


def clean_address(address: str) -> str:
    address = address.replace("??", " ")
    address = re.sub(r"(Street|Avenue|Ave|St|Road|Rd|Drive|Dr|Boulevard|Blvd)([A-Z])", r"\1 \2", address)
    address = re.sub(r"\s+", " ", address)
    address = re.sub(r",\s*,", ",", address)
    return address.strip(" ,")


def extract_address(
    text: str,
    city: str = DEFAULT_CITY,
    province: str = DEFAULT_PROVINCE,
) -> Tuple[Optional[str], str]:
    """Return (address, remaining text). Never returns a partial address."""
    m = address_pattern(city, province).search(text)
    if not m:
        return None, text
    raw = m.group("address")
    remaining = (text[: m.start("address")] + " " + text[m.end("address"):]).strip(" ,")
    return clean_address(raw), re.sub(r"\s+", " ", remaining)


def reinsert_spaces(text: str) -> str:
    text = _GLUED_WORD_RE.sub(r"\1 \2", text)
    text = _GLUED_SUFFIX_RE.sub(r"\1 ", text)
    text = _GLUED_CAPS_RE.sub(r"\1 \2", text)
    return re.sub(r"\s+", " ", text).strip()


def split_name_contact(text: str) -> Tuple[str, str]:
    """Split already spaced text into (business name, contact person)."""
    text = text.strip()
    if not text:
        return "", ""

    # longest name that ends in a suffix word and leaves a valid contact tail
    m = _SUFFIX_SPLIT_RE.match(text)
    if m:
        return m.group("name").strip(), (m.group("contact") or "").strip()

    words = text.split()
    for n in (3, 2, 1):
        if len(words) <= n:
            continue
        tail = words[-n:]
        if all(_TAIL_TOKEN_RE.match(w) for w in tail) and tail[-1] not in _SUFFIX_SET:
            return " ".join(words[:-n]), " ".join(tail)

    return text, ""


def categorize_business(name: str) -> str:
    lowered = name.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return "other"


def _looks_like_name(name: str) -> bool:
    if len(name) < 2 or not re.search(r"[A-Za-z]", name):
        return False
    if "@" in name or "Phone:" in name or name.lower().startswith("www."):
        return False
    return not re.fullmatch(r"\d{3}-\d{3}-\d{4}", name)


def parse_business_block(
    raw_text: str,
    source_url: str,
    *,
    city: str = DEFAULT_CITY,
    province: str = DEFAULT_PROVINCE,
) -> Optional[BusinessRecord]:
    """Turn one directory row into a :class:`BusinessRecord`.

    Returns ``None`` for rows that cannot be parsed (no address, no usable
    name). Unexpected failures propagate so the caller can record them.
    """
    text = normalize_text(raw_text)
    if len(text) < 10:
        return None

    phone, text = extract_phone(text)
    address, text = extract_address(text, city, province)
    if address is None:
        logger.debug("No address in row: %.80s", text)
        return None

    name, contact = split_name_contact(reinsert_spaces(text))
    name = name.rstrip(" ,;:-")
    if not _looks_like_name(name):
        logger.debug("Rejected business name %r", name)
        return None

    return BusinessRecord(
        name=name,
        contact=contact,
        phone=phone,
        address=address,
        category=categorize_business(name),
        source_url=source_url,
    )
