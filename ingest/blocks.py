"""
Block extraction over a minimal tree-node interface.

Parsers only ever see :class:`TreeNode`; :class:`SoupNode` is the one place
that knows about BeautifulSoup.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .text import normalize_text

logger = logging.getLogger(__name__)

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")


class TreeNode(ABC):
    """The tree-query capability the block extractor depends on."""

    @abstractmethod
    def text(self) -> str:
        ...

    @abstractmethod
    def next_sibling(self) -> Optional["TreeNode"]:
        """Next *element* sibling, skipping bare text nodes."""
        ...

    @abstractmethod
    def tag_name(self) -> str:
        ...

    @abstractmethod
    def attr(self, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def select(self, selector: str) -> List["TreeNode"]:
        ...


class SoupNode(TreeNode):
    """:class:`TreeNode` backed by a ``bs4`` tag."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    def text(self) -> str:
        return self._tag.get_text(" ")

    def next_sibling(self) -> Optional["SoupNode"]:
        nxt = self._tag.find_next_sibling()
        return SoupNode(nxt) if nxt is not None else None

    def tag_name(self) -> str:
        return (self._tag.name or "").lower()

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def select(self, selector: str) -> List["SoupNode"]:
        return [SoupNode(t) for t in self._tag.select(selector)]

    def __repr__(self) -> str:
        return f"<SoupNode {self.tag_name()}>"


def parse_html(html: str) -> SoupNode:
    """Parse a document and return its root node."""
    return SoupNode(BeautifulSoup(html, "html.parser"))


def bounded_forward_scan(
    start: TreeNode,
    *,
    limit: int = 5,
    stop_at: Sequence[str] = HEADING_TAGS,
) -> Iterator[TreeNode]:
    """Yield up to *limit* element siblings after *start*.

    The scan ends early at the first sibling whose tag is in *stop_at*.
    """
    node = start.next_sibling()
    seen = 0
    while node is not None and seen < limit:
        if node.tag_name() in stop_at:
            break
        yield node
        seen += 1
        node = node.next_sibling()


def select_text_blocks(
    root: TreeNode,
    selector: str,
    *,
    must_contain: Optional[str] = None,
    min_length: int = 0,
) -> List[str]:
    """Raw text of every node matching *selector* that passes the filters."""
    out: List[str] = []
    for node in root.select(selector):
        raw = node.text()
        cleaned = normalize_text(raw, strip_boilerplate=False)
        if len(cleaned) <= min_length:
            continue
        if must_contain and must_contain not in cleaned:
            continue
        out.append(raw)
    logger.debug("Selector %r matched %d usable blocks", selector, len(out))
    return out
