"""
Core interfaces for the ingestion pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, AsyncIterator, List, Optional

from .models import RawItem

if TYPE_CHECKING:
    from .infra.http import HttpClient


class Source(ABC):
    """One scraped site: knows how to fetch its pages and read its blocks.

    A run drives the stages in order: :meth:`fetch` once, then
    :meth:`extract_blocks` per page and :meth:`parse_block` per block.
    Blocks are independent; a source keeps no state between them.
    """

    #: ScraperConfig type this source feeds
    type: str
    #: store table the parsed records land in
    table: str
    #: records whose date column is older than this are purged each run
    retention: Optional[timedelta] = None
    retention_column: Optional[str] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        pass

    @abstractmethod
    async def fetch(self, http: "HttpClient") -> AsyncIterator[RawItem]:
        """Fetch the raw pages for one run.

        Failure to fetch the entry page must raise
        :class:`~ingest.infra.http.FetchError`.
        """
        pass

    @abstractmethod
    def extract_blocks(self, item: RawItem) -> List[Any]:
        """Cut a fetched page into candidate entity blocks."""
        pass

    @abstractmethod
    def parse_block(self, block: Any, *, now: datetime) -> Optional[Any]:
        """Parse one block. ``None`` means unparseable or filtered out."""
        pass


class Sink(ABC):
    """Abstract base class for record sinks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this sink."""
        pass

    @abstractmethod
    async def handle(self, item: Any) -> Any:
        """Handle an item."""
        pass
