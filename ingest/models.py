"""
Core data models for the ingestion pipeline.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


SourceType = Literal["news", "events", "businesses"]
SOURCE_TYPES = ("news", "events", "businesses")


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class RawItem(BaseModel):
    """Raw page fetched from a source."""
    source: str
    url: str
    html: str
    status: int = 200
    fetched_at: datetime = Field(default_factory=utcnow)


class BusinessRecord(BaseModel):
    """A directory listing turned into a business."""
    name: str = Field(min_length=2)
    contact: str = ""
    phone: Optional[str] = Field(default=None, pattern=r"^\d{3}-\d{3}-\d{4}$")
    address: str = Field(min_length=1)
    category: str = "other"
    source_url: str

    @property
    def name_key(self) -> str:
        return " ".join(self.name.lower().split())

    def natural_key(self) -> Dict[str, Any]:
        return {"source_url": self.source_url, "name_key": self.name_key, "address": self.address}


class EventRecord(BaseModel):
    """A calendar entry with an absolute start time."""
    title: str = Field(min_length=1)
    description: str
    date: datetime
    time: str
    location: str
    category: str = "community"
    organizer: str
    website: Optional[str] = None
    source_url: str
    source_name: str

    def natural_key(self) -> Dict[str, Any]:
        return {"source_url": self.source_url, "title": self.title}


class NewsArticle(BaseModel):
    """A local news story."""
    title: str = Field(min_length=1)
    summary: str
    category: str = "local-news"
    author: Optional[str] = None
    published_at: datetime
    image_url: Optional[str] = None
    source_url: str
    source_name: str

    def natural_key(self) -> Dict[str, Any]:
        return {"source_url": self.source_url, "title": self.title}


class ScraperConfig(BaseModel):
    """Per-source schedule settings."""
    type: SourceType
    interval_hours: float = Field(gt=0)
    is_enabled: bool = True
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_success: Optional[datetime] = None


class ScraperRunLog(BaseModel):
    """Outcome of one invocation."""
    type: SourceType
    status: Literal["success", "error"]
    message: str
    duration: int = 0  # milliseconds
    items_processed: int = 0
    error_messages: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class RunResult(BaseModel):
    """Aggregate returned to whoever triggered a run."""
    type: SourceType
    total: int = 0
    new: int = 0
    updated: int = 0
    errors: List[str] = Field(default_factory=list)
    skipped: bool = False
    message: str = ""
    cleared_seed: Optional[int] = None
    status: Literal["success", "error", "skipped"] = "success"


class SourceStatus(BaseModel):
    type: SourceType
    last_run: Optional[datetime] = None
    next_scheduled: Optional[datetime] = None
    countdown: Optional[str] = None
    status: str = "idle"
