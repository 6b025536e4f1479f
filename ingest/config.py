"""
Settings loaded from ``config.yaml`` with environment overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field

from .infra.http import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


class RetrySettings(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    backoff_ms: int = Field(default=1000, ge=0)

    def policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.max_attempts, backoff_ms=self.backoff_ms)


class HttpSettings(BaseModel):
    timeout: float = Field(default=30.0, gt=0)
    retry: RetrySettings = Field(default_factory=RetrySettings)


class SchedulerSettings(BaseModel):
    mode: str = "enabled"
    timezone: str = "America/Edmonton"
    persistence: bool = False
    jobstore_url: str = "sqlite:///scheduler_jobs.db"
    jobs: Dict[str, str] = Field(
        default_factory=lambda: {
            "news": "0 6 * * *",
            "events": "0 6 * * *",
            "businesses": "0 6 * * mon",
        }
    )


class Settings(BaseModel):
    db_path: str = "ingest.db"
    http: HttpSettings = Field(default_factory=HttpSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    intervals: Dict[str, float] = Field(default_factory=lambda: {"news": 6, "events": 6, "businesses": 168})
    city: str = "Wetaskiwin"
    province: str = "AB"


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Read settings from YAML, then apply ``INGEST_DB_PATH`` and ``SCHEDULER_MODE``.

    A missing file yields the defaults.
    """
    path = Path(config_path or os.getenv("INGEST_CONFIG", DEFAULT_CONFIG_PATH))
    data = {}
    if path.exists():
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.warning("Config file not found: %s (using defaults)", path)

    settings = Settings.model_validate(data)
    if os.getenv("INGEST_DB_PATH"):
        settings.db_path = os.environ["INGEST_DB_PATH"]
    if os.getenv("SCHEDULER_MODE"):
        settings.scheduler.mode = os.environ["SCHEDULER_MODE"]
    return settings
