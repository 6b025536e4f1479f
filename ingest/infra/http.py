"""
http.py – Async HTTP client built on *aiohttp* with a bounded, fixed-backoff
          retry policy and per-instance default headers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Mapping, Optional, Tuple

import aiohttp

logger = logging.getLogger(__name__)

# Listing pages reject obvious bots, so requests look like a desktop browser.
BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

RETRY_FOR_STATUS: Tuple[int, ...] = (429, 500, 502, 503, 504)


class FetchError(Exception):
    """Raised when a page cannot be retrieved."""

    def __init__(self, url: str, message: str, *, status: Optional[int] = None, attempts: int = 1):
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.status = status
        self.attempts = attempts


class _RetryableStatus(Exception):
    def __init__(self, status: int):
        super().__init__(f"retryable status {status}")
        self.status = status


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry a failed request."""

    max_attempts: int = 3
    backoff_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_ms < 0:
            raise ValueError("backoff_ms must be >= 0")

    @property
    def backoff_seconds(self) -> float:
        return self.backoff_ms / 1000.0


class HttpClient:
    """
    Thin wrapper over *aiohttp.ClientSession* adding:

    * global & per-request headers (keeps user-agent in one place)
    * fixed back-off retries for 429 / 5xx / network errors / timeouts
    * an injectable sleep so tests can run against a fake clock
    * async context-manager support
    """

    def __init__(
        self,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
        retry: Optional[RetryPolicy] = None,
        default_headers: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._external_session = session
        self._timeout = timeout
        self._retry = retry or RetryPolicy()
        self._own_session: Optional[aiohttp.ClientSession] = None
        self._default_headers: Dict[str, str] = dict(BROWSER_HEADERS if default_headers is None else default_headers)
        self._sleep = sleep

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    # ---------------------------------------------- #
    # Async context-manager
    async def __aenter__(self) -> "HttpClient":  # noqa: D401
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        await self.close()

    # ---------------------------------------------- #
    # Session management
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._external_session:
            return self._external_session
        if self._own_session is None or self._own_session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._own_session = aiohttp.ClientSession(timeout=timeout)
        return self._own_session

    async def close(self) -> None:
        if self._own_session and not self._own_session.closed:
            await self._own_session.close()
            self._own_session = None

    def _merge_headers(self, extra: Mapping[str, str] | None) -> Dict[str, str]:
        merged: Dict[str, str] = {**self._default_headers}
        if extra:
            merged.update(extra)
        return merged

    # ---------------------------------------------- #
    async def fetch(self, url: str, headers: Mapping[str, str] | None = None) -> Tuple[str, int]:
        """GET *url* and return ``(body, status)``.

        Raises :class:`FetchError` once the retry policy is exhausted or on a
        non-retryable HTTP error.
        """
        session = await self._ensure_session()
        merged = self._merge_headers(headers)
        policy = self._retry

        for attempt in range(1, policy.max_attempts + 1):
            try:
                async with session.request(
                    "GET",
                    url,
                    headers=merged,
                    timeout=aiohttp.ClientTimeout(total=self._timeout),
                ) as resp:
                    if resp.status in RETRY_FOR_STATUS:
                        raise _RetryableStatus(resp.status)
                    if resp.status >= 400:
                        raise FetchError(url, f"HTTP {resp.status}", status=resp.status, attempts=attempt)
                    try:
                        body = await resp.text()
                    except UnicodeDecodeError as e:
                        raise FetchError(
                            url, f"undecodable body ({e.encoding}: {e.reason})", status=resp.status, attempts=attempt
                        ) from e
                    logger.debug("GET %s -> %d (%d bytes)", url, resp.status, len(body))
                    return body, resp.status
            except (aiohttp.ClientError, asyncio.TimeoutError, _RetryableStatus) as e:
                status = e.status if isinstance(e, _RetryableStatus) else None
                if attempt == policy.max_attempts:
                    logger.error("GET %s failed after %d attempts: %s", url, attempt, e)
                    raise FetchError(url, str(e) or type(e).__name__, status=status, attempts=attempt) from e

                logger.warning(
                    "GET %s failed (attempt %d/%d – will retry in %.1fs): %s",
                    url,
                    attempt,
                    policy.max_attempts,
                    policy.backoff_seconds,
                    str(e).splitlines()[0] if str(e) else type(e).__name__,
                )
                await self._sleep(policy.backoff_seconds)

        # Should never hit here
        raise RuntimeError("Unreachable retry loop")

    async def get_text(self, url: str, **kwargs) -> str:
        body, _status = await self.fetch(url, **kwargs)
        return body
