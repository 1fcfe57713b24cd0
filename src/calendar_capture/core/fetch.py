from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

DEFAULT_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class FetchResult:
    url: str
    status_code: int
    content: bytes
    content_type: str


class Fetcher:
    """Downloads media assets referenced by captured events."""

    def __init__(
        self,
        log: Optional[logging.Logger] = None,
        timeout_s: float = 60.0,
        min_delay_s: float = 0.5,
    ) -> None:
        self.log = log or logging.getLogger(__name__)
        self.timeout_s = timeout_s
        self.min_delay_s = min_delay_s
        self._client = httpx.Client(
            timeout=timeout_s,
            headers={"User-Agent": DEFAULT_UA, "Accept-Language": "en-US,en;q=0.9"},
            follow_redirects=True,
        )
        self._last_request_ts = 0.0

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _sleep_polite(self) -> None:
        now = time.time()
        elapsed = now - self._last_request_ts
        if elapsed < self.min_delay_s:
            time.sleep(self.min_delay_s - elapsed)
        self._last_request_ts = time.time()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
        reraise=True,
    )
    def get_bytes(self, url: str) -> FetchResult:
        self._sleep_polite()
        resp = self._client.get(url)
        self.log.debug("GET %s -> %s (%s bytes)", url, resp.status_code, len(resp.content))
        return FetchResult(
            url=url,
            status_code=resp.status_code,
            content=resp.content,
            content_type=resp.headers.get("content-type", ""),
        )
