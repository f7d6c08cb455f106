"""Shared HTTP plumbing for the bookmaker feeds."""
import time
import logging
from typing import Any, Dict, Optional

import requests

from .config import DEFAULT_HEADERS, REQUESTS_PER_MINUTE, REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple rate limiter for feed requests."""

    def __init__(self, requests_per_minute: int):
        self.interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self._last_request_time = 0.0

    def wait(self):
        """Block until a request can be made within rate limits."""
        now = time.time()
        time_since_last = now - self._last_request_time
        if time_since_last < self.interval:
            sleep_time = self.interval - time_since_last
            time.sleep(sleep_time)
        self._last_request_time = time.time()


class FeedClient:
    """Rate-limited JSON client for one bookmaker host."""

    def __init__(
        self,
        base_url: str,
        requests_per_minute: int = REQUESTS_PER_MINUTE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = RateLimiter(requests_per_minute)
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.request_count = 0

    def _make_request(self, path: str, params: Dict[str, Any] = None, base_url: str = None) -> Any:
        """
        Make a rate-limited GET request and decode the JSON body.

        Args:
            path: Path below the base URL (e.g. 'api/v1/lines/1.json')
            params: Query parameters
            base_url: Host to use instead of the client's own

        Returns:
            Decoded JSON

        Raises:
            requests.HTTPError: If the feed answers with an error status
        """
        self.rate_limiter.wait()

        url = f"{(base_url or self.base_url).rstrip('/')}/{path.lstrip('/')}"
        logger.debug(f"Making request to {url}")
        response = self.session.get(url, params=params, timeout=self.timeout)
        self.request_count += 1

        response.raise_for_status()
        return response.json()

    def close(self):
        self.session.close()
