"""HTTP client with retry/backoff and request metrics."""
from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_KINDS = ("nearby", "text", "details")


@dataclass
class RequestMetrics:
    network_nearby: int = 0
    network_text: int = 0
    network_details: int = 0
    not_ready_retries: int = 0
    failed_pages: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def network_total(self) -> int:
        return self.network_nearby + self.network_text + self.network_details

    def inc_network(self, kind: str) -> None:
        if kind not in REQUEST_KINDS:
            raise ValueError(f"Unknown request kind: {kind}")
        attr = f"network_{kind}"
        with self._lock:
            setattr(self, attr, getattr(self, attr) + 1)

    def inc_not_ready_retry(self) -> None:
        with self._lock:
            self.not_ready_retries += 1

    def inc_failed_page(self) -> None:
        with self._lock:
            self.failed_pages += 1


class HttpClient:
    def __init__(
        self,
        api_key: str,
        timeout: int = 20,
        retry_max: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.retry_max = retry_max
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.sleep = sleep
        self.session = requests.Session()

    def get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = dict(params)
        query["key"] = self.api_key

        for attempt in range(1, self.retry_max + 1):
            try:
                resp = self.session.get(url, params=query, timeout=self.timeout)
            except requests.RequestException:
                if attempt >= self.retry_max:
                    raise
                logger.warning("Network error calling %s (attempt %s)", url, attempt)
                self._sleep_backoff(attempt)
                continue

            status = resp.status_code
            if status == 200:
                try:
                    payload = resp.json()
                except ValueError:
                    logger.error("Non-JSON response from %s", url)
                    raise
                if not isinstance(payload, dict):
                    raise ValueError(f"Unexpected JSON payload type from {url}: {type(payload).__name__}")
                return payload

            if status in (429, 500, 502, 503, 504):
                logger.warning("HTTP %s from %s (attempt %s)", status, url, attempt)
                if attempt >= self.retry_max:
                    resp.raise_for_status()
                if not self._sleep_retry_after(resp):
                    self._sleep_backoff(attempt)
                continue

            # Non-retryable
            logger.error("HTTP %s from %s", status, url)
            resp.raise_for_status()
            raise requests.HTTPError(f"Unexpected HTTP {status} from {url}", response=resp)

        raise RuntimeError("Unexpected HTTP retry loop exit")

    def close(self) -> None:
        self.session.close()

    def _sleep_backoff(self, attempt: int) -> None:
        base = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        jitter = random.uniform(0, self.backoff_base)
        self.sleep(base + jitter)

    def _sleep_retry_after(self, resp: requests.Response) -> bool:
        retry_after = resp.headers.get("Retry-After")
        if not retry_after:
            return False
        try:
            delay = float(retry_after)
        except ValueError:
            return False
        delay = max(0.0, min(delay, self.backoff_max))
        self.sleep(delay)
        return True
