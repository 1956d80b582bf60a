"""Cursor pagination for Places web-service searches.

The provider hands out a ``next_page_token`` with each full page. A token is
only accepted after a short delay; presenting it too early yields
``INVALID_REQUEST``, which is retried without using up a page slot. The flow
is an explicit state machine so the retry/backoff/page-cap interaction can be
checked without real network delay (inject ``sleep``).
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests

from . import config
from .http import RequestMetrics

logger = logging.getLogger(__name__)

FetchPage = Callable[[Optional[str]], Dict[str, Any]]


class PageState(str, Enum):
    FETCHING = "fetching"
    AWAITING_CURSOR_DELAY = "awaiting_cursor_delay"
    RETRYING_NOT_READY = "retrying_not_ready"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


TERMINAL_STATES = frozenset({PageState.EXHAUSTED, PageState.FAILED})


class Paginator:
    def __init__(
        self,
        fetch_page: FetchPage,
        label: str = "query",
        max_pages: Optional[int] = None,
        page_delay: Optional[float] = None,
        not_ready_backoff: Optional[float] = None,
        not_ready_max_retries: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.fetch_page = fetch_page
        self.label = label
        self.max_pages = config.PLACES_MAX_PAGES_PER_QUERY if max_pages is None else max_pages
        self.page_delay = config.PAGE_TOKEN_DELAY_SECONDS if page_delay is None else page_delay
        self.not_ready_backoff = (
            config.NOT_READY_BACKOFF_SECONDS if not_ready_backoff is None else not_ready_backoff
        )
        self.not_ready_max_retries = (
            config.NOT_READY_MAX_RETRIES if not_ready_max_retries is None else not_ready_max_retries
        )
        self.sleep = sleep
        self.metrics = metrics

        self.state = PageState.FETCHING
        self.history: List[PageState] = [PageState.FETCHING]
        self.pages_fetched = 0
        self.fetch_attempts = 0
        self.not_ready_retries = 0
        self.error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def _transition(self, state: PageState) -> None:
        self.state = state
        self.history.append(state)

    def _fail(self, reason: str) -> None:
        self.error = reason
        if self.metrics is not None:
            self.metrics.inc_failed_page()
        self._transition(PageState.FAILED)

    def pages(self) -> Iterator[List[Dict[str, Any]]]:
        """Yield the raw ``results`` list of each successful page, lazily."""
        token: Optional[str] = None
        retries_this_page = 0

        while not self.done:
            if self.state is PageState.AWAITING_CURSOR_DELAY:
                self.sleep(self.page_delay)
                self._transition(PageState.FETCHING)
                continue

            self.fetch_attempts += 1
            try:
                response = self.fetch_page(token)
            except (requests.RequestException, ValueError) as exc:
                logger.error("Places %s: page %s request failed: %s", self.label, self.pages_fetched + 1, exc)
                self._fail(str(exc))
                break

            status = response.get("status")
            if status == config.STATUS_OK:
                results = response.get("results")
                if not isinstance(results, list):
                    logger.error("Places %s: malformed page without results list", self.label)
                    self._fail("malformed response")
                    break
                self.pages_fetched += 1
                retries_this_page = 0
                yield results

                token = response.get("next_page_token") or None
                if not token or self.pages_fetched >= self.max_pages:
                    self._transition(PageState.EXHAUSTED)
                else:
                    self._transition(PageState.AWAITING_CURSOR_DELAY)
            elif status == config.STATUS_ZERO_RESULTS:
                self.pages_fetched += 1
                self._transition(PageState.EXHAUSTED)
            elif status == config.STATUS_INVALID_REQUEST and token:
                if retries_this_page >= self.not_ready_max_retries:
                    logger.error(
                        "Places %s: page token still not ready after %s retries",
                        self.label,
                        retries_this_page,
                    )
                    self._fail("page token not ready")
                    break
                retries_this_page += 1
                self.not_ready_retries += 1
                if self.metrics is not None:
                    self.metrics.inc_not_ready_retry()
                logger.warning(
                    "Places %s: page token not ready, retrying in %.1fs (retry %s)",
                    self.label,
                    self.not_ready_backoff,
                    retries_this_page,
                )
                self._transition(PageState.RETRYING_NOT_READY)
                self.sleep(self.not_ready_backoff)
            else:
                message = response.get("error_message")
                logger.error("Places %s: provider status %s %s", self.label, status, message or "")
                self._fail(f"status {status}")
