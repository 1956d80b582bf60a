from typing import Any, Dict, List, Optional

import requests

from venue_finder.http import RequestMetrics
from venue_finder.pagination import PageState, Paginator


def _page(ids, token=None, status="OK"):
    payload: Dict[str, Any] = {"status": status, "results": [{"place_id": i} for i in ids]}
    if token:
        payload["next_page_token"] = token
    return payload


class ScriptedFetch:
    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.tokens: List[Optional[str]] = []

    def __call__(self, token):
        self.tokens.append(token)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def _run(responses, **kwargs):
    fetch = ScriptedFetch(responses)
    sleep = RecordingSleep()
    paginator = Paginator(
        fetch,
        max_pages=kwargs.pop("max_pages", 3),
        page_delay=2.0,
        not_ready_backoff=1.5,
        not_ready_max_retries=kwargs.pop("not_ready_max_retries", 5),
        sleep=sleep,
        **kwargs,
    )
    pages = list(paginator.pages())
    return paginator, pages, fetch, sleep


def test_stops_after_zero_results_page():
    paginator, pages, fetch, sleep = _run([_page(["a"], "T1"), _page(["b"], "T2"), _page([], status="ZERO_RESULTS")])

    assert fetch.tokens == [None, "T1", "T2"]
    assert paginator.fetch_attempts == 3
    assert paginator.pages_fetched == 3
    assert [[r["place_id"] for r in page] for page in pages] == [["a"], ["b"]]
    assert paginator.state is PageState.EXHAUSTED
    assert sleep.calls == [2.0, 2.0]


def test_not_ready_retry_does_not_consume_page_slot():
    paginator, pages, fetch, sleep = _run(
        [_page(["a"], "T1"), {"status": "INVALID_REQUEST"}, _page(["b"])]
    )

    assert fetch.tokens == [None, "T1", "T1"]
    assert paginator.not_ready_retries == 1
    assert paginator.pages_fetched == 2
    assert paginator.fetch_attempts == 3
    assert sleep.calls == [2.0, 1.5]
    assert len(pages) == 2
    assert PageState.RETRYING_NOT_READY in paginator.history
    assert paginator.state is PageState.EXHAUSTED


def test_page_cap_ignores_further_tokens():
    paginator, pages, fetch, _ = _run(
        [_page(["a"], "T1"), _page(["b"], "T2"), _page(["c"], "T3"), _page(["d"])]
    )

    assert len(pages) == 3
    assert fetch.tokens == [None, "T1", "T2"]
    assert paginator.state is PageState.EXHAUSTED


def test_retry_while_capped_slot_still_allows_third_page():
    paginator, pages, fetch, _ = _run(
        [
            _page(["a"], "T1"),
            {"status": "INVALID_REQUEST"},
            {"status": "INVALID_REQUEST"},
            _page(["b"], "T2"),
            _page(["c"], "T3"),
        ]
    )

    assert [len(p) for p in pages] == [1, 1, 1]
    assert paginator.pages_fetched == 3
    assert paginator.not_ready_retries == 2


def test_not_ready_retries_are_capped():
    metrics = RequestMetrics()
    paginator, pages, fetch, sleep = _run(
        [_page(["a"], "T1")] + [{"status": "INVALID_REQUEST"}] * 3,
        not_ready_max_retries=2,
        metrics=metrics,
    )

    assert len(pages) == 1
    assert paginator.state is PageState.FAILED
    assert paginator.not_ready_retries == 2
    assert fetch.tokens == [None, "T1", "T1", "T1"]
    assert sleep.calls == [2.0, 1.5, 1.5]
    assert metrics.not_ready_retries == 2
    assert metrics.failed_pages == 1


def test_invalid_request_on_first_page_is_terminal():
    paginator, pages, fetch, sleep = _run([{"status": "INVALID_REQUEST"}])

    assert pages == []
    assert paginator.state is PageState.FAILED
    assert fetch.tokens == [None]
    assert sleep.calls == []


def test_zero_results_first_page_short_circuits():
    paginator, pages, fetch, _ = _run([{"status": "ZERO_RESULTS", "results": []}])

    assert pages == []
    assert paginator.state is PageState.EXHAUSTED
    assert fetch.tokens == [None]


def test_provider_error_keeps_collected_pages():
    paginator, pages, _, _ = _run([_page(["a"], "T1"), {"status": "OVER_QUERY_LIMIT", "error_message": "quota"}])

    assert len(pages) == 1
    assert paginator.state is PageState.FAILED
    assert paginator.error == "status OVER_QUERY_LIMIT"


def test_network_error_keeps_collected_pages():
    paginator, pages, _, _ = _run([_page(["a", "b"], "T1"), requests.ConnectionError("boom")])

    assert [r["place_id"] for r in pages[0]] == ["a", "b"]
    assert len(pages) == 1
    assert paginator.state is PageState.FAILED


def test_malformed_results_field_fails():
    paginator, pages, _, _ = _run([{"status": "OK", "results": "nope"}])

    assert pages == []
    assert paginator.state is PageState.FAILED


def test_pages_are_fetched_lazily():
    fetch = ScriptedFetch([_page(["a"], "T1"), _page(["b"])])
    paginator = Paginator(fetch, max_pages=3, page_delay=0, not_ready_backoff=0, sleep=lambda s: None)

    iterator = paginator.pages()
    assert fetch.tokens == []
    next(iterator)
    assert fetch.tokens == [None]
