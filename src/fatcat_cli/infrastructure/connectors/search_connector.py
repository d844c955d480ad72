"""
Full-text search over the catalog's Elasticsearch indexes.

``SearchConnector.search`` issues the initial query and returns a
``SearchResultStream``: a lazy, single-use iterator over the ``_source`` of
each hit. Large or unlimited result sets page through the scroll API; small
limited ones are a single relevance-sorted page.

The stream is a small state machine:

- HAS_LOCAL_DATA: hits left in the current batch, next item is popped locally
- AWAITING_CONTINUATION: batch drained, a scroll id is held, refill over HTTP
- EXHAUSTED: limit or total reached, no scroll id, or a refill failed
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from fatcat_cli.domain.errors import TransportError, UnexpectedResponse, UnsupportedOperation
from fatcat_cli.domain.specifier import EntityKind

logger = logging.getLogger(__name__)

SEARCH_INDEXES = {
    EntityKind.RELEASE: "fatcat_release",
    EntityKind.FILE: "fatcat_file",
    EntityKind.CONTAINER: "fatcat_container",
}

PAGE_SIZE = 100
SCROLL_LIFETIME = "2m"
SEARCH_TIMEOUT_S = 10.0


class StreamState(str, Enum):
    HAS_LOCAL_DATA = "has_local_data"
    AWAITING_CONTINUATION = "awaiting_continuation"
    EXHAUSTED = "exhausted"


@dataclass
class SearchPage:
    """One page of search hits as returned by ``_search`` or ``_search/scroll``."""

    hits: List[Dict[str, Any]]
    scroll_id: Optional[str] = None
    total: int = 0
    took_ms: int = 0


def parse_search_page(body: Any, *, require_scroll_id: bool) -> SearchPage:
    if not isinstance(body, dict):
        raise UnexpectedResponse("search", "response body is not a JSON object")
    hits_obj = body.get("hits")
    if not isinstance(hits_obj, dict) or not isinstance(hits_obj.get("hits"), list):
        raise UnexpectedResponse("search", "response missing hits.hits")
    scroll_id = body.get("_scroll_id")
    if require_scroll_id and not isinstance(scroll_id, str):
        raise UnexpectedResponse("search", "response missing _scroll_id")

    total = hits_obj.get("total", 0)
    # ES 7+ reports {"value": n, "relation": "eq"}
    if isinstance(total, dict):
        total = total.get("value", 0)
    return SearchPage(
        hits=list(hits_obj["hits"]),
        scroll_id=scroll_id if require_scroll_id else None,
        total=int(total or 0),
        took_ms=int(body.get("took") or 0),
    )


@dataclass
class SearchResultStream:
    """Lazy iterator over search hits; consumed once."""

    entity_kind: EntityKind
    limit: Optional[int]
    count: int
    took_ms: int
    batch: List[Dict[str, Any]] = field(default_factory=list)
    scroll_id: Optional[str] = None
    scroll_url: str = ""
    fetch_continuation: Optional[Callable[[str, str], SearchPage]] = field(default=None, repr=False)
    offset: int = 0
    _failed: bool = field(default=False, repr=False)

    @property
    def state(self) -> StreamState:
        if self._failed:
            return StreamState.EXHAUSTED
        if self.limit is not None and self.offset >= self.limit:
            return StreamState.EXHAUSTED
        if self.count and self.offset >= self.count:
            return StreamState.EXHAUSTED
        if self.batch:
            return StreamState.HAS_LOCAL_DATA
        if self.scroll_id is not None:
            return StreamState.AWAITING_CONTINUATION
        return StreamState.EXHAUSTED

    def take_local(self) -> Any:
        """Pop the next hit from the current batch (no I/O)."""
        # batch is consumed from the end, i.e. reverse of server order
        hit = self.batch.pop()
        self.offset += 1
        return hit.get("_source") if isinstance(hit, dict) else None

    def refill(self) -> None:
        """Fetch the next scroll page into the batch.

        A failed refill ends the stream; the error propagates once.
        """
        if self.fetch_continuation is None or self.scroll_id is None or not self.scroll_url:
            self._failed = True
            return
        try:
            page = self.fetch_continuation(self.scroll_url, self.scroll_id)
        except Exception:
            self._failed = True
            raise
        self.scroll_id = page.scroll_id
        self.batch = list(page.hits)
        if not self.batch:
            # server ran out before hits.total said it would
            logger.warning(
                f"search scroll ended early after {self.offset} of {self.count} hits"
            )
            self._failed = True

    def __iter__(self) -> "SearchResultStream":
        return self

    def __next__(self) -> Any:
        if self.state is StreamState.AWAITING_CONTINUATION:
            self.refill()
        if self.state is StreamState.HAS_LOCAL_DATA:
            return self.take_local()
        raise StopIteration


class SearchConnector:
    """Query the search backend for releases, files or containers."""

    def __init__(self, search_host: str, *, timeout_s: float = SEARCH_TIMEOUT_S):
        self.search_host = search_host.rstrip("/")
        self.timeout_s = timeout_s
        self._headers = {"Content-Type": "application/json"}

    def search(
        self,
        entity_kind: EntityKind,
        terms: Sequence[str],
        limit: Optional[int] = None,
    ) -> SearchResultStream:
        index = SEARCH_INDEXES.get(entity_kind)
        if index is None:
            raise UnsupportedOperation(f"No search index for entity type: {entity_kind.value}")

        query = " ".join(terms) if terms else "*"
        logger.info(f"Search query string: {query}")

        scroll_mode = limit is None or limit > PAGE_SIZE
        size = PAGE_SIZE if scroll_mode else limit
        sort_mode = "_doc" if scroll_mode else "_score"
        body = build_query_body(query, size=size, sort_mode=sort_mode)

        url = f"{self.search_host}/{index}/_search"
        params = {"scroll": SCROLL_LIFETIME} if scroll_mode else None
        page = parse_search_page(
            self._get(url, body, params=params), require_scroll_id=scroll_mode
        )
        return SearchResultStream(
            entity_kind=entity_kind,
            limit=limit,
            count=page.total,
            took_ms=page.took_ms,
            batch=page.hits,
            scroll_id=page.scroll_id,
            scroll_url=f"{self.search_host}/_search/scroll",
            fetch_continuation=self.continue_scroll,
        )

    def continue_scroll(self, scroll_url: str, scroll_id: str) -> SearchPage:
        body = {"scroll": SCROLL_LIFETIME, "scroll_id": scroll_id}
        payload = self._get(scroll_url, body)
        return parse_search_page(payload, require_scroll_id=True)

    def _get(self, url: str, body: Dict[str, Any], params: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = requests.get(
                url,
                headers=self._headers,
                params=params,
                data=json.dumps(body),
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise TransportError(f"search request failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise TransportError(f"search error, status={response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("search response body is not JSON") from exc


def build_query_body(query: str, *, size: int, sort_mode: str) -> Dict[str, Any]:
    """Boosted query_string search: titles count double, incomplete records sink."""
    missing = [
        {"bool": {"must_not": {"exists": {"field": name}}}}
        for name in ("title", "year", "type", "stage")
    ]
    return {
        "query": {
            "boosting": {
                "positive": {
                    "bool": {
                        "must": {
                            "query_string": {
                                "query": query,
                                "default_operator": "AND",
                                "analyze_wildcard": True,
                                "allow_leading_wildcard": True,
                                "lenient": True,
                                "fields": ["title^2", "biblio"],
                            },
                        },
                        "should": {"term": {"in_ia": True}},
                    },
                },
                "negative": {"bool": {"should": missing}},
                "negative_boost": 0.5,
            },
        },
        "size": size,
        "sort": [sort_mode],
    }
