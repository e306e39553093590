"""
The aggregation pipeline shared by every source.

    list fetch -> parse -> dedupe -> detail enrichment (batched)
        -> time normalization -> recency filter -> envelope

Per-item failures degrade that item to list data, and a failed list fetch
produces an empty envelope. run() never raises once the source is resolved.
"""
import hashlib
import logging
from typing import Any, Dict, List, Optional, Union

from core.dedup import dedupe
from core.enricher import DEFAULT_BATCH_SIZE, DetailEnricher
from core.http_client import HTTPClient
from core.models import Candidate, Detail, Item, RawTime, RouteResult
from core.recency import WINDOW_LABELS, filter_recent, parse_window
from core.registry import SourceRegistry
from core.scraper_base import BaseScraper
from core.summarizer import NO_CONTENT, is_viable, summarize
from core.timeutil import Clock, format_canonical, normalize_time, system_clock

logger = logging.getLogger(__name__)


def _first_present(*values: RawTime) -> RawTime:
    for value in values:
        if value is not None and value != "":
            return value
    return None


class AggregationPipeline:
    def __init__(
        self,
        registry: SourceRegistry,
        http_client: HTTPClient,
        clock: Optional[Clock] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.registry = registry
        self.http = http_client
        self.clock = clock or system_clock
        self.batch_size = batch_size

    async def run(
        self,
        source: str,
        type: Optional[str] = None,
        days: Union[str, int, None] = "today",
        no_cache: bool = False,
        limit: Optional[int] = None,
    ) -> RouteResult:
        adapter = self.registry.get(source)
        resolved_type = adapter.resolve_type(type)
        window = parse_window(days)

        from_cache = False
        data: List[Item] = []
        try:
            list_url = adapter.list_url(resolved_type)
            listing = await self.http.fetch(
                list_url,
                bypass_cache=no_cache,
                headers=adapter.list_headers(list_url),
                response_format=adapter.list_format,
            )
            candidates = [c for c in adapter.parse_list(listing.body) if c.url and c.title.strip()]
            logger.info(f"[{source}] Found {len(candidates)} candidates on {list_url}")

            candidates = dedupe(candidates, limit=adapter.max_candidates)
            items = await self._enrich(adapter, candidates, list_url)
            items = dedupe(items)
            self._normalize_times(items)

            data = filter_recent(items, window, self.clock)
            if limit is not None and limit >= 0:
                data = data[:limit]
            from_cache = listing.from_cache
            logger.info(f"[{source}] Kept {len(data)}/{len(items)} items for window '{window}'")
        except Exception:
            logger.exception(f"[{source}] Failed to aggregate type '{resolved_type}'")
            from_cache = False
            data = []

        return RouteResult(
            name=adapter.name,
            title=adapter.title,
            type=adapter.type_label(resolved_type),
            link=adapter.link,
            update_time=format_canonical(self.clock()),
            from_cache=from_cache,
            data=data,
            params=self._params(adapter),
        )

    async def _enrich(self, adapter: BaseScraper, candidates: List[Candidate], list_url: str) -> List[Item]:
        if not adapter.needs_detail:
            return [self._build_item(adapter, c, None, i) for i, c in enumerate(candidates)]

        async def enrich_one(candidate: Candidate, index: int) -> Item:
            # Detail pages change rarely, so they may come from the cache
            # even when the list was fetched fresh.
            result = await self.http.fetch(
                adapter.detail_url(candidate),
                bypass_cache=False,
                headers=adapter.detail_headers(list_url),
                response_format=adapter.detail_format,
            )
            detail = adapter.parse_detail(result.body, candidate)
            return self._build_item(adapter, candidate, detail, index)

        def fallback(candidate: Candidate, index: int) -> Item:
            return self._build_item(adapter, candidate, None, index)

        enricher = DetailEnricher(self.batch_size, source=adapter.name)
        return await enricher.enrich(candidates, enrich_one, fallback)

    def _build_item(self, adapter: BaseScraper, candidate: Candidate, detail: Optional[Detail], index: int) -> Item:
        """
        Merge list and detail data into an Item. With `detail` None this is
        the degraded record built from list data alone.
        """
        detail = detail or Detail()

        content = NO_CONTENT
        if detail.body:
            content = summarize(
                detail.body,
                adapter.noise_patterns,
                max_length=adapter.max_content_length,
                noise_selectors=adapter.noise_selectors,
            )
        if not is_viable(content):
            content = self._list_content(adapter, candidate)

        if adapter.prefer_detail_time:
            raw_time = _first_present(detail.time, candidate.time)
        else:
            raw_time = _first_present(candidate.time, detail.time)

        url = detail.url or candidate.url
        title = (detail.title or "").strip() or candidate.title.strip()
        return Item(
            id=candidate.id or self._item_id(adapter, url, index),
            title=title,
            url=url,
            author=detail.author or candidate.author or adapter.default_author,
            content=content,
            hot=candidate.hot,
            cover=detail.cover or candidate.cover,
            raw_time=raw_time,
        )

    def _list_content(self, adapter: BaseScraper, candidate: Candidate) -> str:
        if candidate.summary:
            text = summarize(candidate.summary, adapter.noise_patterns, max_length=adapter.max_content_length)
            if is_viable(text):
                return text
        if candidate.category:
            return f"{candidate.category}：{candidate.title.strip()}"
        return candidate.title.strip() or NO_CONTENT

    @staticmethod
    def _item_id(adapter: BaseScraper, url: str, index: int) -> str:
        return f"{adapter.name}_{index}_{hashlib.md5(url.encode()).hexdigest()[:8]}"

    def _normalize_times(self, items: List[Item]):
        for item in items:
            item.timestamp = normalize_time(item.raw_time, self.clock)
            if item.timestamp is None and item.raw_time not in (None, ""):
                logger.warning(f"Could not parse time {item.raw_time!r} for {item.url}")

    @staticmethod
    def _params(adapter: BaseScraper) -> Dict[str, Any]:
        return {
            "type": {"name": "新闻分类", "type": dict(adapter.type_labels)},
            "days": {"name": "时间范围", "type": dict(WINDOW_LABELS)},
        }
