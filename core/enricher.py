import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from core.models import Candidate, Item

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

EnrichFn = Callable[[Candidate, int], Awaitable[Optional[Item]]]
FallbackFn = Callable[[Candidate, int], Item]


class DetailEnricher:
    """
    Runs detail enrichment over candidates in sequential batches.

    At most `batch_size` enrichment calls are in flight at once; the next
    batch starts only when the whole previous batch is done. A failing
    candidate is replaced by its fallback record, so the output always has
    one item per candidate, in candidate order.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE, source: str = ""):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.batch_size = batch_size
        self.source = source

    async def enrich(self, candidates: Sequence[Candidate], enrich_one: EnrichFn, fallback: FallbackFn) -> List[Item]:
        results: List[Item] = []
        degraded = 0

        for start in range(0, len(candidates), self.batch_size):
            batch = candidates[start:start + self.batch_size]
            logger.debug(f"[{self.source}] Enriching batch {start // self.batch_size + 1} ({len(batch)} candidates)")
            batch_results = await asyncio.gather(
                *(self._enrich_safe(candidate, start + offset, enrich_one) for offset, candidate in enumerate(batch))
            )
            for offset, (candidate, item) in enumerate(zip(batch, batch_results)):
                if item is None:
                    degraded += 1
                    item = fallback(candidate, start + offset)
                results.append(item)

        if degraded:
            logger.info(f"[{self.source}] {degraded}/{len(candidates)} item(s) built from list data only")
        return results

    async def _enrich_safe(self, candidate: Candidate, index: int, enrich_one: EnrichFn) -> Optional[Item]:
        try:
            return await enrich_one(candidate, index)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"[{self.source}] Failed to enrich {candidate.url}: {type(e).__name__}: {e}",
                extra={"source": self.source, "url": candidate.url},
            )
            return None
