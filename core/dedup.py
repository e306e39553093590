import logging
from typing import Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _url_key(item) -> str:
    return item.url


def dedupe(items: Iterable[T], key: Callable[[T], Hashable] = _url_key, limit: Optional[int] = None) -> List[T]:
    """
    Keep one item per key, the last one seen, at the position where the key
    first appeared. Items with an empty key are dropped. The result is cut
    to `limit` entries.
    """
    unique: Dict[Hashable, T] = {}
    dropped = 0
    for item in items:
        k = key(item)
        if not k:
            dropped += 1
            continue
        unique[k] = item

    result = list(unique.values())
    if dropped:
        logger.debug(f"Dropped {dropped} item(s) without a key")
    if limit is not None and limit >= 0:
        result = result[:limit]
    return result
