import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from core.cache import ResponseCache
from core.http_client import HTTPClient
from core.pipeline import AggregationPipeline
from scrapers.catalog import default_registry

# Load env
load_dotenv()

logger = logging.getLogger(__name__)


def parse_args(argv, sources):
    parser = argparse.ArgumentParser(description="Aggregate recent news from one source")
    parser.add_argument("source", nargs="?", choices=sources, help="source name")
    parser.add_argument("--type", default=None, help="sub-category of the source")
    parser.add_argument("--days", default="today", help="'today' or a number of days")
    parser.add_argument("--limit", type=int, default=None, help="maximum number of items")
    parser.add_argument("--no-cache", action="store_true", help="fetch the list page fresh")
    parser.add_argument("--list", action="store_true", help="list the available sources and exit")
    return parser.parse_args(argv)


async def main(argv=None):
    registry = default_registry()
    args = parse_args(argv, registry.names())

    if args.list or not args.source:
        for name in registry.names():
            adapter = registry.get(name)
            print(f"{name}\t{adapter.title}\t{', '.join(adapter.type_labels)}")
        return 0

    # Cache - persistent only when ENABLE_CACHE_DB is set
    cache_db_enabled = os.getenv("ENABLE_CACHE_DB", "false").lower() in ("true", "1", "yes")
    cache = ResponseCache(
        db_path=os.getenv("CACHE_DB_PATH", "cache.db") if cache_db_enabled else None,
        ttl_seconds=float(os.getenv("CACHE_TTL_SECONDS", "600")),
    )
    http = HTTPClient(cache=cache, timeout=float(os.getenv("HTTP_TIMEOUT", "15")))
    pipeline = AggregationPipeline(
        registry,
        http,
        batch_size=int(os.getenv("ENRICH_BATCH_SIZE", "5")),
    )

    logger.info(f"Aggregating {args.source} (type={args.type or 'default'}, days={args.days})")
    try:
        result = await pipeline.run(
            args.source,
            type=args.type,
            days=args.days,
            no_cache=args.no_cache,
            limit=args.limit,
        )
    finally:
        await http.close()

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    # Setup logging
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    sys.exit(asyncio.run(main()))
