import logging
import time
from typing import Dict, Optional, Tuple

import sqlite_utils
from sqlite_utils.db import NotFoundError

logger = logging.getLogger(__name__)


class ResponseCache:
    def __init__(self, db_path: Optional[str] = None, ttl_seconds: float = 600):
        """
        Cache of decoded response bodies keyed by URL.

        Args:
            db_path: Path to a SQLite file. When None, entries live in memory
                for the lifetime of this object only.
            ttl_seconds: Entries older than this are treated as misses.
        """
        self.db_path = db_path
        self.ttl_seconds = ttl_seconds

        if db_path:
            self.db = sqlite_utils.Database(db_path)
            self.init_db()
            self._memory = None
            logger.info(f"Response cache enabled: {db_path}")
        else:
            self.db = None
            self._memory: Dict[str, Tuple[str, float]] = {}
            logger.info("Response cache in memory only")

    def init_db(self):
        if self.db is None:
            return
        self.db["responses"].create({
            "url": str,
            "body": str,
            "fetched_at": float,
        }, pk="url", if_not_exists=True)

    def _fresh(self, fetched_at: float) -> bool:
        return time.time() - fetched_at < self.ttl_seconds

    def get(self, url: str) -> Optional[str]:
        if self.db is None:
            entry = self._memory.get(url)
            if entry is None:
                return None
            body, fetched_at = entry
            if not self._fresh(fetched_at):
                del self._memory[url]
                return None
            return body

        try:
            row = self.db["responses"].get(url)
        except NotFoundError:
            return None
        if not self._fresh(row["fetched_at"]):
            return None
        return row["body"]

    def set(self, url: str, body: str):
        now = time.time()
        self.prune()
        if self.db is None:
            self._memory[url] = (body, now)
            return
        self.db["responses"].upsert({"url": url, "body": body, "fetched_at": now}, pk="url")

    def prune(self):
        """Drops every expired entry, not just the ones read again."""
        if self.db is None:
            expired = [url for url, (_, fetched_at) in self._memory.items() if not self._fresh(fetched_at)]
            for url in expired:
                del self._memory[url]
            return
        self.db["responses"].delete_where("fetched_at <= ?", [time.time() - self.ttl_seconds])

    def __len__(self) -> int:
        if self.db is None:
            return len(self._memory)
        return self.db["responses"].count

    def clear(self):
        if self.db is None:
            self._memory.clear()
            return
        self.db["responses"].delete_where()
