from types import MappingProxyType
from typing import List
import logging

import feedparser

from core.models import Candidate
from core.scraper_base import BaseScraper

logger = logging.getLogger(__name__)


class FeedScraper(BaseScraper):
    """
    RSS/Atom source. The feed provides title, link, date and a summary;
    the article page is only fetched for its body text.
    """
    prefer_detail_time = False
    max_candidates = 30

    def __init__(self, name: str, title: str, feed_url: str, link: str = "", default_author: str = ""):
        self.name = name
        self.title = title
        self.link = link or feed_url
        self.default_type = "latest"
        self.type_labels = MappingProxyType({"latest": "最新"})
        self.list_urls = MappingProxyType({"latest": feed_url})
        self.default_author = default_author or title

    def parse_list(self, body: str) -> List[Candidate]:
        feed = feedparser.parse(body)
        if feed.bozo and not feed.entries:
            logger.warning(f"Invalid feed for {self.name}: {feed.get('bozo_exception')}")
            return []

        candidates = []
        for entry in feed.entries:
            try:
                title = entry.get("title", "").strip()
                link = entry.get("link", "")
                if not title or not link:
                    continue

                cover = None
                for media in entry.get("media_content", []) or entry.get("media_thumbnail", []):
                    if media.get("url"):
                        cover = media["url"]
                        break

                candidates.append(Candidate(
                    title=title,
                    url=link,
                    time=entry.get("published") or entry.get("updated"),
                    summary=entry.get("summary") or entry.get("description") or "",
                    author=entry.get("author"),
                    cover=cover,
                ))
            except Exception as e:
                logger.error(f"Error parsing entry from {self.name}: {e}")
                continue
        return candidates
