from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Optional

import pytest

from core.models import Candidate, Detail, FetchResult
from core.scraper_base import BaseScraper
from core.timeutil import CANONICAL_TZ

# 2025-01-01 12:00:00 in UTC+8
REFERENCE = datetime(2025, 1, 1, 12, 0, 0, tzinfo=CANONICAL_TZ)
REFERENCE_MS = 1735704000000


@pytest.fixture
def clock():
    return lambda: REFERENCE


class FakeHTTPClient:
    """Stands in for HTTPClient: serves canned bodies and records calls."""

    def __init__(self, responses: Dict[str, Any], failing=(), list_from_cache: bool = False):
        self.responses = responses
        self.failing = set(failing)
        self.list_from_cache = list_from_cache
        self.calls: List[Dict[str, Any]] = []

    async def fetch(self, url, bypass_cache=False, headers=None, response_format="text"):
        self.calls.append({"url": url, "bypass_cache": bypass_cache, "headers": headers or {}})
        if url in self.failing:
            raise ConnectionError(f"boom: {url}")
        return FetchResult(body=self.responses[url], from_cache=self.list_from_cache and url == LIST_URL)

    async def close(self):
        pass


LIST_URL = "https://example.com/list"


class FakeScraper(BaseScraper):
    """List body is a list of candidate dicts, detail body is a detail dict."""

    name = "fake"
    title = "Fake Source"
    link = "https://example.com"
    default_type = "all"
    type_labels = MappingProxyType({"all": "全部"})
    list_urls = MappingProxyType({"all": LIST_URL})
    default_author = "Fake Desk"
    noise_patterns = ("免责声明",)

    def __init__(self, needs_detail: bool = True, prefer_detail_time: bool = True, max_candidates: int = 50):
        self.needs_detail = needs_detail
        self.prefer_detail_time = prefer_detail_time
        self.max_candidates = max_candidates

    def parse_list(self, body) -> List[Candidate]:
        return [Candidate(**entry) for entry in body]

    def parse_detail(self, body, candidate: Candidate) -> Detail:
        return Detail(**body)


@pytest.fixture
def fake_scraper():
    return FakeScraper()


def detail_body(text: Optional[str] = None, **fields) -> Dict[str, Any]:
    fields.setdefault("body", f"<p>{text or 'A reasonably long detail body for the story.'}</p>")
    return fields
