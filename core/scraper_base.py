from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from bs4 import BeautifulSoup

from core.extraction import first_viable, meta_content, readability_summary, select_attr, select_html, select_text
from core.models import Candidate, Detail
from core.summarizer import DEFAULT_MAX_LENGTH, NoisePattern

logger = logging.getLogger(__name__)

class BaseScraper(ABC):
    """
    A source adapter: knows where a source lists its stories and how to read
    the list and detail pages. Everything else (dedup, enrichment, time
    normalization, filtering) is done by the pipeline.
    """

    name: str = ""
    title: str = ""
    link: str = ""
    default_type: str = "default"
    type_labels: Mapping[str, str] = MappingProxyType({})
    list_urls: Mapping[str, str] = MappingProxyType({})
    default_author: str = ""

    noise_patterns: Sequence[NoisePattern] = ()
    noise_selectors: Sequence[str] = ()
    max_content_length: int = DEFAULT_MAX_LENGTH
    max_candidates: int = 50

    # Whether the detail page time wins over the list time
    prefer_detail_time: bool = True
    # Adapters whose list already carries everything skip detail fetches
    needs_detail: bool = True
    list_format: str = "text"
    detail_format: str = "text"

    def resolve_type(self, type: Optional[str]) -> str:
        if type and type in self.list_urls:
            return type
        return self.default_type

    def list_url(self, type: Optional[str] = None) -> str:
        return self.list_urls[self.resolve_type(type)]

    def type_label(self, type: Optional[str] = None) -> str:
        resolved = self.resolve_type(type)
        return self.type_labels.get(resolved, resolved)

    def list_headers(self, list_url: str) -> Dict[str, str]:
        return {}

    def detail_headers(self, list_url: str) -> Dict[str, str]:
        headers = self.list_headers(list_url)
        headers["Referer"] = list_url
        return headers

    def detail_url(self, candidate: Candidate) -> str:
        return candidate.url

    @abstractmethod
    def parse_list(self, body: Any) -> List[Candidate]:
        """
        Turns the list response into candidates.
        """
        pass

    def parse_detail(self, body: Any, candidate: Candidate) -> Detail:
        """
        Generic detail extraction: page title from the usual headings or
        OpenGraph tags, main content as found by readability.
        Adapters with known markup override this.
        """
        soup = BeautifulSoup(body, "lxml")
        title = first_viable(soup, [
            select_text("article h1", "h1"),
            meta_content("og:title"),
        ])
        content = first_viable(soup, [
            select_html("article"),
            readability_summary(),
        ], min_length=50)
        return Detail(
            title=title,
            body=content or "",
            author=first_viable(soup, [meta_content("author", "article:author")]),
            time=first_viable(soup, [meta_content("article:published_time", "pubdate", "publishdate")]),
            cover=first_viable(soup, [meta_content("og:image"), select_attr("article img", "src")]),
        )
