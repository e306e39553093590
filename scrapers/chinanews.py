from types import MappingProxyType
from typing import Dict, List
from urllib.parse import urljoin
import logging
import re

from bs4 import BeautifulSoup

from core.extraction import first_viable, readability_summary, select_text
from core.models import Candidate, Detail
from core.scraper_base import BaseScraper
from core.summarizer import paragraph_text

logger = logging.getLogger(__name__)

_SOURCE = re.compile(r"来源：\s*([^\s　]+)")
_VISIBLE_TIME = re.compile(r"(\d{4}年\d{1,2}月\d{1,2}日\s*\d{1,2}:\d{2})")


class ChinaNewsScraper(BaseScraper):
    name = "chinanews"
    title = "中新网新闻"
    link = "https://www.chinanews.com.cn"
    default_type = "world"
    type_labels = MappingProxyType({
        "world": "国际新闻",
        "finance": "财经新闻",
    })
    list_urls = MappingProxyType({
        "world": "https://www.chinanews.com.cn/world.shtml",
        "finance": "https://www.chinanews.com.cn/cj/gd.shtml",
    })
    default_author = "中新网"
    noise_selectors = (".adInContent", ".adEditor", ".left_name", "#function_code_page")
    noise_patterns = ("责任编辑", "【编辑")
    max_candidates = 50

    def list_headers(self, list_url: str) -> Dict[str, str]:
        return {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Encoding": "gzip, deflate",
        }

    def parse_list(self, body: str) -> List[Candidate]:
        soup = BeautifulSoup(body, "lxml")
        candidates = []
        for li in soup.select(".content_list li"):
            anchor = li.select_one(".dd_bt a")
            if anchor is None or not anchor.get("href"):
                continue
            title = anchor.get_text(strip=True)
            if not title:
                continue

            time_node = li.select_one(".dd_time")
            category_node = li.select_one(".dd_lm")
            candidates.append(Candidate(
                title=title,
                url=urljoin(self.link, anchor["href"]),
                time=time_node.get_text(strip=True) if time_node else None,
                category=category_node.get_text(strip=True) if category_node else "",
            ))
        return candidates

    def parse_detail(self, body: str, candidate: Candidate) -> Detail:
        soup = BeautifulSoup(body, "lxml")
        for selector in self.noise_selectors:
            for node in soup.select(selector):
                node.decompose()

        content_node = soup.select_one(".left_zw")
        content = paragraph_text(content_node, min_paragraph_length=10, skip=self.noise_patterns) if content_node else ""
        if not content:
            content = first_viable(soup, [readability_summary()]) or ""

        # Hidden spider metadata carries a clean "YYYY-MM-DD HH:MM:SS" and source
        pubtime = first_viable(soup, [select_text("#pubtime_baidu")])
        source_text = first_viable(soup, [select_text("#source_baidu")]) or ""
        visible = first_viable(soup, [select_text(".content_left_time")]) or ""

        time = pubtime
        if not time:
            match = _VISIBLE_TIME.search(visible)
            time = match.group(1) if match else None

        match = _SOURCE.search(source_text) or _SOURCE.search(visible)
        author = match.group(1) if match else None

        return Detail(
            title=first_viable(soup, [select_text(".content_left_title", "h1")]),
            author=author,
            time=time,
            body=content,
        )
