from types import MappingProxyType
from typing import Any, Dict, List
import logging
import re

from core.models import Candidate, Detail
from core.scraper_base import BaseScraper

logger = logging.getLogger(__name__)

API_BASE = "https://api-one-wscn.awtmt.com/apiv1/content"
OK_CODE = 20000


class WallStreetCNScraper(BaseScraper):
    name = "wallstreetcn"
    title = "华尔街见闻"
    link = "https://wallstreetcn.com"
    default_type = "global"
    type_labels = MappingProxyType({"global": "最新"})
    list_urls = MappingProxyType({
        "global": f"{API_BASE}/information-flow?channel=global&accept=article&cursor=&limit=30&action=upglide",
    })
    default_author = "华尔街见闻"
    list_format = "json"
    detail_format = "json"
    # Risk disclaimers are appended to every article
    noise_patterns = (
        re.compile(r"市场有风险，投资需谨慎。"),
        "风险提示及免责条款",
        "本文内容仅代表作者观点",
        "投资者不应以该等信息作为决策依据",
        "本文来源于：",
    )
    noise_selectors = ('div[style*="color: #666"]', 'div[style*="font-size: 12px"]')

    def list_headers(self, list_url: str) -> Dict[str, str]:
        return {
            "Accept": "application/json, text/plain, */*",
            "Referer": "https://wallstreetcn.com/",
        }

    def detail_headers(self, list_url: str) -> Dict[str, str]:
        return self.list_headers(list_url)

    def _article_url(self, resource: Dict[str, Any]) -> str:
        return resource.get("uri") or f"https://wallstreetcn.com/articles/{resource['id']}"

    def parse_list(self, body: Any) -> List[Candidate]:
        items = ((body or {}).get("data") or {}).get("items")
        if not isinstance(items, list):
            logger.warning("Unexpected information-flow payload, no items")
            return []

        candidates = []
        for entry in items:
            resource = entry.get("resource") or {}
            if entry.get("resource_type") != "article" or not resource.get("id"):
                continue
            candidates.append(Candidate(
                id=str(resource["id"]),
                title=resource.get("title") or "暂无标题",
                url=self._article_url(resource),
                time=resource.get("display_time"),
                summary=resource.get("content_short") or "",
                cover=(resource.get("image") or {}).get("uri"),
                extra={"article_id": resource["id"]},
            ))
        return candidates

    def detail_url(self, candidate: Candidate) -> str:
        return f"{API_BASE}/articles/{candidate.extra['article_id']}?extract=1"

    def parse_detail(self, body: Any, candidate: Candidate) -> Detail:
        if not isinstance(body, dict) or body.get("code") != OK_CODE or not body.get("data"):
            raise ValueError(f"article API returned code {body.get('code') if isinstance(body, dict) else None}")
        data = body["data"]
        return Detail(
            title=data.get("title"),
            url=data.get("uri"),
            time=data.get("display_time"),
            body=data.get("content") or "",
            cover=(data.get("image") or {}).get("uri"),
        )
