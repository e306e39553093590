import json
import logging
import re
from typing import Dict, Optional

import httpx
from bs4.dammit import EncodingDetector
from fake_useragent import UserAgent
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.cache import ResponseCache
from core.models import FetchResult

logger = logging.getLogger(__name__)

_CHARSET = re.compile(r"charset\s*=\s*[\"']?([\w-]+)", re.I)
_GB_FAMILY = {"gbk", "gb2312", "gb_2312-80", "gb18030", "x-gbk"}


def decode_body(content: bytes, content_type: str = "") -> str:
    """
    Decode a response body. The charset comes from the Content-Type header,
    then from a declaration inside the document, and defaults to UTF-8.
    """
    encoding = None
    match = _CHARSET.search(content_type or "")
    if match:
        encoding = match.group(1).lower()
    if not encoding:
        declared = EncodingDetector.find_declared_encoding(content[:4096], is_html=True)
        encoding = declared.lower() if declared else None

    # GB18030 is a superset of GBK and GB2312
    if encoding in _GB_FAMILY:
        encoding = "gb18030"

    try:
        return content.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        logger.warning(f"Unknown charset {encoding!r}, decoding as UTF-8")
        return content.decode("utf-8", errors="replace")


class HTTPClient:
    def __init__(
        self,
        cache: Optional[ResponseCache] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.ua = UserAgent()
        self.cache = cache if cache is not None else ResponseCache()
        self.timeout = timeout
        self.client = httpx.AsyncClient(http2=False, follow_redirects=True, transport=transport)

    def _get_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.ua.random,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "cross-site",
            "Cache-Control": "max-age=0",
        }
        if extra:
            headers.update(extra)
        return headers

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.RequestError),
        reraise=True,
    )
    async def _get(self, url: str, headers: Dict[str, str]) -> str:
        try:
            response = await self.client.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {url}: {e}")
            raise
        logger.info(f"Successfully fetched {url}")
        return decode_body(response.content, response.headers.get("content-type", ""))

    async def fetch(
        self,
        url: str,
        bypass_cache: bool = False,
        headers: Optional[Dict[str, str]] = None,
        response_format: str = "text",
    ) -> FetchResult:
        """
        Fetches a URL, serving it from the cache unless `bypass_cache` is set.
        Transport errors are retried; HTTP errors are raised as-is.
        `response_format` is "text" (decoded body) or "json" (parsed body).
        """
        text = None if bypass_cache else self.cache.get(url)
        from_cache = text is not None
        if from_cache:
            logger.debug(f"Cache hit for {url}")
        else:
            text = await self._get(url, self._get_headers(headers))

        body = json.loads(text) if response_format == "json" else text
        # Only bodies that parsed are worth replaying
        if not from_cache:
            self.cache.set(url, text)
        return FetchResult(body=body, from_cache=from_cache)

    async def close(self):
        await self.client.aclose()
