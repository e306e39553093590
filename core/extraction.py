"""
Ordered extraction strategies.

Sites move their markup around, so every field is looked up through a list
of strategies tried in priority order. The first strategy producing a long
enough result wins.
"""
import logging
from typing import Callable, Optional, Sequence

from bs4 import BeautifulSoup
from readability import Document

from core.summarizer import collapse_whitespace

logger = logging.getLogger(__name__)

Strategy = Callable[[BeautifulSoup], Optional[str]]


def first_viable(soup: BeautifulSoup, strategies: Sequence[Strategy], min_length: int = 0) -> Optional[str]:
    for strategy in strategies:
        try:
            result = strategy(soup)
        except Exception as e:
            logger.debug(f"Extraction strategy {getattr(strategy, '__name__', strategy)} failed: {e}")
            continue
        if result and len(result.strip()) > min_length:
            return result.strip()
    return None


def select_text(*selectors: str) -> Strategy:
    """Text of the first node matching any selector, in selector order."""

    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for selector in selectors:
            node = soup.select_one(selector)
            if node is not None:
                text = collapse_whitespace(node.get_text(separator=" ", strip=True))
                if text:
                    return text
        return None

    strategy.__name__ = f"select_text{selectors}"
    return strategy


def select_html(*selectors: str) -> Strategy:
    """Inner markup of the first matching node."""

    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for selector in selectors:
            node = soup.select_one(selector)
            if node is not None:
                return node.decode_contents()
        return None

    strategy.__name__ = f"select_html{selectors}"
    return strategy


def select_attr(selector: str, attr: str) -> Strategy:
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        node = soup.select_one(selector)
        if node is None:
            return None
        value = node.get(attr)
        return str(value) if value else None

    strategy.__name__ = f"select_attr({selector!r}, {attr!r})"
    return strategy


def meta_content(*names: str) -> Strategy:
    """Content of <meta name=...> or <meta property=...>."""

    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for name in names:
            node = soup.find("meta", attrs={"name": name}) or soup.find("meta", attrs={"property": name})
            if node is not None and node.get("content"):
                return str(node["content"])
        return None

    strategy.__name__ = f"meta_content{names}"
    return strategy


def readability_summary() -> Strategy:
    """Main-content HTML as found by readability."""

    def strategy(soup: BeautifulSoup) -> Optional[str]:
        return Document(str(soup)).summary(html_partial=True)

    strategy.__name__ = "readability_summary"
    return strategy
