"""
Turns extracted markup or text into a bounded plain-text excerpt.
"""
import logging
import re
from typing import Iterable, Pattern, Sequence, Union

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

NO_CONTENT = "暂无内容"
ELLIPSIS = "..."
DEFAULT_MAX_LENGTH = 1000
MIN_VIABLE_LENGTH = 10

NoisePattern = Union[str, Pattern[str]]

_MARKUP = re.compile(r"<[a-zA-Z!/][^>]*>")
_WHITESPACE = re.compile(r"\s+")


def looks_like_markup(text: str) -> bool:
    return bool(_MARKUP.search(text))


def html_to_text(html: str, noise_selectors: Sequence[str] = ()) -> str:
    """Drop noise elements, scripts and styles, and return the visible text."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    for selector in noise_selectors:
        for node in soup.select(selector):
            node.decompose()
    return soup.get_text(separator=" ")


def truncate_at_noise(text: str, noise_patterns: Iterable[NoisePattern]) -> str:
    """
    Cut the text at the first occurrence of each noise pattern.

    Disclaimers and editor bylines sit at the end of a story, so everything
    from the match onward is dropped, not just the matched span.
    """
    for pattern in noise_patterns:
        if isinstance(pattern, str):
            index = text.find(pattern)
        else:
            match = pattern.search(text)
            index = match.start() if match else -1
        if index >= 0:
            text = text[:index]
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def summarize(
    raw: str,
    noise_patterns: Iterable[NoisePattern] = (),
    max_length: int = DEFAULT_MAX_LENGTH,
    noise_selectors: Sequence[str] = (),
) -> str:
    """
    Build the excerpt stored in Item.content.

    Returns NO_CONTENT instead of an empty string. Output longer than
    `max_length` is cut to `max_length` characters before the ellipsis is
    appended, so the marker comes on top of the bound.
    """
    if not raw:
        return NO_CONTENT

    text = html_to_text(raw, noise_selectors) if looks_like_markup(raw) else raw
    text = collapse_whitespace(text)
    text = collapse_whitespace(truncate_at_noise(text, noise_patterns))

    if len(text) > max_length:
        text = text[:max_length] + ELLIPSIS
    return text or NO_CONTENT


def is_viable(text: str, min_length: int = MIN_VIABLE_LENGTH) -> bool:
    """False for the no-content sentinel and for near-empty excerpts."""
    if not text or text == NO_CONTENT:
        return False
    return len(text.strip()) > min_length


def paragraph_text(node: Tag, min_paragraph_length: int = 0, skip: Iterable[str] = ()) -> str:
    """
    Join the text of the <p> elements under `node`.

    Paragraphs of `min_paragraph_length` characters or fewer, and paragraphs
    containing any of the `skip` fragments, are left out.
    """
    skip = tuple(skip)
    paragraphs = []
    for p in node.find_all("p"):
        para_text = collapse_whitespace(p.get_text(separator=" ", strip=True))
        if len(para_text) <= min_paragraph_length:
            continue
        if any(fragment in para_text for fragment in skip):
            continue
        paragraphs.append(para_text)
    return " ".join(paragraphs)
