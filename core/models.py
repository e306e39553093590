from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

RawTime = Union[str, int, float, None]


@dataclass
class Candidate:
    title: str
    url: str
    time: RawTime = None  # Raw list-stage time, normalized later
    summary: str = ""  # List-stage excerpt or markup
    category: str = ""
    author: Optional[str] = None
    cover: Optional[str] = None
    id: Optional[str] = None
    hot: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Detail:
    body: str = ""  # Raw markup or text, summarized by the pipeline
    title: Optional[str] = None
    author: Optional[str] = None
    time: RawTime = None
    url: Optional[str] = None
    cover: Optional[str] = None


@dataclass
class Item:
    id: str
    title: str
    url: str
    author: str
    content: str
    mobile_url: Optional[str] = None
    timestamp: Optional[int] = None  # Epoch milliseconds, None when unknown
    hot: Optional[float] = None
    cover: Optional[str] = None
    raw_time: RawTime = field(default=None, repr=False)

    def __post_init__(self):
        if not self.mobile_url:
            self.mobile_url = self.url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "mobileUrl": self.mobile_url,
            "author": self.author,
            "content": self.content,
            "timestamp": self.timestamp,
            "hot": self.hot,
            "cover": self.cover,
        }


@dataclass
class FetchResult:
    body: Any  # Decoded text, or parsed JSON
    from_cache: bool = False


@dataclass
class RouteResult:
    name: str
    title: str
    type: str
    link: str
    update_time: str
    from_cache: bool = False
    data: List[Item] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "type": self.type,
            "link": self.link,
            "params": self.params,
            "total": self.total,
            "updateTime": self.update_time,
            "fromCache": self.from_cache,
            "data": [item.to_dict() for item in self.data],
        }
