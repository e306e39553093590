from core.registry import SourceRegistry
from scrapers.chinanews import ChinaNewsScraper
from scrapers.feeds import FeedScraper
from scrapers.wallstreetcn import WallStreetCNScraper


def default_registry() -> SourceRegistry:
    return SourceRegistry([
        ChinaNewsScraper(),
        WallStreetCNScraper(),
        FeedScraper(
            "hackernews",
            "The Hacker News",
            "https://feeds.feedburner.com/TheHackersNews",
            link="https://thehackernews.com",
        ),
        FeedScraper(
            "csoonline",
            "CSO Online",
            "https://www.csoonline.com/feed/",
            link="https://www.csoonline.com",
        ),
    ])
