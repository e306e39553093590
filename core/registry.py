from types import MappingProxyType
from typing import Iterable, List, Mapping

from core.scraper_base import BaseScraper


class UnknownSourceError(KeyError):
    pass


class SourceRegistry:
    """Read-only lookup of source adapters by name."""

    def __init__(self, adapters: Iterable[BaseScraper]):
        entries = {}
        for adapter in adapters:
            if not adapter.name:
                raise ValueError(f"{type(adapter).__name__} has no name")
            if adapter.name in entries:
                raise ValueError(f"Duplicate source name: {adapter.name}")
            entries[adapter.name] = adapter
        self._adapters: Mapping[str, BaseScraper] = MappingProxyType(entries)

    def get(self, name: str) -> BaseScraper:
        try:
            return self._adapters[name]
        except KeyError:
            raise UnknownSourceError(name) from None

    def names(self) -> List[str]:
        return list(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)
