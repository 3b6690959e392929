# src/payflow/adapters/catalog.py
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from payflow.core.contracts import Item

log = logging.getLogger("payflow.adapters.catalog")

# fetch_items(category) -> items; failures are the caller's problem
FetchItems = Callable[[str], Sequence[Item]]


class StaticCatalog:
    """In-memory stand-in for a remote catalogue."""
    def __init__(self, items: Iterable[Item] = ()):
        self._by_cat: Dict[str, List[Item]] = {}
        for it in items:
            self._by_cat.setdefault(it.category, []).append(it)

    def categories(self) -> List[str]:
        return sorted(self._by_cat)

    def __call__(self, category: str) -> List[Item]:
        return list(self._by_cat.get(category, []))


class CategoryFeed:
    """Observer that refreshes its item list whenever the selected category changes."""
    def __init__(self, fetch_items: FetchItems, name: str = "feed"):
        self.fetch_items = fetch_items
        self.name = name
        self.category: Optional[str] = None
        self.items: List[Item] = []
        self.refreshes = 0

    def update(self, category: str) -> None:
        items = list(self.fetch_items(category))
        self.category = category
        self.items = items
        self.refreshes += 1
        log.debug("%s refreshed category=%s items=%d", self.name, category, len(items))


def log_category(category: str) -> None:
    """Plain subscriber that just logs the selection."""
    log.info("category selected: %s", category)
