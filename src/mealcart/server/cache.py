"""In-memory cache of rendered shopping-list views."""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Dict, Optional, Sequence

from mealcart.models.shopping import ShoppingList

logger = logging.getLogger(__name__)

VIEW_PATH = "/shopping-list"


class ShoppingListViewCache:
    """Week-keyed cache cleared whenever ``/shopping-list`` is invalidated.

    Readers take ``generation`` before loading a list and hand it back to
    ``put``; a load that raced an invalidation is then not cached.
    """

    def __init__(self) -> None:
        self._entries: Dict[date, ShoppingList] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, week_start: date) -> Optional[ShoppingList]:
        with self._lock:
            return self._entries.get(week_start)

    def put(
        self, week_start: date, shopping_list: ShoppingList, generation: Optional[int] = None
    ) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("Skipped caching stale view week_start=%s", week_start)
                return False
            self._entries[week_start] = shopping_list
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def invalidate(self, paths: Sequence[str]) -> None:
        if VIEW_PATH not in paths:
            return
        with self._lock:
            self._generation += 1
            dropped = len(self._entries)
            self._entries.clear()
        logger.debug("Cleared %s cached shopping list view(s)", dropped)


__all__ = ["ShoppingListViewCache", "VIEW_PATH"]
