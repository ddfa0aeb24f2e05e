"""Fire-and-forget notifications that cached views are stale."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Sequence

logger = logging.getLogger(__name__)

InvalidationHook = Callable[[Sequence[str]], None]

SHOPPING_LIST_VIEWS = ("/shopping-list", "/settings")


class CacheInvalidator:
    """Fan an invalidation out to every subscriber.

    A failing subscriber is logged and skipped; the caller never sees the error.
    """

    def __init__(self) -> None:
        self._subscribers: List[InvalidationHook] = []
        self._lock = threading.Lock()

    def subscribe(self, hook: InvalidationHook) -> None:
        with self._lock:
            self._subscribers.append(hook)

    def unsubscribe(self, hook: InvalidationHook) -> None:
        with self._lock:
            if hook in self._subscribers:
                self._subscribers.remove(hook)

    def __call__(self, paths: Sequence[str]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for hook in subscribers:
            try:
                hook(tuple(paths))
            except Exception:
                logger.exception("Cache invalidation subscriber failed paths=%s", list(paths))


def notify(hook: InvalidationHook | None, paths: Sequence[str] = SHOPPING_LIST_VIEWS) -> None:
    """Call ``hook`` with ``paths`` and swallow anything it raises."""

    if hook is None:
        return
    try:
        hook(tuple(paths))
    except Exception:
        logger.exception("Cache invalidation failed paths=%s", list(paths))


__all__ = ["CacheInvalidator", "InvalidationHook", "SHOPPING_LIST_VIEWS", "notify"]
