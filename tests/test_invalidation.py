"""Tests for cache invalidation fan-out."""

from __future__ import annotations

from datetime import date

from mealcart.invalidation import SHOPPING_LIST_VIEWS, CacheInvalidator, notify
from mealcart.models.shopping import ShoppingList
from mealcart.server.cache import ShoppingListViewCache


def test_invalidator_notifies_every_subscriber_despite_failures(caplog):
    received = []

    def broken(paths):
        raise RuntimeError("subscriber offline")

    invalidator = CacheInvalidator()
    invalidator.subscribe(broken)
    invalidator.subscribe(received.append)

    invalidator(SHOPPING_LIST_VIEWS)

    assert received == [("/shopping-list", "/settings")]
    assert "Cache invalidation subscriber failed" in caplog.text


def test_unsubscribe_stops_notifications():
    received = []
    invalidator = CacheInvalidator()
    invalidator.subscribe(received.append)
    invalidator.unsubscribe(received.append)

    invalidator(["/shopping-list"])

    assert received == []


def test_notify_tolerates_missing_hook():
    notify(None)


def test_view_cache_clears_only_for_shopping_list_path():
    cache = ShoppingListViewCache()
    week = date(2024, 1, 15)
    cache.put(week, ShoppingList(id=1, week_start=week))

    cache.invalidate(["/settings"])
    assert cache.get(week) is not None

    cache.invalidate(SHOPPING_LIST_VIEWS)
    assert cache.get(week) is None
    assert len(cache) == 0


def test_view_cache_rejects_load_that_raced_an_invalidation():
    cache = ShoppingListViewCache()
    week = date(2024, 1, 15)

    generation = cache.generation
    cache.invalidate(SHOPPING_LIST_VIEWS)

    assert cache.put(week, ShoppingList(id=1, week_start=week), generation) is False
    assert cache.get(week) is None
    assert cache.put(week, ShoppingList(id=1, week_start=week), cache.generation) is True
    assert cache.get(week) is not None
