"""Dependency definitions for the Mealcart API server."""

from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, Request, status

from mealcart.config import get_settings
from mealcart.db.master_list import (
    create_category,
    create_master_item,
    delete_master_item,
    list_categories,
    list_master_items,
    list_staples,
    update_master_item,
)
from mealcart.db.shopping_list import (
    add_manual_item,
    delete_item,
    exclude_master_item,
    include_master_item,
    toggle_item,
)
from mealcart.invalidation import CacheInvalidator, InvalidationHook
from mealcart.models.master_list import Category, MasterItemType, MasterListItem
from mealcart.models.shopping import MasterItemSource, ShoppingList, ShoppingListItem, SyncResult
from mealcart.server.cache import ShoppingListViewCache
from mealcart.shopping.backfill import build_normaliser, refresh_master_item
from mealcart.shopping.embeddings import build_embedding_client
from mealcart.shopping.reconciler import build_reconciler, staple_seed_items

ShoppingListEnsurer = Callable[[date], ShoppingList]
MealIngredientSyncer = Callable[[date], SyncResult]
ManualItemAdder = Callable[[int, str], ShoppingListItem]
ItemToggler = Callable[[int, bool], ShoppingListItem]
ItemDeleter = Callable[[int], None]
MasterItemIncluder = Callable[[date, str, MasterItemSource], ShoppingListItem]
MasterItemExcluder = Callable[[date, str, MasterItemSource], int]
CategoryLister = Callable[[], List[Category]]
CategoryCreator = Callable[[str], Category]
MasterItemLister = Callable[[Optional[MasterItemType]], List[MasterListItem]]
MasterItemCreator = Callable[[int, str, MasterItemType], MasterListItem]
MasterItemRenamer = Callable[[int, str], MasterListItem]
MasterItemDeleter = Callable[[int], None]
MasterItemRefresher = Callable[[int], Optional[MasterListItem]]


def get_invalidator(request: Request) -> InvalidationHook:
    invalidator: Optional[CacheInvalidator] = getattr(request.app.state, "invalidator", None)
    if invalidator is None:
        return lambda paths: None
    return invalidator


def get_view_cache(request: Request) -> ShoppingListViewCache:
    cache = getattr(request.app.state, "view_cache", None)
    if cache is None:
        cache = ShoppingListViewCache()
        request.app.state.view_cache = cache
    return cache


def get_shopping_list_ensurer(
    invalidate: InvalidationHook = Depends(get_invalidator),
) -> ShoppingListEnsurer:
    """Return the default week list ensurer (seeds staples on first access)."""

    return build_reconciler(invalidate=invalidate).ensure_exists


def get_meal_ingredient_syncer(
    invalidate: InvalidationHook = Depends(get_invalidator),
) -> MealIngredientSyncer:
    return build_reconciler(invalidate=invalidate).sync_meal_ingredients


def get_manual_item_adder() -> ManualItemAdder:
    return add_manual_item


def get_item_toggler() -> ItemToggler:
    return toggle_item


def get_item_deleter() -> ItemDeleter:
    return delete_item


def get_master_item_includer() -> MasterItemIncluder:
    return include_master_item


def get_master_item_excluder() -> MasterItemExcluder:
    return lambda week_start, name, source: exclude_master_item(
        week_start,
        name,
        source,
        seed_loader=lambda: staple_seed_items(list_staples()),
    )


def get_category_lister() -> CategoryLister:
    return list_categories


def get_category_creator() -> CategoryCreator:
    return create_category


def get_master_item_lister() -> MasterItemLister:
    return list_master_items


def get_master_item_creator() -> MasterItemCreator:
    return create_master_item


def get_master_item_renamer() -> MasterItemRenamer:
    return lambda item_id, name: update_master_item(item_id, name=name)


def get_master_item_deleter() -> MasterItemDeleter:
    return delete_master_item


def get_master_item_refresher(settings=Depends(get_settings)) -> MasterItemRefresher:
    """Return the per-item normalise+embed step run after a create or rename."""

    normaliser = build_normaliser(settings)
    embedder = build_embedding_client(settings)
    return lambda item_id: refresh_master_item(item_id, normaliser, embedder)


def require_api_token(
    request: Request,
    settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
