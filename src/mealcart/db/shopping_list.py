"""Weekly shopping list persistence helpers."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from mealcart.models.shopping import (
    ItemSource,
    MasterItemSource,
    NewShoppingListItem,
    ShoppingList,
    ShoppingListItem,
)

from .models import ShoppingListItemORM, ShoppingListORM
from .repository import session_scope

logger = logging.getLogger(__name__)

SeedLoader = Callable[[], Sequence[NewShoppingListItem]]


def _item_to_model(row: ShoppingListItemORM) -> ShoppingListItem:
    return ShoppingListItem.model_validate(
        {
            "id": row.id,
            "shopping_list_id": row.shopping_list_id,
            "name": row.name,
            "checked": row.checked,
            "source": row.source,
            "notes": row.notes,
            "order": row.order,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _load_list(session: Session, row: ShoppingListORM) -> ShoppingList:
    items = (
        session.execute(
            select(ShoppingListItemORM)
            .where(ShoppingListItemORM.shopping_list_id == row.id)
            .order_by(ShoppingListItemORM.order, ShoppingListItemORM.id)
        )
        .scalars()
        .all()
    )
    return ShoppingList(
        id=row.id,
        week_start=row.week_start,
        items=[_item_to_model(item) for item in items],
    )


def _find_list_row(session: Session, week_start: date) -> Optional[ShoppingListORM]:
    return session.execute(
        select(ShoppingListORM).where(ShoppingListORM.week_start == week_start)
    ).scalar_one_or_none()


def _next_order(session: Session, list_id: int) -> int:
    max_order = session.execute(
        select(func.max(ShoppingListItemORM.order)).where(
            ShoppingListItemORM.shopping_list_id == list_id
        )
    ).scalar()
    return (max_order if max_order is not None else -1) + 1


def _insert_items(
    session: Session, list_id: int, items: Sequence[NewShoppingListItem]
) -> List[ShoppingListItemORM]:
    rows = [
        ShoppingListItemORM(
            shopping_list_id=list_id,
            name=item.name,
            checked=item.checked,
            source=item.source,
            notes=item.notes,
            order=item.order,
        )
        for item in items
    ]
    session.add_all(rows)
    session.flush()
    return rows


def get_shopping_list(week_start: date) -> Optional[ShoppingList]:
    """Return the list stored for ``week_start`` (already normalized), if any."""

    with session_scope() as session:
        row = _find_list_row(session, week_start)
        if row is None:
            return None
        return _load_list(session, row)


def get_shopping_list_by_id(list_id: int) -> Optional[ShoppingList]:
    with session_scope() as session:
        row = session.get(ShoppingListORM, list_id)
        if row is None:
            return None
        return _load_list(session, row)


def create_shopping_list(
    week_start: date, seed_items: Sequence[NewShoppingListItem] = ()
) -> ShoppingList:
    """Create a list for the week; raises ``IntegrityError`` when one already exists."""

    with session_scope(immediate=True) as session:
        row = ShoppingListORM(week_start=week_start)
        session.add(row)
        session.flush()
        _insert_items(session, row.id, seed_items)
        return _load_list(session, row)


def ensure_shopping_list(week_start: date, seed_loader: SeedLoader) -> ShoppingList:
    """Return the week's list, creating it with ``seed_loader()`` items when absent.

    The existence check and the insert run in one write transaction, so two
    callers racing on the same week end up sharing a single row.
    """

    existing = get_shopping_list(week_start)
    if existing is not None:
        return existing

    seed_items = list(seed_loader())
    with session_scope(immediate=True) as session:
        row = _find_list_row(session, week_start)
        if row is not None:
            return _load_list(session, row)
        row = ShoppingListORM(week_start=week_start)
        session.add(row)
        session.flush()
        _insert_items(session, row.id, seed_items)
        logger.info(
            "Created shopping list week_start=%s seeded_items=%s",
            week_start,
            len(seed_items),
        )
        return _load_list(session, row)


def delete_items_by_source(list_id: int, source: ItemSource) -> int:
    with session_scope(immediate=True) as session:
        result = session.execute(
            delete(ShoppingListItemORM).where(
                ShoppingListItemORM.shopping_list_id == list_id,
                ShoppingListItemORM.source == source,
            )
        )
        return int(result.rowcount or 0)


def bulk_insert_items(list_id: int, items: Sequence[NewShoppingListItem]) -> List[ShoppingListItem]:
    if not items:
        return []
    with session_scope(immediate=True) as session:
        rows = _insert_items(session, list_id, items)
        return [_item_to_model(row) for row in rows]


def replace_items_by_source(
    list_id: int,
    source: ItemSource,
    items: Sequence[NewShoppingListItem],
) -> List[ShoppingListItem]:
    """Atomically swap one source partition of a list for ``items``.

    The delete and insert share a single write transaction: readers see either
    the old partition or the new one, and concurrent replacements of the same
    list serialize on the SQLite write lock. Other partitions are untouched.
    """

    mismatched = [item.name for item in items if item.source != source]
    if mismatched:
        raise ValueError(f"Items {mismatched} do not belong to source {source!r}")

    with session_scope(immediate=True) as session:
        if session.get(ShoppingListORM, list_id) is None:
            raise ValueError(f"Shopping list {list_id} not found")
        deleted = session.execute(
            delete(ShoppingListItemORM).where(
                ShoppingListItemORM.shopping_list_id == list_id,
                ShoppingListItemORM.source == source,
            )
        ).rowcount
        rows = _insert_items(session, list_id, items) if items else []
        logger.debug(
            "Replaced %s partition list_id=%s deleted=%s inserted=%s",
            source,
            list_id,
            deleted,
            len(rows),
        )
        return [_item_to_model(row) for row in rows]


def add_manual_item(list_id: int, name: str) -> ShoppingListItem:
    """Append a user-entered item to the end of the list."""

    with session_scope(immediate=True) as session:
        if session.get(ShoppingListORM, list_id) is None:
            raise ValueError(f"Shopping list {list_id} not found")
        row = ShoppingListItemORM(
            shopping_list_id=list_id,
            name=name.strip(),
            checked=False,
            source="manual",
            order=_next_order(session, list_id),
        )
        session.add(row)
        session.flush()
        return _item_to_model(row)


def toggle_item(item_id: int, checked: bool) -> ShoppingListItem:
    with session_scope() as session:
        row = session.get(ShoppingListItemORM, item_id)
        if row is None:
            raise ValueError(f"Shopping list item {item_id} not found")
        row.checked = bool(checked)
        session.flush()
        return _item_to_model(row)


def delete_item(item_id: int) -> None:
    with session_scope() as session:
        row = session.get(ShoppingListItemORM, item_id)
        if row is None:
            raise ValueError(f"Shopping list item {item_id} not found")
        session.delete(row)


def include_master_item(week_start: date, name: str, source: MasterItemSource) -> ShoppingListItem:
    """Add a staple/restock item to the week's list unless it is already there.

    A missing list is created empty; staple seeding is left to the reconciler.
    """

    with session_scope(immediate=True) as session:
        row = _find_list_row(session, week_start)
        if row is None:
            row = ShoppingListORM(week_start=week_start)
            session.add(row)
            session.flush()

        existing = session.execute(
            select(ShoppingListItemORM).where(
                ShoppingListItemORM.shopping_list_id == row.id,
                ShoppingListItemORM.name == name,
                ShoppingListItemORM.source == source,
            )
        ).scalars().first()
        if existing is not None:
            return _item_to_model(existing)

        item = ShoppingListItemORM(
            shopping_list_id=row.id,
            name=name,
            checked=False,
            source=source,
            order=_next_order(session, row.id),
        )
        session.add(item)
        session.flush()
        return _item_to_model(item)


def exclude_master_item(
    week_start: date,
    name: str,
    source: MasterItemSource,
    seed_loader: Optional[SeedLoader] = None,
) -> int:
    """Remove a staple/restock item from the week's list by ``(name, source)``.

    The list is created first when absent (seeded by ``seed_loader`` when
    given) so a seeded staple can be excluded before the list is ever opened.
    """

    shopping_list = ensure_shopping_list(week_start, seed_loader or (lambda: ()))
    with session_scope(immediate=True) as session:
        result = session.execute(
            delete(ShoppingListItemORM).where(
                ShoppingListItemORM.shopping_list_id == shopping_list.id,
                ShoppingListItemORM.name == name,
                ShoppingListItemORM.source == source,
            )
        )
        return int(result.rowcount or 0)


__all__ = [
    "SeedLoader",
    "add_manual_item",
    "bulk_insert_items",
    "create_shopping_list",
    "delete_item",
    "delete_items_by_source",
    "ensure_shopping_list",
    "exclude_master_item",
    "get_shopping_list",
    "get_shopping_list_by_id",
    "include_master_item",
    "replace_items_by_source",
    "toggle_item",
]
