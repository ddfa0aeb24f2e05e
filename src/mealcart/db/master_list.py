"""Master list (staple/restock inventory) data access helpers."""

from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy import func, select

from mealcart.models.master_list import Category, MasterItemType, MasterListItem

from .models import CategoryORM, MasterListItemORM
from .repository import session_scope

MASTER_ITEM_TYPES = ("staple", "restock")


def _to_model(row: MasterListItemORM) -> MasterListItem:
    return MasterListItem.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "base_ingredient": row.base_ingredient,
            "embedding": list(row.embedding or []),
            "type": row.type,
            "category_id": row.category_id,
            "order": row.order,
        }
    )


def create_category(name: str) -> Category:
    with session_scope() as session:
        max_order = session.execute(select(func.max(CategoryORM.order))).scalar()
        row = CategoryORM(name=name.strip(), order=(max_order if max_order is not None else -1) + 1)
        session.add(row)
        session.flush()
        return Category(id=row.id, name=row.name, order=row.order)


def list_categories() -> List[Category]:
    with session_scope() as session:
        rows = (
            session.execute(select(CategoryORM).order_by(CategoryORM.order, CategoryORM.id))
            .scalars()
            .all()
        )
        return [Category(id=row.id, name=row.name, order=row.order) for row in rows]


def create_master_item(category_id: int, name: str, item_type: MasterItemType) -> MasterListItem:
    """Append a staple or restock item to the end of its category."""

    if item_type not in MASTER_ITEM_TYPES:
        raise ValueError(f"Unknown master list item type {item_type!r}")

    with session_scope() as session:
        if session.get(CategoryORM, category_id) is None:
            raise ValueError(f"Category {category_id} not found")
        max_order = session.execute(
            select(func.max(MasterListItemORM.order)).where(
                MasterListItemORM.category_id == category_id,
                MasterListItemORM.type == item_type,
            )
        ).scalar()
        row = MasterListItemORM(
            category_id=category_id,
            name=name.strip(),
            type=item_type,
            order=(max_order if max_order is not None else -1) + 1,
            embedding=[],
        )
        session.add(row)
        session.flush()
        return _to_model(row)


def update_master_item(item_id: int, *, name: str) -> MasterListItem:
    """Rename an item; its base ingredient and embedding must be recomputed afterwards."""

    with session_scope() as session:
        row = session.get(MasterListItemORM, item_id)
        if row is None:
            raise ValueError(f"Master list item {item_id} not found")
        row.name = name.strip()
        row.base_ingredient = None
        row.embedding = []
        session.flush()
        return _to_model(row)


def delete_master_item(item_id: int) -> None:
    with session_scope() as session:
        row = session.get(MasterListItemORM, item_id)
        if row is None:
            raise ValueError(f"Master list item {item_id} not found")
        session.delete(row)


def get_master_item(item_id: int) -> Optional[MasterListItem]:
    with session_scope() as session:
        row = session.get(MasterListItemORM, item_id)
        if row is None:
            return None
        return _to_model(row)


def list_master_items(item_type: Optional[MasterItemType] = None) -> List[MasterListItem]:
    """Return master list items ordered by category then position."""

    query = select(MasterListItemORM).join(
        CategoryORM, CategoryORM.id == MasterListItemORM.category_id
    )
    if item_type is not None:
        query = query.where(MasterListItemORM.type == item_type)
    query = query.order_by(CategoryORM.order, MasterListItemORM.order, MasterListItemORM.id)

    with session_scope() as session:
        rows = session.execute(query).scalars().all()
        return [_to_model(row) for row in rows]


def list_staples() -> List[MasterListItem]:
    return list_master_items("staple")


def list_matchable_items() -> List[MasterListItem]:
    """Return items that have both a base ingredient and an embedding."""

    with session_scope() as session:
        rows = (
            session.execute(
                select(MasterListItemORM)
                .where(MasterListItemORM.base_ingredient.is_not(None))
                .order_by(MasterListItemORM.id)
            )
            .scalars()
            .all()
        )
        items = [_to_model(row) for row in rows]
    return [item for item in items if item.matchable]


def list_items_missing_base_ingredient() -> List[MasterListItem]:
    with session_scope() as session:
        rows = (
            session.execute(
                select(MasterListItemORM)
                .where(MasterListItemORM.base_ingredient.is_(None))
                .order_by(MasterListItemORM.name)
            )
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows]


def list_items_missing_embedding() -> List[MasterListItem]:
    with session_scope() as session:
        rows = (
            session.execute(
                select(MasterListItemORM)
                .where(MasterListItemORM.base_ingredient.is_not(None))
                .order_by(MasterListItemORM.name)
            )
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows if not row.embedding]


def set_base_ingredient(item_id: int, base_ingredient: str) -> MasterListItem:
    with session_scope() as session:
        row = session.get(MasterListItemORM, item_id)
        if row is None:
            raise ValueError(f"Master list item {item_id} not found")
        row.base_ingredient = base_ingredient.strip().lower() or None
        session.flush()
        return _to_model(row)


def set_embedding(item_id: int, embedding: Sequence[float]) -> MasterListItem:
    with session_scope() as session:
        row = session.get(MasterListItemORM, item_id)
        if row is None:
            raise ValueError(f"Master list item {item_id} not found")
        row.embedding = [float(value) for value in embedding]
        session.flush()
        return _to_model(row)


__all__ = [
    "MASTER_ITEM_TYPES",
    "create_category",
    "create_master_item",
    "delete_master_item",
    "get_master_item",
    "list_items_missing_base_ingredient",
    "list_categories",
    "list_items_missing_embedding",
    "list_master_items",
    "list_matchable_items",
    "list_staples",
    "set_base_ingredient",
    "set_embedding",
    "update_master_item",
]
