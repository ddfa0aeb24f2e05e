"""Shared test doubles and data builders."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Sequence

from mealcart.db.master_list import (
    create_category,
    create_master_item,
    list_categories,
    set_base_ingredient,
    set_embedding,
)
from mealcart.db.meal_plans import assign_recipe, create_recipe
from mealcart.models.master_list import Category, MasterListItem


class FakeEmbedder:
    """Deterministic embedder mapping known texts to fixed vectors; records every call."""

    def __init__(self, vectors: dict[str, List[float]] | None = None, default=None) -> None:
        self.vectors = dict(vectors or {})
        self.default = list(default) if default is not None else [0.0, 0.0, 1.0]
        self.calls: List[List[str]] = []

    def __call__(self, texts: Sequence[str]) -> List[List[float]]:
        texts = list(texts)
        self.calls.append(texts)
        return [list(self.vectors.get(text.lower(), self.default)) for text in texts]


def plan_recipe(day: date, slot: str, name: str, ingredients: Iterable[str]) -> None:
    recipe = create_recipe(name, list(ingredients))
    assign_recipe(day, slot, recipe.id)


def plan_week(week_start: date, days: Sequence[Sequence[tuple[str, str, Sequence[str]]]]) -> None:
    """``days[i]`` holds ``(slot, recipe name, ingredients)`` tuples for ``week_start + i``."""

    for offset, slots in enumerate(days):
        for slot, name, ingredients in slots:
            plan_recipe(week_start + timedelta(days=offset), slot, name, ingredients)


def add_master_item(
    name: str,
    item_type: str = "staple",
    *,
    base_ingredient: str | None = None,
    embedding: Sequence[float] | None = None,
    category: str = "Pantry",
) -> MasterListItem:
    category_row = _category(category)
    item = create_master_item(category_row.id, name, item_type)
    if base_ingredient is not None:
        item = set_base_ingredient(item.id, base_ingredient)
    if embedding is not None:
        item = set_embedding(item.id, embedding)
    return item


def _category(name: str) -> Category:
    for category in list_categories():
        if category.name == name:
            return category
    return create_category(name)
