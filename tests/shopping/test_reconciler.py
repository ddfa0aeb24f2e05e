"""Unit tests for the shopping list reconciler using in-memory collaborators."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Sequence

import pytest
from sqlalchemy.exc import OperationalError

from mealcart.models.master_list import MasterListItem
from mealcart.models.meal_plan import MealPlanDay, RecipeRef, StructuredIngredient
from mealcart.models.shopping import NewShoppingListItem, ShoppingList, ShoppingListItem
from mealcart.shopping.embeddings import EmbeddingError
from mealcart.shopping.reconciler import ShoppingListReconciler, sources_note
from tests.helpers import FakeEmbedder

WEEK = date(2024, 1, 15)
NOW = datetime(2024, 1, 15, 9, 0)


class InMemoryStore:
    def __init__(self) -> None:
        self.lists: dict[date, ShoppingList] = {}
        self.replacements: List[tuple[int, str, list[str]]] = []
        self._next_id = 1

    def _materialize(self, list_id: int, items: Sequence[NewShoppingListItem]) -> List[ShoppingListItem]:
        created = []
        for item in items:
            created.append(
                ShoppingListItem(
                    id=self._next_id,
                    shopping_list_id=list_id,
                    created_at=NOW,
                    updated_at=NOW,
                    **item.model_dump(),
                )
            )
            self._next_id += 1
        return created

    def ensure_shopping_list(self, week_start: date, seed_loader: Callable) -> ShoppingList:
        existing = self.lists.get(week_start)
        if existing is not None:
            return existing
        list_id = len(self.lists) + 1
        created = ShoppingList(
            id=list_id, week_start=week_start, items=self._materialize(list_id, seed_loader())
        )
        self.lists[week_start] = created
        return created

    def replace_items_by_source(self, list_id, source, items):
        week, current = next((k, v) for k, v in self.lists.items() if v.id == list_id)
        kept = [item for item in current.items if item.source != source]
        inserted = self._materialize(list_id, items)
        self.lists[week] = current.model_copy(update={"items": kept + inserted})
        self.replacements.append((list_id, source, [item.name for item in items]))
        return inserted

    def items(self, week_start: date = WEEK) -> List[ShoppingListItem]:
        return self.lists[week_start].items


def _recipe(name: str, *ingredients: str) -> RecipeRef:
    return RecipeRef(
        name=name,
        structured_ingredients=[StructuredIngredient(name=value) for value in ingredients],
    )


def _plans() -> List[MealPlanDay]:
    return [
        MealPlanDay(
            date=WEEK,
            protein_recipe=_recipe("Tacos", "2 lb chicken", "1 tbsp olive oil"),
            vegetable_recipe=_recipe("Salad", "lettuce", "olive oil"),
        ),
        MealPlanDay(date=WEEK + timedelta(days=1), protein_recipe=_recipe("Curry", "Chicken")),
    ]


def _staple(item_id: int, name: str, base: str | None = None, embedding=None) -> MasterListItem:
    return MasterListItem(
        id=item_id,
        name=name,
        base_ingredient=base,
        embedding=embedding or [],
        type="staple",
        category_id=1,
        order=item_id,
    )


OLIVE_OIL = _staple(1, "Olive Oil 1L", "olive oil", [1.0, 0.0, 0.0])
SALT = _staple(2, "Sea Salt")


def _reconciler(
    store: InMemoryStore,
    *,
    embedder=None,
    inventory: Sequence[MasterListItem] = (OLIVE_OIL,),
    plans: Sequence[MealPlanDay] | None = None,
    invalidate=None,
    dedup_enabled: bool = False,
) -> ShoppingListReconciler:
    windows: List[tuple[date, date]] = []

    def meal_plan_provider(start: date, end: date) -> Sequence[MealPlanDay]:
        windows.append((start, end))
        return list(_plans() if plans is None else plans)

    reconciler = ShoppingListReconciler(
        meal_plan_provider=meal_plan_provider,
        inventory_provider=lambda: list(inventory),
        staple_loader=lambda: [OLIVE_OIL, SALT],
        store=store,
        embedder=embedder,
        invalidate=invalidate,
        threshold=0.82,
        dedup_threshold=0.9,
        dedup_enabled=dedup_enabled,
    )
    reconciler.windows = windows
    return reconciler


def test_ensure_exists_seeds_staples_once():
    store = InMemoryStore()
    reconciler = _reconciler(store)

    created = reconciler.ensure_exists(WEEK)
    again = reconciler.ensure_exists(datetime(2024, 1, 15, 18, 30))

    assert created.id == again.id
    assert [(item.name, item.source, item.checked, item.order) for item in created.items] == [
        ("Olive Oil 1L", "staple", False, 0),
        ("Sea Salt", "staple", False, 1),
    ]


def test_sync_filters_covered_ingredients():
    store = InMemoryStore()
    embedder = FakeEmbedder({"olive oil": [1.0, 0.0, 0.0]}, default=[0.0, 1.0, 0.0])
    reconciler = _reconciler(store, embedder=embedder)

    result = reconciler.sync_meal_ingredients(WEEK)

    assert reconciler.windows == [(WEEK, WEEK + timedelta(days=7))]
    assert embedder.calls == [["chicken", "lettuce", "olive oil"]]
    assert result.matching_ran is True
    assert result.failed_open is False
    assert result.aggregated_count == 3
    assert result.covered == ["olive oil"]
    meal_items = [item for item in store.items() if item.source == "meal"]
    assert [(item.name, item.notes, item.order) for item in meal_items] == [
        ("chicken", "For: Tacos, Curry", 0),
        ("lettuce", "For: Salad", 1),
    ]


def test_sync_without_inventory_makes_no_embedding_call():
    store = InMemoryStore()
    embedder = FakeEmbedder()
    reconciler = _reconciler(store, embedder=embedder, inventory=[SALT])

    result = reconciler.sync_meal_ingredients(WEEK)

    assert embedder.calls == []
    assert result.matching_ran is False
    assert result.inserted_count == 3


def test_sync_without_embedder_includes_everything():
    store = InMemoryStore()
    result = _reconciler(store, embedder=None).sync_meal_ingredients(WEEK)
    assert result.inserted_count == 3
    assert result.failed_open is False


def test_sync_fails_open_on_embedding_error(caplog):
    def broken(texts):
        raise EmbeddingError("endpoint down")

    store = InMemoryStore()
    with caplog.at_level("WARNING", logger="mealcart.shopping.reconciler"):
        result = _reconciler(store, embedder=broken).sync_meal_ingredients(WEEK)

    assert result.failed_open is True
    assert result.inserted_count == 3
    assert "Ingredient matching failed" in caplog.text


def test_sync_fails_open_on_unexpected_matching_error():
    def broken(texts):
        raise RuntimeError("malformed vectors")

    store = InMemoryStore()
    result = _reconciler(store, embedder=broken).sync_meal_ingredients(WEEK)

    assert result.failed_open is True
    assert [item.name for item in store.items() if item.source == "meal"] == [
        "chicken",
        "lettuce",
        "olive oil",
    ]


def test_sync_propagates_storage_errors():
    def inventory_provider():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    store = InMemoryStore()
    reconciler = _reconciler(store, embedder=FakeEmbedder())
    reconciler._inventory_provider = inventory_provider

    with pytest.raises(OperationalError):
        reconciler.sync_meal_ingredients(WEEK)
    assert store.replacements == []


def test_sync_is_idempotent_and_keeps_other_partitions():
    store = InMemoryStore()
    reconciler = _reconciler(store, embedder=FakeEmbedder(default=[0.0, 1.0, 0.0]))

    reconciler.sync_meal_ingredients(WEEK)
    first = [(item.name, item.notes) for item in store.items() if item.source == "meal"]
    reconciler.sync_meal_ingredients(WEEK)
    second = [(item.name, item.notes) for item in store.items() if item.source == "meal"]

    assert first == second
    assert [item.name for item in store.items() if item.source == "staple"] == [
        "Olive Oil 1L",
        "Sea Salt",
    ]


def test_sync_with_no_meals_clears_meal_partition():
    store = InMemoryStore()
    _reconciler(store).sync_meal_ingredients(WEEK)
    result = _reconciler(store, plans=[]).sync_meal_ingredients(WEEK)

    assert result.aggregated_count == 0
    assert [item for item in store.items() if item.source == "meal"] == []
    assert store.replacements[-1] == (1, "meal", [])


def test_sync_skips_blank_lines_and_clips_long_names():
    store = InMemoryStore()
    long_name = "smoked " + "x" * 300
    plans = [MealPlanDay(date=WEEK, lunch_recipe=_recipe("Bowl", "rice", "   ", "", long_name))]

    result = _reconciler(store, plans=plans).sync_meal_ingredients(WEEK)

    assert result.aggregated_count == 2
    meal = [item.name for item in store.items() if item.source == "meal"]
    assert meal[0] == "rice"
    assert meal[1] == long_name[:255]


def test_sync_normalizes_datetime_week_start():
    store = InMemoryStore()
    reconciler = _reconciler(store)

    result = reconciler.sync_meal_ingredients(datetime(2024, 1, 15, 21, 45))

    assert result.week_start == WEEK
    assert reconciler.windows[0][0] == WEEK


def test_normalize_week_start_converts_aware_datetimes_to_local():
    aware = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert ShoppingListReconciler.normalize_week_start(aware) == aware.astimezone().date()


def test_sync_notifies_invalidation_hook_and_swallows_errors():
    calls = []

    def hook(paths):
        calls.append(tuple(paths))
        raise RuntimeError("cache backend offline")

    store = InMemoryStore()
    result = _reconciler(store, invalidate=hook).sync_meal_ingredients(WEEK)

    assert result.inserted_count == 3
    assert calls == [("/shopping-list", "/settings")]


def test_sync_deduplicates_when_enabled():
    plans = [
        MealPlanDay(
            date=WEEK,
            protein_recipe=_recipe("Stir fry", "spring onions", "rice"),
            vegetable_recipe=_recipe("Noodles", "scallions"),
        )
    ]
    embedder = FakeEmbedder(
        {
            "spring onions": [0.0, 1.0, 0.0],
            "scallions": [0.0, 0.99, 0.05],
            "rice": [0.0, 0.0, 1.0],
        }
    )
    store = InMemoryStore()

    result = _reconciler(
        store, embedder=embedder, plans=plans, dedup_enabled=True
    ).sync_meal_ingredients(WEEK)

    assert len(embedder.calls) == 1
    assert result.aggregated_count == 2
    meal_items = [item for item in store.items() if item.source == "meal"]
    assert [(item.name, item.notes) for item in meal_items] == [
        ("rice", "For: Stir fry"),
        ("scallions", "For: Noodles, Stir fry"),
    ]


def test_sources_note_format():
    assert sources_note(["Tacos", "Curry"]) == "For: Tacos, Curry"
    assert len(sources_note(["x" * 600, "y" * 600])) == 1000
