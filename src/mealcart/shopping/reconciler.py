"""Reconcile a week's meal plan into its persisted shopping list."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from time import perf_counter
from typing import Callable, Iterator, List, Optional, Protocol, Sequence, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError

from mealcart import metrics
from mealcart.config import Settings, get_settings
from mealcart.db import master_list as master_list_store
from mealcart.db import meal_plans as meal_plan_store
from mealcart.db import shopping_list as shopping_list_store
from mealcart.invalidation import SHOPPING_LIST_VIEWS, InvalidationHook, notify
from mealcart.models.ingredients import AggregatedItem
from mealcart.models.master_list import MasterListItem
from mealcart.models.meal_plan import MealPlanDay
from mealcart.models.shopping import ItemSource, NewShoppingListItem, ShoppingList, SyncResult
from mealcart.shopping.aggregate import aggregate_ingredients, collect_ingredients
from mealcart.shopping.embeddings import Embedder, EmbeddingError, build_embedding_client
from mealcart.shopping.matcher import inventory_vectors, match_ingredients
from mealcart.shopping.similarity import deduplicate_by_embedding
from mealcart.weeks import normalize_week_start, week_window

logger = logging.getLogger(__name__)

MealPlanProvider = Callable[[date, date], Sequence[MealPlanDay]]
InventoryProvider = Callable[[], Sequence[MasterListItem]]

NAME_MAX_LENGTH = 255
NOTES_MAX_LENGTH = 1000


class ShoppingListStore(Protocol):
    def ensure_shopping_list(
        self, week_start: date, seed_loader: Callable[[], Sequence[NewShoppingListItem]]
    ) -> ShoppingList: ...

    def replace_items_by_source(
        self, list_id: int, source: ItemSource, items: Sequence[NewShoppingListItem]
    ) -> Sequence[object]: ...


def staple_seed_items(staples: Sequence[MasterListItem]) -> List[NewShoppingListItem]:
    """Unchecked ``staple`` entries in master list order."""

    return [
        NewShoppingListItem(name=item.name, source="staple", checked=False, order=index)
        for index, item in enumerate(staples)
    ]


def sources_note(sources: Sequence[str]) -> str:
    note = f"For: {', '.join(sources)}"
    if len(note) > NOTES_MAX_LENGTH:
        note = note[: NOTES_MAX_LENGTH - 3] + "..."
    return note


class ShoppingListReconciler:
    """Turn a week's recipes into ``meal`` entries without touching other partitions.

    Every collaborator is injected so each step can be exercised alone:
    ``meal_plan_provider(start, end)`` returns the week's days,
    ``inventory_provider()`` returns matchable master items,
    ``staple_loader()`` returns staples used to seed a new list and
    ``embedder`` may be ``None`` when no embedding endpoint is configured.
    """

    def __init__(
        self,
        *,
        meal_plan_provider: MealPlanProvider,
        inventory_provider: InventoryProvider,
        staple_loader: InventoryProvider,
        store: ShoppingListStore,
        embedder: Optional[Embedder] = None,
        invalidate: Optional[InvalidationHook] = None,
        threshold: Optional[float] = None,
        dedup_threshold: Optional[float] = None,
        dedup_enabled: bool = False,
    ) -> None:
        self._meal_plan_provider = meal_plan_provider
        self._inventory_provider = inventory_provider
        self._staple_loader = staple_loader
        self._store = store
        self._embedder = embedder
        self._invalidate = invalidate
        self._threshold = threshold
        self._dedup_threshold = dedup_threshold
        self._dedup_enabled = dedup_enabled

    @staticmethod
    def normalize_week_start(value: date | datetime) -> date:
        return normalize_week_start(value)

    def ensure_exists(self, week_start: date | datetime) -> ShoppingList:
        """Return the week's list, seeding a new one with every staple item."""

        week = normalize_week_start(week_start)
        return self._store.ensure_shopping_list(
            week, lambda: staple_seed_items(self._staple_loader())
        )

    def sync_meal_ingredients(self, week_start: date | datetime) -> SyncResult:
        """Rebuild the ``meal`` partition of the week's list from its meal plan.

        Ingredients already covered by the master list are left out. Matching
        failures fall back to listing everything; storage errors propagate.
        """

        started = perf_counter()
        try:
            result = self._sync(normalize_week_start(week_start))
        except Exception:
            metrics.SYNC_RUNS.labels(outcome="error").inc()
            raise
        finally:
            metrics.SYNC_LATENCY.observe(perf_counter() - started)

        metrics.SYNC_RUNS.labels(outcome="failed_open" if result.failed_open else "synced").inc()
        logger.info(
            "Synced meal ingredients week_start=%s aggregated=%s inserted=%s covered=%s "
            "duration_ms=%.2f",
            result.week_start,
            result.aggregated_count,
            result.inserted_count,
            len(result.covered),
            (perf_counter() - started) * 1000,
            extra={"week_start": str(result.week_start), "stage": "total"},
        )
        notify(self._invalidate, SHOPPING_LIST_VIEWS)
        return result

    def _sync(self, week: date) -> SyncResult:
        start, end = week_window(week)

        with _stage("fetch_meal_plans", week):
            plans = self._meal_plan_provider(start, end)
        aggregated = aggregate_ingredients(collect_ingredients(plans))
        logger.debug("Aggregated %s ingredient(s) week_start=%s", len(aggregated), week)

        items, covered_indices, matching_ran, failed_open = self._match(week, aggregated)

        meal_items: List[NewShoppingListItem] = []
        covered: List[str] = []
        for index, item in enumerate(items):
            if index in covered_indices:
                covered.append(item.name)
                continue
            meal_items.append(
                NewShoppingListItem(
                    name=item.name[:NAME_MAX_LENGTH].rstrip(),
                    source="meal",
                    checked=False,
                    notes=sources_note(item.sources),
                    order=len(meal_items),
                )
            )
        if matching_ran:
            metrics.INGREDIENT_MATCHES.labels(result="covered").inc(len(covered))
            metrics.INGREDIENT_MATCHES.labels(result="uncovered").inc(len(meal_items))

        with _stage("db_writes", week):
            shopping_list = self.ensure_exists(week)
            inserted = self._store.replace_items_by_source(shopping_list.id, "meal", meal_items)

        return SyncResult(
            week_start=week,
            shopping_list_id=shopping_list.id,
            aggregated_count=len(items),
            inserted_count=len(inserted),
            covered=covered,
            matching_ran=matching_ran,
            failed_open=failed_open,
        )

    def _match(
        self, week: date, aggregated: List[AggregatedItem]
    ) -> Tuple[List[AggregatedItem], Set[int], bool, bool]:
        """Return ``(items, covered indices, matching ran, failed open)``."""

        if not aggregated:
            return aggregated, set(), False, False

        try:
            with _stage("fetch_inventory", week):
                master_items = list(self._inventory_provider())
            if self._embedder is None or not inventory_vectors(master_items):
                logger.debug(
                    "Skipping ingredient matching week_start=%s embedder=%s inventory=%s",
                    week,
                    self._embedder is not None,
                    len(master_items),
                )
                return aggregated, set(), False, False

            with _stage("match_ingredients", week):
                names = [item.name for item in aggregated]
                vectors = self._embedder(names)
                if len(vectors) != len(names):
                    raise EmbeddingError(
                        f"Expected {len(names)} embedding(s), received {len(vectors)}"
                    )
                items = aggregated
                if self._dedup_enabled:
                    deduped = deduplicate_by_embedding(
                        aggregated, vectors, self._dedup_threshold
                    )
                    for entry in deduped.merge_log:
                        logger.debug("Merged ingredient %s", entry)
                    for entry in deduped.near_miss_log:
                        logger.debug("Near-miss ingredient %s", entry)
                    items, vectors = deduped.items, deduped.embeddings
                matches = match_ingredients(
                    [item.name for item in items],
                    master_items,
                    self._embedder,
                    self._threshold,
                    precomputed=vectors,
                )
        except SQLAlchemyError:
            raise
        except EmbeddingError as exc:
            logger.warning(
                "Ingredient matching failed, including all items week_start=%s: %s",
                week,
                exc,
                extra={"week_start": str(week), "stage": "match_ingredients"},
            )
            return aggregated, set(), False, True
        except Exception:
            logger.warning(
                "Ingredient matching raised unexpectedly, including all items week_start=%s",
                week,
                exc_info=True,
                extra={"week_start": str(week), "stage": "match_ingredients"},
            )
            return aggregated, set(), False, True

        covered = {match.index for match in matches if match.covered}
        return items, covered, True, False


@contextmanager
def _stage(name: str, week: date) -> Iterator[None]:
    """Time a sync stage and log its duration at DEBUG."""

    started = perf_counter()
    try:
        yield
    finally:
        duration_ms = (perf_counter() - started) * 1000
        logger.debug(
            "Sync stage %s finished week_start=%s duration_ms=%.2f",
            name,
            week,
            duration_ms,
            extra={"week_start": str(week), "stage": name, "duration_ms": duration_ms},
        )


def build_reconciler(
    settings: Settings | None = None,
    *,
    embedder: Optional[Embedder] = None,
    invalidate: Optional[InvalidationHook] = None,
) -> ShoppingListReconciler:
    """Wire a reconciler to the SQLite stores and the configured embedding endpoint."""

    settings = settings or get_settings()
    if embedder is None:
        embedder = build_embedding_client(settings)
    return ShoppingListReconciler(
        meal_plan_provider=meal_plan_store.list_meal_plans,
        inventory_provider=master_list_store.list_matchable_items,
        staple_loader=master_list_store.list_staples,
        store=shopping_list_store,
        embedder=embedder,
        invalidate=invalidate,
        threshold=settings.similarity_threshold,
        dedup_threshold=settings.deduplication_threshold,
        dedup_enabled=settings.embedding_dedup_enabled,
    )


__all__ = [
    "InventoryProvider",
    "MealPlanProvider",
    "ShoppingListReconciler",
    "ShoppingListStore",
    "build_reconciler",
    "sources_note",
    "staple_seed_items",
]
