"""Decide which meal ingredients the household inventory already covers."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from mealcart.models.ingredients import IngredientMatch
from mealcart.models.master_list import InventoryVector, MasterListItem
from mealcart.shopping.embeddings import Embedder, EmbeddingError
from mealcart.shopping.similarity import find_best_matches

logger = logging.getLogger(__name__)


def _unmatched(names: Sequence[str]) -> List[IngredientMatch]:
    return [
        IngredientMatch(index=index, name=name, base_ingredient=name.lower())
        for index, name in enumerate(names)
    ]


def inventory_vectors(master_items: Sequence[MasterListItem]) -> List[InventoryVector]:
    """Project matchable master items onto ``(base_ingredient, embedding)`` pairs."""

    return [
        InventoryVector(name=item.base_ingredient, embedding=item.embedding)
        for item in master_items
        if item.matchable
    ]


def match_ingredients(
    names: Sequence[str],
    master_items: Sequence[MasterListItem],
    embedder: Embedder,
    threshold: Optional[float] = None,
    *,
    precomputed: Optional[Sequence[Sequence[float]]] = None,
) -> List[IngredientMatch]:
    """Match ingredient names against the master list with one batched embedding call.

    Nothing is embedded when ``names`` is empty or no master item is matchable.
    Pass ``precomputed`` vectors to skip the embedding call entirely.
    """

    names = list(names)
    if not names:
        return []

    inventory = inventory_vectors(master_items)
    if not inventory:
        return _unmatched(names)

    vectors = list(precomputed) if precomputed is not None else embedder(names)
    if len(vectors) != len(names):
        raise EmbeddingError(f"Expected {len(names)} embedding(s), received {len(vectors)}")

    results = find_best_matches(vectors, inventory, threshold)
    matches: List[IngredientMatch] = []
    for index, (name, result) in enumerate(zip(names, results)):
        matches.append(
            IngredientMatch(
                index=index,
                name=name,
                base_ingredient=name.lower(),
                matched_master_item=result.match,
                best_score=result.best_score,
                best_candidate=result.best_candidate,
            )
        )
        logger.debug(
            "Ingredient %r best=%r score=%.4f covered=%s",
            name,
            result.best_candidate,
            result.best_score,
            result.match is not None,
        )
    return matches


__all__ = ["inventory_vectors", "match_ingredients"]
