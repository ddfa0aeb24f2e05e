"""Ingredient aggregation, embedding matching and shopping list reconciliation."""

from mealcart.shopping.aggregate import (
    aggregate_ingredients,
    collect_ingredients,
    format_shopping_list_as_text,
)
from mealcart.shopping.embeddings import EmbeddingClient, EmbeddingError, build_embedding_client
from mealcart.shopping.normalize import grouping_key, strip_units
from mealcart.shopping.reconciler import ShoppingListReconciler, build_reconciler
from mealcart.shopping.similarity import cosine_similarity, find_best_matches

__all__ = [
    "EmbeddingClient",
    "EmbeddingError",
    "ShoppingListReconciler",
    "aggregate_ingredients",
    "build_embedding_client",
    "build_reconciler",
    "collect_ingredients",
    "cosine_similarity",
    "find_best_matches",
    "format_shopping_list_as_text",
    "grouping_key",
    "strip_units",
]
