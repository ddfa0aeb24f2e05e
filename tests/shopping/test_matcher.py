"""Tests for the ingredient matching facade."""

from __future__ import annotations

import pytest

from mealcart.models.master_list import MasterListItem
from mealcart.shopping.embeddings import EmbeddingError
from mealcart.shopping.matcher import inventory_vectors, match_ingredients
from tests.helpers import FakeEmbedder


def _master(item_id: int, name: str, base: str | None, embedding: list[float]) -> MasterListItem:
    return MasterListItem(
        id=item_id,
        name=name,
        base_ingredient=base,
        embedding=embedding,
        type="staple",
        category_id=1,
    )


def test_match_ingredients_marks_covered_items():
    embedder = FakeEmbedder({"olive oil": [1.0, 0.0], "chicken": [0.0, 1.0]})
    master = [_master(1, "Extra Virgin Olive Oil 1L", "olive oil", [1.0, 0.0])]

    matches = match_ingredients(["olive oil", "chicken"], master, embedder, threshold=0.82)

    assert [match.covered for match in matches] == [True, False]
    assert matches[0].matched_master_item == "olive oil"
    assert matches[1].best_candidate == "olive oil"
    assert matches[1].base_ingredient == "chicken"
    assert embedder.calls == [["olive oil", "chicken"]]


def test_match_ingredients_skips_network_without_inventory():
    embedder = FakeEmbedder()
    master = [
        _master(1, "Salt", None, []),
        _master(2, "Pepper", "pepper", []),
    ]

    matches = match_ingredients(["salt"], master, embedder)

    assert [match.covered for match in matches] == [False]
    assert embedder.calls == []


def test_match_ingredients_empty_names():
    embedder = FakeEmbedder()
    master = [_master(1, "Salt", "salt", [1.0])]
    assert match_ingredients([], master, embedder) == []
    assert embedder.calls == []


def test_match_ingredients_rejects_wrong_vector_count():
    master = [_master(1, "Salt", "salt", [1.0])]

    with pytest.raises(EmbeddingError):
        match_ingredients(["a", "b"], master, lambda texts: [[1.0]])


def test_inventory_vectors_keeps_matchable_items_only():
    master = [
        _master(1, "Salt", "salt", [1.0]),
        _master(2, "Pepper", None, [1.0]),
        _master(3, "Flour", "flour", []),
    ]
    assert [vector.name for vector in inventory_vectors(master)] == ["salt"]
