"""Tests for quantity/unit stripping."""

from __future__ import annotations

import pytest

from mealcart.shopping.normalize import (
    UnitCategory,
    grouping_key,
    is_unit,
    strip_units,
    unit_category,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2 lb chicken", "chicken"),
        ("(5-6 oz) chicken thighs", "chicken thighs"),
        ("lb. ground beef", "ground beef"),
        ("salt", "salt"),
        ("500g beef", "beef"),
        ("½ cup sugar", "sugar"),
        ("1½ cups milk", "milk"),
        ("1 1/2 cups flour", "flour"),
        ("2 oz. cheddar", "cheddar"),
        ("(1 lb) ground beef", "ground beef"),
        ("Tbsp. olive oil", "olive oil"),
        ("2 large onions", "onions"),
        ("2 large cloves garlic", "garlic"),
        ("2 medium-sized onions", "medium-sized onions"),
        ("small-batch honey", "small-batch honey"),
        ("200 grams flour", "flour"),
        ("5–6 oz salmon", "salmon"),
        ("1 can (14 oz) diced tomatoes", "diced tomatoes"),
        ("2 chicken breasts", "chicken breasts"),
        ("2 garlic cloves", "garlic cloves"),
        ("2 tbsp olive oil, divided", "olive oil, divided"),
    ],
)
def test_strip_units_removes_measurements(raw, expected):
    assert strip_units(raw) == expected


def test_strip_units_keeps_parentheticals_without_units():
    assert strip_units("chicken (boneless)") == "chicken (boneless)"


def test_strip_units_never_returns_empty():
    assert strip_units("2 cups") == "2 cups"
    assert strip_units("  3 tbsp  ") == "3 tbsp"


def test_strip_units_collapses_whitespace():
    assert strip_units("2   lb    chicken   thighs") == "chicken thighs"


def test_grouping_key_is_case_insensitive():
    assert grouping_key("2 lb Chicken") == grouping_key("chicken") == "chicken"
    assert grouping_key("Olive  Oil") == "olive oil"


def test_unit_vocabulary_lookup():
    assert unit_category("Tbsp.") is UnitCategory.SPOON
    assert unit_category("kg") is UnitCategory.WEIGHT
    assert unit_category("bunches") is UnitCategory.CONTAINER
    assert is_unit("medium")
    assert not is_unit("chicken")
