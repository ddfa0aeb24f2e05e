"""Collect and group ingredients from a week's meal plan."""

from __future__ import annotations

from typing import Dict, Iterable, List

from mealcart.models.ingredients import AggregatedItem, RawIngredient
from mealcart.models.meal_plan import MealPlanDay
from mealcart.models.shopping import ShoppingListItem
from mealcart.shopping.normalize import grouping_key, strip_units


def collect_ingredients(meal_plans: Iterable[MealPlanDay]) -> List[RawIngredient]:
    """Flatten every slotted recipe's structured ingredients into ``RawIngredient`` rows.

    Days are walked in the order given; within a day the slots go lunch,
    protein, carb, vegetable. Empty slots, recipes without ingredients and
    blank ingredient lines are skipped.
    """

    collected: List[RawIngredient] = []
    for plan in meal_plans:
        for recipe in plan.recipes():
            if recipe is None or not recipe.structured_ingredients:
                continue
            for ingredient in recipe.structured_ingredients:
                if not ingredient.name.strip():
                    continue
                collected.append(RawIngredient(name=ingredient.name, recipe_name=recipe.name))
    return collected


def aggregate_ingredients(ingredients: Iterable[RawIngredient]) -> List[AggregatedItem]:
    """Group ingredients by normalized name, merging their source recipes.

    The first cleaned name seen for a group is its display name; sources keep
    first-appearance order without repeats. Output is sorted case-insensitively.
    """

    grouped: Dict[str, AggregatedItem] = {}
    for ingredient in ingredients:
        key = grouping_key(ingredient.name)
        group = grouped.get(key)
        if group is None:
            group = AggregatedItem(name=strip_units(ingredient.name), sources=[])
            grouped[key] = group
        if ingredient.recipe_name not in group.sources:
            group.sources.append(ingredient.recipe_name)

    return sorted(grouped.values(), key=lambda item: (item.name.casefold(), item.name))


def format_shopping_list_as_text(items: Iterable[ShoppingListItem]) -> str:
    """Render unchecked items as a ``- name`` bullet list for sharing."""

    return "\n".join(f"- {item.name}" for item in items if not item.checked)


__all__ = ["aggregate_ingredients", "collect_ingredients", "format_shopping_list_as_text"]
