"""Pydantic models defining shared data contracts."""

from mealcart.models.ingredients import (
    AggregatedItem,
    IngredientMatch,
    MatchResult,
    RawIngredient,
)
from mealcart.models.master_list import Category, InventoryVector, MasterListItem
from mealcart.models.meal_plan import MealPlanDay, RecipeRef, StructuredIngredient
from mealcart.models.shopping import (
    NewShoppingListItem,
    ShoppingList,
    ShoppingListItem,
    SyncResult,
)

__all__ = [
    "AggregatedItem",
    "IngredientMatch",
    "MatchResult",
    "RawIngredient",
    "Category",
    "InventoryVector",
    "MasterListItem",
    "MealPlanDay",
    "RecipeRef",
    "StructuredIngredient",
    "NewShoppingListItem",
    "ShoppingList",
    "ShoppingListItem",
    "SyncResult",
]
