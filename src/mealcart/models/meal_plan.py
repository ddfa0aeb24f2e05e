"""Meal plan read models consumed by the ingredient collector."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MealSlot = Literal["lunch", "protein", "carb", "vegetable"]
MEAL_SLOTS: tuple[MealSlot, ...] = ("lunch", "protein", "carb", "vegetable")


class StructuredIngredient(BaseModel):
    name: str

    model_config = ConfigDict(frozen=True)


class RecipeRef(BaseModel):
    """Recipe selected for a meal slot."""

    id: Optional[int] = Field(default=None)
    name: str
    structured_ingredients: list[StructuredIngredient] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class MealPlanDay(BaseModel):
    """One day of the meal plan with up to four recipe slots."""

    date: date
    lunch_recipe: Optional[RecipeRef] = Field(default=None)
    protein_recipe: Optional[RecipeRef] = Field(default=None)
    carb_recipe: Optional[RecipeRef] = Field(default=None)
    vegetable_recipe: Optional[RecipeRef] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    def recipes(self) -> list[Optional[RecipeRef]]:
        return [getattr(self, f"{slot}_recipe") for slot in MEAL_SLOTS]


__all__ = ["MEAL_SLOTS", "MealPlanDay", "MealSlot", "RecipeRef", "StructuredIngredient"]
