"""Data access helpers for recipes and the weekly meal plan."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from mealcart.models.meal_plan import MEAL_SLOTS, MealPlanDay, MealSlot, RecipeRef

from .models import MealPlanORM, RecipeIngredientORM, RecipeORM
from .repository import session_scope


def _recipe_to_model(row: Optional[RecipeORM]) -> Optional[RecipeRef]:
    if row is None:
        return None
    return RecipeRef.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "structured_ingredients": [{"name": ingredient.name} for ingredient in row.ingredients],
        }
    )


def _to_model(row: MealPlanORM) -> MealPlanDay:
    return MealPlanDay(
        date=row.plan_date,
        lunch_recipe=_recipe_to_model(row.lunch_recipe),
        protein_recipe=_recipe_to_model(row.protein_recipe),
        carb_recipe=_recipe_to_model(row.carb_recipe),
        vegetable_recipe=_recipe_to_model(row.vegetable_recipe),
    )


def create_recipe(name: str, ingredients: Iterable[str] = ()) -> RecipeRef:
    """Store a recipe with its ingredient lines in the given order."""

    with session_scope() as session:
        recipe = RecipeORM(name=name.strip())
        recipe.ingredients = [
            RecipeIngredientORM(name=ingredient, order=index)
            for index, ingredient in enumerate(ingredients)
        ]
        session.add(recipe)
        session.flush()
        return _recipe_to_model(recipe)


def assign_recipe(day: date, slot: MealSlot, recipe_id: Optional[int]) -> MealPlanDay:
    """Place a recipe in a meal slot for the given day (``None`` clears the slot)."""

    if slot not in MEAL_SLOTS:
        raise ValueError(f"Unknown meal slot {slot!r}")

    with session_scope() as session:
        if recipe_id is not None and session.get(RecipeORM, recipe_id) is None:
            raise ValueError(f"Recipe {recipe_id} not found")

        row = session.execute(
            select(MealPlanORM).where(MealPlanORM.plan_date == day)
        ).scalar_one_or_none()
        if row is None:
            row = MealPlanORM(plan_date=day)
            session.add(row)
        setattr(row, f"{slot}_recipe_id", recipe_id)
        session.flush()
        session.refresh(row)
        return _to_model(row)


def list_meal_plans(start: date, end: date) -> List[MealPlanDay]:
    """Return meal plan days in ``[start, end)`` with recipes and ingredients loaded."""

    recipe_loads = [
        selectinload(getattr(MealPlanORM, f"{slot}_recipe")).selectinload(RecipeORM.ingredients)
        for slot in MEAL_SLOTS
    ]
    with session_scope() as session:
        rows = (
            session.execute(
                select(MealPlanORM)
                .where(MealPlanORM.plan_date >= start, MealPlanORM.plan_date < end)
                .order_by(MealPlanORM.plan_date)
                .options(*recipe_loads)
            )
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows]


__all__ = ["assign_recipe", "create_recipe", "list_meal_plans"]
