"""SQLAlchemy models representing Mealcart persistence tables."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base class for Mealcart ORM models."""


class RecipeORM(Base):
    """Recipe with its structured ingredient lines."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )

    ingredients: Mapped[list["RecipeIngredientORM"]] = relationship(
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredientORM.order",
    )


class RecipeIngredientORM(Base):
    __tablename__ = "recipe_ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    recipe: Mapped[RecipeORM] = relationship(back_populates="ingredients")


class MealPlanORM(Base):
    """Recipes chosen for a single day, one optional recipe per meal slot."""

    __tablename__ = "meal_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_date: Mapped[date] = mapped_column("date", Date, nullable=False, unique=True, index=True)
    lunch_recipe_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    protein_recipe_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    carb_recipe_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    vegetable_recipe_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )

    lunch_recipe: Mapped[Optional[RecipeORM]] = relationship(foreign_keys=[lunch_recipe_id])
    protein_recipe: Mapped[Optional[RecipeORM]] = relationship(foreign_keys=[protein_recipe_id])
    carb_recipe: Mapped[Optional[RecipeORM]] = relationship(foreign_keys=[carb_recipe_id])
    vegetable_recipe: Mapped[Optional[RecipeORM]] = relationship(
        foreign_keys=[vegetable_recipe_id]
    )


class CategoryORM(Base):
    """Grouping for master list items (e.g. Dairy, Bakery)."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MasterListItemORM(Base):
    """Staple or restock product, with its normalized base ingredient and embedding."""

    __tablename__ = "master_list_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_ingredient: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    embedding: Mapped[list[float]] = mapped_column(JSON, nullable=False, default=list)
    type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ShoppingListORM(Base):
    """Shopping list for one week, keyed by the normalized week start."""

    __tablename__ = "shopping_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )

    items: Mapped[list["ShoppingListItemORM"]] = relationship(
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        order_by="ShoppingListItemORM.order",
    )


class ShoppingListItemORM(Base):
    """Entry on a weekly shopping list; ``source`` names the owning partition."""

    __tablename__ = "shopping_list_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shopping_list_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="meal")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    shopping_list: Mapped[ShoppingListORM] = relationship(back_populates="items")

    __table_args__ = (
        Index("ix_shopping_list_items_list_source", "shopping_list_id", "source"),
    )


__all__ = [
    "Base",
    "CategoryORM",
    "MasterListItemORM",
    "MealPlanORM",
    "RecipeIngredientORM",
    "RecipeORM",
    "ShoppingListItemORM",
    "ShoppingListORM",
]
