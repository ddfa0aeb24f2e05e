"""Ingredient aggregation and matching models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RawIngredient(BaseModel):
    """Ingredient text as written in a recipe, tagged with that recipe's name."""

    name: str
    recipe_name: str

    model_config = ConfigDict(frozen=True)


class AggregatedItem(BaseModel):
    """Ingredient group keyed by its normalized name."""

    name: str
    sources: list[str] = Field(default_factory=list)


class MatchResult(BaseModel):
    """Closest master list entry for one ingredient vector."""

    match: Optional[str] = Field(default=None)
    best_score: float = Field(default=-1.0)
    best_candidate: Optional[str] = Field(default=None)

    model_config = ConfigDict(frozen=True)


class IngredientMatch(BaseModel):
    """Match outcome for an aggregated ingredient, by position."""

    index: int = Field(ge=0)
    name: str
    base_ingredient: str
    matched_master_item: Optional[str] = Field(default=None)
    best_score: float = Field(default=-1.0)
    best_candidate: Optional[str] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @property
    def covered(self) -> bool:
        return self.matched_master_item is not None


__all__ = ["AggregatedItem", "IngredientMatch", "MatchResult", "RawIngredient"]
