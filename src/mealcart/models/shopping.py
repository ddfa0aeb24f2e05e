"""Shopping list models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ItemSource = Literal["meal", "staple", "restock", "manual"]
MasterItemSource = Literal["staple", "restock"]


class ShoppingListItem(BaseModel):
    """Single entry on a weekly shopping list."""

    id: int
    shopping_list_id: int
    name: str
    checked: bool = Field(default=False)
    source: ItemSource
    notes: Optional[str] = Field(default=None, max_length=1000)
    order: int = Field(default=0)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class NewShoppingListItem(BaseModel):
    """Item payload ready to be inserted into a list."""

    name: str = Field(min_length=1, max_length=255)
    source: ItemSource
    checked: bool = Field(default=False)
    notes: Optional[str] = Field(default=None, max_length=1000)
    order: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class ShoppingList(BaseModel):
    """Weekly shopping list addressed by its normalized week start."""

    id: int
    week_start: date
    items: list[ShoppingListItem] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def items_from(self, source: ItemSource) -> list[ShoppingListItem]:
        return [item for item in self.items if item.source == source]


class SyncResult(BaseModel):
    """Summary of a meal ingredient sync for one week."""

    week_start: date
    shopping_list_id: int
    aggregated_count: int = Field(ge=0)
    inserted_count: int = Field(ge=0)
    covered: list[str] = Field(default_factory=list)
    matching_ran: bool = Field(default=False)
    failed_open: bool = Field(default=False)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "ItemSource",
    "MasterItemSource",
    "NewShoppingListItem",
    "ShoppingList",
    "ShoppingListItem",
    "SyncResult",
]
