"""Master list (staple/restock inventory) models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MasterItemType = Literal["staple", "restock"]


class Category(BaseModel):
    id: int
    name: str
    order: int = 0

    model_config = ConfigDict(frozen=True)


class MasterListItem(BaseModel):
    """Household staple or restock product."""

    id: int
    name: str
    base_ingredient: Optional[str] = Field(default=None)
    embedding: list[float] = Field(default_factory=list)
    type: MasterItemType
    category_id: int
    order: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def matchable(self) -> bool:
        return bool(self.base_ingredient) and bool(self.embedding)


class InventoryVector(BaseModel):
    """Name/vector pair compared against ingredient embeddings."""

    name: str
    embedding: list[float]

    model_config = ConfigDict(frozen=True)


__all__ = ["Category", "InventoryVector", "MasterItemType", "MasterListItem"]
