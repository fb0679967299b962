from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class PosType(StrEnum):
    SQUARE = "square"
    CLOVER = "clover"


class Shop(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    merchant_id: str | None = None
    pos_type: PosType = PosType.SQUARE


class MenuItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # POS catalog item id
    name: str
    price: Decimal  # Base price before size/modifier adjustments


class CartItem(BaseModel):
    """A single cart line. ``quantity`` is the only field mutated in place."""

    id: UUID = Field(default_factory=uuid4)
    shop: Shop
    menu_item: MenuItem
    category: str = ""
    quantity: int = 1
    customizations: str | None = None
    item_price_with_modifiers: Decimal
    selected_size_id: str | None = None
    # modifier list id → selected modifier ids
    selected_modifier_ids_by_list: dict[str, list[str]] | None = None

    @property
    def menu_item_id(self) -> str:
        return self.menu_item.id

    @property
    def total_price(self) -> Decimal:
        return self.item_price_with_modifiers * self.quantity


class CartSummary(BaseModel):
    total_items: int
    unique_items: int
    total_price: Decimal
    shop: Shop | None
    category_totals: dict[str, Decimal]

    @property
    def average_item_price(self) -> Decimal:
        if self.total_items == 0:
            return Decimal("0")
        return self.total_price / self.total_items

    @property
    def formatted_total_price(self) -> str:
        return f"${self.total_price:.2f}"
