from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class ValidationErrorKind(StrEnum):
    EMPTY_CART = "empty_cart"
    CART_LIMIT_REACHED = "cart_limit_reached"
    QUANTITY_LIMIT_EXCEEDED = "quantity_limit_exceeded"
    TOTAL_PRICE_LIMIT_EXCEEDED = "total_price_limit_exceeded"
    MINIMUM_ORDER_NOT_MET = "minimum_order_not_met"
    DIFFERENT_SHOP = "different_shop"
    SHOP_CLOSED = "shop_closed"
    INVALID_MENU_ITEM = "invalid_menu_item"
    INVALID_CUSTOMIZATIONS = "invalid_customizations"
    INVALID_PRICE = "invalid_price"
    INVALID_QUANTITY = "invalid_quantity"


class CartValidationError(BaseModel):
    """A single rule violation, suitable for showing directly in an alert.

    Which payload field is set depends on ``kind``: ``limit`` for the count
    ceilings, ``amount`` for money thresholds, ``shop_name`` for shop rules,
    ``detail`` for the ``invalid_*`` kinds.
    """

    model_config = ConfigDict(frozen=True)

    kind: ValidationErrorKind
    limit: int | None = None
    amount: Decimal | None = None
    shop_name: str | None = None
    detail: str | None = None

    @property
    def description(self) -> str:
        match self.kind:
            case ValidationErrorKind.EMPTY_CART:
                return "Your cart is empty"
            case ValidationErrorKind.CART_LIMIT_REACHED:
                return f"Your cart can't hold more than {self.limit} items"
            case ValidationErrorKind.QUANTITY_LIMIT_EXCEEDED:
                return f"You can order at most {self.limit} of a single item"
            case ValidationErrorKind.TOTAL_PRICE_LIMIT_EXCEEDED:
                return f"Cart total can't exceed ${self.amount:.2f}"
            case ValidationErrorKind.MINIMUM_ORDER_NOT_MET:
                return f"Minimum order amount is ${self.amount:.2f}"
            case ValidationErrorKind.DIFFERENT_SHOP:
                return f"Your cart already has items from {self.shop_name}"
            case ValidationErrorKind.SHOP_CLOSED:
                return f"{self.shop_name} is currently closed"
            case ValidationErrorKind.INVALID_MENU_ITEM:
                return f"Invalid menu item: {self.detail}"
            case ValidationErrorKind.INVALID_CUSTOMIZATIONS:
                return f"Invalid customizations: {self.detail}"
            case ValidationErrorKind.INVALID_PRICE:
                return f"Invalid price: {self.detail}"
            case ValidationErrorKind.INVALID_QUANTITY:
                return f"Invalid quantity: {self.detail}"

    @property
    def recovery_suggestion(self) -> str:
        match self.kind:
            case ValidationErrorKind.EMPTY_CART:
                return "Add some items to your cart before checking out."
            case ValidationErrorKind.CART_LIMIT_REACHED:
                return "Remove some items from your cart before adding more."
            case ValidationErrorKind.QUANTITY_LIMIT_EXCEEDED:
                return f"Choose a quantity of {self.limit} or fewer."
            case ValidationErrorKind.TOTAL_PRICE_LIMIT_EXCEEDED:
                return "Remove items or lower quantities to continue."
            case ValidationErrorKind.MINIMUM_ORDER_NOT_MET:
                return f"Add more items to reach ${self.amount:.2f}."
            case ValidationErrorKind.DIFFERENT_SHOP:
                return (
                    f"Check out or clear your cart from {self.shop_name} "
                    "before ordering from another coffee shop."
                )
            case ValidationErrorKind.SHOP_CLOSED:
                return "Check the business hours and try again when the shop is open."
            case ValidationErrorKind.INVALID_MENU_ITEM:
                return "Refresh the menu and try again."
            case ValidationErrorKind.INVALID_CUSTOMIZATIONS:
                return "Shorten your special instructions and try again."
            case ValidationErrorKind.INVALID_PRICE:
                return "Refresh the menu to get current prices."
            case ValidationErrorKind.INVALID_QUANTITY:
                return "Enter a quantity of at least 1."


class ValidationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"

    @property
    def is_valid(self) -> bool:
        return True


class ValidationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    error: CartValidationError

    @property
    def is_valid(self) -> bool:
        return False


ValidationResult = Annotated[ValidationSuccess | ValidationFailure, Field(discriminator="status")]
