"""Cart validation rules.

Every check is a pure function of the cart, the proposed change, and the
shop's known open status; nothing here performs I/O or suspends. Rules run
in a fixed priority order and the first failure wins, so a result always
names exactly one reason.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from siplocal.config import CartSettings
from siplocal.models.validation import (
    CartValidationError,
    ValidationErrorKind,
    ValidationFailure,
    ValidationResult,
    ValidationSuccess,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from siplocal.models.cart import CartItem, MenuItem, Shop

_SUCCESS = ValidationSuccess()


def _fail(kind: ValidationErrorKind, **payload: object) -> ValidationFailure:
    return ValidationFailure(error=CartValidationError(kind=kind, **payload))


def cart_total(items: Sequence[CartItem]) -> Decimal:
    return sum((item.total_price for item in items), Decimal("0"))


def normalize_modifier_map(
    selections: dict[str, list[str]] | None,
) -> dict[str, list[str]] | None:
    """Sort each list's selection ids so selection order does not matter."""
    if selections is None:
        return None
    return {list_id: sorted(ids) for list_id, ids in selections.items()}


class CartValidator:
    def __init__(self, settings: CartSettings | None = None) -> None:
        self._settings = settings or CartSettings()

    @property
    def settings(self) -> CartSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Add item
    # ------------------------------------------------------------------

    def validate_add_item(
        self,
        items: Sequence[CartItem],
        shop: Shop,
        menu_item: MenuItem,
        quantity: int = 1,
        customizations: str | None = None,
        item_price_with_modifiers: Decimal | None = None,
        is_shop_open: bool | None = None,
    ) -> ValidationResult:
        s = self._settings
        unit_price = (
            item_price_with_modifiers if item_price_with_modifiers is not None else menu_item.price
        )

        if len(items) >= s.max_cart_items:
            return _fail(ValidationErrorKind.CART_LIMIT_REACHED, limit=s.max_cart_items)

        if quantity > s.max_quantity_per_item:
            return _fail(ValidationErrorKind.QUANTITY_LIMIT_EXCEEDED, limit=s.max_quantity_per_item)
        if quantity < 1:
            return _fail(
                ValidationErrorKind.INVALID_QUANTITY,
                detail=f"quantity must be at least 1, got {quantity}",
            )

        if items and items[0].shop.id != shop.id:
            return _fail(ValidationErrorKind.DIFFERENT_SHOP, shop_name=items[0].shop.name)

        if is_shop_open is False:
            return _fail(ValidationErrorKind.SHOP_CLOSED, shop_name=shop.name)

        if (result := self._check_menu_item(menu_item, customizations)) is not None:
            return result

        if (result := self._check_unit_price(unit_price)) is not None:
            return result

        if cart_total(items) + unit_price * quantity > s.max_total_price:
            return _fail(ValidationErrorKind.TOTAL_PRICE_LIMIT_EXCEEDED, amount=s.max_total_price)

        return _SUCCESS

    # ------------------------------------------------------------------
    # Update quantity
    # ------------------------------------------------------------------

    def validate_update_quantity(
        self,
        cart_item: CartItem,
        new_quantity: int,
        items: Sequence[CartItem],
    ) -> ValidationResult:
        """Check a quantity change. Zero is valid and means "remove the line"."""
        s = self._settings

        if new_quantity < 0:
            return _fail(
                ValidationErrorKind.INVALID_QUANTITY,
                detail=f"quantity cannot be negative, got {new_quantity}",
            )
        if new_quantity > s.max_quantity_per_item:
            return _fail(ValidationErrorKind.QUANTITY_LIMIT_EXCEEDED, limit=s.max_quantity_per_item)

        others = cart_total([item for item in items if item.id != cart_item.id])
        if others + cart_item.item_price_with_modifiers * new_quantity > s.max_total_price:
            return _fail(ValidationErrorKind.TOTAL_PRICE_LIMIT_EXCEEDED, amount=s.max_total_price)

        return _SUCCESS

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def validate_checkout(
        self,
        items: Sequence[CartItem],
        is_shop_open: bool | None = None,
    ) -> ValidationResult:
        """Re-check the whole cart before payment.

        ``is_shop_open`` refers to the shop of the first cart line.
        """
        s = self._settings

        if not items:
            return _fail(ValidationErrorKind.EMPTY_CART)

        if cart_total(items) < s.minimum_order_amount:
            return _fail(ValidationErrorKind.MINIMUM_ORDER_NOT_MET, amount=s.minimum_order_amount)

        if is_shop_open is False:
            return _fail(ValidationErrorKind.SHOP_CLOSED, shop_name=items[0].shop.name)

        for item in items:
            if (result := self._check_menu_item(item.menu_item, item.customizations)) is not None:
                return result
            if item.quantity < 1:
                return _fail(
                    ValidationErrorKind.INVALID_QUANTITY,
                    detail=f"{item.menu_item.name} has quantity {item.quantity}",
                )

        return _SUCCESS

    # ------------------------------------------------------------------
    # Cart state
    # ------------------------------------------------------------------

    def validate_cart_state(self, items: Sequence[CartItem]) -> ValidationResult:
        if not items:
            return _SUCCESS

        first = items[0].shop
        if any(item.shop.id != first.id for item in items):
            return _fail(ValidationErrorKind.DIFFERENT_SHOP, shop_name=first.name)

        for item in items:
            if item.quantity <= 0:
                return _fail(
                    ValidationErrorKind.INVALID_QUANTITY,
                    detail=f"{item.menu_item.name} has quantity {item.quantity}",
                )

        return _SUCCESS

    def find_matching_item(
        self,
        items: Sequence[CartItem],
        shop: Shop,
        menu_item: MenuItem,
        customizations: str | None,
        item_price_with_modifiers: Decimal,
        selected_size_id: str | None = None,
        selected_modifier_ids_by_list: dict[str, list[str]] | None = None,
    ) -> int | None:
        """Index of the line an identical addition should increment, if any."""
        wanted_modifiers = normalize_modifier_map(selected_modifier_ids_by_list)
        for index, item in enumerate(items):
            if (
                item.shop.id == shop.id
                and item.menu_item_id == menu_item.id
                and item.customizations == customizations
                and item.item_price_with_modifiers == item_price_with_modifiers
                and item.selected_size_id == selected_size_id
                and normalize_modifier_map(item.selected_modifier_ids_by_list) == wanted_modifiers
            ):
                return index
        return None

    # ------------------------------------------------------------------
    # Shared checks
    # ------------------------------------------------------------------

    def _check_menu_item(
        self, menu_item: MenuItem, customizations: str | None
    ) -> ValidationFailure | None:
        if not menu_item.name.strip():
            return _fail(ValidationErrorKind.INVALID_MENU_ITEM, detail="item has no name")
        if menu_item.price < 0:
            return _fail(
                ValidationErrorKind.INVALID_MENU_ITEM,
                detail=f"{menu_item.name} has a negative price",
            )
        limit = self._settings.max_customization_length
        if customizations is not None and len(customizations) > limit:
            return _fail(
                ValidationErrorKind.INVALID_CUSTOMIZATIONS,
                detail=f"must be {limit} characters or fewer",
            )
        return None

    def _check_unit_price(self, unit_price: Decimal) -> ValidationFailure | None:
        if unit_price < 0:
            return _fail(ValidationErrorKind.INVALID_PRICE, detail="price cannot be negative")
        if unit_price > self._settings.max_item_price:
            return _fail(
                ValidationErrorKind.INVALID_PRICE,
                detail=f"price cannot exceed ${self._settings.max_item_price:.2f}",
            )
        return None
