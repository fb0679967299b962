"""In-memory cart that enforces ``CartValidator`` rules on every mutation."""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from siplocal.models.cart import CartItem, CartSummary
from siplocal.validation import CartValidator, cart_total

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from siplocal.models.cart import MenuItem, Shop
    from siplocal.models.validation import ValidationResult

log = structlog.get_logger()


class Cart:
    """Cart lines for a single shop, with a bounded undo history.

    ``open_status`` looks up a shop's cached open/closed state by id and
    returns ``None`` when unknown; ``BusinessHoursService.is_open`` fits.
    Unknown status never blocks an order.
    """

    def __init__(
        self,
        validator: CartValidator | None = None,
        open_status: Callable[[str], bool | None] | None = None,
    ) -> None:
        self._validator = validator or CartValidator()
        self._open_status = open_status
        self._items: list[CartItem] = []
        self._history: list[list[CartItem]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def total_price(self) -> Decimal:
        return cart_total(self._items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def current_shop(self) -> Shop | None:
        return self._items[0].shop if self._items else None

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_item(
        self,
        shop: Shop,
        menu_item: MenuItem,
        category: str = "",
        quantity: int = 1,
        customizations: str | None = None,
        item_price_with_modifiers: Decimal | None = None,
        selected_size_id: str | None = None,
        selected_modifier_ids_by_list: dict[str, list[str]] | None = None,
    ) -> ValidationResult:
        price = menu_item.price
        if item_price_with_modifiers is not None:
            price = item_price_with_modifiers

        result = self._validator.validate_add_item(
            self._items,
            shop,
            menu_item,
            quantity=quantity,
            customizations=customizations,
            item_price_with_modifiers=price,
            is_shop_open=self._is_open(shop.id),
        )
        if not result.is_valid:
            log.info(
                "cart_add_rejected", shop_id=shop.id, item=menu_item.id, reason=result.error.kind
            )
            return result

        index = self._validator.find_matching_item(
            self._items,
            shop,
            menu_item,
            customizations,
            price,
            selected_size_id,
            selected_modifier_ids_by_list,
        )
        if index is not None:
            # The merged line must still respect the per-line limits
            existing = self._items[index]
            result = self._validator.validate_update_quantity(
                existing, existing.quantity + quantity, self._items
            )
            if not result.is_valid:
                log.info(
                    "cart_add_rejected",
                    shop_id=shop.id,
                    item=menu_item.id,
                    reason=result.error.kind,
                )
                return result

        self._snapshot()
        if index is not None:
            self._items[index].quantity += quantity
        else:
            self._items.append(
                CartItem(
                    shop=shop,
                    menu_item=menu_item,
                    category=category,
                    quantity=quantity,
                    customizations=customizations,
                    item_price_with_modifiers=price,
                    selected_size_id=selected_size_id,
                    selected_modifier_ids_by_list=selected_modifier_ids_by_list,
                )
            )
        log.debug("cart_item_added", shop_id=shop.id, item=menu_item.id, quantity=quantity)
        return result

    def remove_item(self, item_id: UUID) -> bool:
        index = self._index_of(item_id)
        if index is None:
            return False
        self._snapshot()
        del self._items[index]
        return True

    def update_quantity(self, item_id: UUID, quantity: int) -> ValidationResult | None:
        """Set a line's quantity; 0 removes it. Returns ``None`` for an unknown line."""
        index = self._index_of(item_id)
        if index is None:
            return None

        item = self._items[index]
        result = self._validator.validate_update_quantity(item, quantity, self._items)
        if not result.is_valid:
            log.info("cart_update_rejected", item=item.menu_item_id, reason=result.error.kind)
            return result

        self._snapshot()
        if quantity == 0:
            del self._items[index]
        else:
            item.quantity = quantity
        return result

    def clear(self) -> None:
        if not self._items:
            return
        self._snapshot()
        self._items.clear()

    def undo(self) -> bool:
        """Restore the cart to its state before the last mutation."""
        if not self._history:
            return False
        self._items = self._history.pop()
        return True

    def validate_for_checkout(self) -> ValidationResult:
        shop = self.current_shop
        is_open = self._is_open(shop.id) if shop is not None else None
        return self._validator.validate_checkout(self._items, is_shop_open=is_open)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def items_by_category(self) -> dict[str, list[CartItem]]:
        grouped: dict[str, list[CartItem]] = defaultdict(list)
        for item in self._items:
            grouped[item.category].append(item)
        return dict(grouped)

    def find_items(self, menu_item_id: str) -> list[CartItem]:
        return [item for item in self._items if item.menu_item_id == menu_item_id]

    def summary(self) -> CartSummary:
        return CartSummary(
            total_items=self.total_items,
            unique_items=len(self._items),
            total_price=self.total_price,
            shop=self.current_shop,
            category_totals={
                category: cart_total(items) for category, items in self.items_by_category().items()
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_open(self, shop_id: str) -> bool | None:
        if self._open_status is None:
            return None
        return self._open_status(shop_id)

    def _index_of(self, item_id: UUID) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def _snapshot(self) -> None:
        # Copy lines: quantity is mutated in place
        self._history.append([item.model_copy() for item in self._items])
        if len(self._history) > self._validator.settings.max_undo_steps:
            self._history.pop(0)
