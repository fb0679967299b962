from __future__ import annotations

from siplocal.models.cache import HoursCacheEntry, HoursCachePayload
from siplocal.models.cart import CartItem, CartSummary, MenuItem, PosType, Shop
from siplocal.models.hours import HoursInfo, HoursPeriod, Weekday
from siplocal.models.validation import (
    CartValidationError,
    ValidationErrorKind,
    ValidationFailure,
    ValidationResult,
    ValidationSuccess,
)

__all__ = [
    # hours
    "Weekday",
    "HoursPeriod",
    "HoursInfo",
    # cache
    "HoursCacheEntry",
    "HoursCachePayload",
    # cart
    "PosType",
    "Shop",
    "MenuItem",
    "CartItem",
    "CartSummary",
    # validation
    "ValidationErrorKind",
    "CartValidationError",
    "ValidationSuccess",
    "ValidationFailure",
    "ValidationResult",
]
