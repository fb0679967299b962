from __future__ import annotations

from siplocal.providers.square import (
    SquareHoursProvider,
    build_http_client,
    interpret_business_hours,
)

__all__ = ["SquareHoursProvider", "build_http_client", "interpret_business_hours"]
