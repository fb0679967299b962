"""Boundary collaborators of the hours service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from siplocal.models.cache import HoursCacheEntry
    from siplocal.models.hours import HoursInfo


class HoursProvider(Protocol):
    """Source of truth for business hours, usually a POS integration.

    May raise anything; callers treat it as untrusted I/O.
    """

    async def fetch(self, shop_id: str) -> HoursInfo | None: ...


class HoursStore(Protocol):
    """Durable shop id → cache entry map.

    Implementations must not raise: read failures return an empty map and
    write failures are logged and ignored.
    """

    async def load(self) -> dict[str, HoursCacheEntry]: ...

    async def save(self, entries: Mapping[str, HoursCacheEntry]) -> None: ...

    async def clear(self) -> None: ...
