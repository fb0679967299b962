"""Application wiring: builds the shared components from ``Settings``."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from siplocal.cart import Cart
from siplocal.hours import BusinessHoursService
from siplocal.logging_config import configure_logging
from siplocal.providers.square import SquareHoursProvider, build_http_client
from siplocal.store import JsonHoursStore, SqliteHoursStore
from siplocal.validation import CartValidator

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from siplocal.config import Settings
    from siplocal.protocols import HoursProvider

log = structlog.get_logger()


@dataclass
class AppState:
    settings: Settings
    hours: BusinessHoursService
    validator: CartValidator
    http_client: httpx.AsyncClient | None = None

    def new_cart(self) -> Cart:
        """A cart whose shop-closed check reads this app's cached hours."""
        return Cart(self.validator, open_status=self.hours.is_open)


@asynccontextmanager
async def create_app_state(
    settings: Settings, provider: HoursProvider | None = None
) -> AsyncIterator[AppState]:
    """Yield a started ``AppState``; shuts everything down on exit.

    Without an explicit ``provider`` the Square provider is used.
    """
    configure_logging(settings.logging)

    http_client: httpx.AsyncClient | None = None
    db: aiosqlite.Connection | None = None
    try:
        if provider is None:
            http_client = build_http_client(settings.square)
            provider = SquareHoursProvider(http_client, settings.square)

        if settings.hours.store == "sqlite":
            db_path = Path(settings.hours.db_path).expanduser()
            db_path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(db_path)
            sqlite_store = SqliteHoursStore(db)
            await sqlite_store.init_db()
            store: JsonHoursStore | SqliteHoursStore = sqlite_store
        else:
            store = JsonHoursStore(settings.hours.json_path)

        hours = BusinessHoursService(provider, store, settings.hours)
        await hours.start()
        log.info("app_state_ready", store=settings.hours.store)

        state = AppState(
            settings=settings,
            hours=hours,
            validator=CartValidator(settings.cart),
            http_client=http_client,
        )
        try:
            yield state
        finally:
            await hours.aclose()
    finally:
        if db is not None:
            await db.close()
        if http_client is not None:
            await http_client.aclose()
