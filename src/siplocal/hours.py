"""Business hours orchestration: memory cache, durable store, and POS fetches.

Serves the freshest affordable ``HoursInfo`` for a shop without blocking
callers on a stale-but-present entry:

* fresh entries are returned directly; once older than the background
  threshold a refresh is scheduled alongside,
* stale entries are returned directly while a background refresh runs,
* missing entries (or ``force_refresh``) are fetched in the foreground.

All mutable state lives on one event loop and is only touched between
suspension points, so no locks are needed. At most one fetch per shop is in
flight at any time; the in-flight marker is owned by a token and released in
``finally`` (or by the task's done-callback if a background refresh is
cancelled before it starts).

Provider failures are logged and converted to "no new data"; they never reach
the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from siplocal.config import HoursSettings
from siplocal.errors import SipLocalError
from siplocal.freshness import Freshness, FreshnessPolicy, cap_entries, classify
from siplocal.models.cache import HoursCacheEntry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from siplocal.models.hours import HoursInfo
    from siplocal.protocols import HoursProvider, HoursStore

log = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class HoursSummary:
    """Open/closed/unknown counts across a set of shops."""

    total_shops: int
    open_shops: int
    closed_shops: int
    unknown_shops: int

    def _percent(self, count: int) -> float:
        if self.total_shops == 0:
            return 0.0
        return count / self.total_shops * 100.0

    @property
    def open_percentage(self) -> float:
        return self._percent(self.open_shops)

    @property
    def closed_percentage(self) -> float:
        return self._percent(self.closed_shops)

    @property
    def unknown_percentage(self) -> float:
        return self._percent(self.unknown_shops)


class BusinessHoursService:
    def __init__(
        self,
        provider: HoursProvider,
        store: HoursStore,
        settings: HoursSettings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._provider = provider
        self._store = store
        self._settings = settings or HoursSettings()
        self._policy = FreshnessPolicy.from_settings(self._settings)
        self._clock = clock

        self._entries: dict[str, HoursCacheEntry] = {}
        # shop id → token of the fetch currently holding the marker
        self._in_flight: dict[str, object] = {}
        self._background: set[asyncio.Task[HoursInfo | None]] = set()
        self._save_task: asyncio.Task[None] | None = None
        self._save_pending = False

    async def start(self) -> None:
        """Load persisted entries into memory. Called once at startup."""
        loaded = await self._store.load()
        self._entries = cap_entries(loaded, self._settings.max_entries)
        log.info("hours_cache_loaded", entries=len(self._entries))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_hours(self, shop_id: str, force_refresh: bool = False) -> HoursInfo | None:
        entry = self._entries.get(shop_id)

        if not force_refresh and entry is not None:
            freshness = classify(entry, self._clock(), self._policy)
            if freshness is not Freshness.FRESH:
                self._schedule_refresh(shop_id)
            return entry.info

        if shop_id in self._in_flight:
            log.debug("hours_fetch_already_in_flight", shop_id=shop_id)
            return entry.info if entry is not None else None

        token = self._claim(shop_id)
        info = await self._fetch(shop_id, token)
        if info is not None:
            return info

        # Fetch failed: fall back to whatever is cached now
        current = self._entries.get(shop_id)
        return current.info if current is not None else None

    def peek(self, shop_id: str) -> HoursInfo | None:
        """Return cached hours without triggering any fetch."""
        entry = self._entries.get(shop_id)
        return entry.info if entry is not None else None

    def is_open(self, shop_id: str, at: datetime | None = None) -> bool | None:
        """Open status from cached hours only; ``None`` when nothing is cached.

        ``at`` is shop-local wall-clock time and defaults to now.
        """
        info = self.peek(shop_id)
        if info is None:
            return None
        return info.is_open_at(at if at is not None else datetime.now())

    def open_shops(self, shop_ids: Iterable[str], at: datetime | None = None) -> list[str]:
        return [s for s in shop_ids if self.is_open(s, at) is True]

    def closed_shops(self, shop_ids: Iterable[str], at: datetime | None = None) -> list[str]:
        return [s for s in shop_ids if self.is_open(s, at) is False]

    def unknown_status_shops(self, shop_ids: Iterable[str]) -> list[str]:
        return [s for s in shop_ids if s not in self._entries]

    def summarize(self, shop_ids: Iterable[str], at: datetime | None = None) -> HoursSummary:
        statuses = [self.is_open(s, at) for s in shop_ids]
        return HoursSummary(
            total_shops=len(statuses),
            open_shops=statuses.count(True),
            closed_shops=statuses.count(False),
            unknown_shops=statuses.count(None),
        )

    def stats(self) -> dict[str, int]:
        return {
            "cached_shops": len(self._entries),
            "in_flight": len(self._in_flight),
            "background_tasks": len(self._background),
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def preload(self, shop_ids: Iterable[str]) -> dict[str, HoursInfo | None]:
        """Fetch hours for many shops concurrently; each shop succeeds or fails alone."""
        unique = list(dict.fromkeys(shop_ids))
        results = await asyncio.gather(*(self.get_hours(shop_id) for shop_id in unique))
        loaded = sum(1 for info in results if info is not None)
        log.info("hours_preload_complete", requested=len(unique), loaded=loaded)
        return dict(zip(unique, results, strict=True))

    async def clear_all(self) -> None:
        self._entries.clear()
        # Let any in-progress write finish before deleting, so it cannot
        # resurrect the old map afterwards.
        self._save_pending = False
        await self.flush()
        await self._store.clear()
        log.info("hours_cache_cleared")

    async def clear_one(self, shop_id: str) -> None:
        if self._entries.pop(shop_id, None) is None:
            return
        self._schedule_save()
        await self.flush()
        log.info("hours_cache_entry_cleared", shop_id=shop_id)

    async def flush(self) -> None:
        """Wait for any pending write to the durable store."""
        task = self._save_task
        if task is not None and not task.done():
            await task

    async def aclose(self) -> None:
        """Cancel background refreshes and flush pending writes."""
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.flush()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _claim(self, shop_id: str) -> object:
        token = object()
        self._in_flight[shop_id] = token
        return token

    def _release(self, shop_id: str, token: object) -> None:
        if self._in_flight.get(shop_id) is token:
            del self._in_flight[shop_id]

    async def _fetch(self, shop_id: str, token: object) -> HoursInfo | None:
        """Fetch and cache hours. The caller must already hold the marker."""
        try:
            info = await self._call_provider(shop_id)
            if info is not None:
                self._entries[shop_id] = HoursCacheEntry(info=info, last_updated=self._clock())
                if len(self._entries) > self._settings.max_entries:
                    self._entries = cap_entries(self._entries, self._settings.max_entries)
                self._schedule_save()
            return info
        finally:
            self._release(shop_id, token)

    async def _call_provider(self, shop_id: str) -> HoursInfo | None:
        timeout = self._settings.fetch_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                info = await self._provider.fetch(shop_id)
        except TimeoutError:
            log.warning("hours_fetch_timeout", shop_id=shop_id, timeout_seconds=timeout)
            return None
        except SipLocalError as exc:
            log.warning(
                "hours_fetch_failed",
                shop_id=shop_id,
                code=exc.code,
                message=exc.message,
            )
            return None
        except Exception:
            # Providers are untrusted I/O; anything they raise means "no data"
            log.warning("hours_fetch_failed", shop_id=shop_id, exc_info=True)
            return None

        if info is None:
            log.info("hours_not_available", shop_id=shop_id)
        else:
            log.debug("hours_fetched", shop_id=shop_id)
        return info

    def _schedule_refresh(self, shop_id: str) -> None:
        if shop_id in self._in_flight:
            return
        token = self._claim(shop_id)
        task = asyncio.create_task(self._fetch(shop_id, token), name=f"hours-refresh:{shop_id}")
        self._background.add(task)
        task.add_done_callback(lambda t: self._on_refresh_done(shop_id, token, t))
        log.debug("hours_background_refresh_scheduled", shop_id=shop_id)

    def _on_refresh_done(
        self, shop_id: str, token: object, task: asyncio.Task[HoursInfo | None]
    ) -> None:
        self._background.discard(task)
        # Covers a task cancelled before its first step, where finally never ran
        self._release(shop_id, token)
        if task.cancelled():
            log.debug("hours_background_refresh_cancelled", shop_id=shop_id)
        elif task.exception() is not None:
            log.warning(
                "hours_background_refresh_error",
                shop_id=shop_id,
                exc_info=task.exception(),
            )

    def _schedule_save(self) -> None:
        self._save_pending = True
        if self._save_task is None or self._save_task.done():
            self._save_task = asyncio.create_task(self._save_loop(), name="hours-save")

    async def _save_loop(self) -> None:
        # Coalesces bursts of mutations into as few writes as possible;
        # each pass persists the latest map.
        while self._save_pending:
            self._save_pending = False
            await self._store.save(cap_entries(self._entries, self._settings.max_entries))
