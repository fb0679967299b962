"""Shared fixtures: in-memory collaborators for the hours service, sample data."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from siplocal.config import HoursSettings
from siplocal.hours import BusinessHoursService
from siplocal.models.cache import HoursCacheEntry
from siplocal.models.cart import MenuItem, Shop
from siplocal.models.hours import HoursInfo, HoursPeriod, Weekday

if TYPE_CHECKING:
    from collections.abc import Mapping


def weekday_hours(start: str = "08:00", end: str = "17:00") -> HoursInfo:
    """Hours on Mondays only."""
    return HoursInfo(
        weekly_hours={Weekday.MON: [HoursPeriod(start_time=start, end_time=end)]}
    )


class FakeProvider:
    """Scripted ``HoursProvider``. Values may be ``HoursInfo``, ``None`` or an exception."""

    def __init__(self, results: dict[str, HoursInfo | BaseException | None] | None = None):
        self.results = dict(results or {})
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, shop_id: str) -> HoursInfo | None:
        self.calls.append(shop_id)
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.get(shop_id)
        if isinstance(result, BaseException):
            raise result
        return result


class MemoryStore:
    """``HoursStore`` that keeps everything in a dict and counts calls."""

    def __init__(self, entries: Mapping[str, HoursCacheEntry] | None = None) -> None:
        self.entries = dict(entries or {})
        self.saves = 0
        self.clears = 0

    async def load(self) -> dict[str, HoursCacheEntry]:
        return dict(self.entries)

    async def save(self, entries: Mapping[str, HoursCacheEntry]) -> None:
        self.saves += 1
        self.entries = dict(entries)

    async def clear(self) -> None:
        self.clears += 1
        self.entries = {}


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider({"shop-a": weekday_hours()})


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def mon_hours() -> HoursInfo:
    """Open Mondays 08:00-17:00, closed every other day."""
    return weekday_hours()


@pytest.fixture()
async def service(provider: FakeProvider, store: MemoryStore, clock: FakeClock):
    svc = BusinessHoursService(provider, store, HoursSettings(), clock=clock)
    await svc.start()
    yield svc
    await svc.aclose()


@pytest.fixture()
async def make_service(provider: FakeProvider, clock: FakeClock):
    """Factory for services with a custom store or settings; all closed at teardown."""
    created: list[BusinessHoursService] = []

    async def _make(
        store: MemoryStore | None = None, settings: HoursSettings | None = None
    ) -> BusinessHoursService:
        svc = BusinessHoursService(provider, store or MemoryStore(), settings, clock=clock)
        await svc.start()
        created.append(svc)
        return svc

    yield _make
    for svc in created:
        await svc.aclose()


@pytest.fixture()
def make_entry(clock: FakeClock):
    """Build a cache entry whose age is measured against the fake clock."""

    def _make(info: HoursInfo, age: timedelta = timedelta(0)) -> HoursCacheEntry:
        return HoursCacheEntry(info=info, last_updated=clock.now - age)

    return _make


@pytest.fixture()
def shop_a() -> Shop:
    return Shop(id="shop-a", name="Shop A")


@pytest.fixture()
def shop_b() -> Shop:
    return Shop(id="shop-b", name="Shop B")


@pytest.fixture()
def latte() -> MenuItem:
    return MenuItem(id="latte", name="Latte", price=Decimal("3.00"))
