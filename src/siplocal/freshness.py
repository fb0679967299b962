"""Cache freshness policy. Pure functions of an entry and a point in time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from siplocal.config import HoursSettings
    from siplocal.models.cache import HoursCacheEntry


class Freshness(StrEnum):
    MISSING = "missing"
    FRESH = "fresh"
    # Still fresh, but old enough to warrant a background refresh
    NEAR_STALE = "near_stale"
    STALE = "stale"


@dataclass(frozen=True)
class FreshnessPolicy:
    fresh_threshold: timedelta = timedelta(hours=24)
    background_threshold: timedelta = timedelta(hours=6)

    @classmethod
    def from_settings(cls, settings: HoursSettings) -> FreshnessPolicy:
        return cls(
            fresh_threshold=timedelta(hours=settings.fresh_threshold_hours),
            background_threshold=timedelta(hours=settings.background_refresh_hours),
        )


def is_fresh(entry: HoursCacheEntry, now: datetime, fresh_threshold: timedelta) -> bool:
    # Strictly less-than: an entry exactly at the threshold is stale
    return now - entry.last_updated < fresh_threshold


def classify(
    entry: HoursCacheEntry | None, now: datetime, policy: FreshnessPolicy
) -> Freshness:
    if entry is None:
        return Freshness.MISSING
    if not is_fresh(entry, now, policy.fresh_threshold):
        return Freshness.STALE
    if now - entry.last_updated >= policy.background_threshold:
        return Freshness.NEAR_STALE
    return Freshness.FRESH


def cap_entries(
    entries: Mapping[str, HoursCacheEntry], max_entries: int
) -> dict[str, HoursCacheEntry]:
    """Keep the ``max_entries`` most recently updated entries."""
    if len(entries) <= max_entries:
        return dict(entries)
    newest = sorted(entries.items(), key=lambda kv: kv[1].last_updated, reverse=True)
    return dict(newest[:max_entries])
