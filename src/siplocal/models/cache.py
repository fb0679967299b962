from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from siplocal.models.hours import HoursInfo


class HoursCacheEntry(BaseModel):
    """Business hours for one shop plus the time they were fetched."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    info: HoursInfo
    last_updated: datetime = Field(alias="lastUpdated")

    @field_validator("last_updated")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        # Naive timestamps in older cache files were written in UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class HoursCachePayload(BaseModel):
    """On-disk document of the JSON hours store."""

    entries: dict[str, HoursCacheEntry] = {}
