from __future__ import annotations

import re
from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Weekday(StrEnum):
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"

    @classmethod
    def from_date(cls, d: date) -> Weekday:
        # date.weekday(): Monday == 0, matching declaration order
        return list(cls)[d.weekday()]

    def previous(self) -> Weekday:
        days = list(Weekday)
        return days[days.index(self) - 1]


class HoursPeriod(BaseModel):
    """One opening interval within a day, as 24-hour ``HH:MM`` strings.

    ``start_time > end_time`` marks an overnight period (e.g. 22:00-02:00)
    that runs from ``start_time`` until midnight and continues on the
    following day up to ``end_time``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        v = v.strip()
        if not _HHMM.match(v):
            raise ValueError(f"Invalid time {v!r}, expected HH:MM")
        return v

    @property
    def is_overnight(self) -> bool:
        return self.start_time > self.end_time


class HoursInfo(BaseModel):
    """Weekly opening schedule for a single shop.

    Open/closed status is always derived from the schedule and the time it is
    asked about; it is never stored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    weekly_hours: dict[Weekday, list[HoursPeriod]] = Field(
        default_factory=dict, alias="weeklyHours"
    )

    def periods_for(self, day: Weekday) -> list[HoursPeriod]:
        return self.weekly_hours.get(day, [])

    def is_open_at(self, moment: datetime) -> bool:
        """Whether the shop is open at ``moment`` (shop-local wall-clock time).

        Both interval ends are inclusive at minute resolution.
        """
        now = moment.strftime("%H:%M")
        today = Weekday.from_date(moment)

        for period in self.periods_for(today):
            if period.is_overnight:
                if now >= period.start_time:
                    return True
            elif period.start_time <= now <= period.end_time:
                return True

        # Tail of an overnight period that started yesterday
        for period in self.periods_for(today.previous()):
            if period.is_overnight and now <= period.end_time:
                return True

        return False

    @property
    def is_currently_open(self) -> bool:
        return self.is_open_at(datetime.now())
