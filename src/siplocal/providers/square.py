"""Square POS business hours provider.

Looks up the merchant's first location and turns its ``business_hours``
into ``HoursInfo``. Network and HTTP failures raise ``SipLocalError``; the
hours service decides what to do with them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import ValidationError

from siplocal.config import SquareSettings
from siplocal.errors import ErrorCode, SipLocalError
from siplocal.models.hours import HoursInfo, HoursPeriod, Weekday

if TYPE_CHECKING:
    from collections.abc import Mapping

log = structlog.get_logger()


def build_http_client(settings: SquareSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client used for Square API calls."""
    settings = settings or SquareSettings()
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/") + "/",
        headers={
            "Accept": "application/json",
            "Square-Version": settings.api_version,
            "User-Agent": "siplocal/0.1",
        },
        timeout=httpx.Timeout(settings.timeout_seconds),
    )


def _hhmm(local_time: str | None) -> str:
    # Square sends "HH:MM:SS"; we keep minute precision
    return (local_time or "")[:5]


def interpret_business_hours(business_hours: Mapping[str, Any]) -> HoursInfo:
    """Convert a Square ``business_hours`` object to ``HoursInfo``.

    Periods for the same day keep their original order. Raises
    ``SipLocalError(INVALID_HOURS_DATA)`` for unknown days or malformed times.
    """
    weekly: dict[Weekday, list[HoursPeriod]] = {}
    try:
        for period in business_hours.get("periods") or []:
            day = Weekday(period["day_of_week"])
            weekly.setdefault(day, []).append(
                HoursPeriod(
                    start_time=_hhmm(period.get("start_local_time")),
                    end_time=_hhmm(period.get("end_local_time")),
                )
            )
    except (KeyError, ValueError, ValidationError) as exc:
        raise SipLocalError(
            code=ErrorCode.INVALID_HOURS_DATA,
            message=f"Malformed Square business hours: {exc}",
            recoverable=False,
        ) from exc
    return HoursInfo(weekly_hours=weekly)


class SquareHoursProvider:
    """``HoursProvider`` backed by the Square Locations API."""

    def __init__(self, client: httpx.AsyncClient, settings: SquareSettings | None = None) -> None:
        self._client = client
        self._settings = settings or SquareSettings()

    async def fetch(self, shop_id: str) -> HoursInfo | None:
        token = self._settings.access_tokens.get(shop_id)
        if token is None:
            raise SipLocalError(
                code=ErrorCode.SHOP_NOT_CONFIGURED,
                message=f"No Square access token configured for shop {shop_id!r}",
                suggestion="Add the merchant token under square.access_tokens.",
            )
        headers = {"Authorization": f"Bearer {token.get_secret_value()}"}

        locations = (await self._get("locations", headers)).get("locations") or []
        if not locations:
            log.info("square_no_locations", shop_id=shop_id)
            return None

        location_id = locations[0]["id"]
        location = (await self._get(f"locations/{location_id}", headers)).get("location") or {}
        business_hours = location.get("business_hours")
        if not business_hours:
            log.info("square_no_business_hours", shop_id=shop_id, location_id=location_id)
            return None

        info = interpret_business_hours(business_hours)
        log.debug(
            "square_hours_interpreted",
            shop_id=shop_id,
            location_id=location_id,
            days=len(info.weekly_hours),
        )
        return info

    async def _get(self, path: str, headers: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, headers=headers)
        except httpx.HTTPError as exc:
            raise SipLocalError(
                code=ErrorCode.HOURS_FETCH_FAILED,
                message=f"Square request to {path} failed: {exc}",
                suggestion="Check your network connection and try again.",
                recoverable=True,
            ) from exc

        if not response.is_success:
            raise SipLocalError(
                code=ErrorCode.HOURS_FETCH_FAILED,
                message=f"Square returned HTTP {response.status_code} for {path}: "
                f"{_error_detail(response)}",
                suggestion="Please try again later or contact support.",
                recoverable=response.status_code >= 500,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise SipLocalError(
                code=ErrorCode.INVALID_HOURS_DATA,
                message=f"Square returned invalid JSON for {path}",
                recoverable=True,
            ) from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "unknown error"
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors[0], dict):
        return str(errors[0].get("detail", "unknown error"))
    return "unknown error"
