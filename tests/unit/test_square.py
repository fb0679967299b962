"""Unit tests for siplocal.providers.square."""

from __future__ import annotations

import httpx
import pytest
import respx
from pydantic import SecretStr

from siplocal.config import SquareSettings
from siplocal.errors import ErrorCode, SipLocalError
from siplocal.models.hours import HoursPeriod, Weekday
from siplocal.providers.square import (
    SquareHoursProvider,
    build_http_client,
    interpret_business_hours,
)

BASE = "https://connect.squareup.com/v2"
SETTINGS = SquareSettings(access_tokens={"shop-a": SecretStr("sq-token")})

BUSINESS_HOURS = {
    "periods": [
        {"day_of_week": "MON", "start_local_time": "07:00:00", "end_local_time": "11:00:00"},
        {"day_of_week": "MON", "start_local_time": "13:00:00", "end_local_time": "18:30:00"},
        {"day_of_week": "SAT", "start_local_time": "20:00:00", "end_local_time": "02:00:00"},
    ]
}


def _mock_locations(location: dict | None = None) -> respx.Route:
    respx.get(f"{BASE}/locations").mock(
        return_value=httpx.Response(200, json={"locations": [{"id": "L1"}, {"id": "L2"}]})
    )
    return respx.get(f"{BASE}/locations/L1").mock(
        return_value=httpx.Response(200, json={"location": location or {"id": "L1"}})
    )


# ---------------------------------------------------------------------------
# interpret_business_hours
# ---------------------------------------------------------------------------


class TestInterpretBusinessHours:
    def test_groups_periods_by_day(self) -> None:
        info = interpret_business_hours(BUSINESS_HOURS)
        assert info.periods_for(Weekday.MON) == [
            HoursPeriod(start_time="07:00", end_time="11:00"),
            HoursPeriod(start_time="13:00", end_time="18:30"),
        ]
        assert info.periods_for(Weekday.SAT)[0].is_overnight is True
        assert info.periods_for(Weekday.TUE) == []

    def test_no_periods(self) -> None:
        assert interpret_business_hours({}).weekly_hours == {}

    @pytest.mark.parametrize(
        "period",
        [
            {"day_of_week": "FUNDAY", "start_local_time": "07:00:00", "end_local_time": "11:00"},
            {"day_of_week": "MON", "start_local_time": "7am", "end_local_time": "11:00:00"},
            {"start_local_time": "07:00:00", "end_local_time": "11:00:00"},
            {"day_of_week": "MON", "end_local_time": "11:00:00"},
        ],
    )
    def test_malformed_period_raises(self, period: dict) -> None:
        with pytest.raises(SipLocalError) as exc_info:
            interpret_business_hours({"periods": [period]})
        assert exc_info.value.code == ErrorCode.INVALID_HOURS_DATA


# ---------------------------------------------------------------------------
# SquareHoursProvider
# ---------------------------------------------------------------------------


class TestSquareHoursProvider:
    async def test_fetch_success(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            route = _mock_locations({"id": "L1", "business_hours": BUSINESS_HOURS})
            info = await SquareHoursProvider(client, SETTINGS).fetch("shop-a")

        assert info is not None
        assert info.periods_for(Weekday.MON)[1].end_time == "18:30"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sq-token"
        assert request.headers["Square-Version"] == SETTINGS.api_version

    async def test_no_locations(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            respx.get(f"{BASE}/locations").mock(
                return_value=httpx.Response(200, json={"locations": []})
            )
            assert await SquareHoursProvider(client, SETTINGS).fetch("shop-a") is None

    async def test_location_without_hours(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            _mock_locations({"id": "L1"})
            assert await SquareHoursProvider(client, SETTINGS).fetch("shop-a") is None

    async def test_missing_token(self) -> None:
        async with build_http_client(SETTINGS) as client:
            with pytest.raises(SipLocalError) as exc_info:
                await SquareHoursProvider(client, SETTINGS).fetch("shop-z")
        assert exc_info.value.code == ErrorCode.SHOP_NOT_CONFIGURED
        assert exc_info.value.recoverable is False

    async def test_401_includes_square_detail(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            respx.get(f"{BASE}/locations").mock(
                return_value=httpx.Response(
                    401, json={"errors": [{"code": "UNAUTHORIZED", "detail": "Token expired"}]}
                )
            )
            with pytest.raises(SipLocalError) as exc_info:
                await SquareHoursProvider(client, SETTINGS).fetch("shop-a")

        assert exc_info.value.code == ErrorCode.HOURS_FETCH_FAILED
        assert "Token expired" in exc_info.value.message
        assert exc_info.value.recoverable is False

    async def test_500_is_recoverable(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            respx.get(f"{BASE}/locations").mock(return_value=httpx.Response(500, text="oops"))
            with pytest.raises(SipLocalError) as exc_info:
                await SquareHoursProvider(client, SETTINGS).fetch("shop-a")

        assert exc_info.value.code == ErrorCode.HOURS_FETCH_FAILED
        assert "unknown error" in exc_info.value.message
        assert exc_info.value.recoverable is True

    async def test_network_error(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            respx.get(f"{BASE}/locations").mock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            with pytest.raises(SipLocalError) as exc_info:
                await SquareHoursProvider(client, SETTINGS).fetch("shop-a")

        assert exc_info.value.code == ErrorCode.HOURS_FETCH_FAILED
        assert exc_info.value.recoverable is True

    async def test_invalid_json(self) -> None:
        async with build_http_client(SETTINGS) as client, respx.mock:
            respx.get(f"{BASE}/locations").mock(
                return_value=httpx.Response(200, text="<html>maintenance</html>")
            )
            with pytest.raises(SipLocalError) as exc_info:
                await SquareHoursProvider(client, SETTINGS).fetch("shop-a")

        assert exc_info.value.code == ErrorCode.INVALID_HOURS_DATA

    async def test_malformed_hours(self) -> None:
        bad = {"periods": [{"day_of_week": "XYZ"}]}
        async with build_http_client(SETTINGS) as client, respx.mock:
            _mock_locations({"id": "L1", "business_hours": bad})
            with pytest.raises(SipLocalError) as exc_info:
                await SquareHoursProvider(client, SETTINGS).fetch("shop-a")

        assert exc_info.value.code == ErrorCode.INVALID_HOURS_DATA


# ---------------------------------------------------------------------------
# build_http_client
# ---------------------------------------------------------------------------


class TestBuildHttpClient:
    async def test_uses_settings(self) -> None:
        settings = SquareSettings(
            base_url="https://connect.squareupsandbox.com/v2/", timeout_seconds=5
        )
        async with build_http_client(settings) as client:
            assert str(client.base_url) == "https://connect.squareupsandbox.com/v2/"
            assert client.headers["Square-Version"] == settings.api_version
            assert client.timeout.connect == 5


# ---------------------------------------------------------------------------
# ErrorCode
# ---------------------------------------------------------------------------


class TestErrorCodes:
    def test_only_provider_raised_codes_exist(self) -> None:
        """Timeouts are handled by the hours service and carry no error code."""
        assert {code.value for code in ErrorCode} == {
            "SHOP_NOT_CONFIGURED",
            "HOURS_FETCH_FAILED",
            "INVALID_HOURS_DATA",
        }
