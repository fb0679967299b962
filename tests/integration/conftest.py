"""Integration test fixtures.

Builds ``Settings`` that point every store at a temporary directory, so
tests exercise the real JSON and SQLite backends without touching the
user's cache directory. Provider fakes come from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog

from siplocal.config import HoursSettings, LoggingSettings, Settings

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _reset_structlog():
    """``create_app_state`` configures structlog globally; undo it after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def make_settings(tmp_path: Path):
    def _make(store: str = "json", **overrides) -> Settings:
        return Settings(
            hours=HoursSettings(
                store=store,
                json_path=str(tmp_path / "cache" / "business_hours_cache.json"),
                db_path=str(tmp_path / "cache" / "business_hours.db"),
            ),
            logging=LoggingSettings(level="DEBUG", format="text"),
            **overrides,
        )

    return _make
