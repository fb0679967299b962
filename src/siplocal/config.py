"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SIPLOCAL__HOURS__FRESH_THRESHOLD_HOURS=12)
  2. siplocal.yaml          (searched in cwd, then ~/.config/siplocal/)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("siplocal")
_DEFAULT_JSON_PATH = str(Path(_DEFAULT_CACHE_DIR) / "business_hours_cache.json")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_CACHE_DIR) / "business_hours.db")


def _find_config_file() -> str | None:
    """Return the path of the first siplocal.yaml found, or None."""
    candidates = [
        Path("siplocal.yaml"),
        Path.home() / ".config" / "siplocal" / "siplocal.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class HoursSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fresh_threshold_hours: float = 24
    background_refresh_hours: float = 6
    max_entries: int = 100
    fetch_timeout_seconds: float = 30.0
    store: Literal["json", "sqlite"] = "json"
    json_path: str = _DEFAULT_JSON_PATH
    db_path: str = _DEFAULT_DB_PATH


class CartSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_cart_items: int = 50
    max_quantity_per_item: int = 10
    max_item_price: Decimal = Decimal("999.99")
    max_total_price: Decimal = Decimal("999.99")
    minimum_order_amount: Decimal = Decimal("5.00")
    max_customization_length: int = 500
    max_undo_steps: int = 10


class SquareSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = "https://connect.squareup.com/v2"
    api_version: str = "2024-07-17"
    timeout_seconds: float = 15.0
    # shop id → merchant OAuth token
    access_tokens: dict[str, SecretStr] = {}


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SIPLOCAL__CART__MAX_CART_ITEMS=20
        env_prefix="SIPLOCAL__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    hours: HoursSettings = HoursSettings()
    cart: CartSettings = CartSettings()
    square: SquareSettings = SquareSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
        )
