"""Durable business hours stores.

Two implementations of ``HoursStore``:

* ``JsonHoursStore`` writes the whole map as one JSON document
  (``{"entries": {<shop_id>: {"info": ..., "lastUpdated": ...}}}``).
* ``SqliteHoursStore`` keeps one row per shop in an aiosqlite table.

All store operations catch their I/O and decode errors internally and
degrade gracefully: read failures return an empty map (treated as a cold
cache by the hours service), write failures are logged and ignored.
Errors are logged with ``exc_info=True`` so they remain observable.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from pydantic import ValidationError

from siplocal.models.cache import HoursCacheEntry, HoursCachePayload

if TYPE_CHECKING:
    from collections.abc import Mapping

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------


class JsonHoursStore:
    """Flat-file JSON store. Blocking file I/O runs in a worker thread."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> dict[str, HoursCacheEntry]:
        """Read all entries. Returns ``{}`` if the file is missing or unreadable."""
        try:
            raw = await asyncio.to_thread(self._read)
        except (OSError, UnicodeDecodeError):
            log.warning("hours_store_read_error", path=str(self._path), exc_info=True)
            return {}
        if raw is None:
            return {}

        try:
            payload = HoursCachePayload.model_validate_json(raw)
        except ValidationError:
            log.warning("hours_store_corrupt", path=str(self._path), exc_info=True)
            return {}
        return dict(payload.entries)

    async def save(self, entries: Mapping[str, HoursCacheEntry]) -> None:
        """Replace the file with ``entries``. Non-fatal on failure."""
        payload = HoursCachePayload(entries=dict(entries))
        data = payload.model_dump_json(by_alias=True)
        try:
            await asyncio.to_thread(self._write, data)
        except OSError:
            log.warning("hours_store_write_error", path=str(self._path), exc_info=True)

    async def clear(self) -> None:
        """Delete the file. Non-fatal on failure."""
        try:
            await asyncio.to_thread(self._path.unlink, missing_ok=True)
        except OSError:
            log.warning("hours_store_clear_error", path=str(self._path), exc_info=True)

    def _read(self) -> str | None:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    def _write(self, data: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a truncated document
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(data, encoding="utf-8")
        os.replace(tmp, self._path)


# ---------------------------------------------------------------------------
# SQLite store
# ---------------------------------------------------------------------------

_CREATE_HOURS_TABLE = """
CREATE TABLE IF NOT EXISTS hours_cache (
    shop_id      TEXT PRIMARY KEY,
    info         TEXT NOT NULL,
    last_updated TEXT NOT NULL
)
"""


class SqliteHoursStore:
    """aiosqlite-backed store; one row per shop."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_HOURS_TABLE)
        await self._db.commit()

    async def load(self) -> dict[str, HoursCacheEntry]:
        """Read all rows. Returns ``{}`` on read failure or corrupt rows."""
        try:
            cursor = await self._db.execute(
                "SELECT shop_id, info, last_updated FROM hours_cache"
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error:
            log.warning("hours_store_read_error", exc_info=True)
            return {}

        try:
            return {
                row[0]: HoursCacheEntry(info=json.loads(row[1]), last_updated=row[2])
                for row in rows
            }
        except (ValueError, ValidationError):
            log.warning("hours_store_corrupt", exc_info=True)
            return {}

    async def save(self, entries: Mapping[str, HoursCacheEntry]) -> None:
        """Replace all rows with ``entries`` in one transaction. Non-fatal on failure."""
        rows = [
            (
                shop_id,
                entry.info.model_dump_json(by_alias=True),
                entry.last_updated.isoformat(),
            )
            for shop_id, entry in entries.items()
        ]
        try:
            await self._db.execute("DELETE FROM hours_cache")
            await self._db.executemany(
                "INSERT INTO hours_cache (shop_id, info, last_updated) VALUES (?, ?, ?)",
                rows,
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("hours_store_write_error", rows=len(rows), exc_info=True)
            await self._rollback()

    async def clear(self) -> None:
        """Delete all rows. Non-fatal on failure."""
        try:
            await self._db.execute("DELETE FROM hours_cache")
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("hours_store_clear_error", exc_info=True)

    async def _rollback(self) -> None:
        try:
            await self._db.rollback()
        except aiosqlite.Error:
            log.warning("hours_store_rollback_error", exc_info=True)
