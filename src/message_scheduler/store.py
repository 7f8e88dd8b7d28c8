# slashAI - Discord Bot and MCP Server
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Record Store Module

Durable key-value storage for scheduled messages, plus the write queue the
engine uses to persist snapshots without blocking.
"""

import asyncio
import copy
import json
import logging
from typing import Any, Optional, Protocol

import asyncpg

logger = logging.getLogger("scheduler.store")


class PersistenceError(Exception):
    """Raised when the record store cannot be read or written."""

    pass


class KeyValueStore(Protocol):
    """Async key-value store holding lists of plain dicts."""

    async def get(self, key: str) -> Optional[list[dict[str, Any]]]:
        ...

    async def set(self, key: str, value: list[dict[str, Any]]) -> None:
        ...


class MemoryKeyValueStore:
    """In-process store. Contents are lost when the process exits."""

    durable = False

    def __init__(self, initial: Optional[dict[str, list[dict[str, Any]]]] = None):
        self._data: dict[str, list[dict[str, Any]]] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Optional[list[dict[str, Any]]]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: list[dict[str, Any]]) -> None:
        self._data[key] = copy.deepcopy(value)


class PostgresKeyValueStore:
    """
    Key-value store backed by a single PostgreSQL table.

    Each key is one row with a JSONB value.
    """

    durable = True

    def __init__(self, db_pool: asyncpg.Pool, table: str = "scheduler_kv"):
        """
        Initialize the store.

        Args:
            db_pool: asyncpg connection pool
            table: Table name (created by ensure_schema)
        """
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self.db = db_pool
        self.table = table

    async def ensure_schema(self) -> None:
        """Create the backing table if it doesn't exist."""
        try:
            await self.db.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    value JSONB NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Failed to create {self.table}: {e}") from e

    async def get(self, key: str) -> Optional[list[dict[str, Any]]]:
        try:
            raw = await self.db.fetchval(
                f"SELECT value FROM {self.table} WHERE key = $1",
                key,
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Failed to read '{key}': {e}") from e

        if raw is None:
            return None
        return json.loads(raw) if isinstance(raw, str) else raw

    async def set(self, key: str, value: list[dict[str, Any]]) -> None:
        try:
            await self.db.execute(
                f"""
                INSERT INTO {self.table} (key, value, updated_at)
                VALUES ($1, $2::jsonb, NOW())
                ON CONFLICT (key) DO UPDATE
                SET value = EXCLUDED.value, updated_at = NOW()
                """,
                key,
                json.dumps(value),
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Failed to write '{key}': {e}") from e


class SnapshotWriter:
    """
    Writes snapshots of one key in the background.

    At most one write is in flight. Snapshots submitted while a write is
    running are coalesced and only the newest one is written next, so an
    older snapshot can never overwrite a newer one.
    """

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key
        self._pending: Optional[list[dict[str, Any]]] = None
        self._has_pending = False
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, snapshot: list[dict[str, Any]]) -> None:
        """Queue a snapshot for writing (fire-and-forget)."""
        self._pending = snapshot
        self._has_pending = True
        if not self.busy:
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._has_pending:
            snapshot = self._pending
            self._pending = None
            self._has_pending = False
            try:
                await self.store.set(self.key, snapshot)
                logger.debug(f"Persisted {len(snapshot)} record(s) to '{self.key}'")
            except Exception as e:
                # In-memory state stays authoritative until the next write succeeds
                logger.error(f"Failed to persist '{self.key}': {e}", exc_info=True)

    async def flush(self) -> None:
        """Wait until every submitted snapshot has been written (or failed)."""
        while self.busy:
            await self._task
