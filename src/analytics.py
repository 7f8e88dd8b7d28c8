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
Usage analytics for the scheduler bot.

Events go to the analytics_events table of the bot's database. Without a
database (or with ANALYTICS_ENABLED=false) every call is a no-op.

Usage:
    from analytics import track, track_async

    # Fire-and-forget from command handlers and engine callbacks
    track("message_scheduled", "scheduler", channel_id=123, properties={"notation": "offset"})

    # When the caller wants to know whether it was recorded
    recorded = await track_async("recovery_completed", "system", properties={"rearmed": 2})
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("scheduler.analytics")

_pool: Optional[asyncpg.Pool] = None
_owns_pool: bool = False
_enabled: bool = os.getenv("ANALYTICS_ENABLED", "true").lower() == "true"
_background: set[asyncio.Task] = set()


def configure(pool: Optional[asyncpg.Pool]) -> None:
    """Share an existing connection pool instead of opening a dedicated one."""
    global _pool, _owns_pool
    _pool = pool
    _owns_pool = False


def is_enabled() -> bool:
    return _enabled


async def _get_pool() -> Optional[asyncpg.Pool]:
    """Return the shared pool, or lazily open a small one from DATABASE_URL."""
    global _pool, _owns_pool
    if _pool is None and _enabled:
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            try:
                _pool = await asyncpg.create_pool(database_url, min_size=1, max_size=2)
                _owns_pool = True
            except (asyncpg.PostgresError, OSError) as e:
                logger.warning(f"Analytics pool creation failed: {e}")
                return None
    return _pool


async def track_async(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    guild_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Record one event.

    Args:
        event_name: Event identifier (e.g., "message_scheduled")
        event_category: One of: command, scheduler, error, system
        user_id: Discord user ID (optional)
        channel_id: Discord channel ID (optional)
        guild_id: Discord guild ID (optional)
        properties: Additional event data as key-value pairs

    Returns:
        True if event was recorded, False otherwise
    """
    if not _enabled:
        return False

    pool = await _get_pool()
    if pool is None:
        return False

    try:
        await pool.execute(
            """
            INSERT INTO analytics_events
                (event_name, event_category, user_id, channel_id, guild_id, properties)
            VALUES ($1, $2, $3, $4, $5, $6)
            """,
            event_name,
            event_category,
            user_id,
            int(channel_id) if channel_id is not None else None,
            guild_id,
            json.dumps(properties or {}),
        )
        return True
    except Exception as e:
        logger.debug(f"Analytics tracking failed: {e}")
        return False


def track(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    guild_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> None:
    """
    Record an event without waiting for it.

    Does nothing when called outside a running event loop.
    """
    if not _enabled:
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    task = loop.create_task(
        track_async(event_name, event_category, user_id, channel_id, guild_id, properties)
    )
    _background.add(task)
    task.add_done_callback(_background.discard)


async def shutdown() -> None:
    """Wait for queued events and close the pool if analytics opened it."""
    global _pool, _owns_pool
    if _background:
        await asyncio.gather(*_background, return_exceptions=True)
    if _pool is not None and _owns_pool:
        await _pool.close()
    _pool = None
    _owns_pool = False
