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
Scheduling Engine Module

Owns the in-memory timers for scheduled messages and is the only writer of
the record store. Every mutation (schedule, fire, cancel) updates the
in-memory map first and then queues a snapshot of the whole list. A message
being sent stays in every snapshot until its send returns.

All methods must run on the bot's event loop. schedule() and cancel() never
await, and a firing timer claims its record before awaiting anything, so
those steps never interleave with each other.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

import pytz

from .config import SchedulerConfig
from .formatting import format_clock
from .models import NotificationKind, ScheduleRecord
from .store import KeyValueStore, SnapshotWriter

logger = logging.getLogger("scheduler.engine")

SendFn = Callable[[str, str], Awaitable[None]]
NotifyFn = Callable[[NotificationKind, str], Awaitable[None]]


class ScheduleIndexError(IndexError):
    """Raised when a cancel index doesn't match a scheduled message."""

    def __init__(self, message: str, available: int):
        super().__init__(message)
        self.available = available


@dataclass
class RecoveryReport:
    """Outcome of a startup recovery pass."""

    rearmed: int = 0
    delivered: int = 0
    dropped: int = 0


def _utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class SchedulingEngine:
    """
    Schedules messages for later delivery and keeps them durable.

    Records are kept in insertion order keyed by a generated id; each live
    record has exactly one asyncio task sleeping until its fire time.
    """

    def __init__(
        self,
        store: KeyValueStore,
        send: SendFn,
        config: Optional[SchedulerConfig] = None,
        notify: Optional[NotifyFn] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Durable key-value store for scheduled messages
            send: Coroutine that delivers content to a channel
            config: Scheduler configuration (defaults if None)
            notify: Optional coroutine called with scheduled/sent notifications
            clock: Returns the current aware datetime (UTC by default)
        """
        self.store = store
        self.send = send
        self.config = config or SchedulerConfig()
        self.notify = notify
        self.clock = clock or _utc_now

        self._records: dict[str, ScheduleRecord] = {}
        self._sending: dict[str, ScheduleRecord] = {}
        self._timers: dict[str, asyncio.Task] = {}
        self._writer = SnapshotWriter(store, self.config.storage_key)
        self._recovered_ids: set[str] = set()
        self._background: set[asyncio.Task] = set()
        self._loading = False
        self._dirty = False

    @property
    def pending_count(self) -> int:
        return len(self._records)

    @property
    def durable(self) -> bool:
        """False when scheduled messages won't survive a restart."""
        return getattr(self.store, "durable", True)

    # =========================================================================
    # Public operations
    # =========================================================================

    def schedule(self, channel_id: str, content: str, fire_at: datetime) -> str:
        """
        Schedule content to be sent to a channel at fire_at.

        Args:
            channel_id: Destination channel
            content: Message body (non-empty)
            fire_at: Absolute, timezone-aware fire time

        Returns:
            The new record's id
        """
        if not content:
            raise ValueError("content must not be empty")
        if fire_at.tzinfo is None or fire_at.utcoffset() is None:
            raise ValueError("fire_at must be timezone-aware")

        record = ScheduleRecord(
            channel_id=str(channel_id),
            content=content,
            fire_at=fire_at.astimezone(pytz.UTC),
        )
        self._arm(record)
        self._records[record.id] = record
        self._persist()

        logger.info(
            f"Scheduled message {record.id} for channel {record.channel_id} "
            f"at {record.fire_at.isoformat()}"
        )
        self._emit(
            NotificationKind.SCHEDULED,
            f"Message scheduled for {format_clock(record.fire_at, self.config.tz)}",
        )
        return record.id

    def list_scheduled(self, channel_id: str) -> list[ScheduleRecord]:
        """Scheduled messages for a channel, oldest-scheduled first."""
        channel_id = str(channel_id)
        return [r for r in self._records.values() if r.channel_id == channel_id]

    def cancel(self, channel_id: str, index: int) -> ScheduleRecord:
        """
        Cancel a channel's scheduled message by its 1-based position.

        Args:
            channel_id: Channel whose list the index refers to
            index: 1-based position in list_scheduled(channel_id)

        Returns:
            The cancelled record

        Raises:
            ScheduleIndexError: If the channel has nothing scheduled or the
                index is out of range
        """
        records = self.list_scheduled(channel_id)
        if not records:
            raise ScheduleIndexError("No scheduled messages for this channel.", 0)
        if index < 1 or index > len(records):
            raise ScheduleIndexError(
                f"Invalid index. There are only {len(records)} scheduled messages.",
                len(records),
            )

        record = records[index - 1]
        timer = self._timers.pop(record.id, None)
        if timer is not None:
            timer.cancel()
        del self._records[record.id]
        self._persist()

        logger.info(f"Cancelled scheduled message {record.id} in channel {record.channel_id}")
        return record

    async def recover(self, now: Optional[datetime] = None) -> RecoveryReport:
        """
        Restore persisted messages after a restart.

        Future messages are re-armed with their stored fire time. Messages
        whose time passed while the bot was down are sent immediately, and
        only then is the store rewritten with the messages still pending.

        Store writes are held back while the stored list is being read, so a
        message scheduled in that window can't overwrite it. Calling this
        again is harmless: records already tracked or already delivered are
        skipped.
        """
        now = now or self.clock()
        report = RecoveryReport()

        self._loading = True
        try:
            stored = await self._load()
        finally:
            self._loading = False

        if stored is None:
            # Leave the store untouched so a later restart can still recover it
            if self._dirty:
                self._persist()
            return report

        restored: dict[str, ScheduleRecord] = {}
        due: list[ScheduleRecord] = []
        for entry in stored:
            try:
                record = ScheduleRecord.from_dict(entry)
            except (ValueError, AttributeError) as e:
                logger.warning(f"Dropping unreadable scheduled message: {e}")
                report.dropped += 1
                continue

            if self._is_known(record.id) or record.id in restored:
                continue

            if record.fire_at > now:
                self._arm(record, now)
                restored[record.id] = record
                report.rearmed += 1
            else:
                self._recovered_ids.add(record.id)
                self._sending[record.id] = record
                due.append(record)

        # Stored records predate anything scheduled while they were loading
        self._records = {**restored, **self._records}

        for record in due:
            try:
                await self._deliver(record)
            finally:
                self._sending.pop(record.id, None)
            report.delivered += 1

        # Always rewrite, even when nothing was dropped
        self._persist()
        await self._writer.flush()

        logger.info(
            f"Recovered scheduled messages: {report.rearmed} re-armed, "
            f"{report.delivered} sent late, {report.dropped} dropped"
        )
        return report

    async def shutdown(self) -> None:
        """Cancel every pending message without sending it and clear the store."""
        cleared = len(self._records)
        self._cancel_timers()
        self._records.clear()
        self._persist()
        await self._writer.flush()
        logger.info(f"Scheduler stopped, {cleared} scheduled message(s) cleared")

    async def close(self) -> None:
        """
        Stop all timers but keep the store as-is.

        Used on process exit so the next recover() picks everything up again.
        """
        self._cancel_timers()
        await self._writer.flush()
        logger.info(f"Scheduler closed with {len(self._records)} message(s) persisted")

    async def flush(self) -> None:
        """Wait for queued store writes to finish."""
        await self._writer.flush()

    # =========================================================================
    # Timers
    # =========================================================================

    def _arm(self, record: ScheduleRecord, now: Optional[datetime] = None) -> None:
        """Start the single timer for a record."""
        now = now or self.clock()
        remaining = max(0.0, (record.fire_at - now).total_seconds())
        delay = remaining + self.config.send_buffer_ms / 1000

        existing = self._timers.pop(record.id, None)
        if existing is not None:
            existing.cancel()

        self._timers[record.id] = asyncio.get_running_loop().create_task(
            self._wait_and_fire(record.id, delay),
            name=f"scheduled-message-{record.id}",
        )

    async def _wait_and_fire(self, record_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._on_fire(record_id)

    async def _on_fire(self, record_id: str) -> None:
        """Send a due message. No-op if it was cancelled in the meantime."""
        # Claim before the first await so a concurrent cancel can't also succeed
        self._timers.pop(record_id, None)
        record = self._records.pop(record_id, None)
        if record is None:
            logger.debug(f"Scheduled message {record_id} already gone, not sending")
            return

        # Still part of every snapshot until the send returns
        self._sending[record.id] = record
        try:
            await self._deliver(record)
        finally:
            self._sending.pop(record.id, None)

        self._persist()
        self._emit(NotificationKind.SENT, "Scheduled message sent!")

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    # =========================================================================
    # Collaborators
    # =========================================================================

    async def _deliver(self, record: ScheduleRecord) -> None:
        """Send a record. Failures are logged, never retried."""
        try:
            await self.send(record.channel_id, record.content)
            logger.info(f"Sent scheduled message {record.id} to channel {record.channel_id}")
        except Exception as e:
            logger.error(
                f"Failed to send scheduled message {record.id} to channel "
                f"{record.channel_id}: {e}",
                exc_info=True,
            )

    async def _load(self) -> Optional[list]:
        """Read the stored list. None if the store couldn't be read."""
        try:
            stored = await self.store.get(self.config.storage_key)
        except Exception as e:
            logger.error(f"Failed to load scheduled messages: {e}", exc_info=True)
            return None

        if stored is None:
            return []
        if not isinstance(stored, list):
            logger.warning(
                f"Ignoring unexpected value under '{self.config.storage_key}': "
                f"{type(stored).__name__}"
            )
            return []
        return stored

    def _is_known(self, record_id: str) -> bool:
        return (
            record_id in self._records
            or record_id in self._sending
            or record_id in self._recovered_ids
        )

    def _persist(self) -> None:
        if self._loading:
            self._dirty = True
            return
        self._dirty = False
        records = list(self._records.values()) + list(self._sending.values())
        self._writer.submit([r.to_dict() for r in records])

    def _emit(self, kind: NotificationKind, text: str) -> None:
        if not self.config.show_notifications or self.notify is None:
            return
        task = asyncio.get_running_loop().create_task(self._notify_safely(kind, text))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _notify_safely(self, kind: NotificationKind, text: str) -> None:
        try:
            await self.notify(kind, text)
        except Exception as e:
            logger.warning(f"Notification failed ({kind.value}): {e}")
