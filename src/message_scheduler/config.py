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
Scheduler Configuration

Configurable parameters for message scheduling.
Values can be overridden via environment variables.
"""

import logging
import os
from dataclasses import dataclass

import pytz

logger = logging.getLogger("scheduler.config")


@dataclass
class SchedulerConfig:
    """Configuration for the message scheduler."""

    # Show a notification when a message is scheduled or sent
    show_notifications: bool = True

    # Added to every timer so a message never fires before its record is written
    send_buffer_ms: int = 500

    # Key holding the persisted list of scheduled messages
    storage_key: str = "scheduled_messages"

    # Wall-clock timezone for "17h00" / "3:30pm" style times
    timezone: str = "UTC"

    # Content preview length in /scheduled
    preview_length: int = 50

    # Drop every pending message when the bot shuts down
    clear_on_shutdown: bool = False

    def __post_init__(self):
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Invalid timezone '{self.timezone}', falling back to UTC")
            self.timezone = "UTC"

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        """Create config from environment variables with defaults."""
        return cls(
            show_notifications=os.getenv(
                "SCHEDULER_SHOW_NOTIFICATIONS", "true"
            ).lower() == "true",
            send_buffer_ms=int(os.getenv("SCHEDULER_SEND_BUFFER_MS", "500")),
            storage_key=os.getenv("SCHEDULER_STORAGE_KEY", "scheduled_messages"),
            timezone=os.getenv("SCHEDULER_TIMEZONE", "UTC"),
            preview_length=int(os.getenv("SCHEDULER_PREVIEW_LENGTH", "50")),
            clear_on_shutdown=os.getenv(
                "SCHEDULER_CLEAR_ON_SHUTDOWN", "false"
            ).lower() == "true",
        )
