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
Message Scheduler Package

Schedules channel messages for later delivery. Pending messages are kept in
a durable store and recovered on startup.
"""

from .config import SchedulerConfig
from .engine import RecoveryReport, ScheduleIndexError, SchedulingEngine
from .models import NotificationKind, ScheduleRecord
from .store import (
    KeyValueStore,
    MemoryKeyValueStore,
    PersistenceError,
    PostgresKeyValueStore,
    SnapshotWriter,
)
from .time_parser import (
    SUPPORTED_FORMATS_HELP,
    ParsedTime,
    ParseErrorKind,
    TimeParseError,
    parse_clock_time,
    parse_schedule_time,
    parse_time_expression,
)

__all__ = [
    "SchedulerConfig",
    "RecoveryReport",
    "ScheduleIndexError",
    "SchedulingEngine",
    "NotificationKind",
    "ScheduleRecord",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PersistenceError",
    "PostgresKeyValueStore",
    "SnapshotWriter",
    "SUPPORTED_FORMATS_HELP",
    "ParsedTime",
    "ParseErrorKind",
    "TimeParseError",
    "parse_clock_time",
    "parse_schedule_time",
    "parse_time_expression",
]
