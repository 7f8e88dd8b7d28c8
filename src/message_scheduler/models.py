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
Scheduled Message Models

The persisted unit of scheduling and its storage representation.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class NotificationKind(enum.Enum):
    SENT = "sent"
    SCHEDULED = "scheduled"


def to_epoch_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ScheduleRecord:
    """A message waiting to be sent to a channel at fire_at."""

    channel_id: str
    content: str
    fire_at: datetime  # UTC
    id: str = field(default_factory=new_record_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the record store. fire_at is stored as epoch milliseconds."""
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "content": self.content,
            "fire_at": to_epoch_ms(self.fire_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleRecord":
        """
        Load a record from its stored form.

        Also reads entries written with the older camelCase keys
        (channelId, scheduledTime). Entries without an id get a new one.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        try:
            channel_id = data.get("channel_id", data.get("channelId"))
            content = data["content"]
            fire_at_ms = data.get("fire_at", data.get("fireAt", data.get("scheduledTime")))
            if channel_id is None or fire_at_ms is None:
                raise KeyError("channel_id/fire_at")
            fire_at = from_epoch_ms(int(fire_at_ms))
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise ValueError(f"Malformed schedule record {data!r}: {e}") from e

        if not isinstance(content, str) or not content:
            raise ValueError(f"Malformed schedule record {data!r}: empty content")

        return cls(
            channel_id=str(channel_id),
            content=content,
            fire_at=fire_at,
            id=str(data.get("id") or new_record_id()),
        )
