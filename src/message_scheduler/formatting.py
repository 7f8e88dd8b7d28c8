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
Display helpers for scheduled message replies.
"""

from datetime import datetime, tzinfo
from typing import Iterable

from .models import ScheduleRecord

# (upper bound in seconds, singular phrase, unit seconds, plural unit)
# Thresholds follow the usual "humanized" cutoffs: 45s, 90s, 45m, 90m, 22h, ...
_RELATIVE_STEPS = [
    (45, "a few seconds", None, None),
    (90, "a minute", None, None),
    (45 * 60, None, 60, "minutes"),
    (90 * 60, "an hour", None, None),
    (22 * 3600, None, 3600, "hours"),
    (36 * 3600, "a day", None, None),
    (26 * 86400, None, 86400, "days"),
    (45 * 86400, "a month", None, None),
    (320 * 86400, None, 30 * 86400, "months"),
    (548 * 86400, "a year", None, None),
]


def format_clock(dt: datetime, tz: tzinfo) -> str:
    """Local time like '3:30 PM'."""
    return dt.astimezone(tz).strftime("%I:%M %p").lstrip("0")


def format_relative(target: datetime, now: datetime) -> str:
    """Relative time like 'in 5 minutes' or '2 hours ago'."""
    seconds = (target - now).total_seconds()
    distance = abs(seconds)

    phrase = None
    for bound, singular, unit, plural in _RELATIVE_STEPS:
        if distance < bound:
            phrase = singular or f"{max(2, round(distance / unit))} {plural}"
            break
    if phrase is None:
        phrase = f"{max(2, round(distance / (365 * 86400)))} years"

    return f"in {phrase}" if seconds >= 0 else f"{phrase} ago"


def hours_left(target: datetime, now: datetime) -> float:
    """Hours until target, one decimal, never negative."""
    return max(0.0, round((target - now).total_seconds() / 3600, 1))


def preview(content: str, limit: int = 50) -> str:
    if len(content) > limit:
        return content[: limit - 3] + "..."
    return content


def format_schedule_list(
    records: Iterable[ScheduleRecord],
    now: datetime,
    tz: tzinfo,
    preview_length: int = 50,
) -> str:
    """Numbered summary of a channel's scheduled messages (1-based)."""
    lines = []
    for index, record in enumerate(records, start=1):
        lines.append(
            f"{index}. **{format_clock(record.fire_at, tz)}** "
            f"({format_relative(record.fire_at, now)}, ~{hours_left(record.fire_at, now):g}h): "
            f"{preview(record.content, preview_length)}"
        )
    return "**Scheduled Messages:**\n" + "\n".join(lines)
