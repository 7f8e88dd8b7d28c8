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

"""Tests for scheduled message display helpers."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from message_scheduler.formatting import (
    format_clock,
    format_relative,
    format_schedule_list,
    hours_left,
    preview,
)
from message_scheduler.models import ScheduleRecord

NOW = pytz.UTC.localize(datetime(2026, 10, 19, 10, 0, 0))


class TestFormatClock:

    def test_afternoon(self):
        assert format_clock(NOW.replace(hour=15, minute=30), pytz.UTC) == "3:30 PM"

    def test_converts_to_timezone(self):
        paris = pytz.timezone("Europe/Paris")
        assert format_clock(NOW, paris) == "12:00 PM"


class TestFormatRelative:

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=10), "in a few seconds"),
            (timedelta(seconds=60), "in a minute"),
            (timedelta(minutes=30), "in 30 minutes"),
            (timedelta(hours=1), "in an hour"),
            (timedelta(hours=5), "in 5 hours"),
            (timedelta(hours=24), "in a day"),
            (timedelta(days=3), "in 3 days"),
            (timedelta(days=31), "in a month"),
            (timedelta(days=90), "in 3 months"),
            (timedelta(days=400), "in a year"),
            (timedelta(days=1100), "in 3 years"),
            (timedelta(hours=-2), "2 hours ago"),
        ],
    )
    def test_phrases(self, delta, expected):
        assert format_relative(NOW + delta, NOW) == expected


class TestHoursLeft:

    def test_rounds_to_one_decimal(self):
        assert hours_left(NOW + timedelta(minutes=90), NOW) == 1.5

    def test_never_negative(self):
        assert hours_left(NOW - timedelta(hours=3), NOW) == 0.0


class TestPreview:

    def test_short_content_unchanged(self):
        assert preview("hello") == "hello"

    def test_exactly_limit_unchanged(self):
        assert preview("x" * 50) == "x" * 50

    def test_long_content_truncated(self):
        result = preview("x" * 60)
        assert result == "x" * 47 + "..."
        assert len(result) == 50


class TestFormatScheduleList:

    def test_numbered_summary(self):
        records = [
            ScheduleRecord(channel_id="1", content="first", fire_at=NOW + timedelta(hours=2)),
            ScheduleRecord(channel_id="1", content="y" * 80, fire_at=NOW + timedelta(minutes=90)),
        ]
        text = format_schedule_list(records, NOW, pytz.UTC)
        lines = text.split("\n")
        assert lines[0] == "**Scheduled Messages:**"
        assert lines[1] == "1. **12:00 PM** (in 2 hours, ~2h): first"
        assert lines[2] == f"2. **11:30 AM** (in 2 hours, ~1.5h): {'y' * 47}..."
