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

"""Tests for schedule time expression parsing."""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from message_scheduler.time_parser import (
    ParseErrorKind,
    TimeParseError,
    parse_clock_time,
    parse_schedule_time,
    parse_time_expression,
)

UTC = pytz.UTC


def utc(*args) -> datetime:
    return UTC.localize(datetime(*args))


NOW = utc(2026, 10, 19, 10, 0, 0)


class TestRelativeDurations:
    """Bare <n><unit> expressions."""

    @pytest.mark.parametrize(
        "expr,expected",
        [
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("2d", timedelta(days=2)),
            ("45s", timedelta(seconds=45)),
            ("1d2h3m4s", timedelta(days=1, hours=2, minutes=3, seconds=4)),
            ("4s3m2h1d", timedelta(days=1, hours=2, minutes=3, seconds=4)),
            ("90m", timedelta(minutes=90)),
            ("1h 15m", timedelta(hours=1, minutes=15)),
            ("3H", timedelta(hours=3)),
        ],
    )
    def test_weighted_sum(self, expr, expected):
        result = parse_time_expression(expr, NOW)
        assert result.delay == expected
        assert result.fire_at == NOW + expected
        assert result.notation == "duration"

    def test_repeated_units_add_up(self):
        result = parse_time_expression("1h1h", NOW)
        assert result.delay == timedelta(hours=2)

    def test_all_zero_matches_but_has_no_delay(self):
        result = parse_time_expression("0m", NOW)
        assert result.delay == timedelta(0)
        assert result.fire_at == NOW

    def test_no_tokens_is_no_match(self):
        with pytest.raises(TimeParseError) as exc:
            parse_time_expression("whenever", NOW)
        assert exc.value.kind is ParseErrorKind.NO_MATCH

    def test_empty_is_no_match(self):
        with pytest.raises(TimeParseError) as exc:
            parse_time_expression("   ", NOW)
        assert exc.value.kind is ParseErrorKind.NO_MATCH

    def test_trailing_text_breaks_time_of_day_shape(self):
        # Not the strict HHhMM shape, so "17h" is read as a duration
        result = parse_time_expression("17h00x", NOW)
        assert result.notation == "duration"
        assert result.delay == timedelta(hours=17)


class TestTimeOfDay:
    """17h00 style next-occurrence times."""

    def test_later_today(self):
        now = utc(2026, 10, 19, 16, 59, 0)
        result = parse_time_expression("17h00", now)
        assert result.fire_at == utc(2026, 10, 19, 17, 0, 0)
        assert result.delay == timedelta(minutes=1)
        assert result.notation == "time_of_day"

    def test_already_passed_rolls_to_tomorrow(self):
        now = utc(2026, 10, 19, 17, 0, 1)
        result = parse_time_expression("17h00", now)
        assert result.fire_at == utc(2026, 10, 20, 17, 0, 0)

    def test_exactly_now_rolls_to_tomorrow(self):
        now = utc(2026, 10, 19, 17, 0, 0)
        result = parse_time_expression("17h00", now)
        assert result.fire_at == utc(2026, 10, 20, 17, 0, 0)

    def test_single_digit_hour(self):
        result = parse_time_expression("9h05", NOW)
        assert result.fire_at == utc(2026, 10, 20, 9, 5, 0)

    def test_rollover_across_month_end(self):
        now = utc(2026, 10, 31, 23, 0, 0)
        result = parse_time_expression("01h00", now)
        assert result.fire_at == utc(2026, 11, 1, 1, 0, 0)

    @pytest.mark.parametrize("expr", ["24h00", "99h00", "12h60", "7h99"])
    def test_out_of_range(self, expr):
        with pytest.raises(TimeParseError) as exc:
            parse_time_expression(expr, NOW)
        assert exc.value.kind is ParseErrorKind.OUT_OF_RANGE

    def test_uses_wall_clock_of_now_timezone(self):
        paris = pytz.timezone("Europe/Paris")
        now = paris.localize(datetime(2026, 10, 19, 16, 0, 0))
        result = parse_time_expression("17h00", now)
        local = result.fire_at.astimezone(paris)
        assert (local.hour, local.minute) == (17, 0)
        assert result.delay == timedelta(hours=1)

    def test_rollover_across_dst_change_keeps_wall_clock(self):
        # Europe/Paris springs forward on 2026-03-29
        paris = pytz.timezone("Europe/Paris")
        now = paris.localize(datetime(2026, 3, 28, 20, 0, 0))
        result = parse_time_expression("09h00", now)
        local = result.fire_at.astimezone(paris)
        assert local.date() == datetime(2026, 3, 29).date()
        assert (local.hour, local.minute) == (9, 0)
        assert local.utcoffset() == timedelta(hours=2)
        assert result.delay == timedelta(hours=12)


class TestOffsetExpressions:
    """+17h00, +17h00+3d and friends."""

    def test_plus_clock_is_a_duration(self):
        result = parse_time_expression("+17h00", NOW)
        assert result.fire_at == NOW + timedelta(hours=17)
        assert result.notation == "offset"

    def test_plus_clock_never_resolves_to_wall_clock(self):
        now = utc(2026, 10, 19, 16, 59, 0)
        result = parse_time_expression("+17h00", now)
        assert result.fire_at != utc(2026, 10, 19, 17, 0, 0)
        assert result.fire_at == now + timedelta(hours=17)

    def test_compound_offset(self):
        result = parse_time_expression("+17h00+3d", NOW)
        assert result.fire_at == NOW + timedelta(hours=17, days=3)

    def test_clock_with_minutes(self):
        result = parse_time_expression("+1h30", NOW)
        assert result.delay == timedelta(hours=1, minutes=30)

    def test_plus_hours_without_minutes(self):
        result = parse_time_expression("+2h", NOW)
        assert result.delay == timedelta(hours=2)

    def test_plus_days_only(self):
        result = parse_time_expression("+3d", NOW)
        assert result.delay == timedelta(days=3)

    def test_plus_with_unit_tokens(self):
        result = parse_time_expression("+2h5m", NOW)
        assert result.delay == timedelta(hours=2, minutes=5)

    def test_large_hour_count(self):
        result = parse_time_expression("+100h", NOW)
        assert result.delay == timedelta(hours=100)

    @pytest.mark.parametrize("expr", ["+", "+0h00", "+0d", "+soon"])
    def test_empty_or_zero(self, expr):
        with pytest.raises(TimeParseError) as exc:
            parse_time_expression(expr, NOW)
        assert exc.value.kind is ParseErrorKind.EMPTY_OR_ZERO


class TestNowValidation:

    def test_naive_now_rejected(self):
        with pytest.raises(ValueError):
            parse_time_expression("1h", datetime(2026, 10, 19, 10, 0))

    def test_naive_now_rejected_for_clock_times(self):
        with pytest.raises(ValueError):
            parse_clock_time("3pm", datetime(2026, 10, 19, 10, 0))


class TestClockTime:
    """Exact clock times like 3:30pm."""

    @pytest.mark.parametrize(
        "expr,hour,minute",
        [
            ("3:30pm", 15, 30),
            ("3:30 pm", 15, 30),
            ("3:30 PM", 15, 30),
            ("15:45", 15, 45),
            ("3pm", 15, 0),
            ("3 pm", 15, 0),
            ("15", 15, 0),
            ("12:15pm", 12, 15),
        ],
    )
    def test_formats_later_today(self, expr, hour, minute):
        result = parse_clock_time(expr, NOW)
        assert result.fire_at == utc(2026, 10, 19, hour, minute, 0)
        assert result.notation == "clock"

    def test_past_time_moves_to_tomorrow(self):
        result = parse_clock_time("9am", NOW)
        assert result.fire_at == utc(2026, 10, 20, 9, 0, 0)

    def test_midnight_am(self):
        result = parse_clock_time("12:00am", NOW)
        assert result.fire_at == utc(2026, 10, 20, 0, 0, 0)

    def test_current_minute_is_not_past(self):
        result = parse_clock_time("10:00", NOW)
        assert result.fire_at == NOW
        assert result.delay == timedelta(0)

    def test_unrecognized(self):
        with patch("message_scheduler.time_parser.dateparser.parse", return_value=None):
            with pytest.raises(TimeParseError) as exc:
                parse_clock_time("sometime later", NOW)
        assert exc.value.kind is ParseErrorKind.UNRECOGNIZED

    def test_empty_is_unrecognized(self):
        with pytest.raises(TimeParseError) as exc:
            parse_clock_time("", NOW)
        assert exc.value.kind is ParseErrorKind.UNRECOGNIZED

    def test_dateparser_fallback_in_past_moves_forward_a_day(self):
        parsed = utc(2026, 10, 19, 8, 0, 0)
        with patch("message_scheduler.time_parser.dateparser.parse", return_value=parsed) as mock_parse:
            result = parse_clock_time("eight in the morning", NOW)
        assert result.fire_at == utc(2026, 10, 20, 8, 0, 0)
        assert mock_parse.call_args.kwargs["settings"]["TIMEZONE"] == "UTC"

    def test_dateparser_fallback_in_future_kept(self):
        parsed = utc(2026, 10, 21, 10, 0, 0)
        with patch("message_scheduler.time_parser.dateparser.parse", return_value=parsed):
            result = parse_clock_time("wednesday 10am", NOW)
        assert result.fire_at == parsed

    def test_dateparser_exception_is_unrecognized(self):
        with patch("message_scheduler.time_parser.dateparser.parse", side_effect=ValueError("bad")):
            with pytest.raises(TimeParseError) as exc:
                parse_clock_time("whatever", NOW)
        assert exc.value.kind is ParseErrorKind.UNRECOGNIZED


class TestParseScheduleTime:
    """Combined entry point used by /schedule."""

    def test_duration_first(self):
        assert parse_schedule_time("1h30m", NOW).notation == "duration"

    def test_time_of_day_before_clock(self):
        assert parse_schedule_time("17h00", NOW).notation == "time_of_day"

    def test_falls_back_to_clock(self):
        result = parse_schedule_time("3:30pm", NOW)
        assert result.notation == "clock"
        assert result.fire_at == utc(2026, 10, 19, 15, 30, 0)

    def test_out_of_range_does_not_fall_back(self):
        with pytest.raises(TimeParseError) as exc:
            parse_schedule_time("25h00", NOW)
        assert exc.value.kind is ParseErrorKind.OUT_OF_RANGE

    def test_empty_offset_does_not_fall_back(self):
        with pytest.raises(TimeParseError) as exc:
            parse_schedule_time("+0m", NOW)
        assert exc.value.kind is ParseErrorKind.EMPTY_OR_ZERO
