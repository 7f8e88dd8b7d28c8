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
Time Parser Module

Parses the time expressions accepted by /schedule into an absolute fire time.

Supported notations, tried in this order:
- "+17h00", "+17h00+3d", "+3d": delay from now (leading "+")
- "17h00", "9h30": next occurrence of a wall-clock time
- "1h30m", "2d", "45s": delay from now

parse_clock_time() handles spoken clock times ("3:30pm", "15:45", "3 pm").
"""

import enum
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

import dateparser

logger = logging.getLogger("scheduler.time_parser")

# Milliseconds per duration unit
UNIT_MS = {
    "d": 24 * 60 * 60 * 1000,
    "h": 60 * 60 * 1000,
    "m": 60 * 1000,
    "s": 1000,
}

DURATION_TOKEN = re.compile(r"(\d+)([dhms])")
OFFSET_CLOCK_TOKEN = re.compile(r"(\d{1,2})h(\d{2})?")
TIME_OF_DAY = re.compile(r"^(\d{1,2})h(\d{2})$")

# Ordered best-effort clock formats: 3:30pm, 3:30 pm, 15:30, 3pm, 3 pm, 15
CLOCK_FORMATS = [
    "%I:%M%p",
    "%I:%M %p",
    "%H:%M",
    "%I%p",
    "%I %p",
    "%H",
]

SUPPORTED_FORMATS_HELP = (
    "Use 17h00, +17h00, +17h00+3d, 1h30m, 3:30pm, etc."
)


class ParseErrorKind(enum.Enum):
    NO_MATCH = "no_match"
    EMPTY_OR_ZERO = "empty_or_zero"
    OUT_OF_RANGE = "out_of_range"
    UNRECOGNIZED = "unrecognized"


class TimeParseError(Exception):
    """Raised when a time expression cannot be parsed."""

    def __init__(self, message: str, kind: ParseErrorKind):
        super().__init__(message)
        self.kind = kind


@dataclass
class ParsedTime:
    """Result of parsing a time expression."""

    fire_at: datetime  # aware, in the timezone of `now`
    delay: timedelta
    notation: str  # offset, time_of_day, duration or clock
    original_input: str


def _scan_duration_ms(text: str) -> tuple[int, int]:
    """
    Sum every <integer><unit> token in text.

    Returns:
        Tuple of (total milliseconds, number of tokens matched)
    """
    total = 0
    count = 0
    for match in DURATION_TOKEN.finditer(text):
        total += int(match.group(1)) * UNIT_MS[match.group(2)]
        count += 1
    return total, count


def _at_wall_clock(now: datetime, day: date, hour: int, minute: int) -> datetime:
    """Build an aware datetime for a wall-clock time in now's timezone."""
    naive = datetime.combine(day, time(hour, minute))
    tz = now.tzinfo
    # pytz zones must localize, replace() would pick the LMT offset
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def _next_occurrence(now: datetime, hour: int, minute: int, inclusive: bool) -> datetime:
    """
    Resolve hour:minute to today, or tomorrow if it has already passed.

    Args:
        now: Reference time (aware)
        hour: Wall-clock hour
        minute: Wall-clock minute
        inclusive: Roll forward when the candidate equals now as well
    """
    candidate = _at_wall_clock(now, now.date(), hour, minute)
    passed = candidate <= now if inclusive else candidate < now
    if passed:
        candidate = _at_wall_clock(now, now.date() + timedelta(days=1), hour, minute)
    return candidate


def _require_aware(now: datetime) -> None:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("now must be timezone-aware")


def _parse_offset(expr: str, now: datetime) -> ParsedTime:
    """Parse "+17h00", "+17h00+3d", "+3d" as a delay from now."""
    rest = expr[1:].lstrip()
    delay_ms = 0

    # A leading 17h00 here is a duration, not a time of day
    clock = OFFSET_CLOCK_TOKEN.match(rest)
    if clock:
        hours = int(clock.group(1))
        minutes = int(clock.group(2)) if clock.group(2) else 0
        delay_ms += hours * UNIT_MS["h"] + minutes * UNIT_MS["m"]
        rest = rest[clock.end():]

    scanned, _ = _scan_duration_ms(rest)
    delay_ms += scanned

    if delay_ms <= 0:
        raise TimeParseError(
            f"Offset '{expr}' does not add any time.", ParseErrorKind.EMPTY_OR_ZERO
        )

    delay = timedelta(milliseconds=delay_ms)
    return ParsedTime(
        fire_at=now + delay,
        delay=delay,
        notation="offset",
        original_input=expr,
    )


def _parse_time_of_day(match: re.Match, expr: str, now: datetime) -> ParsedTime:
    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        raise TimeParseError(
            f"'{expr}' is not a valid time of day. Hours must be 0-23 and minutes 0-59.",
            ParseErrorKind.OUT_OF_RANGE,
        )

    fire_at = _next_occurrence(now, hour, minute, inclusive=True)
    return ParsedTime(
        fire_at=fire_at,
        delay=fire_at - now,
        notation="time_of_day",
        original_input=expr,
    )


def parse_time_expression(expr: str, now: datetime) -> ParsedTime:
    """
    Parse a time expression into an absolute fire time.

    Args:
        expr: The time expression (e.g. "1h30m", "17h00", "+17h00+3d")
        now: Current time, timezone-aware. Wall-clock times resolve in its timezone.

    Returns:
        ParsedTime with the resolved fire time

    Raises:
        TimeParseError: If the expression cannot be parsed
    """
    _require_aware(now)
    expr = expr.strip().lower()
    if not expr:
        raise TimeParseError("Empty time expression", ParseErrorKind.NO_MATCH)

    if expr.startswith("+"):
        return _parse_offset(expr, now)

    match = TIME_OF_DAY.match(expr)
    if match:
        return _parse_time_of_day(match, expr, now)

    delay_ms, count = _scan_duration_ms(expr)
    if count == 0:
        raise TimeParseError(
            f"Could not parse time expression: '{expr}'.", ParseErrorKind.NO_MATCH
        )

    delay = timedelta(milliseconds=delay_ms)
    return ParsedTime(
        fire_at=now + delay,
        delay=delay,
        notation="duration",
        original_input=expr,
    )


def _match_clock_format(expr: str) -> Optional[time]:
    for fmt in CLOCK_FORMATS:
        try:
            return datetime.strptime(expr, fmt).time()
        except ValueError:
            continue
    return None


def _dateparser_fallback(expr: str, now: datetime) -> Optional[datetime]:
    """Let dateparser try notations the fixed formats don't cover."""
    tz_name = getattr(now.tzinfo, "zone", None) or now.tzname() or "UTC"
    settings = {
        "TIMEZONE": tz_name,
        "RETURN_AS_TIMEZONE_AWARE": True,
        "PREFER_DATES_FROM": "future",
        "RELATIVE_BASE": now.replace(tzinfo=None),
    }
    try:
        parsed = dateparser.parse(expr, languages=["en"], settings=settings)
    except Exception as e:
        logger.debug(f"dateparser failed on '{expr}': {e}")
        return None
    if parsed is None:
        return None
    return parsed.astimezone(now.tzinfo)


def parse_clock_time(expr: str, now: datetime) -> ParsedTime:
    """
    Parse an exact clock time like "3:30pm", "3:30 pm", "15:45", "3pm" or "15".

    The time is placed on today's date; a time already in the past moves
    forward one day.

    Raises:
        TimeParseError: If no clock format matches
    """
    _require_aware(now)
    expr = expr.strip()
    if not expr:
        raise TimeParseError("Empty time expression", ParseErrorKind.UNRECOGNIZED)

    clock = _match_clock_format(expr.upper())
    if clock is not None:
        fire_at = _next_occurrence(now, clock.hour, clock.minute, inclusive=False)
    else:
        fire_at = _dateparser_fallback(expr, now)
        if fire_at is None:
            raise TimeParseError(
                f"Could not parse clock time: '{expr}'.", ParseErrorKind.UNRECOGNIZED
            )
        if fire_at < now:
            fire_at = fire_at + timedelta(days=1)

    return ParsedTime(
        fire_at=fire_at,
        delay=fire_at - now,
        notation="clock",
        original_input=expr,
    )


def parse_schedule_time(expr: str, now: datetime) -> ParsedTime:
    """
    Parse user input for /schedule.

    Tries the delay and time-of-day notations first, then falls back to
    clock times when nothing matched.
    """
    try:
        return parse_time_expression(expr, now)
    except TimeParseError as e:
        if e.kind is not ParseErrorKind.NO_MATCH:
            raise
        logger.debug(f"'{expr}' is not a delay expression, trying clock formats")
        return parse_clock_time(expr, now)
