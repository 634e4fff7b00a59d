# scheduler/utils/date_utils.py
"""
Date helpers shared by the calendar, the event list and the store codec.

All in-memory timestamps are naive local datetimes. The wire format is an
ISO-8601 UTC string with millisecond precision, e.g. 2024-03-05T10:00:00.000Z.
"""

from datetime import datetime, date, timezone
from typing import Any, Optional, Sequence

from scheduler.core.errors import InvalidDate
from scheduler.utils.config import NOT_AVAILABLE
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

DISPLAY_FIELDS = ("month", "day", "year", "hour", "minute")
DEFAULT_DISPLAY_FIELDS = ("month", "day", "hour", "minute")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert a datetime, date or ISO-8601 string to a naive local datetime.

    Args:
        value: Value to convert

    Returns:
        Naive datetime, or None if the value is absent or unparseable
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Could not parse timestamp: {value!r}")
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def is_same_day(a: Any, b: Any) -> bool:
    """True iff both values fall on the same calendar day."""
    first = parse_timestamp(a)
    second = parse_timestamp(b)
    if first is None or second is None:
        return False
    return (
        first.year == second.year
        and first.month == second.month
        and first.day == second.day
    )


def is_same_month(a: Any, b: Any) -> bool:
    """True iff both values fall in the same calendar month of the same year."""
    first = parse_timestamp(a)
    second = parse_timestamp(b)
    if first is None or second is None:
        return False
    return first.year == second.year and first.month == second.month


def format_for_display(
    value: Any,
    fields: Sequence[str] = DEFAULT_DISPLAY_FIELDS,
    month_style: str = "short",
) -> str:
    """
    Render a date in the en-US style used across the UI.

    Examples:
        ("month", "day", "hour", "minute") -> "Mar 5, 10:00 AM"
        ("month", "day", "year") with month_style="long" -> "March 5, 2024"
        ("month", "year") with month_style="long" -> "March 2024"

    Args:
        value: datetime, date or ISO-8601 string
        fields: Subset of month, day, year, hour, minute to include
        month_style: "short" (Mar) or "long" (March)

    Returns:
        Formatted string, or NOT_AVAILABLE if the value cannot be parsed
    """
    unknown = [field for field in fields if field not in DISPLAY_FIELDS]
    if unknown:
        raise ValueError(f"Unknown display fields: {unknown}")

    moment = parse_timestamp(value)
    if moment is None:
        return NOT_AVAILABLE

    date_part = ""
    if "month" in fields:
        date_part = moment.strftime("%B" if month_style == "long" else "%b")
    if "day" in fields:
        date_part = f"{date_part} {moment.day}".strip()
    if "year" in fields:
        separator = ", " if "day" in fields else " "
        date_part = f"{date_part}{separator}{moment.year}" if date_part else str(moment.year)

    time_part = ""
    if "hour" in fields:
        time_part = moment.strftime("%I")
        if "minute" in fields:
            time_part += moment.strftime(":%M")
        time_part += moment.strftime(" %p")
    elif "minute" in fields:
        time_part = moment.strftime("%M")

    return ", ".join(part for part in (date_part, time_part) if part)


def to_iso_timestamp(value: Any) -> str:
    """
    Serialize a timestamp for the document service.

    Raises:
        InvalidDate: If the value cannot be parsed
    """
    moment = parse_timestamp(value)
    if moment is None:
        raise InvalidDate(f"Invalid date: {value!r}")

    utc_moment = moment.astimezone(timezone.utc)
    millis = utc_moment.microsecond // 1000
    return utc_moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


def from_iso_timestamp(text: Any) -> datetime:
    """
    Parse a timestamp read back from the document service.

    Raises:
        InvalidDate: If the text cannot be parsed
    """
    moment = parse_timestamp(text)
    if moment is None:
        raise InvalidDate(f"Invalid date: {text!r}")
    return moment


def start_of_month(value: Any) -> date:
    """First day of the month containing value."""
    moment = parse_timestamp(value)
    if moment is None:
        raise InvalidDate(f"Invalid date: {value!r}")
    return date(moment.year, moment.month, 1)


def shift_month(value: Any, months: int) -> date:
    """First day of the month `months` away from the month containing value."""
    first = start_of_month(value)
    index = first.year * 12 + (first.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)
