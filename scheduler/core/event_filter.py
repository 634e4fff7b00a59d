# scheduler/core/event_filter.py
"""
Derives the visible appointment list from the full snapshot.
"""

from typing import Any, Dict, Iterable, List

from scheduler.utils.config import (
    INFO_MESSAGES,
    VIEW_MODE_DAY,
    VIEW_MODE_MONTH,
)
from scheduler.utils.date_utils import format_for_display, is_same_day, is_same_month


def _check_view_mode(view_mode: str) -> None:
    if view_mode not in (VIEW_MODE_MONTH, VIEW_MODE_DAY):
        raise ValueError(f"Unknown view mode: {view_mode!r}")


def filter_events(
    events: Iterable[Dict[str, Any]], selected_date: Any, view_mode: str
) -> List[Dict[str, Any]]:
    """
    Appointments visible for the selected date in the given view mode.

    Month mode keeps appointments in the same month and year, day mode those on
    the same day. Input order is preserved, so a sorted snapshot stays sorted.

    Raises:
        ValueError: If view_mode is not "month" or "day"
    """
    _check_view_mode(view_mode)

    if view_mode == VIEW_MODE_MONTH:
        return [event for event in events if is_same_month(event.get("date"), selected_date)]
    return [event for event in events if is_same_day(event.get("date"), selected_date)]


def list_heading(selected_date: Any, view_mode: str) -> str:
    """Title shown above the appointment list."""
    _check_view_mode(view_mode)

    if view_mode == VIEW_MODE_DAY:
        label = format_for_display(
            selected_date, fields=("month", "day", "year"), month_style="long"
        )
        return INFO_MESSAGES["list_heading_day"].format(label=label)

    label = format_for_display(selected_date, fields=("month", "year"), month_style="long")
    return INFO_MESSAGES["list_heading_month"].format(label=label)


def empty_list_message(view_mode: str) -> str:
    """Shown when no appointment matches."""
    _check_view_mode(view_mode)
    return INFO_MESSAGES["no_appointments"].format(period=view_mode)
