# scheduler/core/calendar_grid.py
"""
Month calendar grid.

The grid always has 42 cells (6 weeks of 7 days) so its shape never depends
on how long the month is or which weekday it starts on. Cell 0 is the
configured week-start day on or before the first of the month.
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from scheduler.core.errors import InvalidDate
from scheduler.utils.config import CALENDAR_GRID_CELLS, WEEK_START_DAY
from scheduler.utils.date_utils import (
    format_for_display,
    parse_timestamp,
    start_of_month,
)
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

WEEKDAY_LABELS = ["Mo", "Tu", "We", "Th", "Fr", "Sa", "Su"]


def _as_date(value: Any) -> Optional[date]:
    moment = parse_timestamp(value)
    return moment.date() if moment is not None else None


def grid_start(month_anchor: Any, week_start: int = WEEK_START_DAY) -> date:
    """
    First cell of the grid: the week-start day on or before the 1st.

    Raises:
        InvalidDate: If month_anchor cannot be parsed
    """
    first = start_of_month(month_anchor)
    offset = (first.weekday() - week_start) % 7
    return first - timedelta(days=offset)


def compute_month_grid(
    month_anchor: Any,
    events: Iterable[Dict[str, Any]],
    selected: Any,
    today: Optional[date] = None,
    week_start: int = WEEK_START_DAY,
) -> List[Dict[str, Any]]:
    """
    Build the 42 calendar cells for the month containing month_anchor.

    Args:
        month_anchor: Any date within the month to show
        events: Appointments; only their "date" is used
        selected: Currently selected date
        today: Date to mark as today (defaults to date.today())
        week_start: Weekday of the first column, Monday=0 ... Sunday=6

    Returns:
        List of cell dictionaries
    """
    anchor = _as_date(month_anchor)
    if anchor is None:
        raise InvalidDate(f"Invalid month anchor: {month_anchor!r}")

    today = today or date.today()
    selected_day = _as_date(selected)

    event_days = set()
    for event in events:
        event_day = _as_date(event.get("date"))
        if event_day is not None:
            event_days.add(event_day)

    first_cell = grid_start(anchor, week_start)
    cells = []

    for offset in range(CALENDAR_GRID_CELLS):
        cell_date = first_cell + timedelta(days=offset)
        in_current_month = (
            cell_date.year == anchor.year and cell_date.month == anchor.month
        )
        cells.append(
            {
                "date": cell_date,
                "day": cell_date.day,
                "in_current_month": in_current_month,
                "is_today": cell_date == today,
                "is_selected": cell_date == selected_day,
                "has_events": cell_date in event_days,
                "selectable": in_current_month,
            }
        )

    logger.debug(
        f"Computed grid for {anchor:%Y-%m} starting {first_cell} "
        f"({len(event_days)} days with events)"
    )
    return cells


def weekday_labels(week_start: int = WEEK_START_DAY) -> List[str]:
    """Column headers in grid order, e.g. Su Mo Tu ... for a Sunday start."""
    return [WEEKDAY_LABELS[(week_start + i) % 7] for i in range(7)]


def group_cells_into_weeks(cells: List[Dict[str, Any]]) -> List[List[Dict[str, Any]]]:
    """Split grid cells into rows of 7."""
    return [cells[i : i + 7] for i in range(0, len(cells), 7)]


def month_title(month_anchor: Any) -> str:
    """Calendar header, e.g. "March 2024"."""
    return format_for_display(month_anchor, fields=("month", "year"), month_style="long")
