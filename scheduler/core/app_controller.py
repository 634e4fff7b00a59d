# scheduler/core/app_controller.py
"""
Application controller for the appointment scheduler.

Owns the view state (selected date, view mode, visible month, open form) and
the single-slot appointment snapshot mirrored from the RemoteStore. The UI
only reads from the controller and forwards user actions to it.

State machine:
    loading --first snapshot--> ready
    loading/ready --subscription error--> error   (no automatic recovery)
    error --reload()--> loading
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from scheduler.core.appointment_form import AppointmentFormState
from scheduler.core.calendar_grid import compute_month_grid, month_title
from scheduler.core.errors import SchedulerError, ValidationError
from scheduler.core.event_filter import empty_list_message, filter_events, list_heading
from scheduler.utils.config import (
    ERROR_MESSAGES,
    SUCCESS_MESSAGES,
    VIEW_MODE_DAY,
    VIEW_MODE_MONTH,
    VIEW_MODES,
    WEEK_START_DAY,
)
from scheduler.utils.date_utils import parse_timestamp, shift_month, start_of_month
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

STATE_LOADING = "loading"
STATE_READY = "ready"
STATE_ERROR = "error"

NOTICE_SUCCESS = "success"
NOTICE_ERROR = "error"


def _error_detail(error: Exception) -> str:
    if isinstance(error, ValidationError) and error.errors:
        return " ".join(error.errors)
    return str(error) or error.__class__.__name__


class AppController:
    """
    Orchestrates the store, the calendar and the appointment list.
    """

    def __init__(
        self,
        store,
        today: Optional[Callable[[], date]] = None,
        week_start: int = WEEK_START_DAY,
    ):
        self.store = store
        self._today = today or date.today
        self.week_start = week_start

        self.state = STATE_LOADING
        self.events: List[Dict[str, Any]] = []
        self.error_message: Optional[str] = None
        self.notice: Optional[Tuple[str, str]] = None

        self.selected_date: date = self._today()
        self.view_mode = VIEW_MODE_MONTH
        self.visible_month: date = start_of_month(self.selected_date)
        self.form: Optional[AppointmentFormState] = None

        self._subscription = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Subscribe to the store. The first snapshot moves the view to ready."""
        if self._subscription is not None and self._subscription.active:
            logger.debug("Controller already started")
            return

        logger.info("Starting appointment controller")
        self.state = STATE_LOADING
        self.error_message = None
        self._subscription = self.store.subscribe_to_changes(
            self._on_snapshot, self._on_subscription_error
        )

    def stop(self) -> None:
        """Unsubscribe from the store. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription()
            logger.info("Appointment controller stopped")

    def reload(self) -> None:
        """User-triggered retry after an error."""
        logger.info("Reloading appointments")
        self.stop()
        self._subscription = None
        self.start()

    def _on_snapshot(self, appointments: List[Dict[str, Any]]) -> None:
        if self.state == STATE_ERROR:
            logger.debug("Ignoring snapshot while in error state")
            return

        self.events = appointments
        if self.state == STATE_LOADING:
            logger.info(f"Appointments ready ({len(appointments)} loaded)")
        self.state = STATE_READY

    def _on_subscription_error(self, error: Exception) -> None:
        logger.error(f"Subscription error: {str(error)}")
        self.state = STATE_ERROR
        self.error_message = ERROR_MESSAGES["load_failed"].format(
            detail=_error_detail(error)
        )

    # =========================================================================
    # VIEW STATE
    # =========================================================================

    def select_date(self, day: Any) -> None:
        """
        Select a specific day. Selecting a day always switches to day view.

        Raises:
            ValueError: If day cannot be parsed
        """
        moment = parse_timestamp(day)
        if moment is None:
            raise ValueError(f"Invalid date: {day!r}")

        self.selected_date = moment.date()
        self.visible_month = start_of_month(self.selected_date)
        self.view_mode = VIEW_MODE_DAY
        logger.debug(f"Selected date {self.selected_date}")

    def select_cell(self, cell: Dict[str, Any]) -> bool:
        """
        Select a calendar cell. Cells outside the visible month are ignored.

        Returns:
            True if the selection changed
        """
        if not cell.get("selectable"):
            logger.debug(f"Ignoring non-selectable cell {cell.get('date')}")
            return False
        self.select_date(cell["date"])
        return True

    def set_view_mode(self, view_mode: str) -> None:
        if view_mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {view_mode!r}")
        self.view_mode = view_mode

    def show_previous_month(self) -> None:
        self.visible_month = shift_month(self.visible_month, -1)

    def show_next_month(self) -> None:
        self.visible_month = shift_month(self.visible_month, 1)

    def dismiss_notice(self) -> None:
        self.notice = None

    # =========================================================================
    # DERIVED DATA
    # =========================================================================

    @property
    def visible_events(self) -> List[Dict[str, Any]]:
        return filter_events(self.events, self.selected_date, self.view_mode)

    @property
    def month_grid(self) -> List[Dict[str, Any]]:
        return compute_month_grid(
            self.visible_month,
            self.events,
            self.selected_date,
            today=self._today(),
            week_start=self.week_start,
        )

    @property
    def calendar_title(self) -> str:
        return month_title(self.visible_month)

    @property
    def heading(self) -> str:
        return list_heading(self.selected_date, self.view_mode)

    @property
    def empty_message(self) -> str:
        return empty_list_message(self.view_mode)

    # =========================================================================
    # USER ACTIONS
    # =========================================================================

    def open_form(self) -> AppointmentFormState:
        if self.form is None:
            self.form = AppointmentFormState()
        return self.form

    def close_form(self) -> None:
        self.form = None

    def _writes_allowed(self) -> bool:
        if self.state != STATE_READY:
            logger.warning(f"Write refused in state {self.state}")
            self.notice = (NOTICE_ERROR, ERROR_MESSAGES["service_not_ready"])
            return False
        return True

    def add_appointment(self) -> bool:
        """
        Validate the open form and create the appointment.

        The list itself updates when the resulting change notification arrives.

        Returns:
            True if the appointment was created
        """
        if self.form is None:
            self.notice = (NOTICE_ERROR, ERROR_MESSAGES["no_form_open"])
            return False

        if not self._writes_allowed():
            return False

        try:
            self.form.validate()
        except ValidationError as e:
            logger.warning(f"Form validation failed: {e.errors}")
            self.notice = (NOTICE_ERROR, _error_detail(e))
            return False

        try:
            created = self.store.create_appointment(self.form.to_appointment())
        except SchedulerError as e:
            logger.error(f"Error adding appointment: {str(e)}")
            self.notice = (
                NOTICE_ERROR,
                ERROR_MESSAGES["add_failed"].format(detail=_error_detail(e)),
            )
            return False

        logger.info(f"Appointment {created['id']} added")
        self.form = None
        self.notice = (NOTICE_SUCCESS, SUCCESS_MESSAGES["appointment_added"])
        return True

    def delete_appointment(self, appointment_id: str) -> bool:
        """
        Delete an appointment. The local list is left to the next snapshot.

        Returns:
            True if the appointment was deleted
        """
        if not self._writes_allowed():
            return False

        try:
            self.store.delete_appointment(appointment_id)
        except SchedulerError as e:
            logger.error(f"Error deleting appointment {appointment_id}: {str(e)}")
            self.notice = (
                NOTICE_ERROR,
                ERROR_MESSAGES["delete_failed"].format(detail=_error_detail(e)),
            )
            return False

        self.notice = (NOTICE_SUCCESS, SUCCESS_MESSAGES["appointment_deleted"])
        return True

    def debug_snapshot(self) -> Dict[str, Any]:
        """Summary of controller state for the debug panel."""
        return {
            "state": self.state,
            "event_count": len(self.events),
            "selected_date": str(self.selected_date),
            "view_mode": self.view_mode,
            "visible_month": self.visible_month.strftime("%Y-%m"),
            "form_open": self.form is not None,
            "subscribed": bool(self._subscription and self._subscription.active),
            "rendered_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }
