# scheduler/ui/Main.py
"""
Appointment Scheduler Application

Calendar on the left, appointment list on the right, with a form for new
appointments. All state lives in an AppController kept in the Streamlit
session; the page only renders it and forwards user actions.
"""

import sys
import os
import atexit
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from datetime import datetime
from typing import Any, Dict

try:
    from scheduler.utils.logging_config import get_logger, setup_logging
    from scheduler.utils.config import (
        APP_TITLE,
        APP_ICON,
        COLLECTION_ID,
        DATABASE_ID,
        DEFAULT_DURATION_MINUTES,
        DOCUMENT_BACKEND,
        INFO_MESSAGES,
        LABELS,
        UI_REFRESH_SECONDS,
        VIEW_MODES,
        VIEW_MODE_DAY,
        get_allowed_durations,
        get_streamlit_config,
        is_debug_mode,
    )
    from scheduler.core.app_controller import (
        AppController,
        NOTICE_SUCCESS,
        STATE_ERROR,
        STATE_LOADING,
    )
    from scheduler.core.calendar_grid import group_cells_into_weeks, weekday_labels
    from scheduler.core.event_export import appointments_to_csv, appointments_to_frame
    from scheduler.infrastructure.remote_store import RemoteStore
    from scheduler.infrastructure.memory.memory_ops import MemoryDocumentService
    from scheduler.infrastructure.sheets.sheets_ops import SheetsDocumentService
    from scheduler.infrastructure.auth.google_auth import (
        get_service_account_info,
        list_credential_sources,
    )
    from scheduler.utils.date_utils import format_for_display
except ImportError as e:
    print(f"Import error: {e}")
    print("Please ensure you're running from the project root directory")
    print("Project root should be:", project_root)
    sys.exit(1)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# =============================================================================
# APPLICATION INITIALIZATION
# =============================================================================


def setup_streamlit_app() -> None:
    """Configure Streamlit app with proper settings"""
    logger.info("Setting up Streamlit application...")

    try:
        st.set_page_config(**get_streamlit_config())
        logger.info("Streamlit configuration applied successfully")

    except Exception as e:
        logger.error(f"Failed to setup Streamlit app: {str(e)}")
        st.error(f"❌ Application setup failed: {str(e)}")
        st.stop()


@st.cache_resource
def get_document_service():
    """One document service per server process, shared by all sessions."""
    logger.info(f"Creating document service (backend={DOCUMENT_BACKEND})")

    if DOCUMENT_BACKEND == "memory":
        service = MemoryDocumentService(DATABASE_ID, collections=[COLLECTION_ID])
    else:
        service = SheetsDocumentService(DATABASE_ID)
        atexit.register(service.close)

    return service


def initialize_session_state() -> None:
    """Create and start this session's controller"""
    if "controller" not in st.session_state:
        logger.info("Initializing session controller...")
        store = RemoteStore(get_document_service(), DATABASE_ID, COLLECTION_ID)
        controller = AppController(store)
        controller.start()
        st.session_state.controller = controller
        logger.info(f"Controller started in state '{controller.state}'")


def get_controller() -> AppController:
    return st.session_state.controller


# =============================================================================
# HEADER
# =============================================================================


def render_application_header() -> None:
    """Render the main application header"""
    st.title(f"{APP_ICON} {APP_TITLE}")

    if is_debug_mode():
        with st.expander("🔧 Debug Information", expanded=False):
            render_debug_info()


def render_debug_info() -> None:
    """Render debug information for development"""
    controller = get_controller()

    try:
        debug_info: Dict[str, Any] = {
            "controller": controller.debug_snapshot(),
            "document_service": {
                "backend": DOCUMENT_BACKEND,
                "database_id": DATABASE_ID,
                "collection_id": COLLECTION_ID,
            },
            "system_info": {
                "project_root": str(project_root),
                "current_working_directory": os.getcwd(),
            },
        }
        if DOCUMENT_BACKEND == "sheets":
            debug_info["credentials"] = {
                "sources": list_credential_sources(),
                "service_account": get_service_account_info(),
            }
        st.json(debug_info)
        st.dataframe(appointments_to_frame(controller.events), use_container_width=True)

    except Exception as e:
        st.error(f"Debug info error: {str(e)}")
        logger.error(f"Error rendering debug info: {str(e)}")


# =============================================================================
# CALENDAR
# =============================================================================


def render_calendar(controller: AppController) -> None:
    """Render the month grid with navigation"""
    with st.container(border=True):
        st.subheader(LABELS["select_date"])

        col1, col2, col3 = st.columns([1, 3, 1])
        with col1:
            if st.button(LABELS["previous_month"], key="previous_month"):
                controller.show_previous_month()
                st.rerun()
        with col2:
            st.markdown(f"**{controller.calendar_title}**")
        with col3:
            if st.button(LABELS["next_month"], key="next_month"):
                controller.show_next_month()
                st.rerun()

        header_cols = st.columns(7)
        for i, label in enumerate(weekday_labels(controller.week_start)):
            with header_cols[i]:
                st.caption(label)

        for week in group_cells_into_weeks(controller.month_grid):
            week_cols = st.columns(7)
            for i, cell in enumerate(week):
                with week_cols[i]:
                    render_calendar_cell(controller, cell)


def render_calendar_cell(controller: AppController, cell: Dict[str, Any]) -> None:
    """Render a single day button"""
    label = str(cell["day"])
    if cell["has_events"] and not cell["is_selected"]:
        label += " •"
    if cell["is_today"]:
        label = f"**{label}**"

    clicked = st.button(
        label,
        key=f"cell_{cell['date'].isoformat()}",
        type="primary" if cell["is_selected"] else "secondary",
        disabled=not cell["selectable"],
        use_container_width=True,
    )
    if clicked and controller.select_cell(cell):
        st.rerun()


# =============================================================================
# APPOINTMENT LIST
# =============================================================================


def _on_view_mode_change() -> None:
    get_controller().set_view_mode(st.session_state.view_mode_selector)


def render_list_controls(controller: AppController, count: int) -> None:
    """Render the list heading, view selector and new-appointment button"""
    col1, col2, col3 = st.columns([3, 1, 1])

    with col1:
        st.subheader(f"{controller.heading} ({count})")

    with col2:
        # Keep the selector in step with view changes made by date selection
        st.session_state.view_mode_selector = controller.view_mode
        st.selectbox(
            LABELS["view_mode"],
            options=VIEW_MODES,
            format_func=lambda mode: LABELS[f"view_{mode}"],
            key="view_mode_selector",
            on_change=_on_view_mode_change,
            label_visibility="collapsed",
        )

    with col3:
        if st.button(LABELS["new_appointment"], type="primary", use_container_width=True):
            controller.open_form()
            st.rerun()


def render_appointments_list(controller: AppController) -> None:
    """Render the appointments visible for the current selection"""
    visible = controller.visible_events
    render_list_controls(controller, len(visible))

    if not visible:
        st.info(f"📅 {controller.empty_message}")
        return

    for appointment in visible:
        render_appointment_card(controller, appointment)

    st.download_button(
        LABELS["download_csv"],
        data=appointments_to_csv(visible),
        file_name=build_export_filename(controller),
        mime="text/csv",
    )


def render_appointment_card(controller: AppController, appointment: Dict[str, Any]) -> None:
    """Render one appointment with its delete button"""
    with st.container(border=True):
        col1, col2, col3 = st.columns([5, 1, 1])

        with col1:
            st.markdown(f"**{appointment['title']}**")
            st.caption(
                f"🕐 {format_for_display(appointment['date'])} "
                f"({appointment['duration']} min)"
            )
        with col2:
            if appointment["public"]:
                st.markdown(f":blue[{LABELS['public_badge']}]")
            else:
                st.markdown(f":gray[{LABELS['private_badge']}]")
        with col3:
            if st.button(
                LABELS["delete_appointment"],
                key=f"delete_{appointment['id']}",
                help="Delete appointment",
            ):
                controller.delete_appointment(appointment["id"])
                st.rerun()


def build_export_filename(controller: AppController) -> str:
    if controller.view_mode == VIEW_MODE_DAY:
        period = controller.selected_date.strftime("%Y-%m-%d")
    else:
        period = controller.selected_date.strftime("%Y-%m")
    return f"appointments_{period}.csv"


# =============================================================================
# APPOINTMENT FORM
# =============================================================================


def render_appointment_form(controller: AppController) -> None:
    """Render the new-appointment form when it is open"""
    form_state = controller.form
    if form_state is None:
        return

    with st.container(border=True):
        st.subheader(LABELS["form_heading"])

        with st.form("new_appointment_form", clear_on_submit=False):
            title = st.text_input(
                LABELS["title"],
                value=form_state.title,
                placeholder=LABELS["title_placeholder"],
            )

            # Widgets start from the current draft
            draft_moment = form_state.draft_moment()
            col1, col2 = st.columns(2)
            with col1:
                picked_date = st.date_input(
                    LABELS["date"],
                    value=draft_moment.date() if draft_moment else None,
                )
            with col2:
                picked_time = st.time_input(
                    LABELS["time"],
                    value=draft_moment.time() if draft_moment else None,
                    step=300,
                )

            durations = get_allowed_durations()
            draft_duration = form_state.draft_duration()
            if draft_duration not in durations:
                draft_duration = DEFAULT_DURATION_MINUTES
            duration = st.selectbox(
                LABELS["duration"],
                options=durations,
                index=durations.index(draft_duration),
                format_func=lambda minutes: f"{minutes} min",
            )
            public = st.checkbox(LABELS["public"], value=bool(form_state.public))

            col_save, col_cancel = st.columns(2)
            with col_save:
                save = st.form_submit_button(LABELS["save_appointment"], type="primary")
            with col_cancel:
                cancel = st.form_submit_button(LABELS["cancel"])

    if cancel:
        controller.close_form()
        st.rerun()

    if save:
        handle_save_appointment(controller, title, picked_date, picked_time, duration, public)


def handle_save_appointment(controller, title, picked_date, picked_time, duration, public) -> None:
    """Copy widget values into the draft and submit it"""
    draft_date = ""
    if picked_date is not None and picked_time is not None:
        draft_date = datetime.combine(picked_date, picked_time).strftime("%Y-%m-%dT%H:%M")

    controller.form.update(title=title, date=draft_date, duration=duration, public=public)

    if controller.add_appointment():
        logger.info("Appointment submitted from form")
    st.rerun()


# =============================================================================
# NOTICES
# =============================================================================


def render_notice(controller: AppController) -> None:
    """Show the latest advisory notice once"""
    if controller.notice is None:
        return

    level, message = controller.notice
    if level == NOTICE_SUCCESS:
        st.success(message)
    else:
        st.error(f"⚠️ {message}")
    controller.dismiss_notice()


# =============================================================================
# MAIN APPLICATION FLOW
# =============================================================================


@st.fragment(run_every=UI_REFRESH_SECONDS)
def render_live_view() -> None:
    """Re-rendered on a timer so change notifications show up"""
    controller = get_controller()

    if controller.state == STATE_LOADING:
        st.info(f"⏳ {INFO_MESSAGES['loading']}")
        return

    if controller.state == STATE_ERROR:
        st.error(f"❌ {controller.error_message}")
        if st.button(LABELS["retry"], type="primary"):
            controller.reload()
            st.rerun()
        return

    render_notice(controller)

    col_calendar, col_list = st.columns([1, 2])
    with col_calendar:
        render_calendar(controller)
    with col_list:
        render_appointment_form(controller)
        render_appointments_list(controller)


def main() -> None:
    """
    Main application entry point with comprehensive error handling.
    """
    logger.info("Starting Appointment Scheduler")

    try:
        setup_streamlit_app()
        initialize_session_state()
        render_application_header()
        render_live_view()

    except Exception as e:
        logger.critical(f"Critical error in main application: {str(e)}")
        st.error("❌ Critical application error. Please check logs and restart.")

        if is_debug_mode():
            st.exception(e)

        st.stop()


# =============================================================================
# STREAMLIT ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    main()
