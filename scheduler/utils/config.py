# scheduler/utils/config.py
"""
Simple configuration management for the Appointment Scheduler.
Keeps all settings in one place with environment variable support.
"""

import os
from typing import List, Dict, Any

# =============================================================================
# DOCUMENT SERVICE CONFIGURATION
# =============================================================================

# Which document service backs the store: "sheets" (Google Sheets) or "memory"
DOCUMENT_BACKEND = os.getenv("DOCUMENT_BACKEND", "sheets").lower()

# Database = spreadsheet name, collection = worksheet title
DATABASE_ID = os.getenv("DATABASE_ID", "appointment_scheduler")
COLLECTION_ID = os.getenv("COLLECTION_ID", "schedules")

# Column structure for appointment documents
APPOINTMENT_COLUMNS = ["id", "title", "date", "duration", "public"]

# Sheets has no push channel, so subscriptions poll the worksheet
SHEETS_POLL_INTERVAL_SECONDS = float(os.getenv("SHEETS_POLL_INTERVAL_SECONDS", "5"))

# =============================================================================
# GOOGLE CREDENTIALS CONFIGURATION
# =============================================================================

GOOGLE_CREDENTIALS_PATH = os.getenv(
    "GOOGLE_CREDENTIALS_PATH", "config/scheduler-credentials.json"
)

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Streamlit secrets section holding the service account
GOOGLE_SECRETS_KEY = os.getenv("GOOGLE_SECRETS_KEY", "gcp_service_account")

# =============================================================================
# BUSINESS RULES CONFIGURATION
# =============================================================================

# Duration options offered by the appointment form (minutes)
ALLOWED_DURATIONS = [15, 30, 45, 60, 90, 120]
DEFAULT_DURATION_MINUTES = int(os.getenv("DEFAULT_DURATION_MINUTES", "30"))

# First column of the calendar grid, Monday=0 ... Sunday=6
WEEK_START_DAY = int(os.getenv("WEEK_START_DAY", "6"))

# Fixed calendar shape: 6 weeks of 7 days
CALENDAR_GRID_CELLS = 42

# View modes
VIEW_MODE_MONTH = "month"
VIEW_MODE_DAY = "day"
VIEW_MODES = [VIEW_MODE_MONTH, VIEW_MODE_DAY]

# Shown instead of a date that cannot be parsed
NOT_AVAILABLE = "N/A"

# =============================================================================
# APPLICATION SETTINGS
# =============================================================================

# App metadata
APP_TITLE = os.getenv("APP_TITLE", "Appointments Scheduler")
APP_ICON = os.getenv("APP_ICON", "📋")

# Debug and logging
DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG_MODE else "INFO")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"

# How often the page picks up the latest snapshot
UI_REFRESH_SECONDS = float(os.getenv("UI_REFRESH_SECONDS", "3"))

# =============================================================================
# UI CONFIGURATION
# =============================================================================

# Streamlit page configuration
STREAMLIT_CONFIG = {
    "page_title": APP_TITLE,
    "page_icon": APP_ICON,
    "layout": "wide",
    "initial_sidebar_state": "collapsed",
}

# Button and label text
LABELS = {
    "select_date": "📅 Select Date",
    "view_mode": "View:",
    "view_month": "Month View",
    "view_day": "Day View",
    "new_appointment": "➕ New Appointment",
    "form_heading": "Add New Appointment",
    "title": "Event Title",
    "title_placeholder": "Patient Checkup",
    "date": "Date",
    "time": "Time",
    "duration": "Duration (minutes)",
    "public": "👥 Publicly Visible (Shareable)",
    "save_appointment": "Save Appointment",
    "cancel": "Cancel",
    "delete_appointment": "🗑️",
    "previous_month": "◀",
    "next_month": "▶",
    "retry": "🔄 Retry",
    "download_csv": "⬇️ Download CSV",
    "public_badge": "Public",
    "private_badge": "Private",
}

# Success messages
SUCCESS_MESSAGES = {
    "appointment_added": "✅ Appointment saved!",
    "appointment_deleted": "✅ Appointment deleted!",
}

# Error messages
ERROR_MESSAGES = {
    "missing_required_field": "Title and Date are required.",
    "invalid_date": "Date could not be understood. Use the date and time pickers.",
    "invalid_duration": f"Duration must be one of {ALLOWED_DURATIONS} minutes.",
    "service_not_ready": "Appointment service not ready. Cannot save data.",
    "load_failed": "Failed to load data: {detail}.",
    "add_failed": "Failed to add new event: {detail}.",
    "delete_failed": "Failed to delete event: {detail}.",
    "not_found": (
        "Resource Not Found. Double-check your DATABASE_ID ({database_id}) "
        "and COLLECTION_ID ({collection_id})."
    ),
    "no_form_open": "No appointment form is open.",
}

# Info messages
INFO_MESSAGES = {
    "loading": "Connecting to the appointment service...",
    "no_appointments": "No appointments scheduled for this {period}.",
    "list_heading_day": "Appointments for {label}",
    "list_heading_month": "Appointments in {label}",
}

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def get_streamlit_config() -> Dict[str, Any]:
    """Get Streamlit page configuration."""
    return STREAMLIT_CONFIG.copy()


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return DEBUG_MODE


def get_allowed_durations() -> List[int]:
    """Get the duration options offered by the form."""
    return ALLOWED_DURATIONS.copy()


def collection_channel(database_id: str, collection_id: str) -> str:
    """Change-notification channel for a collection's documents."""
    return f"databases.{database_id}.collections.{collection_id}.documents"


def validate_environment() -> bool:
    """
    Validate that required environment settings are available.

    Returns:
        True if environment is valid, False otherwise
    """
    if DOCUMENT_BACKEND not in ("sheets", "memory"):
        print(f"ERROR: Unknown DOCUMENT_BACKEND '{DOCUMENT_BACKEND}'")
        return False

    if DOCUMENT_BACKEND == "sheets" and not os.path.exists(GOOGLE_CREDENTIALS_PATH):
        print(
            f"WARNING: Google credentials file not found at {GOOGLE_CREDENTIALS_PATH}"
        )

    if DEFAULT_DURATION_MINUTES not in ALLOWED_DURATIONS:
        print("ERROR: DEFAULT_DURATION_MINUTES must be one of the allowed durations")
        return False

    if WEEK_START_DAY not in range(7):
        print("ERROR: WEEK_START_DAY must be between 0 (Monday) and 6 (Sunday)")
        return False

    return True
