# scheduler/core/event_export.py
"""
Tabular export of appointments for display and CSV download.
"""

from typing import Any, Dict, List

import pandas as pd

from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

EXPORT_COLUMNS = ["id", "title", "date", "duration", "public"]
EXPORT_HEADERS = {
    "id": "ID",
    "title": "Title",
    "date": "Date",
    "duration": "Duration (min)",
    "public": "Public",
}


def appointments_to_frame(appointments: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Convert appointments to a DataFrame, keeping their order.

    Args:
        appointments: Appointment dictionaries

    Returns:
        DataFrame with one row per appointment and display headers
    """
    df = pd.DataFrame(appointments, columns=EXPORT_COLUMNS)
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"])
        df["duration"] = df["duration"].astype(int)
        df["public"] = df["public"].astype(bool)
    return df.rename(columns=EXPORT_HEADERS)


def appointments_to_csv(appointments: List[Dict[str, Any]]) -> bytes:
    """
    Render appointments as UTF-8 CSV for download.
    """
    df = appointments_to_frame(appointments)
    df = df.copy()
    if not df.empty:
        df["Date"] = df["Date"].dt.strftime("%Y-%m-%d %H:%M")

    logger.info(f"Exporting {len(df)} appointments to CSV")
    return df.to_csv(index=False).encode("utf-8")
