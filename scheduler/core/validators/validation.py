# scheduler/core/validators/validation.py
"""
Business Rules and Validation for Appointment Scheduling
Simple functions for validating appointment drafts and coercing field values
"""

from typing import Any, Dict, List, Tuple

from scheduler.utils.config import (
    ALLOWED_DURATIONS,
    ERROR_MESSAGES,
)
from scheduler.utils.date_utils import parse_timestamp
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

TRUTHY_VALUES = ("true", "1", "yes", "y", "on")


def validate_appointment_data(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate appointment draft data according to business rules.

    Args:
        data: Draft dictionary with title, date, duration and public

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    logger.info("Validating appointment data: %s", data)
    errors = []

    title = data.get("title")
    raw_date = data.get("date")

    # Check required fields
    if not has_text(title) or raw_date is None or not str(raw_date).strip():
        logger.warning("Missing required field: title=%r, date=%r", title, raw_date)
        errors.append(ERROR_MESSAGES["missing_required_field"])
        logger.info("Validation failed due to missing fields: %s", errors)
        return False, errors

    # Validate date format
    if parse_timestamp(raw_date) is None:
        logger.error("Invalid date format: %s", raw_date)
        errors.append(ERROR_MESSAGES["invalid_date"])

    # Validate duration against the form options
    if not is_allowed_duration(data.get("duration")):
        logger.warning("Duration not in allowed options: %s", data.get("duration"))
        errors.append(ERROR_MESSAGES["invalid_duration"])

    logger.info(
        "Appointment validation result: %s", "Valid" if len(errors) == 0 else errors
    )
    return len(errors) == 0, errors


def has_text(value: Any) -> bool:
    """Check that a value is a non-blank string."""
    return isinstance(value, str) and bool(value.strip())


def coerce_duration(value: Any) -> int:
    """
    Coerce a duration to whole minutes.

    Accepts ints, integral floats and numeric strings ("45", "45.0").

    Raises:
        ValueError: If the value is not a whole number
    """
    if isinstance(value, bool):
        raise ValueError(f"Duration is not a number: {value!r}")

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Duration is not a whole number: {value!r}")
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return coerce_duration(float(text))

    raise ValueError(f"Duration is not a number: {value!r}")


def is_allowed_duration(value: Any) -> bool:
    """Check that a duration is one of the form's options."""
    try:
        return coerce_duration(value) in ALLOWED_DURATIONS
    except ValueError:
        return False


def coerce_public_flag(value: Any) -> bool:
    """Read a visibility flag that may have been stored as text."""
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_VALUES
    return bool(value)
