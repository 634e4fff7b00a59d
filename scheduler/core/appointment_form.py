# scheduler/core/appointment_form.py
"""
Draft state for the "new appointment" form.

Holds pending user input and validates it before anything is sent to the
store. Duration options are enforced here, not by the store.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from scheduler.core.errors import ValidationError
from scheduler.core.validators.validation import (
    coerce_duration,
    validate_appointment_data,
)
from scheduler.utils.config import DEFAULT_DURATION_MINUTES
from scheduler.utils.date_utils import parse_timestamp
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

FORM_FIELDS = ("title", "date", "duration", "public")


class AppointmentFormState:
    """
    Pending input for a new appointment.
    """

    def __init__(self, **fields: Any):
        self.title = ""
        self.date: Any = ""
        self.duration: Any = DEFAULT_DURATION_MINUTES
        self.public = False
        self._validated = False
        if fields:
            self.update(**fields)

    def update(self, **fields: Any) -> None:
        """
        Change draft fields. Any earlier successful validation is discarded.

        Raises:
            KeyError: If an unknown field name is given
        """
        for name, value in fields.items():
            if name not in FORM_FIELDS:
                raise KeyError(f"Unknown form field: {name}")
            if name == "duration" and value is None:
                value = DEFAULT_DURATION_MINUTES
            setattr(self, name, value)
        self._validated = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "date": self.date,
            "duration": self.duration,
            "public": self.public,
        }

    def validate(self) -> None:
        """
        Check the draft.

        Raises:
            ValidationError: With the list of problems found
        """
        is_valid, errors = validate_appointment_data(self.as_dict())
        if not is_valid:
            self._validated = False
            raise ValidationError(errors)
        self._validated = True

    @property
    def is_validated(self) -> bool:
        return self._validated

    def draft_moment(self) -> Optional[datetime]:
        """Date and time currently entered, or None if unset or unparseable."""
        return parse_timestamp(self.date)

    def draft_duration(self) -> int:
        """Duration currently entered, falling back to the default."""
        try:
            return coerce_duration(self.duration)
        except ValueError:
            return DEFAULT_DURATION_MINUTES

    def to_appointment(self) -> Dict[str, Any]:
        """
        Build the appointment to create (no id yet).

        Raises:
            ValidationError: If the current draft has not passed validate()
        """
        if not self._validated:
            raise ValidationError(message="Form must be validated before submission")

        appointment = {
            "title": self.title.strip(),
            "date": parse_timestamp(self.date),
            "duration": coerce_duration(self.duration),
            "public": bool(self.public),
        }
        logger.debug(f"Built appointment from form: {appointment}")
        return appointment

    def reset(self) -> None:
        self.title = ""
        self.date = ""
        self.duration = DEFAULT_DURATION_MINUTES
        self.public = False
        self._validated = False

    def __repr__(self) -> str:
        return f"AppointmentFormState({self.as_dict()!r}, validated={self._validated})"
