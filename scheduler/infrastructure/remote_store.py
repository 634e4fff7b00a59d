# scheduler/infrastructure/remote_store.py
"""
Appointment store on top of a document service.

The document service is the single source of truth. The store never patches
local state: every change notification triggers a full list, and listeners
receive the whole sorted collection each time.

Document service contract (duck-typed, see MemoryDocumentService and
SheetsDocumentService):
    list_documents(collection_id, order_by) -> List[Dict]
    create_document(collection_id, document_id, payload) -> Dict
    delete_document(collection_id, document_id) -> None
    subscribe(channel, on_event) -> Callable[[], None]
"""

import uuid
import weakref
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from scheduler.core.errors import InvalidDate, NotFound, ValidationError
from scheduler.core.validators.validation import (
    coerce_duration,
    coerce_public_flag,
    has_text,
)
from scheduler.utils.config import (
    COLLECTION_ID,
    DATABASE_ID,
    DEFAULT_DURATION_MINUTES,
    ERROR_MESSAGES,
    collection_channel,
)
from scheduler.utils.date_utils import from_iso_timestamp, to_iso_timestamp
from scheduler.utils.logging_config import get_logger, log_error_with_context

# Initialize logger
logger = get_logger(__name__)

ChangeListener = Callable[[List[Dict[str, Any]]], None]
ErrorListener = Callable[[Exception], None]


# =============================================================================
# RECORD CODEC
# =============================================================================


def generate_appointment_id() -> str:
    """Generate unique appointment ID"""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    unique_part = uuid.uuid4().hex[:8].upper()
    appointment_id = f"APT_{timestamp}_{unique_part}"
    logger.debug(f"Generated appointment ID: {appointment_id}")
    return appointment_id


def to_record(appointment: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the wire record for an appointment.

    Raises:
        InvalidDate: If the date cannot be parsed
        ValidationError: If the duration is not a whole number
    """
    try:
        duration = coerce_duration(appointment.get("duration", DEFAULT_DURATION_MINUTES))
    except ValueError as e:
        raise ValidationError([str(e)]) from e

    return {
        "title": appointment["title"].strip(),
        "date": to_iso_timestamp(appointment["date"]),
        "duration": duration,
        "public": bool(appointment.get("public", False)),
    }


def from_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a stored document back to an appointment.

    Raises:
        InvalidDate: If the stored date cannot be parsed
    """
    try:
        duration = coerce_duration(document.get("duration"))
    except ValueError:
        logger.warning(
            f"Invalid duration {document.get('duration')!r} on {document.get('id')}, "
            f"using {DEFAULT_DURATION_MINUTES}"
        )
        duration = DEFAULT_DURATION_MINUTES

    return {
        "id": document["id"],
        "title": document.get("title", ""),
        "date": from_iso_timestamp(document.get("date")),
        "duration": duration,
        "public": coerce_public_flag(document.get("public", False)),
    }


def build_snapshot(documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Turn listed documents into the sorted, de-duplicated appointment list.
    """
    appointments = []
    seen_ids = set()

    for document in documents:
        document_id = document.get("id")
        if not document_id:
            logger.warning(f"Skipping document without id: {document}")
            continue
        if document_id in seen_ids:
            logger.warning(f"Skipping duplicate document id: {document_id}")
            continue
        try:
            appointment = from_document(document)
        except InvalidDate as e:
            logger.warning(f"Skipping document {document_id}: {str(e)}")
            continue
        seen_ids.add(document_id)
        appointments.append(appointment)

    appointments.sort(key=lambda appointment: appointment["date"])
    return appointments


# =============================================================================
# SUBSCRIPTION HANDLE
# =============================================================================


class Subscription:
    """
    Handle returned by subscribe_to_changes().

    Calling it (or unsubscribe()) stops further notifications. Results of
    refetches that complete afterwards are dropped.

    The service listener is also detached when the handle is garbage
    collected, so an abandoned UI session does not keep its listener.
    """

    def __init__(self, on_change: ChangeListener, on_error: ErrorListener):
        self._on_change = on_change
        self._on_error = on_error
        self._finalizer: Optional[weakref.finalize] = None
        self.active = True

    def attach(self, detach: Callable[[], None]) -> None:
        """Register the service unsubscribe; detach must not reference this handle."""
        if not self.active:
            detach()
            return
        self._finalizer = weakref.finalize(self, detach)

    def deliver(self, appointments: List[Dict[str, Any]]) -> bool:
        if not self.active:
            logger.debug("Dropping snapshot for inactive subscription")
            return False
        self._on_change(appointments)
        return True

    def fail(self, error: Exception) -> bool:
        if not self.active:
            logger.debug(f"Dropping error for inactive subscription: {error}")
            return False
        self._on_error(error)
        return True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._finalizer is not None:
            self._finalizer()
        logger.info("Subscription closed")

    def __call__(self) -> None:
        self.unsubscribe()


# =============================================================================
# STORE
# =============================================================================


class RemoteStore:
    """
    Appointment operations against one collection of a document service.
    """

    def __init__(
        self,
        service,
        database_id: str = DATABASE_ID,
        collection_id: str = COLLECTION_ID,
    ):
        self.service = service
        self.database_id = database_id
        self.collection_id = collection_id
        self.channel = collection_channel(database_id, collection_id)

    def _not_found_message(self) -> str:
        return ERROR_MESSAGES["not_found"].format(
            database_id=self.database_id, collection_id=self.collection_id
        )

    def list_appointments(self) -> List[Dict[str, Any]]:
        """
        Load the full collection, ascending by date.

        Raises:
            RemoteUnavailable: If the service is unreachable or not configured
            NotFound: If the collection does not exist
        """
        logger.info(f"Listing appointments from {self.collection_id}")

        try:
            documents = self.service.list_documents(self.collection_id, "date")
        except NotFound as e:
            log_error_with_context(logger, e, "Listing appointments")
            raise NotFound(f"{self._not_found_message()} ({str(e)})") from e
        except Exception as e:
            log_error_with_context(logger, e, "Listing appointments")
            raise

        appointments = build_snapshot(documents)
        logger.info(f"Loaded {len(appointments)} appointments")
        return appointments

    def subscribe_to_changes(
        self, on_change: ChangeListener, on_error: ErrorListener
    ) -> Subscription:
        """
        Prime listeners with the current list and refetch on every change.

        on_error is called once per failed list; nothing is retried. When the
        priming list fails, no change listener is attached and the returned
        handle is already inactive.

        Returns:
            Subscription handle; calling it unsubscribes (idempotent)
        """
        subscription = Subscription(on_change, on_error)

        if not self._refresh(subscription):
            subscription.unsubscribe()
            return subscription

        # The service must not keep the handle alive
        subscription_ref = weakref.ref(subscription)

        def on_event(event: Dict[str, Any]) -> None:
            current = subscription_ref()
            if current is None:
                return
            logger.info(f"Change event received on {self.channel}. Refetching data.")
            self._refresh(current)

        subscription.attach(self.service.subscribe(self.channel, on_event))
        return subscription

    def _refresh(self, subscription: Subscription) -> bool:
        if not subscription.active:
            return False
        try:
            appointments = self.list_appointments()
        except Exception as e:
            subscription.fail(e)
            return False
        return subscription.deliver(appointments)

    def create_appointment(self, appointment: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an appointment; the assigned id comes back on the result.

        Raises:
            ValidationError: If title or date are missing (no service call made)
            InvalidDate: If the date cannot be parsed
        """
        logger.info(f"Creating appointment: {appointment.get('title')!r}")

        if not has_text(appointment.get("title")) or appointment.get("date") in (None, ""):
            logger.warning("Create rejected - missing title or date")
            raise ValidationError([ERROR_MESSAGES["missing_required_field"]])

        record = to_record(appointment)
        document = self.service.create_document(
            self.collection_id, generate_appointment_id(), record
        )

        created = from_document(document)
        logger.info(f"Created appointment {created['id']}")
        return created

    def delete_appointment(self, appointment_id: str) -> None:
        """
        Delete an appointment. Listeners learn about it through the subscription.

        Raises:
            NotFound: If the id does not exist remotely
        """
        logger.info(f"Deleting appointment {appointment_id}")

        try:
            self.service.delete_document(self.collection_id, appointment_id)
        except Exception as e:
            log_error_with_context(logger, e, f"Deleting appointment {appointment_id}")
            raise

        logger.info(f"Deleted appointment {appointment_id}")
