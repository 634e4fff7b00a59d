# scheduler/infrastructure/sheets/sheets_ops.py
"""
Google Sheets document service for the Appointment Scheduler.

Maps the document contract onto a spreadsheet: the spreadsheet named
DATABASE_ID is the database, each worksheet is a collection, row 1 holds the
APPOINTMENT_COLUMNS headers and each following row is one document.

Sheets has no push channel, so each subscribed collection gets one polling
thread that fingerprints the worksheet and fans a change event out to every
listener of that collection. The thread stops when the last listener leaves.
Local mutations wake the poller immediately.

Writes from this process are serialized, and a delete re-checks the row it
is about to remove, since another client may have shifted rows since the read.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

import gspread

from scheduler.core.errors import NotFound, RemoteUnavailable, SchedulerError
from scheduler.core.validators.validation import coerce_public_flag
from scheduler.infrastructure.auth.google_auth import (
    AuthenticationError,
    create_authenticated_client,
)
from scheduler.utils.config import (
    APPOINTMENT_COLUMNS,
    DATABASE_ID,
    SHEETS_POLL_INTERVAL_SECONDS,
)
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

EventListener = Callable[[Dict[str, Any]], None]

DELETE_LOCATE_ATTEMPTS = 3


def parse_channel(channel: str) -> str:
    """
    Extract the collection id from databases.<db>.collections.<id>.documents.

    Raises:
        ValueError: If the channel does not name a collection
    """
    parts = channel.split(".")
    if len(parts) != 5 or parts[0] != "databases" or parts[2] != "collections":
        raise ValueError(f"Unsupported channel: {channel}")
    return parts[3]


class SheetsDocumentService:
    """
    Google Sheets client implementing the document contract.
    """

    def __init__(
        self,
        database_id: str = DATABASE_ID,
        client: Optional[gspread.Client] = None,
        poll_interval: float = SHEETS_POLL_INTERVAL_SECONDS,
    ):
        self.database_id = database_id
        self.client = client
        self.poll_interval = poll_interval
        self.spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: Dict[str, gspread.Worksheet] = {}
        # One poller per collection, shared by all of its listeners
        self._pollers: Dict[str, "SheetsChangePoller"] = {}
        self._listeners: Dict[str, List[EventListener]] = {}
        # Reentrant: a collected subscription may unsubscribe while the lock is held
        self._pollers_lock = threading.RLock()
        self._write_lock = threading.Lock()

    def _connect(self) -> gspread.Spreadsheet:
        """
        Open the spreadsheet, connecting lazily on first use.

        Raises:
            RemoteUnavailable: If credentials or the connection fail
            NotFound: If the spreadsheet does not exist
        """
        if self.spreadsheet is not None:
            return self.spreadsheet

        try:
            logger.info("Connecting to Google Sheets API...")

            if self.client is None:
                self.client = create_authenticated_client()

            self.spreadsheet = self.client.open(self.database_id)
            logger.info(f"Successfully opened spreadsheet '{self.database_id}'")
            return self.spreadsheet

        except AuthenticationError as e:
            error_msg = f"Credentials Error: {str(e)}"
            logger.error(error_msg)
            raise RemoteUnavailable(error_msg) from e

        except gspread.exceptions.SpreadsheetNotFound as e:
            error_msg = f"Spreadsheet not found: {self.database_id}"
            logger.error(error_msg)
            raise NotFound(error_msg) from e

        except Exception as e:
            error_msg = f"Failed to connect to Google Sheets: {str(e)}"
            logger.error(error_msg)
            raise RemoteUnavailable(error_msg) from e

    def _worksheet(self, collection_id: str) -> gspread.Worksheet:
        if collection_id in self._worksheets:
            return self._worksheets[collection_id]

        spreadsheet = self._connect()
        worksheet = self._call(
            spreadsheet.worksheet, collection_id, context=f"open {collection_id}"
        )
        self._worksheets[collection_id] = worksheet
        return worksheet

    def _call(self, operation, *args, context: str = "", **kwargs):
        """
        Run a Sheets API call, translating failures into scheduler errors.

        Failures are not retried.
        """
        try:
            return operation(*args, **kwargs)

        except gspread.exceptions.WorksheetNotFound as e:
            error_msg = f"Worksheet not found in '{self.database_id}': {str(e)}"
            logger.error(error_msg)
            raise NotFound(error_msg) from e

        except gspread.exceptions.APIError as e:
            error_msg = f"Google Sheets API error during {context}: {str(e)}"
            logger.error(error_msg)
            raise RemoteUnavailable(error_msg) from e

        except SchedulerError:
            raise

        except Exception as e:
            error_msg = f"Google Sheets operation failed during {context}: {str(e)}"
            logger.error(error_msg)
            raise RemoteUnavailable(error_msg) from e

    def read_rows(self, collection_id: str) -> List[List[str]]:
        """
        Read all rows of a collection's worksheet, header included.
        """
        worksheet = self._worksheet(collection_id)
        return self._call(worksheet.get_all_values, context=f"read {collection_id}")

    def ensure_collection_initialized(self, collection_id: str) -> None:
        """
        Write the header row if the worksheet does not have it yet.
        """
        rows = self.read_rows(collection_id)
        if rows and rows[0][: len(APPOINTMENT_COLUMNS)] == APPOINTMENT_COLUMNS:
            return

        if rows and any(cell.strip() for cell in rows[0]):
            raise RemoteUnavailable(
                f"Worksheet '{collection_id}' has unexpected headers: {rows[0]}"
            )

        logger.info(f"Initializing worksheet '{collection_id}' with headers...")
        worksheet = self._worksheet(collection_id)
        self._call(
            worksheet.update,
            range_name="A1",
            values=[APPOINTMENT_COLUMNS],
            context=f"initialize {collection_id}",
        )

    # =========================================================================
    # DOCUMENT CONTRACT
    # =========================================================================

    def list_documents(
        self, collection_id: str, order_by: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Load every document of a collection.

        Args:
            collection_id: Worksheet title
            order_by: Optional field to sort by

        Returns:
            List of document dictionaries (id plus payload fields)
        """
        logger.info(f"Loading documents from '{collection_id}'")

        rows = self.read_rows(collection_id)
        if not rows or len(rows) < 2:  # No data beyond headers
            logger.info("No documents found")
            return []

        headers = rows[0]
        documents = []

        for row in rows[1:]:
            if not any(cell.strip() for cell in row):
                continue
            # Pad row with empty strings if necessary
            padded_row = row + [""] * (len(headers) - len(row))
            document = dict(zip(headers, padded_row))
            if "public" in document:
                document["public"] = coerce_public_flag(document["public"])
            documents.append(document)

        if order_by:
            documents.sort(key=lambda doc: str(doc.get(order_by, "")))

        logger.info(f"Loaded {len(documents)} documents from '{collection_id}'")
        return documents

    def create_document(
        self, collection_id: str, document_id: str, payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Append a document as a new row.

        Returns:
            The stored document
        """
        logger.info(f"Creating document {document_id} in '{collection_id}'")

        document = {"id": document_id, **payload}

        row = []
        for column in APPOINTMENT_COLUMNS:
            value = document.get(column, "")
            if isinstance(value, bool):
                value = "TRUE" if value else "FALSE"
            row.append(str(value))

        worksheet = self._worksheet(collection_id)
        with self._write_lock:
            self.ensure_collection_initialized(collection_id)
            self._call(
                worksheet.append_row,
                row,
                value_input_option="RAW",
                context=f"append to {collection_id}",
            )

        logger.info(f"Successfully created document {document_id}")
        self._notify(collection_id)
        return document

    def delete_document(self, collection_id: str, document_id: str) -> None:
        """
        Remove the row holding a document.

        Raises:
            NotFound: If no row has this id
        """
        logger.info(f"Deleting document {document_id} from '{collection_id}'")

        worksheet = self._worksheet(collection_id)

        with self._write_lock:
            for _ in range(DELETE_LOCATE_ATTEMPTS):
                row_number = self._locate_row(collection_id, document_id)
                if row_number is None:
                    logger.warning(f"Document {document_id} not found for deletion")
                    raise NotFound(
                        f"Document '{document_id}' not found in '{collection_id}'"
                    )

                # Rows may have shifted since the read
                current = self._call(
                    worksheet.row_values, row_number, context=f"verify {collection_id}"
                )
                if current and current[0] == document_id:
                    self._call(
                        worksheet.delete_rows,
                        row_number,
                        context=f"delete from {collection_id}",
                    )
                    break

                logger.warning(
                    f"Row {row_number} no longer holds {document_id}, locating again"
                )
            else:
                raise RemoteUnavailable(
                    f"Worksheet '{collection_id}' kept changing while deleting {document_id}"
                )

        logger.info(f"Successfully deleted document {document_id}")
        self._notify(collection_id)

    def _locate_row(self, collection_id: str, document_id: str) -> Optional[int]:
        rows = self.read_rows(collection_id)
        for index, row in enumerate(rows[1:], start=2):  # Sheet rows are 1-based
            if row and row[0] == document_id:
                return index
        return None

    def subscribe(self, channel: str, on_event: EventListener) -> Callable[[], None]:
        """
        Watch a collection for changes.

        Returns:
            Idempotent unsubscribe function
        """
        collection_id = parse_channel(channel)

        with self._pollers_lock:
            listeners = self._listeners.setdefault(collection_id, [])
            listeners.append(on_event)

            if collection_id not in self._pollers:
                poller = SheetsChangePoller(
                    self,
                    collection_id,
                    channel,
                    lambda event: self._dispatch(collection_id, event),
                    self.poll_interval,
                )
                poller.prime()
                self._pollers[collection_id] = poller
                poller.start()
                logger.info(
                    f"Started polling {channel} every {self.poll_interval}s"
                )

        logger.info(f"Subscribed to {channel} ({len(listeners)} listeners)")
        subscribed = [True]

        def unsubscribe() -> None:
            with self._pollers_lock:
                if not subscribed[0]:
                    return
                subscribed[0] = False
                if on_event in listeners:
                    listeners.remove(on_event)
                logger.info(f"Listener unsubscribed from {channel}")
                if listeners or self._listeners.get(collection_id) is not listeners:
                    return
                poller = self._pollers.pop(collection_id, None)
                self._listeners.pop(collection_id, None)
            if poller is not None:
                poller.stop()

        return unsubscribe

    def listener_count(self, collection_id: str) -> int:
        with self._pollers_lock:
            return len(self._listeners.get(collection_id, []))

    def _dispatch(self, collection_id: str, event: Dict[str, Any]) -> None:
        with self._pollers_lock:
            listeners = list(self._listeners.get(collection_id, []))

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Change listener for {collection_id} failed: {str(e)}")

    def _notify(self, collection_id: str) -> None:
        with self._pollers_lock:
            poller = self._pollers.get(collection_id)
        if poller is not None:
            poller.wake()

    def close(self) -> None:
        """Stop every polling thread."""
        with self._pollers_lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
            self._listeners.clear()
        for poller in pollers:
            poller.stop()


class SheetsChangePoller(threading.Thread):
    """
    Background thread that turns worksheet changes into change events.
    """

    def __init__(
        self,
        service: SheetsDocumentService,
        collection_id: str,
        channel: str,
        on_event: EventListener,
        interval: float,
    ):
        super().__init__(name=f"sheets-poller-{collection_id}", daemon=True)
        self.service = service
        self.collection_id = collection_id
        self.channel = channel
        self.on_event = on_event
        self.interval = interval
        self._fingerprint: Optional[int] = None
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()

    def _read_fingerprint(self) -> Optional[int]:
        try:
            rows = self.service.read_rows(self.collection_id)
        except SchedulerError as e:
            logger.warning(f"Polling {self.collection_id} failed: {str(e)}")
            return None
        return hash(tuple(tuple(row) for row in rows))

    def prime(self) -> None:
        """Record the current worksheet state as the baseline."""
        self._fingerprint = self._read_fingerprint()

    def poll_once(self) -> bool:
        """
        Compare the worksheet against the last fingerprint.

        Returns:
            True if a change event was emitted
        """
        fingerprint = self._read_fingerprint()
        if fingerprint is None or fingerprint == self._fingerprint:
            return False

        self._fingerprint = fingerprint
        if self._stop_event.is_set():
            return False

        logger.debug(f"Change detected in {self.collection_id}")
        self.on_event(
            {"channel": self.channel, "events": [f"{self.channel}.*.update"]}
        )
        return True

    def run(self) -> None:
        while not self._stop_event.is_set():
            self._wake_event.wait(self.interval)
            self._wake_event.clear()
            if self._stop_event.is_set():
                break
            try:
                self.poll_once()
            except Exception as e:
                # Keep watching after a listener failure
                logger.error(f"Change listener for {self.channel} failed: {str(e)}")

    def wake(self) -> None:
        self._wake_event.set()

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._wake_event.set()
        logger.info(f"Stopped polling {self.channel}")

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
