"""
Tests for the Google Sheets document service using fake gspread objects.
"""

import threading
from datetime import datetime

import pytest

from scheduler.core.app_controller import STATE_READY, AppController
from scheduler.core.errors import NotFound, RemoteUnavailable
from scheduler.infrastructure.auth.google_auth import AuthenticationError
from scheduler.infrastructure.remote_store import RemoteStore
from scheduler.infrastructure.sheets import sheets_ops
from scheduler.infrastructure.sheets.sheets_ops import (
    SheetsChangePoller,
    SheetsDocumentService,
    parse_channel,
)
from scheduler.utils.config import APPOINTMENT_COLUMNS
from tests.conftest import (
    TEST_COLLECTION_ID,
    TEST_DATABASE_ID,
    FakeClient,
    FakeSpreadsheet,
    FakeWorksheet,
)

CHANNEL = f"databases.{TEST_DATABASE_ID}.collections.{TEST_COLLECTION_ID}.documents"


@pytest.fixture
def sheets_service(fake_client):
    service = SheetsDocumentService(TEST_DATABASE_ID, client=fake_client, poll_interval=60)
    yield service
    service.close()


def _seed_rows(worksheet):
    worksheet.rows = [
        list(APPOINTMENT_COLUMNS),
        ["B", "B", "2024-03-05T14:00:00.000Z", "30", "TRUE"],
        ["", "", "", "", ""],
        ["A", "A", "2024-03-05T10:00:00.000Z", "60"],
    ]


def test_parse_channel():
    assert parse_channel(CHANNEL) == TEST_COLLECTION_ID
    with pytest.raises(ValueError):
        parse_channel("databases.db.documents")


def test_list_documents_maps_rows(sheets_service, fake_worksheet):
    _seed_rows(fake_worksheet)

    documents = sheets_service.list_documents(TEST_COLLECTION_ID, "date")

    assert [document["id"] for document in documents] == ["A", "B"]
    assert documents[0]["public"] is False
    assert documents[0]["duration"] == "60"
    assert documents[1]["public"] is True


def test_list_documents_empty_sheet(sheets_service):
    assert sheets_service.list_documents(TEST_COLLECTION_ID) == []


def test_create_document_initializes_headers(sheets_service, fake_worksheet):
    document = sheets_service.create_document(
        TEST_COLLECTION_ID,
        "APT_1",
        {"title": "Checkup", "date": "2024-03-05T10:00:00.000Z", "duration": 30, "public": True},
    )

    assert document["id"] == "APT_1"
    assert fake_worksheet.rows[0] == APPOINTMENT_COLUMNS
    assert fake_worksheet.rows[1] == ["APT_1", "Checkup", "2024-03-05T10:00:00.000Z", "30", "TRUE"]
    assert fake_worksheet.append_options == ["RAW"]


def test_create_document_rejects_foreign_headers(sheets_service, fake_worksheet):
    fake_worksheet.rows = [["Name", "Phone"]]
    with pytest.raises(RemoteUnavailable):
        sheets_service.create_document(TEST_COLLECTION_ID, "APT_1", {"title": "x"})


def test_delete_document(sheets_service, fake_worksheet):
    _seed_rows(fake_worksheet)

    sheets_service.delete_document(TEST_COLLECTION_ID, "A")

    assert [row[0] for row in fake_worksheet.rows] == ["id", "B", ""]


def test_delete_missing_document(sheets_service, fake_worksheet):
    _seed_rows(fake_worksheet)
    with pytest.raises(NotFound):
        sheets_service.delete_document(TEST_COLLECTION_ID, "missing")


def test_missing_spreadsheet_is_not_found():
    service = SheetsDocumentService("other_database", client=FakeClient({}))
    with pytest.raises(NotFound):
        service.list_documents(TEST_COLLECTION_ID)


def test_missing_worksheet_is_not_found(sheets_service):
    with pytest.raises(NotFound):
        sheets_service.list_documents("missing_collection")


def test_credentials_failure_is_remote_unavailable(monkeypatch):
    def no_credentials():
        raise AuthenticationError("no credentials configured")

    monkeypatch.setattr(sheets_ops, "create_authenticated_client", no_credentials)
    service = SheetsDocumentService(TEST_DATABASE_ID)

    with pytest.raises(RemoteUnavailable):
        service.list_documents(TEST_COLLECTION_ID)


def test_api_failure_is_remote_unavailable(sheets_service, fake_worksheet):
    fake_worksheet.fail_with = RuntimeError("quota exceeded")
    with pytest.raises(RemoteUnavailable):
        sheets_service.list_documents(TEST_COLLECTION_ID)


def test_store_round_trip_over_sheets(sheets_service):
    store = RemoteStore(sheets_service, TEST_DATABASE_ID, TEST_COLLECTION_ID)
    created = store.create_appointment(
        {"title": "Checkup", "date": datetime(2024, 3, 5, 10, 0), "duration": 45, "public": True}
    )

    appointments = store.list_appointments()

    assert len(appointments) == 1
    assert appointments[0]["id"] == created["id"]
    assert appointments[0]["date"] == datetime(2024, 3, 5, 10, 0)
    assert appointments[0]["duration"] == 45
    assert appointments[0]["public"] is True


# =============================================================================
# CHANGE POLLING
# =============================================================================


def test_poller_emits_on_change_only(sheets_service, fake_worksheet):
    _seed_rows(fake_worksheet)
    events = []
    poller = SheetsChangePoller(
        sheets_service, TEST_COLLECTION_ID, CHANNEL, events.append, interval=60
    )
    poller.prime()

    assert not poller.poll_once()

    fake_worksheet.rows.append(["C", "C", "2024-04-01T09:00:00.000Z", "30", "FALSE"])
    assert poller.poll_once()
    assert events == [{"channel": CHANNEL, "events": [f"{CHANNEL}.*.update"]}]

    assert not poller.poll_once()


def test_poller_skips_failed_reads(sheets_service, fake_worksheet):
    events = []
    poller = SheetsChangePoller(
        sheets_service, TEST_COLLECTION_ID, CHANNEL, events.append, interval=60
    )
    poller.prime()

    fake_worksheet.fail_with = RuntimeError("timeout")
    assert not poller.poll_once()
    assert events == []


def test_stopped_poller_emits_nothing(sheets_service, fake_worksheet):
    events = []
    poller = SheetsChangePoller(
        sheets_service, TEST_COLLECTION_ID, CHANNEL, events.append, interval=60
    )
    poller.prime()
    poller.stop()
    poller.stop()

    fake_worksheet.rows.append(list(APPOINTMENT_COLUMNS))
    assert poller.stopped
    assert not poller.poll_once()
    assert events == []


def test_subscribe_wakes_on_local_write(fake_worksheet, fake_client):
    service = SheetsDocumentService(TEST_DATABASE_ID, client=fake_client, poll_interval=30)
    changed = threading.Event()

    unsubscribe = service.subscribe(CHANNEL, lambda event: changed.set())
    try:
        service.create_document(
            TEST_COLLECTION_ID,
            "APT_1",
            {"title": "Checkup", "date": "2024-03-05T10:00:00.000Z", "duration": 30},
        )
        assert changed.wait(timeout=5)
    finally:
        unsubscribe()
        unsubscribe()
        service.close()

    assert service._pollers == {}
    assert service.listener_count(TEST_COLLECTION_ID) == 0


def test_close_stops_pollers(fake_client):
    service = SheetsDocumentService(TEST_DATABASE_ID, client=fake_client, poll_interval=30)
    service.subscribe(CHANNEL, lambda event: None)
    poller = service._pollers[TEST_COLLECTION_ID]

    service.close()
    poller.join(timeout=5)

    assert poller.stopped
    assert not poller.is_alive()


def test_worksheet_lookup_is_cached(fake_worksheet):
    calls = []

    class CountingSpreadsheet(FakeSpreadsheet):
        def worksheet(self, title):
            calls.append(title)
            return super().worksheet(title)

    client = FakeClient({TEST_DATABASE_ID: CountingSpreadsheet({TEST_COLLECTION_ID: fake_worksheet})})
    service = SheetsDocumentService(TEST_DATABASE_ID, client=client)

    service.list_documents(TEST_COLLECTION_ID)
    service.list_documents(TEST_COLLECTION_ID)

    assert calls == [TEST_COLLECTION_ID]
    assert isinstance(service._worksheet(TEST_COLLECTION_ID), FakeWorksheet)


# =============================================================================
# CONCURRENT CHANGES
# =============================================================================


class ShiftingWorksheet(FakeWorksheet):
    """Applies another client's edit right after each read."""

    def __init__(self, title, rows, edit, times=1):
        super().__init__(title, rows)
        self.edit = edit
        self.times = times

    def get_all_values(self):
        values = super().get_all_values()
        if self.times > 0:
            self.times -= 1
            self.edit(self.rows)
        return values


def _service_for(worksheet):
    client = FakeClient({TEST_DATABASE_ID: FakeSpreadsheet({TEST_COLLECTION_ID: worksheet})})
    return SheetsDocumentService(TEST_DATABASE_ID, client=client)


def _rows(*ids):
    return [list(APPOINTMENT_COLUMNS)] + [
        [doc_id, doc_id, "2024-03-05T10:00:00.000Z", "30", "FALSE"] for doc_id in ids
    ]


def test_delete_relocates_row_after_rows_shift():
    worksheet = ShiftingWorksheet(
        TEST_COLLECTION_ID, _rows("A", "B", "C"), edit=lambda rows: rows.pop(1)
    )

    _service_for(worksheet).delete_document(TEST_COLLECTION_ID, "B")

    assert [row[0] for row in worksheet.rows] == ["id", "C"]


def test_delete_of_row_removed_elsewhere_is_not_found():
    worksheet = ShiftingWorksheet(
        TEST_COLLECTION_ID, _rows("A", "B", "C"), edit=lambda rows: rows.pop(2)
    )

    with pytest.raises(NotFound):
        _service_for(worksheet).delete_document(TEST_COLLECTION_ID, "B")

    assert [row[0] for row in worksheet.rows] == ["id", "A", "C"]


def test_delete_gives_up_when_rows_keep_moving():
    worksheet = ShiftingWorksheet(
        TEST_COLLECTION_ID,
        _rows("A", "B"),
        edit=lambda rows: rows.insert(1, ["X", "X", "", "", ""]),
        times=10,
    )

    with pytest.raises(RemoteUnavailable):
        _service_for(worksheet).delete_document(TEST_COLLECTION_ID, "B")

    assert "B" in [row[0] for row in worksheet.rows]


# =============================================================================
# SHARED POLLER
# =============================================================================


def _live_pollers():
    return [
        thread
        for thread in threading.enumerate()
        if isinstance(thread, SheetsChangePoller) and not thread.stopped
    ]


def test_subscribers_share_one_poller(sheets_service, fake_worksheet):
    received = [[] for _ in range(10)]
    unsubscribes = [sheets_service.subscribe(CHANNEL, events.append) for events in received]

    assert len(_live_pollers()) == 1
    assert sheets_service.listener_count(TEST_COLLECTION_ID) == 10

    poller = sheets_service._pollers[TEST_COLLECTION_ID]
    fake_worksheet.rows.append(list(APPOINTMENT_COLUMNS))
    assert poller.poll_once()
    assert all(len(events) == 1 for events in received)

    for unsubscribe in unsubscribes:
        unsubscribe()
    poller.join(timeout=5)

    assert poller.stopped
    assert not poller.is_alive()
    assert sheets_service._pollers == {}


def test_failing_listener_does_not_block_others(sheets_service, fake_worksheet):
    received = []

    def broken(event):
        raise RuntimeError("listener bug")

    sheets_service.subscribe(CHANNEL, broken)
    sheets_service.subscribe(CHANNEL, received.append)

    fake_worksheet.rows.append(list(APPOINTMENT_COLUMNS))
    assert sheets_service._pollers[TEST_COLLECTION_ID].poll_once()
    assert len(received) == 1


def test_many_sessions_use_one_polling_thread(sheets_service):
    controllers = []
    for _ in range(10):
        controller = AppController(RemoteStore(sheets_service, TEST_DATABASE_ID, TEST_COLLECTION_ID))
        controller.start()
        controllers.append(controller)

    assert all(controller.state == STATE_READY for controller in controllers)
    assert len(_live_pollers()) == 1
    assert len(sheets_service._pollers) == 1

    for controller in controllers:
        controller.stop()

    assert _live_pollers() == []
    assert sheets_service.listener_count(TEST_COLLECTION_ID) == 0


def test_repeated_unsubscribe_removes_only_its_own_listener(sheets_service):
    received = []
    first = sheets_service.subscribe(CHANNEL, received.append)
    sheets_service.subscribe(CHANNEL, received.append)

    first()
    first()

    assert sheets_service.listener_count(TEST_COLLECTION_ID) == 1
    assert len(_live_pollers()) == 1
