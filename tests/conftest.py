"""
Shared fixtures and test configuration for scheduler tests
"""

import os

# Keep test runs from writing log files; must happen before scheduler imports
os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import gspread
import pytest

from scheduler.core.app_controller import AppController
from scheduler.infrastructure.memory.memory_ops import MemoryDocumentService
from scheduler.infrastructure.remote_store import RemoteStore
from scheduler.utils.date_utils import to_iso_timestamp

TEST_DATABASE_ID = "test_database"
TEST_COLLECTION_ID = "schedules"
FIXED_TODAY = date(2024, 3, 15)


# Test data factory functions
def make_document(
    document_id: str,
    title: str,
    when: datetime,
    duration: Any = 30,
    public: bool = False,
) -> Dict[str, Any]:
    """Factory function to create a stored appointment document"""
    return {
        "id": document_id,
        "title": title,
        "date": to_iso_timestamp(when),
        "duration": duration,
        "public": public,
    }


def scenario_documents() -> List[Dict[str, Any]]:
    """Documents A and B on 2024-03-05, C on 2024-04-01, seeded out of order"""
    return [
        make_document("C", "C", datetime(2024, 4, 1, 9, 0)),
        make_document("B", "B", datetime(2024, 3, 5, 14, 0)),
        make_document("A", "A", datetime(2024, 3, 5, 10, 0)),
    ]


@pytest.fixture
def service():
    return MemoryDocumentService(TEST_DATABASE_ID, collections=[TEST_COLLECTION_ID])


@pytest.fixture
def seeded_service(service):
    service.seed(TEST_COLLECTION_ID, scenario_documents())
    return service


@pytest.fixture
def store(seeded_service):
    return RemoteStore(seeded_service, TEST_DATABASE_ID, TEST_COLLECTION_ID)


@pytest.fixture
def controller(store):
    ctrl = AppController(store, today=lambda: FIXED_TODAY)
    yield ctrl
    ctrl.stop()


# =============================================================================
# FAKE GSPREAD OBJECTS
# =============================================================================


class FakeWorksheet:
    """In-memory stand-in for gspread.Worksheet"""

    def __init__(self, title: str, rows: Optional[List[List[str]]] = None):
        self.title = title
        self.rows = [list(row) for row in (rows or [])]
        self.append_options: List[Optional[str]] = []
        self.fail_with: Optional[Exception] = None

    def get_all_values(self) -> List[List[str]]:
        if self.fail_with is not None:
            raise self.fail_with
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.append_options.append(value_input_option)
        self.rows.append(list(values))

    def row_values(self, row):
        if row > len(self.rows):
            return []
        return list(self.rows[row - 1])

    def delete_rows(self, start_index, end_index=None):
        del self.rows[start_index - 1]

    def update(self, range_name=None, values=None):
        assert range_name == "A1"
        if self.rows:
            self.rows[0] = list(values[0])
        else:
            self.rows.append(list(values[0]))


class FakeSpreadsheet:
    def __init__(self, worksheets: Dict[str, FakeWorksheet]):
        self.worksheets = worksheets

    def worksheet(self, title: str) -> FakeWorksheet:
        if title not in self.worksheets:
            raise gspread.exceptions.WorksheetNotFound(title)
        return self.worksheets[title]


class FakeClient:
    def __init__(self, spreadsheets: Dict[str, FakeSpreadsheet]):
        self.spreadsheets = spreadsheets

    def open(self, title: str) -> FakeSpreadsheet:
        if title not in self.spreadsheets:
            raise gspread.exceptions.SpreadsheetNotFound(title)
        return self.spreadsheets[title]


@pytest.fixture
def fake_worksheet():
    return FakeWorksheet(TEST_COLLECTION_ID)


@pytest.fixture
def fake_client(fake_worksheet):
    return FakeClient(
        {TEST_DATABASE_ID: FakeSpreadsheet({TEST_COLLECTION_ID: fake_worksheet})}
    )
