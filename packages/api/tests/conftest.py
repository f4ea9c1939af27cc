# This project was developed with assistance from AI tools.
"""Shared fixtures for API unit tests.

Nothing here touches a real database, bucket or Google API: sessions are
AsyncMocks and the spreadsheet is an in-memory grid.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from db import get_db
from fastapi.testclient import TestClient

from src.main import app as real_app
from src.services.analytics import AnalyticsService, get_analytics_service
from src.services.double_opt_in import DoubleOptInService, get_double_opt_in_service
from src.services.sheet_mirror import SheetMirror, get_sheet_mirror
from src.services.storage import StorageService, get_storage_service

# ---------------------------------------------------------------------------
# In-memory sheet
# ---------------------------------------------------------------------------


class FakeSheet:
    """Grid-backed stand-in for SheetsClient. Row numbers are 1-based."""

    def __init__(self, headers: list[str], rows: list[list[str]] | None = None):
        self.grid = [list(headers)] + [list(r) for r in rows or []]
        self.appended: list[list[str]] = []
        self.updated: list[tuple[int, list[str]]] = []

    async def read_header(self) -> list[str]:
        return list(self.grid[0])

    async def read_column(self, index: int) -> list[str]:
        return [row[index] if index < len(row) else "" for row in self.grid]

    async def read_row(self, row_number: int, width: int) -> list[str]:
        return list(self.grid[row_number - 1][:width])

    async def append_row(self, values: list[str]) -> None:
        self.grid.append(list(values))
        self.appended.append(list(values))

    async def update_row(self, row_number: int, values: list[str]) -> None:
        self.grid[row_number - 1] = list(values)
        self.updated.append((row_number, list(values)))

    def record(self, case_id: str) -> dict[str, str]:
        """Row for ``case_id`` as header -> cell."""
        headers = self.grid[0]
        id_col = headers.index("Case ID")
        for row in self.grid[1:]:
            if row[id_col] == case_id:
                padded = row + [""] * (len(headers) - len(row))
                return dict(zip(headers, padded))
        raise KeyError(case_id)


STANDARD_HEADERS = [
    "Case ID",
    "Created At",
    "Current Step",
    "Hospital Name",
    "Hospital ID",
    "Bill Type",
    "Balance Amount",
    "In Collections",
    "Insurance Status",
    "Email",
    "Phone",
    "Agreed To Terms",
    "Has Upload",
    "Upload Count",
    "Last Upload At",
    "Last Case Token",
    "UTM Source",
    "UTM Campaign",
    "Referrer",
    "Landing Page",
    "Last Input Time",
]


@pytest.fixture
def make_sheet():
    """Factory: FakeSheet with the standard headers unless given others."""

    def _make(headers: list[str] | None = None, rows: list[list[str]] | None = None) -> FakeSheet:
        return FakeSheet(headers or STANDARD_HEADERS, rows)

    return _make


# ---------------------------------------------------------------------------
# Database session mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def make_store_session():
    """Factory: AsyncMock session scripted for apply_step_submission.

    execute() calls in order: SET LOCAL, event insert (RETURNING id), case
    upsert. ``event_id=None`` simulates a replayed submission.
    """

    def _make(event_id: int | None = 1) -> AsyncMock:
        insert_result = MagicMock()
        insert_result.scalar_one_or_none.return_value = event_id
        session = AsyncMock()
        session.execute = AsyncMock(side_effect=[MagicMock(), insert_result, MagicMock()])
        session.commit = AsyncMock()
        session.rollback = AsyncMock()
        return session

    return _make


# ---------------------------------------------------------------------------
# Collaborator mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_storage():
    """MagicMock StorageService with async methods and real key helpers."""
    storage = MagicMock(spec=StorageService)
    storage.bucket = "bills"
    storage.build_object_key.side_effect = StorageService.build_object_key
    storage.build_meta_key.side_effect = StorageService.build_meta_key
    storage.build_contact_key.side_effect = StorageService.build_contact_key
    storage.get_upload_url = AsyncMock(return_value="https://storage.example/signed-put")
    storage.case_folder_exists = AsyncMock(return_value=True)
    storage.upload_json = AsyncMock(side_effect=lambda data, key: key)
    return storage


@pytest.fixture
def unconfigured_double_opt_in():
    return DoubleOptInService(
        None,
        api_key=None,
        api_url="https://api.brevo.com/v3",
        template_id=None,
        redirect_url=None,
        include_list_ids=[],
        exclude_list_ids=[],
    )


# ---------------------------------------------------------------------------
# Full app client
# ---------------------------------------------------------------------------


@pytest.fixture
def app():
    """The real FastAPI app; overrides are cleared after each test."""
    yield real_app
    real_app.dependency_overrides.clear()


@pytest.fixture
def client(app, make_sheet, mock_storage, unconfigured_double_opt_in):
    """TestClient with every external collaborator replaced.

    The lifespan is not run, so no singleton is initialised.
    """
    session = AsyncMock()

    async def fake_db():
        yield session

    app.dependency_overrides[get_db] = fake_db
    app.dependency_overrides[get_sheet_mirror] = lambda: SheetMirror(make_sheet())
    app.dependency_overrides[get_storage_service] = lambda: mock_storage
    app.dependency_overrides[get_double_opt_in_service] = lambda: unconfigured_double_opt_in
    app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(
        None, token=None, api_url="https://api.mixpanel.com"
    )
    return TestClient(app)
