# This project was developed with assistance from AI tools.
"""Tests for the Sheets REST client (httpx.MockTransport, stub credentials)."""

import json

import httpx
import pytest

from src.services.sheets import SheetsApiError, SheetsClient, column_letter

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _StubCredentials:
    def __init__(self, valid: bool = True):
        self.valid = valid
        self.token = "tok-123"
        self.refresh_calls = 0

    def refresh(self, request):
        self.refresh_calls += 1
        self.valid = True
        self.token = "tok-refreshed"


def _make_client(handler, credentials=None) -> tuple[SheetsClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    client = SheetsClient(
        http,
        credentials or _StubCredentials(),
        spreadsheet_id="sheet-1",
        worksheet="Cases",
        base_url="https://sheets.test/v4/spreadsheets",
    )
    return client, seen


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestColumnLetter:
    @pytest.mark.parametrize(
        "index,expected", [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ"), (702, "AAA")]
    )
    def test_letters(self, index, expected):
        assert column_letter(index) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            column_letter(-1)


class TestReads:
    @pytest.mark.asyncio
    async def test_read_header(self):
        client, seen = _make_client(
            lambda r: httpx.Response(200, json={"values": [["Case ID", "Email"]]})
        )
        assert await client.read_header() == ["Case ID", "Email"]
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path.endswith("/sheet-1/values/'Cases'!1:1")
        assert request.headers["Authorization"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_read_header_empty_sheet(self):
        client, _ = _make_client(lambda r: httpx.Response(200, json={"range": "Cases!1:1"}))
        assert await client.read_header() == []

    @pytest.mark.asyncio
    async def test_read_column_fills_blank_cells(self):
        client, seen = _make_client(
            lambda r: httpx.Response(200, json={"values": [["Case ID"], [], ["c2"]]})
        )
        assert await client.read_column(2) == ["Case ID", "", "c2"]
        assert seen[0].url.path.endswith("!C:C")

    @pytest.mark.asyncio
    async def test_read_row_range(self):
        client, seen = _make_client(lambda r: httpx.Response(200, json={"values": [["c1", "x"]]}))
        assert await client.read_row(5, 3) == ["c1", "x"]
        assert seen[0].url.path.endswith("!A5:C5")


class TestWrites:
    @pytest.mark.asyncio
    async def test_append_row(self):
        client, seen = _make_client(lambda r: httpx.Response(200, json={"updates": {}}))
        await client.append_row(["c1", "hospital"])
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path.endswith(":append")
        assert request.url.params["valueInputOption"] == "RAW"
        assert json.loads(request.content) == {"values": [["c1", "hospital"]]}

    @pytest.mark.asyncio
    async def test_update_row(self):
        client, seen = _make_client(lambda r: httpx.Response(200, json={}))
        await client.update_row(4, ["c1", "contact", "555"])
        request = seen[0]
        assert request.method == "PUT"
        assert request.url.path.endswith("!A4:C4")
        assert json.loads(request.content) == {"values": [["c1", "contact", "555"]]}


class TestErrors:
    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client, _ = _make_client(lambda r: httpx.Response(403, text="caller does not have permission"))
        with pytest.raises(SheetsApiError) as exc_info:
            await client.read_header()
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def _fail(request):
            raise httpx.ConnectError("unreachable", request=request)

        client, _ = _make_client(_fail)
        with pytest.raises(SheetsApiError, match="unreachable"):
            await client.read_header()


class TestAuth:
    @pytest.mark.asyncio
    async def test_expired_credentials_refreshed(self):
        creds = _StubCredentials(valid=False)
        client, seen = _make_client(lambda r: httpx.Response(200, json={"values": [["Case ID"]]}), creds)
        await client.read_header()
        assert creds.refresh_calls == 1
        assert seen[0].headers["Authorization"] == "Bearer tok-refreshed"

    @pytest.mark.asyncio
    async def test_valid_credentials_not_refreshed(self):
        creds = _StubCredentials(valid=True)
        client, _ = _make_client(lambda r: httpx.Response(200, json={"values": []}), creds)
        await client.read_header()
        assert creds.refresh_calls == 0
