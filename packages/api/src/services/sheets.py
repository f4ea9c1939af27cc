# This project was developed with assistance from AI tools.
"""Minimal Google Sheets v4 values client.

Talks to the REST API over a shared ``httpx.AsyncClient``. Access tokens come
from a google-auth service-account credential; refreshing it is a blocking
HTTP call, so it runs in the default executor.
"""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
_TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsApiError(Exception):
    """Non-2xx response (or transport failure) from the Sheets API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def column_letter(index: int) -> str:
    """0-based column index -> A1 column letters (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError("column index must be >= 0")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def build_credentials(client_email: str, private_key: str) -> service_account.Credentials:
    """Service-account credentials from env-style values.

    Keys pasted into env files usually carry literal ``\\n`` sequences.
    """
    info = {
        "client_email": client_email,
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": _TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)


class SheetsClient:
    """Read and write whole rows/columns of one worksheet."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credentials: Any,
        spreadsheet_id: str,
        worksheet: str,
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
    ):
        self._http = http_client
        self._credentials = credentials
        self._spreadsheet_id = spreadsheet_id
        self._worksheet = worksheet
        self._base_url = base_url.rstrip("/")

    def _range(self, a1: str) -> str:
        sheet = self._worksheet.replace("'", "''")
        return f"'{sheet}'!{a1}"

    def _values_url(self, a1: str, suffix: str = "") -> str:
        encoded = quote(self._range(a1), safe="")
        return f"{self._base_url}/{self._spreadsheet_id}/values/{encoded}{suffix}"

    async def _auth_headers(self) -> dict[str, str]:
        if not self._credentials.valid:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._credentials.refresh, GoogleAuthRequest())
        return {"Authorization": f"Bearer {self._credentials.token}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        headers = await self._auth_headers()
        try:
            response = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise SheetsApiError(f"Sheets request failed: {exc}") from exc
        if response.status_code >= 400:
            raise SheetsApiError(
                f"Sheets API returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response.json() if response.content else {}

    async def _get_values(self, a1: str) -> list[list[str]]:
        data = await self._request("GET", self._values_url(a1))
        return data.get("values", [])

    async def read_header(self) -> list[str]:
        rows = await self._get_values("1:1")
        return [str(cell) for cell in rows[0]] if rows else []

    async def read_column(self, index: int) -> list[str]:
        """All cells of one column, header included. Blank cells read as ''."""
        letter = column_letter(index)
        rows = await self._get_values(f"{letter}:{letter}")
        return [str(row[0]) if row else "" for row in rows]

    async def read_row(self, row_number: int, width: int) -> list[str]:
        last = column_letter(max(width - 1, 0))
        rows = await self._get_values(f"A{row_number}:{last}{row_number}")
        return [str(cell) for cell in rows[0]] if rows else []

    async def append_row(self, values: list[str]) -> None:
        await self._request(
            "POST",
            self._values_url("A1", ":append"),
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": [values]},
        )

    async def update_row(self, row_number: int, values: list[str]) -> None:
        last = column_letter(max(len(values) - 1, 0))
        await self._request(
            "PUT",
            self._values_url(f"A{row_number}:{last}{row_number}"),
            params={"valueInputOption": "RAW"},
            json={"values": [values]},
        )
