# This project was developed with assistance from AI tools.
"""Best-effort mirror of case progress into a Google Sheet.

Columns are located by header name on every call, so operators can reorder
or insert columns in the sheet without a deploy. Anything that goes wrong is
raised as ``SheetMirrorError``; the caller decides how loud to be about it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
from db.enums import KnownStep

from ..core.config import Settings
from .sheets import SheetsApiError, SheetsClient, build_credentials

logger = logging.getLogger(__name__)

IDENTITY_HEADER = "Case ID"
CURRENT_STEP_HEADER = "Current Step"
CREATED_AT_HEADER = "Created At"
LAST_INPUT_HEADER = "Last Input Time"

# payload field -> sheet header
FIELD_COLUMNS: dict[str, str] = {
    "hospitalName": "Hospital Name",
    "hospitalId": "Hospital ID",
    "billType": "Bill Type",
    "balanceAmount": "Balance Amount",
    "inCollections": "In Collections",
    "insuranceStatus": "Insurance Status",
    "email": "Email",
    "phone": "Phone",
    "agreedToTerms": "Agreed To Terms",
    "hasUpload": "Has Upload",
    "uploadCount": "Upload Count",
    "lastUploadAt": "Last Upload At",
    "lastCaseToken": "Last Case Token",
}

# Written once, when the new-case step creates the row.
ORIGIN_FIELDS: dict[str, str] = {
    "utm_source": "UTM Source",
    "utm_medium": "UTM Medium",
    "utm_campaign": "UTM Campaign",
    "utm_term": "UTM Term",
    "utm_content": "UTM Content",
    "referrer": "Referrer",
    "landingPage": "Landing Page",
}


class SheetMirrorError(Exception):
    """The mirror write did not happen (configuration, auth, quota, drift...)."""


class SheetGateway(Protocol):
    async def read_header(self) -> list[str]: ...

    async def read_column(self, index: int) -> list[str]: ...

    async def read_row(self, row_number: int, width: int) -> list[str]: ...

    async def append_row(self, values: list[str]) -> None: ...

    async def update_row(self, row_number: int, values: list[str]) -> None: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def _normalize_header(name: str) -> str:
    return " ".join(name.split()).lower()


def _with_upload_defaults(payload: dict[str, Any]) -> dict[str, Any]:
    fields = dict(payload)
    if fields.get("hasUpload") is None:
        fields["hasUpload"] = True
    if not fields.get("lastUploadAt"):
        fields["lastUploadAt"] = _now_iso()
    fields["lastCaseToken"] = payload.get("lastCaseToken") or payload.get("caseToken") or ""
    return fields


class SheetMirror:
    """Reflect one step submission into the case's sheet row."""

    def __init__(self, gateway: SheetGateway | None):
        self._gateway = gateway

    @property
    def configured(self) -> bool:
        return self._gateway is not None

    async def mirror(self, case_id: str, step_key: str, payload: dict[str, Any]) -> None:
        """Create or update the row for ``case_id``.

        Raises:
            SheetMirrorError: on any failure, including missing configuration.
        """
        if self._gateway is None:
            raise SheetMirrorError("Google Sheets mirror is not configured")
        try:
            await self._mirror(self._gateway, case_id, step_key, payload)
        except SheetMirrorError:
            raise
        except SheetsApiError as exc:
            raise SheetMirrorError(str(exc)) from exc
        except Exception as exc:
            raise SheetMirrorError(f"Sheet mirror failed: {exc}") from exc

    async def _mirror(
        self,
        gateway: SheetGateway,
        case_id: str,
        step_key: str,
        payload: dict[str, Any],
    ) -> None:
        headers = await gateway.read_header()
        index = {_normalize_header(h): i for i, h in enumerate(headers) if h.strip()}

        identity_col = index.get(_normalize_header(IDENTITY_HEADER))
        if identity_col is None:
            raise SheetMirrorError(f"Sheet schema drift: '{IDENTITY_HEADER}' header not found")

        ids = await gateway.read_column(identity_col)
        row_number = next(
            (i + 1 for i, value in enumerate(ids) if i > 0 and value == case_id), None
        )
        is_new_row = row_number is None

        fields = _with_upload_defaults(payload) if step_key == KnownStep.UPLOAD else payload
        updates: dict[int, str] = {}

        def put(header: str, value: Any, *, warn: bool = True) -> None:
            col = index.get(_normalize_header(header))
            if col is None:
                if warn:
                    logger.warning("Sheet has no '%s' column; skipping", header)
                return
            updates[col] = format_cell(value)

        for field, header in FIELD_COLUMNS.items():
            value = fields.get(field)
            if value is None:
                continue
            # an empty answer keeps whatever the row already holds
            if value == "" and not is_new_row:
                continue
            put(header, value)

        if is_new_row and step_key == KnownStep.new_case_step():
            for field, header in ORIGIN_FIELDS.items():
                if fields.get(field):
                    put(header, fields[field])

        put(CURRENT_STEP_HEADER, step_key)
        put(LAST_INPUT_HEADER, _now_iso())

        width = len(headers)
        if is_new_row:
            put(IDENTITY_HEADER, case_id)
            put(CREATED_AT_HEADER, _now_iso())
            row = [""] * width
            for col, value in updates.items():
                row[col] = value
            await gateway.append_row(row)
            logger.info("Appended case %s to sheet", case_id)
        else:
            row = await gateway.read_row(row_number, width)
            row = row + [""] * (width - len(row))
            for col, value in updates.items():
                row[col] = value
            await gateway.update_row(row_number, row)
            logger.info("Updated case %s at sheet row %d", case_id, row_number)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_mirror: SheetMirror | None = None
_http_client: httpx.AsyncClient | None = None


def init_sheet_mirror(cfg: Settings) -> SheetMirror:
    """Initialise the singleton (called once from app lifespan).

    Without a spreadsheet id and service account the mirror stays
    unconfigured and every call raises ``SheetMirrorError``.
    """
    global _mirror, _http_client  # noqa: PLW0603
    gateway = None
    if (
        cfg.GOOGLE_SHEETS_SPREADSHEET_ID
        and cfg.GOOGLE_SERVICE_ACCOUNT_EMAIL
        and cfg.GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY
    ):
        _http_client = httpx.AsyncClient(timeout=cfg.SHEETS_TIMEOUT_SECONDS)
        gateway = SheetsClient(
            _http_client,
            build_credentials(
                cfg.GOOGLE_SERVICE_ACCOUNT_EMAIL, cfg.GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY
            ),
            spreadsheet_id=cfg.GOOGLE_SHEETS_SPREADSHEET_ID,
            worksheet=cfg.GOOGLE_SHEETS_WORKSHEET,
            base_url=cfg.SHEETS_API_URL,
        )
        logger.info("Sheet mirror: ACTIVE (worksheet=%s)", cfg.GOOGLE_SHEETS_WORKSHEET)
    else:
        logger.warning(
            "Sheet mirror: INACTIVE (GOOGLE_SHEETS_SPREADSHEET_ID / service account not set)"
        )
    _mirror = SheetMirror(gateway)
    return _mirror


def get_sheet_mirror() -> SheetMirror:
    """Return the initialised SheetMirror singleton."""
    if _mirror is None:
        raise RuntimeError("SheetMirror not initialised -- call init_sheet_mirror() first")
    return _mirror


async def close_sheet_mirror() -> None:
    global _http_client  # noqa: PLW0603
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
