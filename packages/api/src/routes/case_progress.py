# This project was developed with assistance from AI tools.
"""Case progress routes -- incremental saves from the intake widget.

Responses use the widget's ``{success, ...}`` envelope rather than Problem
Details, including for unexpected errors.
"""

import logging
from urllib.parse import unquote

from db import get_db
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.case_progress import CaseProgressErrorResponse, CaseProgressResponse
from ..services.case_progress import submit_case_progress
from ..services.progress_store import ProgressStoreError, SubmissionMetadata
from ..services.sheet_mirror import SheetMirror, get_sheet_mirror
from ..services.step_validation import StepValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": CaseProgressErrorResponse, "description": "Validation failed"},
    500: {"model": CaseProgressErrorResponse, "description": "Persistence failed (fatal)"},
    503: {"model": CaseProgressErrorResponse, "description": "Persistence failed (retryable)"},
}


def _error(status_code: int, message: str, retryable: bool | None = None) -> JSONResponse:
    body = CaseProgressErrorResponse(error=message, retryable=retryable)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def client_ip(request: Request) -> str | None:
    """First x-forwarded-for hop, then x-real-ip, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def geo_city(request: Request) -> str | None:
    value = request.headers.get(settings.GEO_CITY_HEADER)
    return unquote(value) if value else None


@router.put(
    "/case-progress",
    response_model=CaseProgressResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
@router.post(
    "/case-progress",
    response_model=CaseProgressResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
async def save_case_progress(
    request: Request,
    session: AsyncSession = Depends(get_db),
    mirror: SheetMirror = Depends(get_sheet_mirror),
):
    """Persist one step of a case and mirror it to the operations sheet.

    Replaying a submissionId is a successful no-op.
    """
    try:
        body = await request.json()
    except ValueError:
        return _error(400, "Request body must be valid JSON")

    metadata = SubmissionMetadata(
        source=settings.CASE_PROGRESS_SOURCE,
        user_agent=request.headers.get("user-agent"),
        ip=client_ip(request),
    )
    try:
        outcome = await submit_case_progress(
            session,
            body,
            mirror=mirror,
            metadata=metadata,
            geo_city=geo_city(request),
        )
    except StepValidationError as exc:
        return _error(400, str(exc))
    except ProgressStoreError as exc:
        return _error(503 if exc.retryable else 500, str(exc), retryable=exc.retryable)
    except Exception:
        logger.exception("Unexpected error saving case progress")
        return _error(500, "Internal server error", retryable=False)

    return CaseProgressResponse(
        case_id=outcome.case_id,
        current_step=outcome.current_step,
        submission_id=outcome.submission_id,
        warning=outcome.warning,
    )
