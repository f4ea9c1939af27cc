# This project was developed with assistance from AI tools.
"""Case progress submission flow.

validate -> persist (transactional) -> mirror (best-effort) -> outcome.

Validation and persistence failures propagate as ``StepValidationError`` and
``ProgressStoreError`` for the route to translate. A mirror failure never
does: it is logged and returned as ``warning``.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from db.enums import KnownStep
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from .progress_store import SubmissionMetadata, apply_step_submission
from .sheet_mirror import SheetMirror
from .step_validation import parse_case_progress_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaseProgressOutcome:
    case_id: str
    current_step: str
    submission_id: str
    applied: bool
    warning: str | None = None


def fill_city_from_geo(step_key: str, step_data: dict[str, Any], geo_city: str | None) -> dict[str, Any]:
    """Hospital step without a city takes the caller's edge-reported city."""
    if step_key != KnownStep.HOSPITAL or step_data.get("city") or not geo_city:
        return step_data
    return {**step_data, "city": geo_city}


async def mirror_best_effort(
    mirror: SheetMirror,
    case_id: str,
    step_key: str,
    payload: dict[str, Any],
    timeout_seconds: float | None = None,
) -> str | None:
    """Run the sheet mirror under a timeout. Returns a warning on failure."""
    timeout = timeout_seconds or settings.SHEETS_TIMEOUT_SECONDS
    try:
        async with asyncio.timeout(timeout):
            await mirror.mirror(case_id, step_key, payload)
    except TimeoutError:
        logger.warning("Sheet mirror timed out after %.1fs (case_id=%s)", timeout, case_id)
        return "Google Sheets sync timed out"
    except Exception as exc:
        logger.warning("Sheet mirror failed (case_id=%s): %s", case_id, exc)
        return str(exc) or exc.__class__.__name__
    return None


async def submit_case_progress(
    session: AsyncSession,
    body: Any,
    *,
    mirror: SheetMirror,
    metadata: SubmissionMetadata | None = None,
    geo_city: str | None = None,
) -> CaseProgressOutcome:
    """Validate, persist and mirror one case progress request.

    Raises:
        StepValidationError: request rejected; nothing was written.
        ProgressStoreError: the transaction failed.
    """
    request = parse_case_progress_request(
        body, max_payload_bytes=settings.CASE_PROGRESS_MAX_PAYLOAD_BYTES
    )
    submission_id = request.submission_id or str(uuid.uuid4())
    step_data = fill_city_from_geo(request.current_step, request.step_data, geo_city)

    result = await apply_step_submission(
        session,
        case_id=request.case_id,
        step_key=request.current_step,
        payload=step_data,
        submission_id=submission_id,
        metadata=metadata,
    )

    # duplicates are mirrored as well so a retry can repair the sheet row
    warning = await mirror_best_effort(mirror, request.case_id, request.current_step, step_data)

    return CaseProgressOutcome(
        case_id=result.case_id,
        current_step=result.current_step,
        submission_id=result.submission_id,
        applied=result.applied,
        warning=warning,
    )
