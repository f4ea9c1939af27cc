# This project was developed with assistance from AI tools.
"""Durable case progress: event log + current-state projection.

Every accepted submission lands in ``case_progress_events`` exactly once
(keyed by submission_id). The first time a submission is seen, the matching
``cases`` row is upserted in the same transaction. The per-step merge runs
inside PostgreSQL as a single statement (``progress || {step: payload}``),
so concurrent writers for one case never lose each other's steps.
"""

import asyncio
import ipaddress
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from db import Case, CaseProgressEvent
from db.enums import KnownStep
from sqlalchemy import func, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings

logger = logging.getLogger(__name__)

# SQLSTATEs worth a client retry: the same request may succeed later.
_RETRYABLE_SQLSTATES = frozenset(
    {
        "40001",  # serialization_failure
        "40P01",  # deadlock_detected
        "57014",  # query_canceled (statement_timeout)
        "57P01",  # admin_shutdown
        "57P02",  # crash_shutdown
        "57P03",  # cannot_connect_now
    }
)
# Whole classes: 08 connection exception, 53 insufficient resources.
_RETRYABLE_SQLSTATE_CLASSES = ("08", "53")


class ProgressStoreError(Exception):
    """Persisting a submission failed. ``retryable`` tells the caller whether
    the same request may succeed if sent again."""

    def __init__(self, message: str, *, retryable: bool):
        super().__init__(message)
        self.retryable = retryable


@dataclass(frozen=True)
class SubmissionMetadata:
    """Request observability fields stored with each event."""

    source: str | None = None
    user_agent: str | None = None
    ip: str | None = None


@dataclass(frozen=True)
class StoreResult:
    case_id: str
    current_step: str
    submission_id: str
    applied: bool


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def extract_denormalized(step_key: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Columns of ``cases`` this step refreshes, keyed by column name.

    Only the returned keys are written; every other denormalized column keeps
    whatever an earlier step stored.
    """
    step = KnownStep.lookup(step_key)
    columns: dict[str, Any] = {}

    if step is KnownStep.CONTACT:
        columns["contact_phone"] = payload.get("phone")
        if "email" in payload:
            columns["contact_email"] = payload["email"] or None
    elif step is KnownStep.HOSPITAL:
        if payload.get("hospitalName"):
            columns["hospital_name"] = payload["hospitalName"]
    elif step is KnownStep.BALANCE:
        if "balanceAmount" in payload:
            columns["balance_amount"] = _to_decimal(payload["balanceAmount"])
        if "inCollections" in payload:
            columns["in_collections"] = payload["inCollections"]

    return columns


def normalize_ip(value: str | None) -> str | None:
    """Return ``value`` if it parses as an IP address, else None (INET column)."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def _sqlstate(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_retryable(exc: BaseException) -> bool:
    """Classify a persistence failure as transient (retryable) or fatal."""
    if isinstance(exc, (TimeoutError, ConnectionError, OSError)):
        return True
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        code = _sqlstate(exc)
        if code:
            return code in _RETRYABLE_SQLSTATES or code.startswith(_RETRYABLE_SQLSTATE_CLASSES)
    return False


def _event_insert(
    case_id: str,
    step_key: str,
    payload: dict[str, Any],
    submission_id: str,
    metadata: SubmissionMetadata,
):
    return (
        pg_insert(CaseProgressEvent)
        .values(
            submission_id=submission_id,
            case_id=case_id,
            step_key=step_key,
            payload=payload,
            source=metadata.source,
            user_agent=metadata.user_agent,
            ip=normalize_ip(metadata.ip),
        )
        .on_conflict_do_nothing(index_elements=["submission_id"])
        .returning(CaseProgressEvent.id)
    )


def build_case_upsert(case_id: str, step_key: str, payload: dict[str, Any]):
    """INSERT ... ON CONFLICT (case_id) DO UPDATE for one step.

    On conflict ``progress`` is merged with ``||`` so only ``step_key`` is
    replaced, and only the denormalized columns this step yields are set.
    """
    denormalized = extract_denormalized(step_key, payload)
    stmt = pg_insert(Case).values(
        case_id=case_id,
        current_step=step_key,
        progress={step_key: payload},
        **denormalized,
    )
    set_: dict[str, Any] = {
        "current_step": stmt.excluded.current_step,
        "progress": Case.progress.op("||")(stmt.excluded.progress),
        "updated_at": func.now(),
    }
    for column in denormalized:
        set_[column] = stmt.excluded[column]
    return stmt.on_conflict_do_update(index_elements=[Case.case_id], set_=set_)


async def apply_step_submission(
    session: AsyncSession,
    *,
    case_id: str,
    step_key: str,
    payload: dict[str, Any],
    submission_id: str,
    metadata: SubmissionMetadata | None = None,
    timeout_seconds: float | None = None,
) -> StoreResult:
    """Record one step submission and fold it into the case row.

    Idempotent on ``submission_id``: a replay commits nothing new and returns
    ``applied=False``.

    Raises:
        ProgressStoreError: the transaction failed; ``retryable`` is set from
            the failure class.
    """
    metadata = metadata or SubmissionMetadata()
    timeout = timeout_seconds or settings.CASE_PROGRESS_DB_TIMEOUT_SECONDS
    statement_timeout_ms = int(timeout * 1000)

    try:
        async with asyncio.timeout(timeout):
            await session.execute(text(f"SET LOCAL statement_timeout = {statement_timeout_ms}"))
            result = await session.execute(
                _event_insert(case_id, step_key, payload, submission_id, metadata)
            )
            event_id = result.scalar_one_or_none()
            if event_id is not None:
                await session.execute(build_case_upsert(case_id, step_key, payload))
            await session.commit()
    except Exception as exc:
        await session.rollback()
        retryable = is_retryable(exc)
        logger.warning(
            "Case progress write failed (case_id=%s, step=%s, retryable=%s): %s",
            case_id,
            step_key,
            retryable,
            exc,
        )
        message = "Database temporarily unavailable" if retryable else "Failed to save progress"
        raise ProgressStoreError(message, retryable=retryable) from exc

    if event_id is None:
        logger.info(
            "Duplicate submission ignored (case_id=%s, submission_id=%s)", case_id, submission_id
        )
    else:
        logger.debug("Applied event %s to case %s (step=%s)", event_id, case_id, step_key)

    return StoreResult(
        case_id=case_id,
        current_step=step_key,
        submission_id=submission_id,
        applied=event_id is not None,
    )
