# This project was developed with assistance from AI tools.
"""Final case submission: persist case metadata, then request opt-in.

Also holds the standalone contact form, which stores the same answers under
a fresh caseId without any upload session.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .bill_token import BillTokenError, verify_bill_token
from .double_opt_in import DoubleOptInResult, DoubleOptInService
from .storage import StorageService

logger = logging.getLogger(__name__)


class BillTokenMismatch(Exception):
    """Supplied billToken is invalid or was issued for another case."""


@dataclass(frozen=True)
class SubmissionReceipt:
    storage_path: str
    double_opt_in: DoubleOptInResult


def build_case_meta(fields: dict[str, Any]) -> dict[str, Any]:
    """Shape of ``bills/{caseId}/meta.json``."""
    in_collections = fields.get("inCollections")
    return {
        "caseId": fields["caseId"],
        "billToken": fields.get("billToken") or None,
        "patient": {
            "email": fields["email"],
            "phone": fields.get("phone") or None,
        },
        "bill": {
            "hospital": fields.get("hospital") or None,
            "billType": fields.get("billType") or None,
            "balance": fields.get("balance"),
            "inCollections": in_collections if isinstance(in_collections, bool) else None,
            "insuranceStatus": fields.get("insuranceStatus") or None,
        },
        "extraAnswers": fields.get("extraAnswers") or None,
        "meta": {
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "source": "submit-case",
        },
    }


async def submit_case(
    storage: StorageService,
    double_opt_in: DoubleOptInService,
    fields: dict[str, Any],
) -> SubmissionReceipt:
    """Write meta.json for the case and trigger double opt-in.

    ``fields`` must contain ``caseId`` and ``email``. Opt-in failures are
    reported in the receipt, never raised.

    Raises:
        BillTokenMismatch: a billToken was sent but does not verify for caseId.
    """
    case_id = fields["caseId"]
    token = fields.get("billToken")
    if token:
        try:
            claims = verify_bill_token(token)
        except BillTokenError as exc:
            raise BillTokenMismatch(str(exc)) from exc
        if claims["caseId"] != case_id:
            raise BillTokenMismatch("billToken was not issued for this caseId")

    object_key = await storage.upload_json(build_case_meta(fields), storage.build_meta_key(case_id))
    logger.info("Saved case metadata for %s", case_id)

    result = await double_opt_in.send(fields["email"], case_id=case_id)
    return SubmissionReceipt(
        storage_path=f"s3://{storage.bucket}/{object_key}",
        double_opt_in=result,
    )


def build_contact_record(case_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Shape of ``bills/{caseId}/contact.json``."""
    in_collections = fields.get("inCollections")
    return {
        "caseId": case_id,
        "contact": {
            "hospital": fields.get("hospital") or None,
            "billType": fields.get("billType") or None,
            "balance": fields.get("balance"),
            "inCollections": in_collections if isinstance(in_collections, bool) else None,
            "insuranceStatus": fields.get("insuranceStatus") or None,
            "email": fields["email"],
            "phone": fields.get("phone") or None,
            "extraAnswers": fields.get("extraAnswers") or None,
        },
        "meta": {
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "source": "contact-api",
        },
    }


async def save_contact(storage: StorageService, fields: dict[str, Any]) -> tuple[str, str]:
    """Store a contact form under a new caseId. Returns (case_id, storage_path)."""
    case_id = str(uuid.uuid4())
    object_key = await storage.upload_json(
        build_contact_record(case_id, fields), storage.build_contact_key(case_id)
    )
    logger.info("Saved contact form for new case %s", case_id)
    return case_id, f"s3://{storage.bucket}/{object_key}"
