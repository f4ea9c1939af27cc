# This project was developed with assistance from AI tools.
"""Validation for case progress submissions.

Pure functions: no I/O, deterministic, run before anything touches the
database. Step rules check fields in a fixed order and report the first
failure only.
"""

import json
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from db.enums import KnownStep

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# cases.balance_amount is NUMERIC(14, 2)
_BALANCE_LIMIT = 10**12


class StepValidationError(ValueError):
    """Raised when a case progress request is rejected before persistence."""


@dataclass(frozen=True)
class CaseProgressRequest:
    """A validated case progress envelope."""

    case_id: str
    current_step: str
    step_data: dict[str, Any]
    submission_id: str | None = None


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_number(value: Any) -> bool:
    # bool is a subclass of int; JSON true/false are not amounts
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    # NaN and Infinity parse from JSON but cannot be stored
    return not isinstance(value, float) or math.isfinite(value)


def _validate_hospital(data: dict[str, Any]) -> tuple[bool, str]:
    if not _is_non_empty_string(data.get("hospitalName")):
        return False, "hospitalName is required and must be a string"
    return True, ""


def _validate_bill_type(data: dict[str, Any]) -> tuple[bool, str]:
    if not _is_non_empty_string(data.get("billType")):
        return False, "billType is required and must be a string"
    return True, ""


def _validate_balance(data: dict[str, Any]) -> tuple[bool, str]:
    if not _is_number(data.get("balanceAmount")):
        return False, "balanceAmount is required and must be a number"
    if abs(data["balanceAmount"]) >= _BALANCE_LIMIT:
        return False, "balanceAmount is out of range"
    if "inCollections" in data and not isinstance(data["inCollections"], bool):
        return False, "inCollections must be a boolean if provided"
    return True, ""


def _validate_insurance(data: dict[str, Any]) -> tuple[bool, str]:
    if not _is_non_empty_string(data.get("insuranceStatus")):
        return False, "insuranceStatus is required and must be a string"
    return True, ""


def _validate_contact(data: dict[str, Any]) -> tuple[bool, str]:
    if "email" in data:
        email = data["email"]
        if not isinstance(email, str):
            return False, "email must be a string if provided"
        if email and not _EMAIL_RE.match(email):
            return False, "email must be a valid email address"
    if not _is_non_empty_string(data.get("phone")):
        return False, "phone is required and must be a string"
    if "agreedToTerms" in data and not isinstance(data["agreedToTerms"], bool):
        return False, "agreedToTerms must be a boolean if provided"
    return True, ""


def _validate_any_object(data: Any) -> tuple[bool, str]:
    """Default rule for steps without dedicated checks."""
    if not isinstance(data, dict):
        return False, "stepData must be an object"
    return True, ""


_STEP_RULES: dict[str, Callable[[dict[str, Any]], tuple[bool, str]]] = {
    KnownStep.HOSPITAL.value: _validate_hospital,
    KnownStep.BILL_TYPE.value: _validate_bill_type,
    KnownStep.BALANCE.value: _validate_balance,
    KnownStep.INSURANCE.value: _validate_insurance,
    KnownStep.CONTACT.value: _validate_contact,
}


def validate_step_data(step_key: str, step_data: Any) -> tuple[bool, str]:
    """Validate a step payload. Returns (is_valid, error_message).

    Unknown steps are accepted as long as the payload is an object.
    """
    ok, error = _validate_any_object(step_data)
    if not ok:
        return ok, error
    rule = _STEP_RULES.get(step_key)
    if rule is None:
        return True, ""
    return rule(step_data)


def payload_size(step_data: dict[str, Any]) -> int:
    """Size of the payload as stored: compact JSON, UTF-8 encoded."""
    return len(json.dumps(step_data, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def parse_case_progress_request(body: Any, *, max_payload_bytes: int) -> CaseProgressRequest:
    """Check the request envelope and the step payload.

    Raises:
        StepValidationError: on the first failed check, in envelope order
            (body, caseId, currentStep, stepData, submissionId, size), then
            the step rule.
    """
    if not isinstance(body, dict):
        raise StepValidationError("Request body must be a JSON object")

    case_id = body.get("caseId")
    if not _is_non_empty_string(case_id):
        raise StepValidationError("caseId is required and must be a string")

    current_step = body.get("currentStep")
    if not _is_non_empty_string(current_step):
        raise StepValidationError("currentStep is required and must be a string")

    step_data = body.get("stepData")
    if not isinstance(step_data, dict):
        raise StepValidationError("stepData is required and must be an object")

    submission_id = body.get("submissionId")
    if submission_id is not None and not _is_non_empty_string(submission_id):
        raise StepValidationError("submissionId must be a non-empty string if provided")

    if payload_size(step_data) > max_payload_bytes:
        raise StepValidationError(f"stepData exceeds the maximum size of {max_payload_bytes} bytes")

    ok, error = validate_step_data(current_step, step_data)
    if not ok:
        raise StepValidationError(error)

    return CaseProgressRequest(
        case_id=case_id,
        current_step=current_step,
        step_data=step_data,
        submission_id=submission_id,
    )
