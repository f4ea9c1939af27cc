# This project was developed with assistance from AI tools.
"""Upload URL and case submission schemas."""

from typing import Any

from pydantic import Field

from . import CamelModel


class UploadUrlRequest(CamelModel):
    file_name: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    size: int = Field(gt=0, description="File size in bytes.")
    case_id: str | None = None
    check_directory: bool = False


class UploadUrlResponse(CamelModel):
    case_id: str
    bill_token: str
    signed_url: str
    storage_path: str


class SubmitCaseRequest(CamelModel):
    case_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    bill_token: str | None = None
    hospital: str | None = None
    bill_type: str | None = None
    balance: float | str | None = None
    in_collections: bool | None = None
    insurance_status: str | None = None
    phone: str | None = None
    extra_answers: Any = None


class DoubleOptInStatusBody(CamelModel):
    status: str
    error: str | None = None


class SubmitCaseResponse(CamelModel):
    ok: bool = True
    storage_path: str
    double_opt_in: DoubleOptInStatusBody


class ContactRequest(CamelModel):
    email: str = Field(min_length=1)
    hospital: str | None = None
    bill_type: str | None = None
    balance: float | str | None = None
    in_collections: bool | None = None
    insurance_status: str | None = None
    phone: str | None = None
    extra_answers: Any = None


class ContactResponse(CamelModel):
    ok: bool = True
    case_id: str
    storage_path: str
