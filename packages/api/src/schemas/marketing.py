# This project was developed with assistance from AI tools.
"""Double opt-in, analytics and hospital search schemas."""

from typing import Any

from pydantic import Field

from . import CamelModel


class DoubleOptInRequest(CamelModel):
    email: str = Field(min_length=1)
    case_id: str | None = None


class DoubleOptInResponse(CamelModel):
    ok: bool
    status: str
    error: str | None = None
    data: Any = None


class TrackResponse(CamelModel):
    success: bool = True


class HospitalSuggestion(CamelModel):
    id: str
    name: str
    subtitle: str
