# This project was developed with assistance from AI tools.
"""Case progress response envelopes.

Requests are parsed by ``services.step_validation`` rather than a pydantic
model so that every rejection is a 400 with a single, ordered message.
"""

from pydantic import Field

from . import CamelModel


class CaseProgressResponse(CamelModel):
    success: bool = True
    case_id: str
    current_step: str
    submission_id: str
    warning: str | None = Field(
        default=None,
        description="Set when the progress was saved but the sheet mirror failed.",
    )


class CaseProgressErrorResponse(CamelModel):
    success: bool = False
    error: str
    retryable: bool | None = Field(
        default=None,
        description="Present for persistence failures; true means the client may retry.",
    )
