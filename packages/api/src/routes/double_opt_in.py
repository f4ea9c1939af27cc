# This project was developed with assistance from AI tools.
"""Standalone double opt-in trigger."""

from fastapi import APIRouter, Depends

from ..schemas.marketing import DoubleOptInRequest, DoubleOptInResponse
from ..services.double_opt_in import DoubleOptInService, get_double_opt_in_service

router = APIRouter()


@router.post("/brevo-doi", response_model=DoubleOptInResponse)
async def request_double_opt_in(
    body: DoubleOptInRequest,
    service: DoubleOptInService = Depends(get_double_opt_in_service),
) -> DoubleOptInResponse:
    """Send the confirmation email. Always 200; ``status`` says what happened."""
    result = await service.send(body.email, case_id=body.case_id)
    return DoubleOptInResponse(
        ok=result.ok,
        status=result.status.value,
        error=result.error,
        data=result.data,
    )
