# This project was developed with assistance from AI tools.
"""Hospital autocomplete -- no authentication required."""

from fastapi import APIRouter, Query

from ..schemas.marketing import HospitalSuggestion
from ..services.hospitals import search_hospitals

router = APIRouter()


@router.get("/hospitals", response_model=list[HospitalSuggestion])
async def list_hospitals(query: str = Query(default="")) -> list[HospitalSuggestion]:
    """Up to seven hospitals whose name, city or state contains ``query``."""
    return [
        HospitalSuggestion(id=h.id, name=h.name, subtitle=f"{h.city}, {h.state}")
        for h in search_hospitals(query)
    ]
