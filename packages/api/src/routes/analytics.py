# This project was developed with assistance from AI tools.
"""Analytics forwarding route (Mixpanel)."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..schemas.marketing import TrackResponse
from ..services.analytics import (
    AnalyticsRequestError,
    AnalyticsService,
    get_analytics_service,
    parse_track_request,
)

router = APIRouter()


@router.post("/analytics/track", response_model=TrackResponse)
@router.post("/mixpanel/track", response_model=TrackResponse, include_in_schema=False)
@router.post("/functions/trackMixpanelEvent", response_model=TrackResponse, include_in_schema=False)
async def track(
    request: Request,
    service: AnalyticsService = Depends(get_analytics_service),
) -> TrackResponse:
    """Queue a track / identify / set call. Delivery failures are only logged."""
    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be valid JSON"
        ) from exc
    try:
        track_request = parse_track_request(body)
    except AnalyticsRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    service.enqueue(track_request, user_agent=request.headers.get("user-agent"))
    return TrackResponse()
