"""Public shipment tracking. No authentication; the tracking code is the credential."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request

from app.dependencies import get_tracking_service
from app.schemas.common import ApiResponse
from app.services.operations.tracking_service import TrackingService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/{tracking_code}",
    response_model=ApiResponse,
    summary="Track a shipment",
    description="Returns the public view of a load: status, stops and last known city. "
    "Rates, carrier and driver details are never included.",
    operation_id="track_shipment",
)
async def track_shipment(
    request: Request,
    tracking_service: Annotated[TrackingService, Depends(get_tracking_service)],
    tracking_code: str = Path(..., min_length=4, max_length=32),
) -> ApiResponse:
    tracking = await tracking_service.track(tracking_code)
    return create_api_response(data=tracking, message="Shipment found", request=request)
