"""Operations reporting endpoints."""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.dependencies import get_load_service
from app.schemas.common import ApiResponse
from app.services.operations.load_service import LoadService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "/load-history",
    response_model=ApiResponse,
    summary="Load history",
    description="Completed and cancelled loads with their revenue, cost and margin.",
    operation_id="get_load_history",
)
async def load_history(
    request: Request,
    load_service: Annotated[LoadService, Depends(get_load_service)],
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    customer_id: Optional[UUID] = Query(None, alias="customerId"),
    carrier_id: Optional[UUID] = Query(None, alias="carrierId"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
) -> ApiResponse:
    result = await load_service.load_history(
        page=page,
        limit=limit,
        customer_id=customer_id,
        carrier_id=carrier_id,
        date_from=date_from,
        date_to=date_to,
    )
    return create_api_response(data=result, message="Load history retrieved", request=request)
