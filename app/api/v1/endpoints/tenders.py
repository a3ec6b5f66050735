"""Load tender endpoints (waterfall and broadcast offers)."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user
from app.dependencies import get_tender_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.load_board import TenderCreate, TenderOut, TenderRecipientOut, TenderResponseRequest
from app.services.load_board.tender_service import TenderService
from app.utils.responses import create_api_response

router = APIRouter()

TenderServiceDep = Annotated[TenderService, Depends(get_tender_service)]
UserDep = Annotated[CurrentUser, Depends(get_current_user)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Tender a load",
    description="WATERFALL offers the load to one carrier at a time in position order; "
    "BROADCAST offers it to every recipient at once.",
    operation_id="create_tender",
)
async def create_tender(
    request: Request, payload: TenderCreate, current_user: UserDep, tender_service: TenderServiceDep
) -> ApiResponse:
    tender = await tender_service.create_tender(payload, user_id=current_user.id)
    return create_api_response(data=TenderOut.model_validate(tender), message="Tender created", request=request)


@router.get("", response_model=ApiResponse, summary="List tenders", operation_id="list_tenders")
async def list_tenders(
    request: Request,
    tender_service: TenderServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    load_id: Optional[UUID] = Query(None, alias="loadId"),
) -> ApiResponse:
    result = await tender_service.list_tenders(page=page, limit=limit, status=status_filter, load_id=load_id)
    return create_api_response(data=result, message="Tenders retrieved", request=request)


@router.get(
    "/offers",
    response_model=ApiResponse,
    summary="Open offers for a carrier",
    operation_id="list_carrier_tender_offers",
)
async def list_offers(
    request: Request,
    tender_service: TenderServiceDep,
    carrier_id: UUID = Query(..., alias="carrierId"),
) -> ApiResponse:
    offers = await tender_service.offers_for_carrier(carrier_id)
    return create_api_response(
        data=[TenderRecipientOut.model_validate(o) for o in offers],
        message=f"{len(offers)} open offers",
        request=request,
    )


@router.get("/{tender_id}", response_model=ApiResponse, summary="Get a tender", operation_id="get_tender")
async def get_tender(request: Request, tender_id: UUID, tender_service: TenderServiceDep) -> ApiResponse:
    tender = await tender_service.get_tender(tender_id)
    return create_api_response(data=TenderOut.model_validate(tender), message="Tender retrieved", request=request)


@router.post(
    "/{tender_id}/respond",
    response_model=ApiResponse,
    summary="Carrier accepts or declines a tender",
    operation_id="respond_to_tender",
)
async def respond(
    request: Request,
    tender_id: UUID,
    payload: TenderResponseRequest,
    current_user: UserDep,
    tender_service: TenderServiceDep,
) -> ApiResponse:
    tender = await tender_service.respond(
        tender_id,
        payload.carrier_id,
        payload.accept,
        decline_reason=payload.decline_reason,
        user_id=current_user.id,
    )
    message = "Tender accepted" if payload.accept else "Tender declined"
    return create_api_response(data=TenderOut.model_validate(tender), message=message, request=request)


@router.post("/{tender_id}/cancel", response_model=ApiResponse, summary="Cancel a tender", operation_id="cancel_tender")
async def cancel_tender(request: Request, tender_id: UUID, tender_service: TenderServiceDep) -> ApiResponse:
    tender = await tender_service.cancel_tender(tender_id)
    return create_api_response(data=TenderOut.model_validate(tender), message="Tender cancelled", request=request)
