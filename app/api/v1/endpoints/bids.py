"""Carrier bid endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user
from app.core.exceptions import ValidationError
from app.dependencies import get_bid_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.load_board import BidCounterRequest, BidCreate, BidOut, BidRejectRequest
from app.services.load_board.bid_service import BidService
from app.utils.responses import create_api_response

router = APIRouter()

BidServiceDep = Annotated[BidService, Depends(get_bid_service)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a bid",
    operation_id="create_bid",
)
async def create_bid(request: Request, payload: BidCreate, bid_service: BidServiceDep) -> ApiResponse:
    bid = await bid_service.create_bid(payload)
    return create_api_response(data=BidOut.model_validate(bid), message="Bid placed", request=request)


@router.get(
    "",
    response_model=ApiResponse,
    summary="List bids",
    description="Bids on one posting, or every bid a carrier has placed.",
    operation_id="list_bids",
)
async def list_bids(
    request: Request,
    bid_service: BidServiceDep,
    posting_id: Optional[UUID] = Query(None, alias="postingId"),
    carrier_id: Optional[UUID] = Query(None, alias="carrierId"),
    status_filter: Optional[str] = Query(None, alias="status"),
) -> ApiResponse:
    if posting_id is not None:
        bids = await bid_service.list_for_posting(posting_id)
        if carrier_id is not None:
            bids = [b for b in bids if b.carrier_id == carrier_id]
        if status_filter:
            bids = [b for b in bids if b.status == status_filter]
    elif carrier_id is not None:
        bids = await bid_service.list_for_carrier(carrier_id, status=status_filter)
    else:
        raise ValidationError("postingId or carrierId is required")
    return create_api_response(
        data=[BidOut.model_validate(b) for b in bids], message=f"{len(bids)} bids", request=request
    )


@router.get("/{bid_id}", response_model=ApiResponse, summary="Get a bid", operation_id="get_bid")
async def get_bid(request: Request, bid_id: UUID, bid_service: BidServiceDep) -> ApiResponse:
    bid = await bid_service.get_bid(bid_id)
    return create_api_response(data=BidOut.model_validate(bid), message="Bid retrieved", request=request)


@router.post(
    "/{bid_id}/accept",
    response_model=ApiResponse,
    summary="Accept a bid",
    description="Books the posting, assigns the carrier to the load and rejects the competing bids.",
    operation_id="accept_bid",
)
async def accept_bid(
    request: Request,
    bid_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    bid_service: BidServiceDep,
) -> ApiResponse:
    bid = await bid_service.accept_bid(bid_id, user_id=current_user.id)
    return create_api_response(data=BidOut.model_validate(bid), message="Bid accepted", request=request)


@router.post("/{bid_id}/reject", response_model=ApiResponse, summary="Reject a bid", operation_id="reject_bid")
async def reject_bid(
    request: Request, bid_id: UUID, payload: BidRejectRequest, bid_service: BidServiceDep
) -> ApiResponse:
    bid = await bid_service.reject_bid(bid_id, payload.reason)
    return create_api_response(data=BidOut.model_validate(bid), message="Bid rejected", request=request)


@router.post("/{bid_id}/counter", response_model=ApiResponse, summary="Counter a bid", operation_id="counter_bid")
async def counter_bid(
    request: Request, bid_id: UUID, payload: BidCounterRequest, bid_service: BidServiceDep
) -> ApiResponse:
    bid = await bid_service.counter_bid(bid_id, payload)
    return create_api_response(data=BidOut.model_validate(bid), message="Counter offer sent", request=request)


@router.post(
    "/{bid_id}/accept-counter",
    response_model=ApiResponse,
    summary="Carrier accepts a counter offer",
    operation_id="accept_bid_counter",
)
async def accept_counter(request: Request, bid_id: UUID, bid_service: BidServiceDep) -> ApiResponse:
    bid = await bid_service.accept_counter(bid_id)
    return create_api_response(data=BidOut.model_validate(bid), message="Counter offer accepted", request=request)


@router.post("/{bid_id}/withdraw", response_model=ApiResponse, summary="Withdraw a bid", operation_id="withdraw_bid")
async def withdraw_bid(request: Request, bid_id: UUID, bid_service: BidServiceDep) -> ApiResponse:
    bid = await bid_service.withdraw_bid(bid_id)
    return create_api_response(data=BidOut.model_validate(bid), message="Bid withdrawn", request=request)
