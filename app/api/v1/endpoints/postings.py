"""Load board posting endpoints."""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user
from app.core.lifecycle import PostingStatus
from app.dependencies import get_matching_service, get_posting_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.load_board import PostingCreate, PostingOut, PostingUpdate, TrackViewRequest
from app.schemas.loads import CancelRequest
from app.services.carriers.matching_service import CarrierMatchingService
from app.services.load_board.posting_service import PostingService
from app.utils.responses import create_api_response

router = APIRouter()

PostingServiceDep = Annotated[PostingService, Depends(get_posting_service)]
MatchingServiceDep = Annotated[CarrierMatchingService, Depends(get_matching_service)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a load to the board",
    operation_id="create_posting",
)
async def create_posting(
    request: Request,
    payload: PostingCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    posting_service: PostingServiceDep,
) -> ApiResponse:
    posting = await posting_service.create_posting(payload, user_id=current_user.id)
    return create_api_response(data=PostingOut.model_validate(posting), message="Load posted", request=request)


@router.get(
    "",
    response_model=ApiResponse,
    summary="Search postings",
    description="Defaults to ACTIVE postings; pass status to look at the rest.",
    operation_id="search_postings",
)
async def search_postings(
    request: Request,
    posting_service: PostingServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    origin_state: Optional[str] = Query(None, alias="originState"),
    origin_city: Optional[str] = Query(None, alias="originCity"),
    dest_state: Optional[str] = Query(None, alias="destState"),
    dest_city: Optional[str] = Query(None, alias="destCity"),
    equipment_type: Optional[str] = Query(None, alias="equipmentType"),
    pickup_from: Optional[datetime] = Query(None, alias="pickupFrom"),
    pickup_to: Optional[datetime] = Query(None, alias="pickupTo"),
    load_id: Optional[UUID] = Query(None, alias="loadId"),
) -> ApiResponse:
    result = await posting_service.search_postings(
        page=page,
        limit=limit,
        status=status_filter or PostingStatus.ACTIVE.value,
        origin_state=origin_state,
        origin_city=origin_city,
        dest_state=dest_state,
        dest_city=dest_city,
        equipment_type=equipment_type,
        pickup_from=pickup_from,
        pickup_to=pickup_to,
        load_id=load_id,
    )
    return create_api_response(data=result, message="Postings retrieved", request=request)


@router.get("/{posting_id}", response_model=ApiResponse, summary="Get a posting", operation_id="get_posting")
async def get_posting(request: Request, posting_id: UUID, posting_service: PostingServiceDep) -> ApiResponse:
    posting = await posting_service.get_posting(posting_id)
    return create_api_response(data=PostingOut.model_validate(posting), message="Posting retrieved", request=request)


@router.put("/{posting_id}", response_model=ApiResponse, summary="Update a posting", operation_id="update_posting")
async def update_posting(
    request: Request, posting_id: UUID, payload: PostingUpdate, posting_service: PostingServiceDep
) -> ApiResponse:
    posting = await posting_service.update_posting(posting_id, payload)
    return create_api_response(data=PostingOut.model_validate(posting), message="Posting updated", request=request)


@router.post(
    "/{posting_id}/cancel",
    response_model=ApiResponse,
    summary="Cancel a posting",
    description="Cancelling a posting rejects every open bid on it.",
    operation_id="cancel_posting",
)
async def cancel_posting(
    request: Request, posting_id: UUID, payload: CancelRequest, posting_service: PostingServiceDep
) -> ApiResponse:
    posting = await posting_service.cancel_posting(posting_id, reason=payload.reason)
    return create_api_response(data=PostingOut.model_validate(posting), message="Posting cancelled", request=request)


@router.post("/{posting_id}/expire", response_model=ApiResponse, summary="Expire a posting", operation_id="expire_posting")
async def expire_posting(request: Request, posting_id: UUID, posting_service: PostingServiceDep) -> ApiResponse:
    posting = await posting_service.expire_posting(posting_id)
    return create_api_response(data=PostingOut.model_validate(posting), message="Posting expired", request=request)


@router.post(
    "/{posting_id}/refresh", response_model=ApiResponse, summary="Refresh a posting", operation_id="refresh_posting"
)
async def refresh_posting(request: Request, posting_id: UUID, posting_service: PostingServiceDep) -> ApiResponse:
    posting = await posting_service.refresh_posting(posting_id)
    return create_api_response(data=PostingOut.model_validate(posting), message="Posting refreshed", request=request)


@router.post(
    "/{posting_id}/views",
    response_model=ApiResponse,
    summary="Record a carrier view",
    operation_id="track_posting_view",
)
async def track_view(
    request: Request, posting_id: UUID, payload: TrackViewRequest, posting_service: PostingServiceDep
) -> ApiResponse:
    metrics = await posting_service.track_view(posting_id, payload.carrier_id)
    return create_api_response(data=metrics, message="View recorded", request=request)


@router.get(
    "/{posting_id}/metrics", response_model=ApiResponse, summary="Posting metrics", operation_id="get_posting_metrics"
)
async def get_metrics(request: Request, posting_id: UUID, posting_service: PostingServiceDep) -> ApiResponse:
    metrics = await posting_service.get_metrics(posting_id)
    return create_api_response(data=metrics, message="Posting metrics retrieved", request=request)


@router.get(
    "/{posting_id}/matches",
    response_model=ApiResponse,
    summary="Matching carriers",
    description="Scores active carriers against the posting's lane and equipment, best first.",
    operation_id="get_posting_matches",
)
async def get_matches(
    request: Request,
    posting_id: UUID,
    matching_service: MatchingServiceDep,
    limit: int = Query(20, ge=1, le=100),
    min_score: int = Query(0, ge=0, le=100, alias="minScore"),
) -> ApiResponse:
    matches = await matching_service.find_matches(posting_id, limit=limit, min_score=min_score)
    return create_api_response(data=matches, message=f"{len(matches)} matching carriers", request=request)
