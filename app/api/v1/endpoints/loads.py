"""Load API endpoints: CRUD, status lifecycle, carrier assignment and check calls."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse

from app.core.auth import get_current_user
from app.dependencies import get_load_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.loads import (
    AssignCarrierRequest,
    CancelRequest,
    CheckCallCreate,
    CheckCallOut,
    LoadCreate,
    LoadOut,
    LoadStatusUpdate,
    LoadUpdate,
    LocationUpdate,
    StatusHistoryOut,
)
from app.services.operations.load_service import LoadService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()

LoadServiceDep = Annotated[LoadService, Depends(get_load_service)]
UserDep = Annotated[CurrentUser, Depends(get_current_user)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a load",
    operation_id="create_load",
)
async def create_load(
    request: Request,
    payload: LoadCreate,
    current_user: UserDep,
    load_service: LoadServiceDep,
) -> ApiResponse:
    """Create a load with its stops. The load starts UNASSIGNED."""
    load = await load_service.create_load(payload, user_id=current_user.id)
    return create_api_response(
        data=LoadOut.model_validate(load),
        message=f"Load {load.load_number} created",
        request=request,
    )


@router.get(
    "",
    response_model=ApiResponse,
    summary="List loads",
    operation_id="list_loads",
)
async def list_loads(
    request: Request,
    load_service: LoadServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    carrier_id: Optional[UUID] = Query(None, alias="carrierId"),
    customer_id: Optional[UUID] = Query(None, alias="customerId"),
    order_id: Optional[UUID] = Query(None, alias="orderId"),
    equipment_type: Optional[str] = Query(None, alias="equipmentType"),
    search: Optional[str] = None,
) -> ApiResponse:
    result = await load_service.list_loads(
        page=page,
        limit=limit,
        status=status_filter,
        carrier_id=carrier_id,
        customer_id=customer_id,
        order_id=order_id,
        equipment_type=equipment_type,
        search=search,
    )
    return create_api_response(data=result, message="Loads retrieved", request=request)


@router.get(
    "/stats",
    response_model=ApiResponse,
    summary="Load statistics",
    operation_id="get_load_stats",
)
async def get_load_stats(request: Request, load_service: LoadServiceDep) -> ApiResponse:
    stats = await load_service.get_stats()
    return create_api_response(data=stats, message="Load statistics retrieved", request=request)


@router.get(
    "/{load_id}",
    response_model=ApiResponse,
    summary="Get a load",
    operation_id="get_load",
)
async def get_load(request: Request, load_id: UUID, load_service: LoadServiceDep) -> ApiResponse:
    load = await load_service.get_load(load_id)
    return create_api_response(data=LoadOut.model_validate(load), message="Load retrieved", request=request)


@router.put(
    "/{load_id}",
    response_model=ApiResponse,
    summary="Update a load",
    operation_id="update_load",
)
async def update_load(
    request: Request, load_id: UUID, payload: LoadUpdate, load_service: LoadServiceDep
) -> ApiResponse:
    load = await load_service.update_load(load_id, payload)
    return create_api_response(data=LoadOut.model_validate(load), message="Load updated", request=request)


@router.patch(
    "/{load_id}/status",
    response_model=ApiResponse,
    summary="Change load status",
    description="Moves the load along its lifecycle; transitions outside the lifecycle table are rejected with 409.",
    operation_id="update_load_status",
)
async def update_load_status(
    request: Request,
    load_id: UUID,
    payload: LoadStatusUpdate,
    current_user: UserDep,
    load_service: LoadServiceDep,
) -> ApiResponse:
    load = await load_service.update_status(
        load_id, payload.status.value, notes=payload.notes, user_id=current_user.id
    )
    return create_api_response(
        data=LoadOut.model_validate(load),
        message=f"Load moved to {payload.status.value}",
        request=request,
    )


@router.post(
    "/{load_id}/assign",
    response_model=ApiResponse,
    summary="Assign a carrier",
    operation_id="assign_load_carrier",
)
async def assign_carrier(
    request: Request,
    load_id: UUID,
    payload: AssignCarrierRequest,
    current_user: UserDep,
    load_service: LoadServiceDep,
) -> ApiResponse:
    load = await load_service.assign_carrier(load_id, payload, user_id=current_user.id)
    return create_api_response(data=LoadOut.model_validate(load), message="Carrier assigned", request=request)


@router.post(
    "/{load_id}/dispatch",
    response_model=ApiResponse,
    summary="Dispatch a load",
    operation_id="dispatch_load",
)
async def dispatch_load(
    request: Request,
    load_id: UUID,
    current_user: UserDep,
    load_service: LoadServiceDep,
    notes: Optional[str] = None,
) -> ApiResponse:
    load = await load_service.dispatch_load(load_id, notes=notes, user_id=current_user.id)
    return create_api_response(data=LoadOut.model_validate(load), message="Load dispatched", request=request)


@router.post(
    "/{load_id}/location",
    response_model=ApiResponse,
    summary="Report current location",
    operation_id="update_load_location",
)
async def update_location(
    request: Request,
    load_id: UUID,
    payload: LocationUpdate,
    current_user: UserDep,
    load_service: LoadServiceDep,
) -> ApiResponse:
    load = await load_service.update_location(load_id, payload, user_id=current_user.id)
    return create_api_response(data=LoadOut.model_validate(load), message="Location updated", request=request)


@router.post(
    "/{load_id}/check-calls",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a check call",
    operation_id="add_load_check_call",
)
async def add_check_call(
    request: Request,
    load_id: UUID,
    payload: CheckCallCreate,
    current_user: UserDep,
    load_service: LoadServiceDep,
) -> ApiResponse:
    check_call = await load_service.add_check_call(load_id, payload, user_id=current_user.id)
    return create_api_response(
        data=CheckCallOut.model_validate(check_call), message="Check call recorded", request=request
    )


@router.get(
    "/{load_id}/check-calls",
    response_model=ApiResponse,
    summary="List check calls",
    operation_id="list_load_check_calls",
)
async def list_check_calls(request: Request, load_id: UUID, load_service: LoadServiceDep) -> ApiResponse:
    check_calls = await load_service.list_check_calls(load_id)
    return create_api_response(
        data=[CheckCallOut.model_validate(c) for c in check_calls],
        message="Check calls retrieved",
        request=request,
    )


@router.get(
    "/{load_id}/history",
    response_model=ApiResponse,
    summary="Load status history",
    operation_id="get_load_status_history",
)
async def get_status_history(request: Request, load_id: UUID, load_service: LoadServiceDep) -> ApiResponse:
    history = await load_service.status_history(load_id)
    return create_api_response(
        data=[StatusHistoryOut.model_validate(h) for h in history],
        message="Status history retrieved",
        request=request,
    )


@router.post(
    "/{load_id}/cancel",
    response_model=ApiResponse,
    summary="Cancel a load",
    operation_id="cancel_load",
)
async def cancel_load(
    request: Request,
    load_id: UUID,
    payload: CancelRequest,
    current_user: UserDep,
    load_service: LoadServiceDep,
) -> ApiResponse:
    load = await load_service.cancel_load(load_id, reason=payload.reason, user_id=current_user.id)
    return create_api_response(data=LoadOut.model_validate(load), message="Load cancelled", request=request)


@router.get(
    "/{load_id}/rate-confirmation",
    summary="Rate confirmation PDF",
    operation_id="get_load_rate_confirmation",
    response_class=StreamingResponse,
)
async def get_rate_confirmation(load_id: UUID, load_service: LoadServiceDep) -> StreamingResponse:
    pdf = await load_service.rate_confirmation(load_id)
    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="rate-confirmation-{load_id}.pdf"'},
    )

