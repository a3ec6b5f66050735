"""Carrier management endpoints: profile, insurance, compliance status and scorecard."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.dependencies import get_carrier_service
from app.schemas.common import ApiResponse
from app.schemas.carriers import (
    CarrierCreate,
    CarrierOut,
    CarrierStatusUpdate,
    CarrierUpdate,
    InsuranceIn,
    InsuranceOut,
)
from app.schemas.loads import CancelRequest
from app.services.carriers.carrier_service import CarrierService
from app.utils.responses import create_api_response

router = APIRouter()

CarrierServiceDep = Annotated[CarrierService, Depends(get_carrier_service)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a carrier",
    description="New carriers start PENDING until approved.",
    operation_id="create_carrier",
)
async def create_carrier(request: Request, payload: CarrierCreate, carrier_service: CarrierServiceDep) -> ApiResponse:
    carrier = await carrier_service.create_carrier(payload)
    return create_api_response(data=CarrierOut.model_validate(carrier), message="Carrier created", request=request)


@router.get("", response_model=ApiResponse, summary="List carriers", operation_id="list_carriers")
async def list_carriers(
    request: Request,
    carrier_service: CarrierServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    tier: Optional[str] = None,
    state: Optional[str] = None,
    search: Optional[str] = None,
) -> ApiResponse:
    result = await carrier_service.list_carriers(
        page=page, limit=limit, status=status_filter, tier=tier, state=state, search=search
    )
    return create_api_response(data=result, message="Carriers retrieved", request=request)


@router.get("/{carrier_id}", response_model=ApiResponse, summary="Get a carrier", operation_id="get_carrier")
async def get_carrier(request: Request, carrier_id: UUID, carrier_service: CarrierServiceDep) -> ApiResponse:
    carrier = await carrier_service.get_carrier(carrier_id)
    return create_api_response(data=CarrierOut.model_validate(carrier), message="Carrier retrieved", request=request)


@router.put("/{carrier_id}", response_model=ApiResponse, summary="Update a carrier", operation_id="update_carrier")
async def update_carrier(
    request: Request, carrier_id: UUID, payload: CarrierUpdate, carrier_service: CarrierServiceDep
) -> ApiResponse:
    carrier = await carrier_service.update_carrier(carrier_id, payload)
    return create_api_response(data=CarrierOut.model_validate(carrier), message="Carrier updated", request=request)


@router.post(
    "/{carrier_id}/insurance",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an insurance certificate",
    operation_id="add_carrier_insurance",
)
async def add_insurance(
    request: Request, carrier_id: UUID, payload: InsuranceIn, carrier_service: CarrierServiceDep
) -> ApiResponse:
    policy = await carrier_service.add_insurance(carrier_id, payload)
    return create_api_response(data=InsuranceOut.model_validate(policy), message="Insurance added", request=request)


@router.get(
    "/{carrier_id}/insurance",
    response_model=ApiResponse,
    summary="List insurance certificates",
    operation_id="list_carrier_insurance",
)
async def list_insurance(request: Request, carrier_id: UUID, carrier_service: CarrierServiceDep) -> ApiResponse:
    policies = await carrier_service.list_insurance(carrier_id)
    return create_api_response(
        data=[InsuranceOut.model_validate(p) for p in policies], message="Insurance retrieved", request=request
    )


@router.delete(
    "/{carrier_id}/insurance/{insurance_id}",
    response_model=ApiResponse,
    summary="Remove an insurance certificate",
    operation_id="remove_carrier_insurance",
)
async def remove_insurance(
    request: Request, carrier_id: UUID, insurance_id: UUID, carrier_service: CarrierServiceDep
) -> ApiResponse:
    await carrier_service.remove_insurance(carrier_id, insurance_id)
    return create_api_response(data=None, message="Insurance removed", request=request)


@router.post(
    "/{carrier_id}/approve",
    response_model=ApiResponse,
    summary="Approve a carrier",
    description="Requires authority numbers, a W-9, a signed agreement and unexpired minimum insurance.",
    operation_id="approve_carrier",
)
async def approve_carrier(request: Request, carrier_id: UUID, carrier_service: CarrierServiceDep) -> ApiResponse:
    carrier = await carrier_service.approve_carrier(carrier_id)
    return create_api_response(data=CarrierOut.model_validate(carrier), message="Carrier approved", request=request)


@router.patch(
    "/{carrier_id}/status",
    response_model=ApiResponse,
    summary="Change carrier status",
    operation_id="update_carrier_status",
)
async def update_carrier_status(
    request: Request, carrier_id: UUID, payload: CarrierStatusUpdate, carrier_service: CarrierServiceDep
) -> ApiResponse:
    carrier = await carrier_service.update_status(carrier_id, payload.status.value, reason=payload.reason)
    return create_api_response(
        data=CarrierOut.model_validate(carrier), message=f"Carrier moved to {carrier.status}", request=request
    )


@router.post(
    "/{carrier_id}/deactivate",
    response_model=ApiResponse,
    summary="Deactivate a carrier",
    description="Refused while the carrier has loads in flight.",
    operation_id="deactivate_carrier",
)
async def deactivate_carrier(
    request: Request, carrier_id: UUID, payload: CancelRequest, carrier_service: CarrierServiceDep
) -> ApiResponse:
    carrier = await carrier_service.deactivate_carrier(carrier_id, reason=payload.reason)
    return create_api_response(data=CarrierOut.model_validate(carrier), message="Carrier deactivated", request=request)


@router.get(
    "/{carrier_id}/scorecard",
    response_model=ApiResponse,
    summary="Carrier scorecard",
    operation_id="get_carrier_scorecard",
)
async def get_scorecard(request: Request, carrier_id: UUID, carrier_service: CarrierServiceDep) -> ApiResponse:
    scorecard = await carrier_service.get_scorecard(carrier_id)
    return create_api_response(data=scorecard, message="Scorecard retrieved", request=request)
