"""Carrier settlement endpoints (payables)."""

from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user, require_accounting
from app.dependencies import get_settlement_service
from app.schemas.accounting import (
    MarkPaidRequest,
    SettlementCreate,
    SettlementFromLoadRequest,
    SettlementOut,
    VoidRequest,
)
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.services.accounting.settlement_service import SettlementService
from app.utils.responses import create_api_response

router = APIRouter()

SettlementServiceDep = Annotated[SettlementService, Depends(get_settlement_service)]
ACCOUNTING = [Depends(require_accounting)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a settlement",
    operation_id="create_settlement",
    dependencies=ACCOUNTING,
)
async def create_settlement(
    request: Request, payload: SettlementCreate, settlement_service: SettlementServiceDep
) -> ApiResponse:
    settlement = await settlement_service.create_settlement(payload)
    return create_api_response(
        data=SettlementOut.model_validate(settlement),
        message=f"Settlement {settlement.settlement_number} created",
        request=request,
    )


@router.post(
    "/from-load",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Settle a delivered load",
    description="Pays the carrier rate and accessorials, less any fuel advance.",
    operation_id="generate_settlement_from_load",
    dependencies=ACCOUNTING,
)
async def generate_from_load(
    request: Request, payload: SettlementFromLoadRequest, settlement_service: SettlementServiceDep
) -> ApiResponse:
    settlement = await settlement_service.generate_from_load(payload.load_id)
    return create_api_response(
        data=SettlementOut.model_validate(settlement),
        message=f"Settlement {settlement.settlement_number} created",
        request=request,
    )


@router.get("", response_model=ApiResponse, summary="List settlements", operation_id="list_settlements")
async def list_settlements(
    request: Request,
    settlement_service: SettlementServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    carrier_id: Optional[UUID] = Query(None, alias="carrierId"),
) -> ApiResponse:
    result = await settlement_service.list_settlements(
        page=page, limit=limit, status=status_filter, carrier_id=carrier_id
    )
    return create_api_response(data=result, message="Settlements retrieved", request=request)


@router.get(
    "/payables",
    response_model=ApiResponse,
    summary="Payables summary",
    description="Unpaid settlements split into overdue, due today and upcoming.",
    operation_id="get_payables_summary",
)
async def payables_summary(
    request: Request,
    settlement_service: SettlementServiceDep,
    as_of: Optional[date] = Query(None, alias="asOf"),
) -> ApiResponse:
    summary = await settlement_service.payables_summary(today=as_of)
    return create_api_response(data=summary, message="Payables summary generated", request=request)


@router.get(
    "/{settlement_id}", response_model=ApiResponse, summary="Get a settlement", operation_id="get_settlement"
)
async def get_settlement(request: Request, settlement_id: UUID, settlement_service: SettlementServiceDep) -> ApiResponse:
    settlement = await settlement_service.get_settlement(settlement_id)
    return create_api_response(
        data=SettlementOut.model_validate(settlement), message="Settlement retrieved", request=request
    )


@router.post(
    "/{settlement_id}/approve",
    response_model=ApiResponse,
    summary="Approve a settlement",
    operation_id="approve_settlement",
)
async def approve_settlement(
    request: Request,
    settlement_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_accounting)],
    settlement_service: SettlementServiceDep,
) -> ApiResponse:
    settlement = await settlement_service.approve(settlement_id, user_id=current_user.id)
    return create_api_response(
        data=SettlementOut.model_validate(settlement), message="Settlement approved", request=request
    )


@router.post(
    "/{settlement_id}/process",
    response_model=ApiResponse,
    summary="Send a settlement for payment",
    operation_id="process_settlement",
    dependencies=ACCOUNTING,
)
async def process_settlement(
    request: Request, settlement_id: UUID, settlement_service: SettlementServiceDep
) -> ApiResponse:
    settlement = await settlement_service.process(settlement_id)
    return create_api_response(
        data=SettlementOut.model_validate(settlement), message="Settlement processing", request=request
    )


@router.post(
    "/{settlement_id}/pay",
    response_model=ApiResponse,
    summary="Mark a settlement paid",
    operation_id="pay_settlement",
    dependencies=ACCOUNTING,
)
async def pay_settlement(
    request: Request, settlement_id: UUID, payload: MarkPaidRequest, settlement_service: SettlementServiceDep
) -> ApiResponse:
    settlement = await settlement_service.mark_paid(
        settlement_id, payment_reference=payload.payment_reference, amount_cents=payload.amount_cents
    )
    return create_api_response(data=SettlementOut.model_validate(settlement), message="Settlement paid", request=request)


@router.post(
    "/{settlement_id}/void",
    response_model=ApiResponse,
    summary="Void a settlement",
    operation_id="void_settlement",
    dependencies=ACCOUNTING,
)
async def void_settlement(
    request: Request, settlement_id: UUID, payload: VoidRequest, settlement_service: SettlementServiceDep
) -> ApiResponse:
    settlement = await settlement_service.void(settlement_id, payload.reason)
    return create_api_response(data=SettlementOut.model_validate(settlement), message="Settlement voided", request=request)
