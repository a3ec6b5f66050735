"""Customer payment endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import require_accounting
from app.dependencies import get_payment_service
from app.schemas.accounting import ApplyPaymentRequest, PaymentCreate, PaymentOut
from app.schemas.common import ApiResponse
from app.schemas.loads import CancelRequest
from app.services.accounting.payment_service import PaymentService
from app.utils.responses import create_api_response

router = APIRouter()

PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
ACCOUNTING = [Depends(require_accounting)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment",
    operation_id="record_payment",
    dependencies=ACCOUNTING,
)
async def record_payment(request: Request, payload: PaymentCreate, payment_service: PaymentServiceDep) -> ApiResponse:
    payment = await payment_service.record_payment(payload)
    return create_api_response(
        data=PaymentOut.model_validate(payment), message=f"Payment {payment.payment_number} recorded", request=request
    )


@router.get("", response_model=ApiResponse, summary="List payments", operation_id="list_payments")
async def list_payments(
    request: Request,
    payment_service: PaymentServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    company_id: Optional[UUID] = Query(None, alias="companyId"),
) -> ApiResponse:
    result = await payment_service.list_payments(page=page, limit=limit, status=status_filter, company_id=company_id)
    return create_api_response(data=result, message="Payments retrieved", request=request)


@router.get("/{payment_id}", response_model=ApiResponse, summary="Get a payment", operation_id="get_payment")
async def get_payment(request: Request, payment_id: UUID, payment_service: PaymentServiceDep) -> ApiResponse:
    payment = await payment_service.get_payment(payment_id)
    return create_api_response(data=PaymentOut.model_validate(payment), message="Payment retrieved", request=request)


@router.post(
    "/{payment_id}/apply",
    response_model=ApiResponse,
    summary="Apply a payment to invoices",
    description="Applications may not exceed the unapplied amount or any invoice's balance due.",
    operation_id="apply_payment",
    dependencies=ACCOUNTING,
)
async def apply_payment(
    request: Request, payment_id: UUID, payload: ApplyPaymentRequest, payment_service: PaymentServiceDep
) -> ApiResponse:
    payment = await payment_service.apply_payment(payment_id, payload.applications)
    return create_api_response(data=PaymentOut.model_validate(payment), message="Payment applied", request=request)


@router.post(
    "/{payment_id}/bounce",
    response_model=ApiResponse,
    summary="Mark a payment bounced",
    description="Reverses every application and reopens the affected invoices.",
    operation_id="bounce_payment",
    dependencies=ACCOUNTING,
)
async def bounce_payment(
    request: Request, payment_id: UUID, payload: CancelRequest, payment_service: PaymentServiceDep
) -> ApiResponse:
    payment = await payment_service.mark_bounced(payment_id, reason=payload.reason)
    return create_api_response(data=PaymentOut.model_validate(payment), message="Payment bounced", request=request)
