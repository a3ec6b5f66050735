"""Sales commission endpoints: plans, rep assignments, entries and earnings."""

from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user, require_accounting
from app.dependencies import get_commission_service
from app.schemas.auth import CurrentUser
from app.schemas.commissions import (
    AssignmentCreate,
    AssignmentOut,
    CalculateCommissionRequest,
    CommissionEntryOut,
    CommissionPlanCreate,
    CommissionPlanOut,
    CommissionPlanUpdate,
    ReverseCommissionRequest,
)
from app.schemas.common import ApiResponse
from app.services.commissions.commission_service import CommissionService
from app.utils.responses import create_api_response

router = APIRouter()

CommissionServiceDep = Annotated[CommissionService, Depends(get_commission_service)]
ACCOUNTING = [Depends(require_accounting)]


@router.post(
    "/plans",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a commission plan",
    operation_id="create_commission_plan",
    dependencies=ACCOUNTING,
)
async def create_plan(
    request: Request, payload: CommissionPlanCreate, commission_service: CommissionServiceDep
) -> ApiResponse:
    plan = await commission_service.create_plan(payload)
    return create_api_response(data=CommissionPlanOut.model_validate(plan), message="Plan created", request=request)


@router.get("/plans", response_model=ApiResponse, summary="List commission plans", operation_id="list_commission_plans")
async def list_plans(
    request: Request,
    commission_service: CommissionServiceDep,
    status_filter: Optional[str] = Query(None, alias="status"),
) -> ApiResponse:
    plans = await commission_service.list_plans(status=status_filter)
    return create_api_response(
        data=[CommissionPlanOut.model_validate(p) for p in plans], message="Plans retrieved", request=request
    )


@router.get(
    "/plans/{plan_id}", response_model=ApiResponse, summary="Get a commission plan", operation_id="get_commission_plan"
)
async def get_plan(request: Request, plan_id: UUID, commission_service: CommissionServiceDep) -> ApiResponse:
    plan = await commission_service.get_plan(plan_id)
    return create_api_response(data=CommissionPlanOut.model_validate(plan), message="Plan retrieved", request=request)


@router.put(
    "/plans/{plan_id}",
    response_model=ApiResponse,
    summary="Update a commission plan",
    operation_id="update_commission_plan",
    dependencies=ACCOUNTING,
)
async def update_plan(
    request: Request, plan_id: UUID, payload: CommissionPlanUpdate, commission_service: CommissionServiceDep
) -> ApiResponse:
    plan = await commission_service.update_plan(plan_id, payload)
    return create_api_response(data=CommissionPlanOut.model_validate(plan), message="Plan updated", request=request)


@router.post(
    "/assignments",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a plan to a sales rep",
    description="Ends the rep's current assignment, if any.",
    operation_id="assign_commission_plan",
    dependencies=ACCOUNTING,
)
async def assign_plan(
    request: Request, payload: AssignmentCreate, commission_service: CommissionServiceDep
) -> ApiResponse:
    assignment = await commission_service.assign_plan(payload)
    return create_api_response(
        data=AssignmentOut.model_validate(assignment), message="Plan assigned", request=request
    )


@router.get(
    "/assignments", response_model=ApiResponse, summary="List plan assignments", operation_id="list_commission_assignments"
)
async def list_assignments(
    request: Request,
    commission_service: CommissionServiceDep,
    user_id: Optional[str] = Query(None, alias="userId"),
) -> ApiResponse:
    assignments = await commission_service.list_assignments(user_id=user_id)
    return create_api_response(
        data=[AssignmentOut.model_validate(a) for a in assignments], message="Assignments retrieved", request=request
    )


@router.post(
    "/entries/calculate",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Calculate commission for a delivered load",
    operation_id="calculate_commission",
    dependencies=ACCOUNTING,
)
async def calculate_commission(
    request: Request, payload: CalculateCommissionRequest, commission_service: CommissionServiceDep
) -> ApiResponse:
    entry = await commission_service.calculate_for_load(payload.load_id)
    return create_api_response(
        data=CommissionEntryOut.model_validate(entry), message="Commission calculated", request=request
    )


@router.get("/entries", response_model=ApiResponse, summary="List commission entries", operation_id="list_commission_entries")
async def list_entries(
    request: Request,
    commission_service: CommissionServiceDep,
    user_id: Optional[str] = Query(None, alias="userId"),
    status_filter: Optional[str] = Query(None, alias="status"),
) -> ApiResponse:
    entries = await commission_service.list_entries(user_id=user_id, status=status_filter)
    return create_api_response(
        data=[CommissionEntryOut.model_validate(e) for e in entries], message="Entries retrieved", request=request
    )


@router.post(
    "/entries/{entry_id}/approve",
    response_model=ApiResponse,
    summary="Approve a commission entry",
    operation_id="approve_commission_entry",
    dependencies=ACCOUNTING,
)
async def approve_entry(request: Request, entry_id: UUID, commission_service: CommissionServiceDep) -> ApiResponse:
    entry = await commission_service.approve_entry(entry_id)
    return create_api_response(data=CommissionEntryOut.model_validate(entry), message="Entry approved", request=request)


@router.post(
    "/entries/{entry_id}/reverse",
    response_model=ApiResponse,
    summary="Reverse a commission entry",
    operation_id="reverse_commission_entry",
    dependencies=ACCOUNTING,
)
async def reverse_entry(
    request: Request, entry_id: UUID, payload: ReverseCommissionRequest, commission_service: CommissionServiceDep
) -> ApiResponse:
    entry = await commission_service.reverse_entry(entry_id, payload.reason)
    return create_api_response(data=CommissionEntryOut.model_validate(entry), message="Entry reversed", request=request)


@router.get(
    "/earnings",
    response_model=ApiResponse,
    summary="Commission earnings",
    description="Approved and paid commission for a rep over a date range; defaults to the caller.",
    operation_id="get_commission_earnings",
)
async def earnings(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    commission_service: CommissionServiceDep,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    user_id: Optional[str] = Query(None, alias="userId"),
) -> ApiResponse:
    summary = await commission_service.earnings(user_id or current_user.id, start_date, end_date)
    return create_api_response(data=summary, message="Earnings retrieved", request=request)
