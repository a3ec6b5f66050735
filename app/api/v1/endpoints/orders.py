"""Order API endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user
from app.dependencies import get_order_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.loads import (
    CancelRequest,
    HoldRequest,
    LoadFromOrderRequest,
    LoadOut,
    OrderCreate,
    OrderOut,
    OrderStatusUpdate,
    OrderUpdate,
)
from app.services.operations.order_service import OrderService
from app.utils.responses import create_api_response

router = APIRouter()

OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
UserDep = Annotated[CurrentUser, Depends(get_current_user)]


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
    operation_id="create_order",
)
async def create_order(
    request: Request, payload: OrderCreate, current_user: UserDep, order_service: OrderServiceDep
) -> ApiResponse:
    order = await order_service.create_order(payload, user_id=current_user.id)
    return create_api_response(
        data=OrderOut.model_validate(order), message=f"Order {order.order_number} created", request=request
    )


@router.get("", response_model=ApiResponse, summary="List orders", operation_id="list_orders")
async def list_orders(
    request: Request,
    order_service: OrderServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    customer_id: Optional[UUID] = Query(None, alias="customerId"),
    sales_rep_id: Optional[str] = Query(None, alias="salesRepId"),
    search: Optional[str] = None,
) -> ApiResponse:
    result = await order_service.list_orders(
        page=page,
        limit=limit,
        status=status_filter,
        customer_id=customer_id,
        sales_rep_id=sales_rep_id,
        search=search,
    )
    return create_api_response(data=result, message="Orders retrieved", request=request)


@router.get("/{order_id}", response_model=ApiResponse, summary="Get an order", operation_id="get_order")
async def get_order(request: Request, order_id: UUID, order_service: OrderServiceDep) -> ApiResponse:
    order = await order_service.get_order(order_id)
    return create_api_response(data=OrderOut.model_validate(order), message="Order retrieved", request=request)


@router.put("/{order_id}", response_model=ApiResponse, summary="Update an order", operation_id="update_order")
async def update_order(
    request: Request, order_id: UUID, payload: OrderUpdate, order_service: OrderServiceDep
) -> ApiResponse:
    order = await order_service.update_order(order_id, payload)
    return create_api_response(data=OrderOut.model_validate(order), message="Order updated", request=request)


@router.patch(
    "/{order_id}/status",
    response_model=ApiResponse,
    summary="Change order status",
    operation_id="update_order_status",
)
async def update_order_status(
    request: Request, order_id: UUID, payload: OrderStatusUpdate, order_service: OrderServiceDep
) -> ApiResponse:
    order = await order_service.update_status(order_id, payload.status.value, reason=payload.reason)
    return create_api_response(
        data=OrderOut.model_validate(order), message=f"Order moved to {order.status}", request=request
    )


@router.post("/{order_id}/hold", response_model=ApiResponse, summary="Put an order on hold", operation_id="hold_order")
async def hold_order(
    request: Request, order_id: UUID, payload: HoldRequest, order_service: OrderServiceDep
) -> ApiResponse:
    order = await order_service.hold_order(order_id, payload.reason)
    return create_api_response(data=OrderOut.model_validate(order), message="Order placed on hold", request=request)


@router.post(
    "/{order_id}/release",
    response_model=ApiResponse,
    summary="Release an order from hold",
    operation_id="release_order",
)
async def release_order(request: Request, order_id: UUID, order_service: OrderServiceDep) -> ApiResponse:
    order = await order_service.release_order(order_id)
    return create_api_response(
        data=OrderOut.model_validate(order), message=f"Order released to {order.status}", request=request
    )


@router.post("/{order_id}/cancel", response_model=ApiResponse, summary="Cancel an order", operation_id="cancel_order")
async def cancel_order(
    request: Request, order_id: UUID, payload: CancelRequest, order_service: OrderServiceDep
) -> ApiResponse:
    order = await order_service.cancel_order(order_id, reason=payload.reason)
    return create_api_response(data=OrderOut.model_validate(order), message="Order cancelled", request=request)


@router.post(
    "/{order_id}/loads",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a load from an order",
    description="Copies the order's stops and rates into a new UNASSIGNED load.",
    operation_id="create_load_from_order",
)
async def create_load_from_order(
    request: Request,
    order_id: UUID,
    payload: LoadFromOrderRequest,
    current_user: UserDep,
    order_service: OrderServiceDep,
) -> ApiResponse:
    load = await order_service.create_load_from_order(order_id, payload, user_id=current_user.id)
    return create_api_response(
        data=LoadOut.model_validate(load), message=f"Load {load.load_number} created from order", request=request
    )
