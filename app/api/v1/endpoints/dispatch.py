"""Dispatch board endpoints and the realtime board channel."""

import asyncio
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect, status

from app.core.auth import authenticate_token
from app.core.config import settings
from app.dependencies import get_dispatch_board_service
from app.schemas.common import ApiResponse
from app.services.operations.dispatch_board_service import DispatchBoardService
from app.services.realtime.dispatch_events import DispatchEvent, DispatchEventType, dispatch_hub
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()

BoardServiceDep = Annotated[DispatchBoardService, Depends(get_dispatch_board_service)]


@router.get(
    "/board",
    response_model=ApiResponse,
    summary="Dispatch board",
    description="Active loads grouped into status lanes, with at-risk flags and board statistics.",
    operation_id="get_dispatch_board",
)
async def get_board(
    request: Request,
    board_service: BoardServiceDep,
    carrier_id: Optional[UUID] = Query(None, alias="carrierId"),
    equipment_type: Optional[str] = Query(None, alias="equipmentType"),
    pickup_from: Optional[datetime] = Query(None, alias="pickupFrom"),
    pickup_to: Optional[datetime] = Query(None, alias="pickupTo"),
) -> ApiResponse:
    board = await board_service.get_board(
        carrier_id=carrier_id,
        equipment_type=equipment_type,
        pickup_from=pickup_from,
        pickup_to=pickup_to,
    )
    return create_api_response(data=board, message="Dispatch board retrieved", request=request)


@router.get("/stats", response_model=ApiResponse, summary="Board statistics", operation_id="get_dispatch_stats")
async def get_stats(request: Request, board_service: BoardServiceDep) -> ApiResponse:
    stats = await board_service.get_stats()
    return create_api_response(data=stats, message="Board statistics retrieved", request=request)


async def _heartbeat(websocket: WebSocket, tenant_id: UUID) -> None:
    interval = settings.load_board.realtime_heartbeat_seconds
    while True:
        await asyncio.sleep(interval)
        event = DispatchEvent(type=DispatchEventType.HEARTBEAT.value, tenant_id=tenant_id)
        try:
            await websocket.send_json(event.to_wire())
        except (WebSocketDisconnect, RuntimeError, ConnectionError):
            return


@router.websocket("/ws")
async def dispatch_socket(websocket: WebSocket, token: Optional[str] = None) -> None:
    """Realtime board notifications for the caller's tenant.

    The access token comes from the ``token`` query parameter or the access
    cookie, since browsers cannot set headers on a WebSocket handshake.
    Inbound messages are ignored; the socket only pushes.
    """
    token = token or websocket.cookies.get(settings.auth.access_cookie_name)
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        user = await authenticate_token(token)
    except jwt.InvalidTokenError as e:
        LOGGER.warning(f"Rejected dispatch socket: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    tenant_id = user.tenant_id
    await dispatch_hub.connect(tenant_id, websocket)
    heartbeat = asyncio.create_task(_heartbeat(websocket, tenant_id))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        LOGGER.info("Dispatch board disconnected", extra={"tenant_id": str(tenant_id), "user_id": user.id})
    finally:
        heartbeat.cancel()
        dispatch_hub.disconnect(tenant_id, websocket)
