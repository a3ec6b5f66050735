"""Current-user endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from app.core.auth import get_current_user
from app.core.config import settings
from app.schemas.auth import CurrentUser, UserProfile
from app.schemas.common import ApiResponse
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/whoami",
    response_model=ApiResponse,
    summary="Get current user profile",
    description="Profile of the authenticated principal as carried by the access token",
    operation_id="get_current_user_profile",
)
async def get_current_user_profile(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse:
    profile = UserProfile(**current_user.model_dump())
    LOGGER.debug(f"User profile retrieved for user: {current_user.id}")
    return create_api_response(data=profile, message="Current user", request=request)


@router.post(
    "/logout",
    response_model=ApiResponse,
    summary="Logout user",
    description="Clears the access and refresh cookies. Bearer-token clients simply discard their token.",
    operation_id="logout_user",
)
async def logout_user(
    request: Request,
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse:
    response.delete_cookie(settings.auth.access_cookie_name, path="/")
    response.delete_cookie(settings.auth.refresh_cookie_name, path="/")
    LOGGER.info(f"User logged out: {current_user.id}")
    return create_api_response(data=None, message="Logged out successfully", request=request)
