"""Session endpoints: login, logout, refresh-token rotation and password change."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from app.api.v1.cookies import REFRESH_COOKIE, clear_token_cookies, set_token_cookies
from app.api.v1.deps import get_current_user, get_session_manager
from app.core.config import get_settings
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenPair,
)
from app.schemas.envelope import ApiResponse
from app.schemas.user import PublicUser
from app.services.sessions import SessionManager

router = APIRouter()


@router.post("/login", response_model=ApiResponse[LoginResponse])
def login(
    body: LoginRequest,
    response: Response,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> ApiResponse[LoginResponse]:
    """
    Authenticate with username or email plus password.
    Sets accessToken/refreshToken cookies and also returns both tokens in the body.
    """
    result = sessions.login(
        password=body.password,
        username=body.username,
        email=body.email,
    )
    set_token_cookies(response, result.tokens, get_settings())
    return ApiResponse(
        status=200,
        data=LoginResponse(
            user=result.user,
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        ),
        message="User logged in successfully",
    )


@router.post("/logout", response_model=ApiResponse[dict[str, Any]])
def logout(
    response: Response,
    current_user: Annotated[PublicUser, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> ApiResponse[dict[str, Any]]:
    """Invalidate the stored refresh token, then clear the token cookies."""
    sessions.logout(current_user.id)
    clear_token_cookies(response, get_settings())
    return ApiResponse(status=200, data={}, message="User logged out")


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
def refresh_token(
    request: Request,
    response: Response,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    body: RefreshRequest | None = None,
) -> ApiResponse[TokenPair]:
    """Exchange the refresh token (cookie or body) for a new pair; the old one stops working."""
    presented = request.cookies.get(REFRESH_COOKIE)
    if not presented and body is not None:
        presented = body.refresh_token
    tokens = sessions.refresh(presented)
    set_token_cookies(response, tokens, get_settings())
    return ApiResponse(status=200, data=tokens, message="Access token refreshed")


@router.post("/change-password", response_model=ApiResponse[dict[str, Any]])
def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[PublicUser, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> ApiResponse[dict[str, Any]]:
    sessions.change_password(current_user.id, body.old_password, body.new_password)
    return ApiResponse(status=200, data={}, message="Password changed successfully")
