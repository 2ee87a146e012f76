"""Pydantic request/response schemas."""

from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenPair,
)
from app.schemas.envelope import ApiResponse, ErrorResponse
from app.schemas.health import HealthResponse
from app.schemas.user import PublicUser, UpdateAccountRequest

__all__ = [
    "ApiResponse",
    "ChangePasswordRequest",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "PublicUser",
    "RefreshRequest",
    "TokenPair",
    "UpdateAccountRequest",
]
