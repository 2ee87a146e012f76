"""Request/response schemas for session endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.user import PublicUser

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(BaseModel):
    """Credentials for login; either username or email identifies the user."""

    model_config = _camel

    username: str | None = Field(default=None, max_length=255, description="Username")
    email: str | None = Field(default=None, max_length=320, description="Email")
    password: str | None = Field(default=None, max_length=128, description="Password")


class RefreshRequest(BaseModel):
    """Refresh token supplied in the body when no cookie is available."""

    model_config = _camel

    refresh_token: str | None = None


class ChangePasswordRequest(BaseModel):
    model_config = _camel

    old_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)


class TokenPair(BaseModel):
    """Access/refresh token pair issued together."""

    model_config = _camel

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class LoginResponse(BaseModel):
    """Signed-in user plus the freshly issued token pair."""

    model_config = _camel

    user: PublicUser
    access_token: str
    refresh_token: str
