"""Schemas for user records as seen by callers (never credentials)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PublicUser(BaseModel):
    """User record without password hash or refresh token."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UpdateAccountRequest(BaseModel):
    """Partial update of account details; at least one field is required."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    fullname: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=320)
