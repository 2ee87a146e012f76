"""Response envelopes shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: {status, data, message}."""

    status: int = Field(..., description="HTTP status code")
    data: T
    message: str = "Success"


class ErrorResponse(BaseModel):
    """Error envelope: {status, message}."""

    status: int
    message: str
