"""Error taxonomy shared by services and the HTTP layer.

Every failure a flow can surface is an AppError subclass carrying the HTTP
status it maps to. Services raise these directly; the exception handler in
app.main renders them as the {status, message} error envelope.
"""

from fastapi import status


class AppError(Exception):
    """Base for all domain errors; carries a message and its HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class MissingFile(ValidationFailed):
    default_message = "File is required"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid user credentials"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class InvalidToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class TokenReplayed(AppError):
    """Presented refresh token is no longer the one stored for the user."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Refresh token is expired or used"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User does not exist"


class DuplicateIdentity(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "User with email or username already exists"


class UploadFailed(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Error while uploading file to media host"


class CreationFailed(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong while registering the user"


class TokenIssuanceFailed(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong while generating access and refresh tokens"


class NotFoundOnHost(AppError):
    """Media host reports the resource is already gone."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found on media host"


class DeleteFailed(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Media host delete failed"
