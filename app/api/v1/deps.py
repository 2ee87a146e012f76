"""Dependency providers wiring services to the request."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.api.v1.cookies import ACCESS_COOKIE
from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import InvalidToken, Unauthenticated
from app.schemas.user import PublicUser
from app.services.background import BackgroundDispatcher
from app.services.credential_store import CredentialStore
from app.services.media import MediaAttachmentManager
from app.services.media_host import MediaHost
from app.services.registration import RegistrationFlow
from app.services.sessions import SessionManager
from app.services.tokens import TokenService, subject_id

security = HTTPBearer(auto_error=False)


@lru_cache
def get_token_service() -> TokenService:
    return TokenService.from_settings(get_settings())


def get_credential_store(db: Annotated[Session, Depends(get_db)]) -> CredentialStore:
    return CredentialStore(db)


def get_media_host(request: Request) -> MediaHost:
    """Media host client created at startup (see app.main lifespan)."""
    return request.app.state.media_host


def get_dispatcher(request: Request) -> BackgroundDispatcher:
    return request.app.state.dispatcher


def get_session_manager(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> SessionManager:
    return SessionManager(store, tokens)


def get_media_manager(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    media_host: Annotated[MediaHost, Depends(get_media_host)],
    dispatcher: Annotated[BackgroundDispatcher, Depends(get_dispatcher)],
) -> MediaAttachmentManager:
    return MediaAttachmentManager(store, media_host, dispatcher)


def get_registration_flow(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    media_host: Annotated[MediaHost, Depends(get_media_host)],
) -> RegistrationFlow:
    return RegistrationFlow(store, media_host)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> PublicUser:
    """
    Dependency: require a valid access token from the accessToken cookie or
    an Authorization: Bearer header, and return the public user. 401 otherwise.
    """
    token = request.cookies.get(ACCESS_COOKIE)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise Unauthenticated()
    claims = tokens.verify_access(token)
    user = store.get_public(subject_id(claims))
    if user is None:
        raise InvalidToken("Invalid access token")
    return user
