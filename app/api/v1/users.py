"""Account endpoints: registration, profile details and avatar/cover image."""

from contextlib import AsyncExitStack
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.api.v1.deps import (
    get_credential_store,
    get_current_user,
    get_media_manager,
    get_registration_flow,
)
from app.api.v1.files import staged_upload
from app.core.config import get_settings
from app.core.errors import NotFound, ValidationFailed
from app.schemas.envelope import ApiResponse
from app.schemas.user import PublicUser, UpdateAccountRequest
from app.services.credential_store import CredentialStore
from app.services.identity import ensure_valid_email, ensure_valid_fullname
from app.services.media import AVATAR, COVER_IMAGE, MediaAttachmentManager
from app.services.registration import RegistrationFlow, RegistrationRequest

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse[PublicUser],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    flow: Annotated[RegistrationFlow, Depends(get_registration_flow)],
    fullname: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    username: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
) -> ApiResponse[PublicUser]:
    """
    Register a user from multipart form data.

    - **fields**: fullname, email, username, password (all required)
    - **files**: avatar (required), coverImage (optional)
    """
    settings = get_settings()
    async with AsyncExitStack() as stack:
        avatar_path = await stack.enter_async_context(staged_upload(avatar, settings))
        cover_path = await stack.enter_async_context(staged_upload(cover_image, settings))
        user = await flow.register(
            RegistrationRequest(
                fullname=fullname,
                email=email,
                username=username,
                password=password,
                avatar_path=avatar_path,
                cover_image_path=cover_path,
            )
        )
    return ApiResponse(status=201, data=user, message="User registered successfully")


@router.get("/current-user", response_model=ApiResponse[PublicUser])
def current_user(
    user: Annotated[PublicUser, Depends(get_current_user)],
) -> ApiResponse[PublicUser]:
    return ApiResponse(status=200, data=user, message="Current user fetched successfully")


@router.patch("/update-account", response_model=ApiResponse[PublicUser])
def update_account(
    body: UpdateAccountRequest,
    user: Annotated[PublicUser, Depends(get_current_user)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
) -> ApiResponse[PublicUser]:
    """Update full name and/or email."""
    if body.fullname is None and body.email is None:
        raise ValidationFailed("Fullname or email is required")
    email = ensure_valid_email(body.email) if body.email is not None else None
    fullname = ensure_valid_fullname(body.fullname) if body.fullname is not None else None
    updated = store.update_details(user.id, fullname=fullname, email=email)
    return ApiResponse(status=200, data=updated, message="Account details updated successfully")


async def _replace_media(
    field: str,
    file: UploadFile | None,
    user: PublicUser,
    media: MediaAttachmentManager,
) -> PublicUser:
    async with staged_upload(file, get_settings()) as path:
        await media.replace(user.id, field, path)
    updated = await run_in_threadpool(media.store.get_public, user.id)
    if updated is None:
        raise NotFound()
    return updated


@router.patch("/avatar", response_model=ApiResponse[PublicUser])
async def update_avatar(
    user: Annotated[PublicUser, Depends(get_current_user)],
    media: Annotated[MediaAttachmentManager, Depends(get_media_manager)],
    avatar: Annotated[UploadFile | None, File()] = None,
) -> ApiResponse[PublicUser]:
    """Replace the avatar; the previous image is deleted from the media host in the background."""
    updated = await _replace_media(AVATAR, avatar, user, media)
    return ApiResponse(status=200, data=updated, message="Avatar updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[PublicUser])
async def update_cover_image(
    user: Annotated[PublicUser, Depends(get_current_user)],
    media: Annotated[MediaAttachmentManager, Depends(get_media_manager)],
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
) -> ApiResponse[PublicUser]:
    updated = await _replace_media(COVER_IMAGE, cover_image, user, media)
    return ApiResponse(status=200, data=updated, message="Cover image updated successfully")
