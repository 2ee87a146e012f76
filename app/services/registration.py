"""One-shot user registration: validate, check uniqueness, upload media, create."""

import logging
from dataclasses import dataclass
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from app.core.errors import (
    AppError,
    CreationFailed,
    DeleteFailed,
    DuplicateIdentity,
    MissingFile,
    NotFoundOnHost,
    UploadFailed,
    ValidationFailed,
)
from app.schemas.user import PublicUser
from app.services.credential_store import CredentialStore
from app.services.identity import (
    ensure_valid_email,
    ensure_valid_fullname,
    ensure_valid_password,
    ensure_valid_username,
    is_blank,
)
from app.services.media_host import MediaHost

logger = logging.getLogger(__name__)


@dataclass
class RegistrationRequest:
    fullname: str | None
    email: str | None
    username: str | None
    password: str | None
    avatar_path: str | Path | None = None
    cover_image_path: str | Path | None = None


class RegistrationFlow:
    def __init__(self, store: CredentialStore, media_host: MediaHost) -> None:
        self.store = store
        self.media_host = media_host

    async def register(self, req: RegistrationRequest) -> PublicUser:
        """
        Create a user and return its public projection.

        Raises ValidationFailed, DuplicateIdentity, MissingFile, UploadFailed
        or CreationFailed. Nothing is written unless the avatar upload succeeds.
        Store calls (bcrypt, SQL) run in the threadpool.
        """
        if any(is_blank(v) for v in (req.fullname, req.email, req.username, req.password)):
            raise ValidationFailed("All fields are required")
        fullname = ensure_valid_fullname(req.fullname)
        email = ensure_valid_email(req.email)
        username = ensure_valid_username(req.username)
        ensure_valid_password(req.password)

        existing = await run_in_threadpool(
            self.store.find_by_identity, username=username, email=email
        )
        if existing is not None:
            raise DuplicateIdentity()

        if req.avatar_path is None:
            raise MissingFile("Avatar file is required")

        avatar = await self.media_host.upload(req.avatar_path)
        cover_image_url = ""
        if req.cover_image_path is not None:
            try:
                cover_image_url = (await self.media_host.upload(req.cover_image_path)).url
            except UploadFailed as e:
                logger.warning("Cover image upload failed during registration: %s", e.message)

        fields = {
            "fullname": fullname,
            "avatar": avatar.url,
            "cover_image": cover_image_url,
            "username": username,
            "email": email,
            "password": req.password,
        }
        try:
            user = await run_in_threadpool(self.store.create, fields)
        except AppError:
            await self._discard_uploads(avatar.url, cover_image_url)
            raise
        created = await run_in_threadpool(self.store.get_public, user.id)
        if created is None:
            raise CreationFailed()
        logger.info("User registered: id=%s username=%s", created.id, created.username)
        return created

    async def _discard_uploads(self, *urls: str) -> None:
        """Best-effort removal of media uploaded for a registration that was not stored."""
        for url in urls:
            if not url:
                continue
            try:
                await self.media_host.delete_by_url(url)
            except (NotFoundOnHost, DeleteFailed) as e:
                logger.warning("Could not discard uploaded media %s: %s", url, e.message)
