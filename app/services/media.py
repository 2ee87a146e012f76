"""Avatar and cover image replacement.

The new file is uploaded before anything else changes, and the record is
switched to the new URL before the old resource is touched. The old resource
is then deleted in the background; that deletion never affects the result.
"""

import logging
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from app.core.errors import DeleteFailed, MissingFile, NotFound, NotFoundOnHost
from app.services.background import BackgroundDispatcher
from app.services.credential_store import MEDIA_FIELDS, CredentialStore
from app.services.media_host import MediaHost

logger = logging.getLogger(__name__)

AVATAR = "avatar"
COVER_IMAGE = "cover_image"


class MediaAttachmentManager:
    """Replaces a user's avatar or cover image on the media host and in the store."""

    def __init__(
        self,
        store: CredentialStore,
        media_host: MediaHost,
        dispatcher: BackgroundDispatcher,
    ) -> None:
        self.store = store
        self.media_host = media_host
        self.dispatcher = dispatcher

    async def replace(self, user_id: int, field: str, local_path: str | Path | None) -> str:
        """
        Upload `local_path` and point `field` at it; return the new URL.

        Raises MissingFile (avatar without a file), NotFound or UploadFailed.
        A cover image without a file leaves the record untouched.
        """
        if field not in MEDIA_FIELDS:
            raise ValueError(f"Unknown media field: {field!r}")
        if local_path is None and field == AVATAR:
            raise MissingFile("Avatar file is missing")

        user = await run_in_threadpool(self.store.get, user_id)
        if user is None:
            raise NotFound()
        old_url = getattr(user, field) or ""
        if local_path is None:
            return old_url

        uploaded = await self.media_host.upload(local_path)
        await run_in_threadpool(self.store.set_media_url, user_id, field, uploaded.url)
        logger.info("Updated %s for user id=%s", field, user_id)

        if old_url and old_url != uploaded.url:
            self.dispatcher.dispatch(
                self._delete_old(old_url),
                description=f"delete old {field} of user id={user_id}",
            )
        return uploaded.url

    async def _delete_old(self, url: str) -> None:
        try:
            await self.media_host.delete_by_url(url)
        except NotFoundOnHost:
            logger.info("Old media already gone from host: %s", url)
        except DeleteFailed as e:
            logger.warning("Could not delete old media %s: %s", url, e.message)
