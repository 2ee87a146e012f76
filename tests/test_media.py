"""Tests for app.services.media: upload-before-delete ordering and best-effort cleanup."""

import asyncio
import unittest
from pathlib import Path

from app.core.errors import DeleteFailed, MissingFile, NotFound, NotFoundOnHost, UploadFailed
from app.services.background import BackgroundDispatcher
from app.services.media import AVATAR, COVER_IMAGE, MediaAttachmentManager
from tests.support import FakeMediaHost, create_user, make_session, make_store

OLD_AVATAR = "https://res.cloudinary.com/demo/image/upload/v1/avatars/alice.png"


class SlowDeleteHost(FakeMediaHost):
    """Blocks deletion until released; records what the store held when deletion began."""

    def __init__(self, store, user_id: int) -> None:
        super().__init__()
        self.store = store
        self.user_id = user_id
        self.release: asyncio.Event | None = None
        self.avatar_seen_at_delete: str | None = None

    async def delete_by_url(self, url: str) -> None:
        self.avatar_seen_at_delete = self.store.get_public(self.user_id).avatar
        await self.release.wait()
        self.deleted.append(url)


class MediaAttachmentManagerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session()
        self.store = make_store(self.session)
        self.user_id = create_user(self.store, avatar=OLD_AVATAR).id
        self.host = FakeMediaHost()

    def tearDown(self) -> None:
        self.session.close()

    def replace(self, field: str, path: str | None) -> str:
        async def scenario() -> str:
            dispatcher = BackgroundDispatcher()
            manager = MediaAttachmentManager(self.store, self.host, dispatcher)
            url = await manager.replace(self.user_id, field, path)
            await dispatcher.drain()
            return url

        return asyncio.run(scenario())

    def avatar(self) -> str:
        return self.store.get_public(self.user_id).avatar


class TestReplaceAvatar(MediaAttachmentManagerTestCase):
    def test_new_url_stored_and_old_deleted(self) -> None:
        url = self.replace(AVATAR, "/tmp/new-avatar.png")
        self.assertEqual(self.avatar(), url)
        self.assertEqual(self.host.uploaded, [Path("/tmp/new-avatar.png")])
        self.assertEqual(self.host.deleted, [OLD_AVATAR])

    def test_delete_failure_does_not_affect_result(self) -> None:
        self.host.delete_error = DeleteFailed("Media host delete failed with status 500")
        with self.assertLogs("app.services.media", level="WARNING"):
            url = self.replace(AVATAR, "/tmp/new-avatar.png")
        self.assertEqual(self.avatar(), url)

    def test_old_resource_already_gone(self) -> None:
        self.host.delete_error = NotFoundOnHost()
        url = self.replace(AVATAR, "/tmp/new-avatar.png")
        self.assertEqual(self.avatar(), url)

    def test_unexpected_delete_error_is_contained(self) -> None:
        self.host.delete_error = RuntimeError("socket closed")
        with self.assertLogs("app.services.background", level="WARNING"):
            url = self.replace(AVATAR, "/tmp/new-avatar.png")
        self.assertEqual(self.avatar(), url)

    def test_upload_failure_leaves_record_untouched(self) -> None:
        self.host.fail_all_uploads = True
        with self.assertRaises(UploadFailed):
            self.replace(AVATAR, "/tmp/new-avatar.png")
        self.assertEqual(self.avatar(), OLD_AVATAR)
        self.assertEqual(self.host.deleted, [])

    def test_missing_file(self) -> None:
        with self.assertRaises(MissingFile):
            self.replace(AVATAR, None)
        self.assertEqual(self.host.uploaded, [])

    def test_unknown_user(self) -> None:
        self.user_id = 999
        with self.assertRaises(NotFound):
            self.replace(AVATAR, "/tmp/new-avatar.png")
        self.assertEqual(self.host.uploaded, [])

    def test_replace_returns_before_delete_finishes(self) -> None:
        host = SlowDeleteHost(self.store, self.user_id)

        async def scenario() -> tuple[str, int, list[str]]:
            host.release = asyncio.Event()
            dispatcher = BackgroundDispatcher()
            manager = MediaAttachmentManager(self.store, host, dispatcher)
            url = await manager.replace(self.user_id, AVATAR, "/tmp/new-avatar.png")
            await asyncio.sleep(0)
            pending = dispatcher.pending
            deleted_so_far = list(host.deleted)
            host.release.set()
            await dispatcher.drain()
            return url, pending, deleted_so_far

        url, pending, deleted_so_far = asyncio.run(scenario())
        self.assertEqual(pending, 1)
        self.assertEqual(deleted_so_far, [])
        self.assertEqual(host.deleted, [OLD_AVATAR])
        # The record already pointed at the new upload when the old one was deleted.
        self.assertEqual(host.avatar_seen_at_delete, url)


class TestReplaceCoverImage(MediaAttachmentManagerTestCase):
    def test_first_cover_image_has_nothing_to_delete(self) -> None:
        url = self.replace(COVER_IMAGE, "/tmp/cover.png")
        self.assertEqual(self.store.get_public(self.user_id).cover_image, url)
        self.assertEqual(self.host.deleted, [])

    def test_no_file_is_a_noop(self) -> None:
        url = self.replace(COVER_IMAGE, None)
        self.assertEqual(url, "")
        self.assertEqual(self.host.uploaded, [])


class TestUnknownField(MediaAttachmentManagerTestCase):
    def test_rejects_non_media_field(self) -> None:
        with self.assertRaises(ValueError):
            self.replace("email", "/tmp/x.png")


if __name__ == "__main__":
    unittest.main()
