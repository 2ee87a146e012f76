"""Tests for app.services.credential_store against an in-memory database."""

import unittest

from app.core.errors import DuplicateIdentity, NotFound, TokenReplayed
from app.models import User
from tests.support import create_user, make_session, make_store


class CredentialStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session()
        self.store = make_store(self.session)
        self.user = create_user(self.store)

    def tearDown(self) -> None:
        self.session.close()


class TestLookups(CredentialStoreTestCase):
    def test_find_by_username(self) -> None:
        self.assertEqual(self.store.find_by_identity(username="alice").id, self.user.id)

    def test_find_by_email(self) -> None:
        self.assertEqual(self.store.find_by_identity(email="alice@x.com").id, self.user.id)

    def test_either_identity_matches(self) -> None:
        found = self.store.find_by_identity(username="nobody", email="alice@x.com")
        self.assertEqual(found.id, self.user.id)

    def test_no_identity_returns_none(self) -> None:
        self.assertIsNone(self.store.find_by_identity())

    def test_unknown_identity(self) -> None:
        self.assertIsNone(self.store.find_by_identity(username="bob", email="bob@x.com"))

    def test_public_projection_has_no_credentials(self) -> None:
        self.store.set_refresh_token(self.user.id, "some-token")
        public = self.store.get_public(self.user.id)
        dumped = public.model_dump()
        self.assertEqual(public.username, "alice")
        self.assertNotIn("password_hash", dumped)
        self.assertNotIn("password", dumped)
        self.assertNotIn("refresh_token", dumped)

    def test_public_projection_missing_user(self) -> None:
        self.assertIsNone(self.store.get_public(999))


class TestCreate(CredentialStoreTestCase):
    def test_password_is_hashed(self) -> None:
        self.assertNotEqual(self.user.password_hash, "p@ss1234")
        self.assertTrue(self.store.verify_password(self.user, "p@ss1234"))
        self.assertFalse(self.store.verify_password(self.user, "wrong"))

    def test_duplicate_username_rejected_by_database(self) -> None:
        with self.assertRaises(DuplicateIdentity):
            create_user(self.store, username="alice", email="other@x.com")
        self.assertEqual(self.session.query(User).count(), 1)

    def test_duplicate_email_rejected_by_database(self) -> None:
        with self.assertRaises(DuplicateIdentity):
            create_user(self.store, username="other", email="alice@x.com")
        self.assertEqual(self.session.query(User).count(), 1)


class TestSetRefreshToken(CredentialStoreTestCase):
    def _stored(self) -> str | None:
        return self.store.get(self.user.id).refresh_token

    def test_unconditional_set_and_clear(self) -> None:
        self.store.set_refresh_token(self.user.id, "t1")
        self.assertEqual(self._stored(), "t1")
        self.store.set_refresh_token(self.user.id, None)
        self.assertIsNone(self._stored())

    def test_compare_and_swap_applies_when_expected_matches(self) -> None:
        self.store.set_refresh_token(self.user.id, "t1")
        self.store.set_refresh_token(self.user.id, "t2", expected="t1")
        self.assertEqual(self._stored(), "t2")

    def test_compare_and_swap_rejects_stale_expected(self) -> None:
        self.store.set_refresh_token(self.user.id, "t1")
        self.store.set_refresh_token(self.user.id, "t2", expected="t1")
        with self.assertRaises(TokenReplayed):
            self.store.set_refresh_token(self.user.id, "t3", expected="t1")
        self.assertEqual(self._stored(), "t2")

    def test_compare_and_swap_against_cleared_token(self) -> None:
        self.store.set_refresh_token(self.user.id, "t1", expected=None)
        self.assertEqual(self._stored(), "t1")

    def test_missing_user(self) -> None:
        with self.assertRaises(NotFound):
            self.store.set_refresh_token(999, "t1")


class TestNarrowWrites(CredentialStoreTestCase):
    def test_set_password(self) -> None:
        self.store.set_password(self.user.id, "n3w-passw0rd")
        user = self.store.get(self.user.id)
        self.assertTrue(self.store.verify_password(user, "n3w-passw0rd"))
        self.assertFalse(self.store.verify_password(user, "p@ss1234"))

    def test_set_password_missing_user(self) -> None:
        with self.assertRaises(NotFound):
            self.store.set_password(999, "n3w-passw0rd")

    def test_set_media_url(self) -> None:
        self.store.set_media_url(self.user.id, "cover_image", "https://cdn/x.png")
        self.assertEqual(self.store.get_public(self.user.id).cover_image, "https://cdn/x.png")

    def test_set_media_url_rejects_other_columns(self) -> None:
        with self.assertRaises(ValueError):
            self.store.set_media_url(self.user.id, "password_hash", "x")

    def test_update_details(self) -> None:
        updated = self.store.update_details(self.user.id, fullname="Alice Liddell")
        self.assertEqual(updated.fullname, "Alice Liddell")
        self.assertEqual(updated.email, "alice@x.com")

    def test_update_details_duplicate_email(self) -> None:
        create_user(self.store, username="bob", email="bob@x.com")
        with self.assertRaises(DuplicateIdentity):
            self.store.update_details(self.user.id, email="bob@x.com")
        self.assertEqual(self.store.get_public(self.user.id).email, "alice@x.com")


if __name__ == "__main__":
    unittest.main()
