"""Unit tests for app.services.tokens: pair issuance, secrets separation, expiry."""

import unittest
from datetime import timedelta
from types import SimpleNamespace

import jwt

from app.core.errors import InvalidToken
from app.services.tokens import TokenService, subject_id
from tests.support import make_token_service


def _user(**overrides: object) -> SimpleNamespace:
    fields = {"id": 7, "username": "alice", "email": "alice@x.com", "fullname": "Alice"}
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestIssueAndVerify(unittest.TestCase):
    def setUp(self) -> None:
        self.tokens = make_token_service()

    def test_access_token_carries_identity_claims(self) -> None:
        claims = self.tokens.verify_access(self.tokens.issue_access_token(_user()))
        self.assertEqual(claims["sub"], "7")
        self.assertEqual(claims["username"], "alice")
        self.assertEqual(claims["email"], "alice@x.com")
        self.assertEqual(claims["type"], "access")

    def test_refresh_token_carries_only_user_id(self) -> None:
        claims = self.tokens.verify_refresh(self.tokens.issue_refresh_token(_user()))
        self.assertEqual(subject_id(claims), 7)
        self.assertNotIn("email", claims)
        self.assertEqual(claims["type"], "refresh")

    def test_refresh_tokens_issued_back_to_back_differ(self) -> None:
        first = self.tokens.issue_refresh_token(_user())
        second = self.tokens.issue_refresh_token(_user())
        self.assertNotEqual(first, second)

    def test_issue_pair(self) -> None:
        pair = self.tokens.issue_pair(_user())
        self.tokens.verify_access(pair.access_token)
        self.tokens.verify_refresh(pair.refresh_token)

    def test_refresh_token_rejected_with_access_secret(self) -> None:
        token = self.tokens.issue_refresh_token(_user())
        with self.assertRaises(InvalidToken):
            self.tokens.verify(token, self.tokens.access_secret)
        with self.assertRaises(InvalidToken):
            self.tokens.verify_access(token)

    def test_access_token_rejected_as_refresh(self) -> None:
        token = self.tokens.issue_access_token(_user())
        with self.assertRaises(InvalidToken):
            self.tokens.verify_refresh(token)

    def test_token_signed_with_same_secret_but_wrong_type_is_rejected(self) -> None:
        forged = jwt.encode(
            {"sub": "7", "type": "access", "exp": 9999999999},
            self.tokens.refresh_secret,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidToken):
            self.tokens.verify_refresh(forged)

    def test_malformed_token(self) -> None:
        with self.assertRaises(InvalidToken):
            self.tokens.verify("not-a-jwt", self.tokens.access_secret)

    def test_expired_token(self) -> None:
        expired = make_token_service(access_ttl=timedelta(seconds=-10))
        token = expired.issue_access_token(_user())
        with self.assertRaises(InvalidToken):
            expired.verify_access(token)


class TestFromSettings(unittest.TestCase):
    def test_uses_configured_secrets_and_ttls(self) -> None:
        from unittest.mock import MagicMock

        from pydantic import SecretStr

        settings = MagicMock()
        settings.ACCESS_TOKEN_SECRET = SecretStr("a-secret")
        settings.REFRESH_TOKEN_SECRET = SecretStr("r-secret")
        settings.ACCESS_TOKEN_EXPIRE_MINUTES = 5
        settings.REFRESH_TOKEN_EXPIRE_DAYS = 2
        settings.JWT_ALGORITHM = "HS256"
        service = TokenService.from_settings(settings)
        self.assertEqual(service.access_secret, "a-secret")
        self.assertEqual(service.refresh_secret, "r-secret")
        self.assertEqual(service.access_ttl, timedelta(minutes=5))
        self.assertEqual(service.refresh_ttl, timedelta(days=2))


class TestSubjectId(unittest.TestCase):
    def test_non_integer_sub(self) -> None:
        with self.assertRaises(InvalidToken):
            subject_id({"sub": "abc"})

    def test_missing_sub(self) -> None:
        with self.assertRaises(InvalidToken):
            subject_id({})


if __name__ == "__main__":
    unittest.main()
