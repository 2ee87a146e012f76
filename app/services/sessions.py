"""Session lifecycle: login, refresh (rotation), logout and password change.

The session manager is the only writer of a user's stored refresh token. A
refresh token is accepted only while it equals the stored value exactly; each
successful refresh replaces it, so every earlier token becomes a replay.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import (
    InvalidCredentials,
    InvalidToken,
    NotFound,
    TokenIssuanceFailed,
    TokenReplayed,
    Unauthenticated,
    ValidationFailed,
)
from app.models.user import User
from app.schemas.auth import TokenPair
from app.schemas.user import PublicUser
from app.services.credential_store import CredentialStore
from app.services.identity import (
    ensure_valid_password,
    is_blank,
    normalize_email,
    normalize_username,
)
from app.services.tokens import TokenService, subject_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: PublicUser
    tokens: TokenPair


class SessionManager:
    """Orchestrates token issuance over the credential store."""

    def __init__(self, store: CredentialStore, tokens: TokenService) -> None:
        self.store = store
        self.tokens = tokens

    def _issue_and_store(self, user: User, expected: str | None = None, rotate: bool = False) -> TokenPair:
        """
        Issue a new pair and persist its refresh token.

        With rotate=True the write is conditional on the stored token still
        being `expected`. Storage failures surface as TokenIssuanceFailed.
        """
        pair = self.tokens.issue_pair(user)
        try:
            if rotate:
                self.store.set_refresh_token(user.id, pair.refresh_token, expected=expected)
            else:
                self.store.set_refresh_token(user.id, pair.refresh_token)
        except SQLAlchemyError as e:
            logger.exception("Token persistence failed for user id=%s", user.id)
            raise TokenIssuanceFailed() from e
        return pair

    def login(
        self,
        password: str | None,
        username: str | None = None,
        email: str | None = None,
    ) -> LoginResult:
        """
        Authenticate by username or email plus password.
        Raises ValidationFailed, NotFound or InvalidCredentials.
        """
        if is_blank(username) and is_blank(email):
            raise ValidationFailed("Username or email is required")
        if is_blank(password):
            raise ValidationFailed("Password is required")

        user = self.store.find_by_identity(
            username=normalize_username(username) if not is_blank(username) else None,
            email=normalize_email(email) if not is_blank(email) else None,
        )
        if user is None:
            raise NotFound()
        if not self.store.verify_password(user, password):
            logger.info("Login rejected: bad password for user id=%s", user.id)
            raise InvalidCredentials()

        pair = self._issue_and_store(user)
        public = self.store.get_public(user.id)
        if public is None:
            raise NotFound()
        logger.info("User logged in: id=%s", user.id)
        return LoginResult(user=public, tokens=pair)

    def refresh(self, presented: str | None) -> TokenPair:
        """
        Exchange the current refresh token for a new pair, rotating the stored token.
        Raises Unauthenticated, InvalidToken or TokenReplayed.
        """
        if is_blank(presented):
            raise Unauthenticated()
        claims = self.tokens.verify_refresh(presented)
        user = self.store.get(subject_id(claims))
        if user is None:
            raise InvalidToken("Invalid refresh token")
        if user.refresh_token is None or user.refresh_token != presented:
            logger.warning("Refresh token replay rejected for user id=%s", user.id)
            raise TokenReplayed()
        try:
            pair = self._issue_and_store(user, expected=presented, rotate=True)
        except TokenReplayed:
            logger.warning("Concurrent refresh lost the rotation race for user id=%s", user.id)
            raise
        logger.info("Tokens refreshed for user id=%s", user.id)
        return pair

    def logout(self, user_id: int) -> None:
        """Clear the stored refresh token; any outstanding refresh token stops working."""
        self.store.set_refresh_token(user_id, None)
        logger.info("User logged out: id=%s", user_id)

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        """Raises NotFound, InvalidCredentials or ValidationFailed."""
        user = self.store.get(user_id)
        if user is None:
            raise NotFound()
        if not self.store.verify_password(user, old_password):
            raise InvalidCredentials("Invalid old password")
        ensure_valid_password(new_password)
        self.store.set_password(user_id, new_password)
        logger.info("Password changed for user id=%s", user_id)
