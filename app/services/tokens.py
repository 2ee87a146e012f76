"""Access/refresh JWT issuance and verification.

Access and refresh tokens are signed with different secrets so that leaking
one secret never lets a holder mint the other token class. The service is
stateless: it never touches the database.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

import jwt

from app.core.errors import InvalidToken
from app.schemas.auth import TokenPair

if TYPE_CHECKING:
    from app.core.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenSubject(Protocol):
    """Anything with the user attributes a token is issued over."""

    id: Any
    username: str
    email: str
    fullname: str


class TokenService:
    """Signs and verifies access and refresh tokens."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
    ) -> None:
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET.get_secret_value(),
            refresh_secret=settings.REFRESH_TOKEN_SECRET.get_secret_value(),
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            algorithm=settings.JWT_ALGORITHM,
        )

    def _sign(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, user: TokenSubject) -> str:
        """Short-lived token carrying the user id plus username, email and full name."""
        claims = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "fullname": user.fullname,
            "type": ACCESS_TOKEN_TYPE,
        }
        return self._sign(claims, self.access_secret, self.access_ttl)

    def issue_refresh_token(self, user: TokenSubject) -> str:
        """Long-lived token carrying only the user id."""
        # jti keeps two tokens issued within the same second distinct.
        claims = {
            "sub": str(user.id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": secrets.token_urlsafe(16),
        }
        return self._sign(claims, self.refresh_secret, self.refresh_ttl)

    def issue_pair(self, user: TokenSubject) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
        )

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        """
        Decode and validate a token; return its claims.
        Raises InvalidToken on malformed token, bad signature or expiry.
        """
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidToken() from e

    def _verify_typed(self, token: str, secret: str, token_type: str) -> dict[str, Any]:
        claims = self.verify(token, secret)
        if claims.get("type") != token_type:
            raise InvalidToken()
        return claims

    def verify_access(self, token: str) -> dict[str, Any]:
        return self._verify_typed(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> dict[str, Any]:
        return self._verify_typed(token, self.refresh_secret, REFRESH_TOKEN_TYPE)


def subject_id(claims: dict[str, Any]) -> int:
    """Return the integer user id from the sub claim. Raises InvalidToken when malformed."""
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken("Invalid token payload") from e
