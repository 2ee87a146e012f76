"""Token cookies: httponly, secure cookies carrying the access/refresh pair."""

from fastapi import Response

from app.core.config import Settings
from app.schemas.auth import TokenPair

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def set_token_cookies(response: Response, tokens: TokenPair, settings: Settings) -> None:
    for name, value, max_age in (
        (ACCESS_COOKIE, tokens.access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60),
        (REFRESH_COOKIE, tokens.refresh_token, settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400),
    ):
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
        )


def clear_token_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=name,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
        )
