"""Normalization and format checks for user identity fields."""

from email_validator import EmailNotValidError, validate_email

from app.core.errors import ValidationFailed
from app.core.security import (
    FULLNAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    password_length_ok,
)


def normalize_username(username: str) -> str:
    return username.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def ensure_valid_email(email: str) -> str:
    """Return the normalized email. Raises ValidationFailed on bad syntax."""
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationFailed("Invalid email entered") from e
    return normalize_email(email)


def ensure_valid_username(username: str) -> str:
    normalized = normalize_username(username)
    if not normalized or len(normalized) > USERNAME_MAX_LEN:
        raise ValidationFailed("Invalid username length")
    return normalized


def ensure_valid_fullname(fullname: str) -> str:
    """Return the stripped full name. Raises ValidationFailed if empty or too long."""
    stripped = fullname.strip()
    if not stripped or len(stripped) > FULLNAME_MAX_LEN:
        raise ValidationFailed(f"Fullname must be between 1 and {FULLNAME_MAX_LEN} characters")
    return stripped


def ensure_valid_password(password: str) -> None:
    if not password_length_ok(password):
        raise ValidationFailed(
            f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters"
        )
