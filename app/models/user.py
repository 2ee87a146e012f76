"""ORM model for user accounts."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.models.base import Base

# Columns that may be returned to callers; password_hash and refresh_token never are.
PUBLIC_COLUMNS = (
    "id",
    "username",
    "email",
    "fullname",
    "avatar",
    "cover_image",
    "created_at",
    "updated_at",
)


class User(Base):
    """
    User account with credentials, profile media and the current refresh token.

    refresh_token holds the single refresh token currently accepted for this
    user; NULL after logout.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    fullname = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar = Column(String(2048), nullable=False)
    cover_image = Column(String(2048), nullable=False, default="")
    refresh_token = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
