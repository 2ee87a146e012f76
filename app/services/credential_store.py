"""Persisted user records: lookups, creation and narrow single-field writes.

Writes that touch one column (refresh token, password hash, media URL) go
through dedicated methods that issue a targeted UPDATE instead of saving the
whole record, so unrelated required fields are never re-validated.
"""

import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateIdentity, NotFound, TokenReplayed
from app.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from app.models.user import PUBLIC_COLUMNS, User
from app.schemas.user import PublicUser

logger = logging.getLogger(__name__)

# Columns the media manager may rewrite.
MEDIA_FIELDS = frozenset({"avatar", "cover_image"})

_UNSET: Any = object()


class CredentialStore:
    """User persistence over a SQLAlchemy session."""

    def __init__(self, db: Session, bcrypt_rounds: int = BCRYPT_ROUNDS) -> None:
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    # -- reads ---------------------------------------------------------------

    def find_by_identity(
        self,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """Return the user matching username OR email, or None."""
        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)
        if not conditions:
            return None
        return self.db.query(User).filter(or_(*conditions)).first()

    def get(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def get_public(self, user_id: int) -> PublicUser | None:
        """Read a user selecting only public columns."""
        columns = [getattr(User, name) for name in PUBLIC_COLUMNS]
        row = self.db.query(*columns).filter(User.id == user_id).first()
        if row is None:
            return None
        return PublicUser.model_validate(dict(row._mapping))

    def verify_password(self, user: User, candidate: str) -> bool:
        return verify_password(candidate, user.password_hash)

    # -- writes --------------------------------------------------------------

    def create(self, fields: dict[str, Any]) -> User:
        """
        Insert a user. `fields` carries the plain `password`, which is hashed here.
        Raises DuplicateIdentity when username or email is already taken.
        """
        values = dict(fields)
        password = values.pop("password")
        user = User(
            **values,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateIdentity() from e
        self.db.refresh(user)
        logger.info("User created: id=%s", user.id)
        return user

    def _update_one(self, user_id: int, values: dict[Any, Any], *criteria: Any) -> int:
        updated = (
            self.db.query(User)
            .filter(User.id == user_id, *criteria)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        # Bulk UPDATE bypasses the identity map; drop any cached instance.
        self.db.expire_all()
        return updated

    def set_refresh_token(
        self,
        user_id: int,
        token: str | None,
        expected: str | None = _UNSET,
    ) -> None:
        """
        Set or clear the stored refresh token.

        With `expected`, the write is a compare-and-swap: it applies only while
        the stored token still equals `expected`; otherwise TokenReplayed.
        """
        criteria = []
        if expected is not _UNSET:
            if expected is None:
                criteria.append(User.refresh_token.is_(None))
            else:
                criteria.append(User.refresh_token == expected)
        updated = self._update_one(user_id, {User.refresh_token: token}, *criteria)
        if updated:
            return
        if expected is not _UNSET:
            raise TokenReplayed()
        raise NotFound()

    def set_password(self, user_id: int, new_password: str) -> None:
        new_hash = hash_password(new_password, rounds=self.bcrypt_rounds)
        if not self._update_one(user_id, {User.password_hash: new_hash}):
            raise NotFound()

    def set_media_url(self, user_id: int, field: str, url: str) -> None:
        if field not in MEDIA_FIELDS:
            raise ValueError(f"Unknown media field: {field!r}")
        if not self._update_one(user_id, {getattr(User, field): url}):
            raise NotFound()

    def update_details(
        self,
        user_id: int,
        fullname: str | None = None,
        email: str | None = None,
    ) -> PublicUser:
        """Update full name and/or email. Raises DuplicateIdentity if the email is taken."""
        values: dict[Any, Any] = {}
        if fullname is not None:
            values[User.fullname] = fullname
        if email is not None:
            values[User.email] = email
        if values:
            try:
                updated = self._update_one(user_id, values)
            except IntegrityError as e:
                self.db.rollback()
                raise DuplicateIdentity("Email is already in use") from e
            if not updated:
                raise NotFound()
        public = self.get_public(user_id)
        if public is None:
            raise NotFound()
        return public
