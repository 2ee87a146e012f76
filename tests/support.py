"""Shared fixtures: in-memory database, fast-hash store and a fake media host."""

from datetime import timedelta
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.errors import UploadFailed
from app.models import Base, User
from app.services.credential_store import CredentialStore
from app.services.media_host import UploadedMedia
from app.services.tokens import TokenService

# Lowest bcrypt cost; keeps hashing fast in tests.
TEST_BCRYPT_ROUNDS = 4


def make_session() -> Session:
    """Fresh in-memory SQLite database with the users table."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


def make_store(session: Session) -> CredentialStore:
    return CredentialStore(session, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


def make_token_service(
    access_ttl: timedelta = timedelta(minutes=15),
    refresh_ttl: timedelta = timedelta(days=10),
) -> TokenService:
    return TokenService(
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
        access_ttl=access_ttl,
        refresh_ttl=refresh_ttl,
    )


def create_user(
    store: CredentialStore,
    username: str = "alice",
    email: str = "alice@x.com",
    password: str = "p@ss1234",
    avatar: str = "https://res.cloudinary.com/demo/image/upload/v1/avatars/alice.png",
    cover_image: str = "",
) -> User:
    return store.create(
        {
            "username": username,
            "email": email,
            "fullname": username.title(),
            "password": password,
            "avatar": avatar,
            "cover_image": cover_image,
        }
    )


class FakeMediaHost:
    """Records uploads/deletes; failures are switched on per instance."""

    def __init__(self) -> None:
        self.uploaded: list[Path] = []
        self.deleted: list[str] = []
        self.fail_uploads_for: set[str] = set()
        self.fail_all_uploads = False
        self.delete_error: Exception | None = None

    async def upload(self, local_path: str | Path) -> UploadedMedia:
        path = Path(local_path)
        if self.fail_all_uploads or path.name in self.fail_uploads_for:
            raise UploadFailed()
        self.uploaded.append(path)
        public_id = f"uploads/{path.stem}-{len(self.uploaded)}"
        return UploadedMedia(
            url=f"https://res.cloudinary.com/demo/image/upload/v1/{public_id}.png",
            public_id=public_id,
        )

    async def delete_by_url(self, url: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(url)


class RecordingDispatcher:
    """Dispatcher stand-in that records work without running it."""

    def __init__(self) -> None:
        self.descriptions: list[str] = []

    def dispatch(self, coro, description: str) -> None:
        coro.close()
        self.descriptions.append(description)
