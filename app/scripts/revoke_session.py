"""
Force-logout a user by clearing their stored refresh token. Run from project root:
  python -m app.scripts.revoke_session USERNAME_OR_EMAIL
Outstanding access tokens stay valid until they expire.
"""
import argparse
import logging
import sys

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import session_scope
from app.core.errors import NotFound
from app.services.credential_store import CredentialStore
from app.services.identity import normalize_email, normalize_username
from app.services.sessions import SessionManager
from app.services.tokens import TokenService

logger = logging.getLogger(__name__)


def revoke(db: Session, identity: str) -> bool:
    """Clear the refresh token of the user matching `identity`. Returns False if no such user."""
    store = CredentialStore(db)
    user = store.find_by_identity(
        username=normalize_username(identity),
        email=normalize_email(identity),
    )
    if user is None:
        return False
    sessions = SessionManager(store, TokenService.from_settings(get_settings()))
    try:
        sessions.logout(user.id)
    except NotFound:
        return False
    return True


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    parser = argparse.ArgumentParser(description="Revoke a user's refresh token (force logout).")
    parser.add_argument("identity", help="Username or email")
    args = parser.parse_args(argv)

    identity = args.identity.strip()
    if not identity:
        print("Username or email is required.", file=sys.stderr)
        return 1

    try:
        with session_scope() as db:
            if not revoke(db, identity):
                print(f"User '{identity}' not found.", file=sys.stderr)
                return 1
    except Exception as e:
        logger.exception("Session revocation failed: %s", e)
        return 1
    print(f"Revoked session for '{identity}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
