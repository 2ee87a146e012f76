"""Core app configuration, database session and error taxonomy."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.errors import AppError

__all__ = ["AppError", "get_settings", "settings", "get_db"]
