"""Staging of multipart uploads to a local temp directory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

from app.core.config import Settings
from app.core.errors import ValidationFailed


def _is_upload_file(obj: object) -> bool:
    """True if obj is an uploaded file (UploadFile or file-like with filename and read)."""
    if isinstance(obj, UploadFile):
        return bool(obj.filename)
    return (
        hasattr(obj, "read")
        and callable(getattr(obj, "read", None))
        and bool(getattr(obj, "filename", None))
    )


@asynccontextmanager
async def staged_upload(
    file: UploadFile | None,
    settings: Settings,
) -> AsyncIterator[Path | None]:
    """
    Write the upload to UPLOAD_TEMP_DIR and yield its path; yield None when no
    file (or an empty one) was sent. The temp file is removed on exit.
    """
    if file is None or not _is_upload_file(file):
        yield None
        return
    content = await file.read()
    if not content:
        yield None
        return
    if len(content) > settings.MAX_UPLOAD_FILE_BYTES:
        raise ValidationFailed(
            f"File size must not exceed {settings.MAX_UPLOAD_FILE_BYTES // (1024 * 1024)} MB"
        )
    temp_dir = Path(settings.UPLOAD_TEMP_DIR)
    temp_dir.mkdir(parents=True, exist_ok=True)
    path = temp_dir / f"{uuid4().hex}{Path(file.filename or '').suffix}"
    path.write_bytes(content)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
