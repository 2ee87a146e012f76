"""Health check: database connectivity and media host configuration."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_media_host
from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.envelope import ApiResponse
from app.schemas.health import HealthResponse
from app.services.media_host import MediaHost

router = APIRouter()


@router.get("/", response_model=ApiResponse[HealthResponse])
def get_health(
    db: Annotated[Session, Depends(get_db)],
    media_host: Annotated[MediaHost, Depends(get_media_host)],
) -> ApiResponse[HealthResponse]:
    """
    Return service health. Status is "degraded" when the database is unreachable;
    an unconfigured media host is reported but does not degrade status.
    """
    db_ok = check_db_connected(db)
    config = getattr(media_host, "config", None)
    media_ok = bool(config is not None and config.is_configured)
    health = HealthResponse(
        status="ok" if db_ok else "degraded",
        environment=settings.APP_ENV,
        database="connected" if db_ok else "disconnected",
        media_host="configured" if media_ok else "unconfigured",
    )
    return ApiResponse(status=200, data=health, message="Health check")
