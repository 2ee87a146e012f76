"""Cloudinary media host: signed upload of local files and delete by delivery URL."""

from __future__ import annotations

import hashlib
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol
from urllib.parse import unquote, urlparse

import httpx

from app.core.errors import DeleteFailed, NotFoundOnHost, UploadFailed

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE_URL = "https://api.cloudinary.com/v1_1"

_VERSION_SEGMENT = re.compile(r"^v\d+$")


@dataclass(frozen=True)
class MediaHostConfig:
    """Credentials and limits for the media host, injected at construction."""

    cloud_name: str
    api_key: str
    api_secret: str
    timeout: float = 30.0
    base_url: str = CLOUDINARY_API_BASE_URL

    @classmethod
    def from_settings(cls, settings: Settings) -> MediaHostConfig:
        return cls(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME.strip(),
            api_key=settings.CLOUDINARY_API_KEY.strip(),
            api_secret=settings.CLOUDINARY_API_SECRET.get_secret_value(),
            timeout=max(1.0, min(120.0, settings.MEDIA_REQUEST_TIMEOUT_SEC)),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str | None = None


class MediaHost(Protocol):
    """Opaque upload/delete contract used by the media manager and registration."""

    async def upload(self, local_path: str | Path) -> UploadedMedia: ...

    async def delete_by_url(self, url: str) -> None: ...


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 of sorted `k=v` pairs joined by `&`, plus the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def extract_public_id(url: str) -> tuple[str, str] | None:
    """
    Return (resource_type, public_id) from a delivery URL such as
    https://res.cloudinary.com/<cloud>/image/upload/v1712/folder/name.jpg.
    Returns None when the URL does not look like a Cloudinary delivery URL.
    """
    if not url or not url.strip():
        return None
    segments = [unquote(s) for s in urlparse(url.strip()).path.split("/") if s]
    if "upload" not in segments:
        return None
    idx = segments.index("upload")
    if idx < 1:
        return None
    resource_type = segments[idx - 1]
    rest = segments[idx + 1 :]
    # Everything up to and including the version segment is transformation/version noise.
    for i, segment in enumerate(rest):
        if _VERSION_SEGMENT.match(segment):
            rest = rest[i + 1 :]
            break
    if not rest:
        return None
    public_id = "/".join(rest)
    # Raw assets keep their extension as part of the public id.
    if resource_type != "raw" and "." in rest[-1]:
        public_id = public_id.rsplit(".", 1)[0]
    if not public_id:
        return None
    return resource_type, public_id


class CloudinaryClient:
    """Media host backed by the Cloudinary upload API."""

    def __init__(
        self,
        config: MediaHostConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _endpoint(self, resource_type: str, action: str) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/{self.config.cloud_name}/{resource_type}/{action}"

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {
            **params,
            "api_key": self.config.api_key,
            "signature": sign_params(params, self.config.api_secret),
        }

    async def upload(self, local_path: str | Path) -> UploadedMedia:
        """
        Upload a local file (resource_type auto) and return its delivery URL.
        Raises UploadFailed on missing file, missing configuration, or host error.
        """
        if not self.config.is_configured:
            raise UploadFailed("Media host is not configured")
        path = Path(local_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise UploadFailed("Local file to upload is not readable") from e

        data = self._signed({})
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self._endpoint("auto", "upload"),
                    data=data,
                    files={"file": (path.name, content)},
                )
        except httpx.HTTPError as e:
            logger.warning("Media upload request failed: %s", e)
            raise UploadFailed() from e

        if resp.status_code >= 400:
            logger.warning("Media host rejected upload with status %s", resp.status_code)
            raise UploadFailed(f"Media host returned {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise UploadFailed("Media host response is not valid JSON") from e
        url = body.get("secure_url") or body.get("url")
        if not url:
            raise UploadFailed("Media host response missing url")
        logger.info("File uploaded to media host: %s", url)
        return UploadedMedia(url=url, public_id=body.get("public_id"))

    async def delete_by_url(self, url: str) -> None:
        """
        Delete the resource behind a delivery URL and invalidate CDN caches.
        Raises NotFoundOnHost if the host no longer has it, DeleteFailed otherwise.
        """
        parsed = extract_public_id(url)
        if parsed is None:
            raise DeleteFailed("Could not extract public id from media URL")
        resource_type, public_id = parsed
        data = self._signed({"public_id": public_id, "invalidate": "true"})
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                resp = await client.post(self._endpoint(resource_type, "destroy"), data=data)
        except httpx.HTTPError as e:
            raise DeleteFailed() from e

        try:
            result = resp.json().get("result")
        except ValueError:
            result = None
        if result == "ok":
            logger.info("Media resource deleted: %s", public_id)
            return
        if result == "not found":
            raise NotFoundOnHost(f"Media resource not found on host: {public_id}")
        raise DeleteFailed(f"Media host delete failed with status {resp.status_code}")
