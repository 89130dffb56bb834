"""Object storage for uploaded audio clips (S3 via aioboto3)."""

from __future__ import annotations

import io
import uuid
from functools import lru_cache
from typing import Any

import aioboto3
import structlog

from noizlabs.config import get_settings

logger = structlog.get_logger()

ALLOWED_AUDIO_TYPES = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
    "audio/mp4": "m4a",
    "audio/aac": "aac",
}


class ClipStorage:
    """Stores clip bytes under ``audio-clips/<wallet>/`` and hands back the public URL."""

    def __init__(
        self,
        session: Any,  # noqa: ANN401
        bucket: str,
        public_base_url: str,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._session = session
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._region = region
        self._endpoint_url = endpoint_url

    async def upload_clip(self, data: bytes, wallet_address: str, content_type: str) -> str:
        extension = ALLOWED_AUDIO_TYPES.get(content_type, "bin")
        key = f"audio-clips/{wallet_address}/{uuid.uuid4()}.{extension}"
        async with self._session.client("s3", region_name=self._region, endpoint_url=self._endpoint_url) as s3:
            await s3.upload_fileobj(
                io.BytesIO(data),
                self._bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        logger.info("clip_stored", key=key, size=len(data))
        return f"{self._public_base_url}/{key}"

    def key_for_url(self, url: str) -> str:
        prefix = f"{self._public_base_url}/"
        if not url.startswith(prefix):
            msg = f"URL is not served from this bucket: {url}"
            raise ValueError(msg)
        return url[len(prefix):]

    async def delete_clip(self, url: str) -> None:
        """Remove a stored clip by the public URL ``upload_clip`` returned."""
        key = self.key_for_url(url)
        async with self._session.client("s3", region_name=self._region, endpoint_url=self._endpoint_url) as s3:
            await s3.delete_object(Bucket=self._bucket, Key=key)
        logger.info("clip_deleted", key=key)


@lru_cache
def get_storage() -> ClipStorage:
    """Process-wide storage (FastAPI dependency). Credentials come from the standard AWS chain."""
    settings = get_settings()
    base_url = settings.s3_public_base_url or (
        f"https://{settings.s3_bucket_name}.s3.{settings.s3_region}.amazonaws.com"
    )
    return ClipStorage(
        aioboto3.Session(),
        settings.s3_bucket_name,
        base_url,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
    )
