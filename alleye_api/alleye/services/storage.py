from __future__ import annotations

import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from alleye.core.errors import ExternalServiceError
from alleye.core.settings import AppSettings, get_app_settings
from alleye.services.auth_provider import get_service_client

logger = logging.getLogger(__name__)

SIGNED_URL_FAILURE = "Failed to generate signed URL"


class StorageService:
    """Signed URL issuance for private video objects."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    # PUBLIC_INTERFACE
    async def create_signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        """
        Return a signed URL for `path` in the video bucket.

        Raises:
            ExternalServiceError: storage refused or returned no URL.
        """
        expires = expires_in or self.settings.SIGNED_URL_EXPIRES_SECONDS
        bucket = self.settings.VIDEO_BUCKET
        try:
            client = get_service_client(self.settings)
            response = await run_in_threadpool(
                client.storage.from_(bucket).create_signed_url, path.lstrip("/"), expires
            )
        except Exception as exc:
            logger.exception("Signed URL request failed bucket=%s path=%s", bucket, path)
            raise ExternalServiceError("storage", SIGNED_URL_FAILURE, str(exc))

        url = None
        if isinstance(response, dict):
            url = response.get("signedURL") or response.get("signedUrl")
        if not url:
            logger.error("Storage returned no signed URL for bucket=%s path=%s", bucket, path)
            raise ExternalServiceError("storage", SIGNED_URL_FAILURE)
        return url
