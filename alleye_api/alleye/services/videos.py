from __future__ import annotations

import logging
from uuid import UUID

from alleye.db.models import Profile
from alleye.schemas.content import LearnerContentRead
from alleye.schemas.video import VideoUrlResponse
from alleye.services.base import BaseService
from alleye.services.catalog import CatalogService
from alleye.services.storage import StorageService

logger = logging.getLogger(__name__)


class VideoService(BaseService):
    """Resolves a playable URL for a content item."""

    def __init__(self, session, settings=None, storage: StorageService | None = None) -> None:
        super().__init__(session, settings)
        self.catalog = CatalogService(session, self.settings)
        self.storage = storage or StorageService(self.settings)

    # PUBLIC_INTERFACE
    async def resolve(self, profile: Profile, content_id: UUID) -> VideoUrlResponse:
        """
        Return the content with a signed URL when it is stored in object storage.

        Items without an hls_path are returned with their direct URL and
        signed_url = None.
        """
        content = await self.catalog.get_content_for(profile, content_id)
        read = LearnerContentRead.model_validate(content)
        if not content.hls_path:
            return VideoUrlResponse(content=read, signed_url=None)

        expires = self.settings.SIGNED_URL_EXPIRES_SECONDS
        url = await self.storage.create_signed_url(content.hls_path, expires)
        logger.info("Issued signed URL for content %s (expires in %ds)", content.id, expires)
        return VideoUrlResponse(content=read, signed_url=url, expires_in=expires)
