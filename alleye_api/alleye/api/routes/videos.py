from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session
from alleye.db.models import Profile
from alleye.schemas.video import VideoUrlRequest, VideoUrlResponse
from alleye.services.videos import VideoService

router = APIRouter(prefix="/videos", tags=["Videos"])


# PUBLIC_INTERFACE
@router.post(
    "/url",
    response_model=VideoUrlResponse,
    summary="Resolve a playable video URL",
    description=(
        "Returns the content item with a time-limited signed storage URL when it has an hls_path, "
        "otherwise with signed_url=null and its direct content_url."
    ),
)
async def resolve_video_url(
    payload: VideoUrlRequest,
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> VideoUrlResponse:
    return await VideoService(session).resolve(profile, payload.content_id)
