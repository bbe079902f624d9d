"""
Tests for signed URL issuance and video URL resolution.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from alleye.core.errors import ExternalServiceError, NotFoundError
from alleye.core.settings import get_app_settings
from alleye.services.storage import SIGNED_URL_FAILURE, StorageService
from alleye.services.videos import VideoService


@pytest.fixture
def mock_service_client():
    with patch("alleye.services.storage.get_service_client") as factory:
        yield factory.return_value


class TestStorageService:
    @pytest.mark.asyncio
    async def test_signed_url_returned(self, mock_service_client):
        bucket = mock_service_client.storage.from_.return_value
        bucket.create_signed_url.return_value = {"signedURL": "https://cdn.example/v.m3u8?token=abc"}

        url = await StorageService(get_app_settings()).create_signed_url("/courses/intro.m3u8")

        assert url == "https://cdn.example/v.m3u8?token=abc"
        mock_service_client.storage.from_.assert_called_once_with("videos")
        bucket.create_signed_url.assert_called_once_with("courses/intro.m3u8", 3600)

    @pytest.mark.asyncio
    async def test_camel_case_key_accepted(self, mock_service_client):
        mock_service_client.storage.from_.return_value.create_signed_url.return_value = {"signedUrl": "https://x"}
        assert await StorageService(get_app_settings()).create_signed_url("a.mp4", 60) == "https://x"

    @pytest.mark.asyncio
    async def test_storage_error_maps_to_502(self, mock_service_client):
        mock_service_client.storage.from_.return_value.create_signed_url.side_effect = RuntimeError("denied")
        with pytest.raises(ExternalServiceError) as exc:
            await StorageService(get_app_settings()).create_signed_url("a.mp4")
        assert exc.value.message == SIGNED_URL_FAILURE
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_missing_url_maps_to_502(self, mock_service_client):
        mock_service_client.storage.from_.return_value.create_signed_url.return_value = {"error": "nope"}
        with pytest.raises(ExternalServiceError):
            await StorageService(get_app_settings()).create_signed_url("a.mp4")


class TestVideoService:
    def build(self, content):
        storage = MagicMock()
        storage.create_signed_url = AsyncMock(return_value="https://signed")
        svc = VideoService(MagicMock(), get_app_settings(), storage=storage)
        svc.catalog = MagicMock()
        svc.catalog.get_content_for = AsyncMock(return_value=content)
        return svc, storage

    @pytest.mark.asyncio
    async def test_hls_content_gets_signed_url(self, make_content, make_profile):
        svc, storage = self.build(make_content(hls_path="courses/intro.m3u8", content_url=None))
        result = await svc.resolve(make_profile(), svc.catalog.get_content_for.return_value.id)
        assert result.signed_url == "https://signed"
        assert result.expires_in == 3600
        storage.create_signed_url.assert_awaited_once_with("courses/intro.m3u8", 3600)

    @pytest.mark.asyncio
    async def test_direct_url_content_not_signed(self, make_content, make_profile):
        content = make_content()
        svc, storage = self.build(content)
        result = await svc.resolve(make_profile(), content.id)
        assert result.signed_url is None
        assert result.content.content_url == content.content_url
        storage.create_signed_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_invisible_content_is_not_found(self, make_profile):
        svc, _ = self.build(None)
        svc.catalog.get_content_for = AsyncMock(side_effect=NotFoundError("Content not found"))
        with pytest.raises(NotFoundError):
            await svc.resolve(make_profile(), "missing")
