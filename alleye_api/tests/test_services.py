"""
Tests for profile provisioning, organization scoping, catalog assembly and
the news and Q&A services.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from alleye.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from alleye.core.security import AuthClaims
from alleye.core.settings import get_app_settings
from alleye.schemas.community import QuestionCreate
from alleye.schemas.content import ContentUpdate
from alleye.services.catalog import CatalogService
from alleye.services.community import NewsService, QAndAService
from alleye.services.profiles import ProfileService, display_name_from_claims, resolve_org_scope

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def no_publish():
    with patch("alleye.services.profiles.publish_safely", new=AsyncMock()) as publish:
        yield publish


class TestProvisioning:
    @pytest.fixture
    def service(self):
        svc = ProfileService(MagicMock(), get_app_settings())
        svc.repo = MagicMock()
        svc.repo.get = AsyncMock(return_value=None)
        svc.repo.create = AsyncMock(side_effect=lambda **values: SimpleNamespace(**values))
        return svc

    @pytest.mark.asyncio
    async def test_existing_profile_returned(self, service, make_profile, no_publish):
        existing = make_profile()
        service.repo.get.return_value = existing
        claims = AuthClaims(sub=str(existing.id), email=existing.email)
        assert await service.get_or_provision(claims) is existing
        service.repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_corporate_email_gets_corporate_company(self, service, no_publish):
        claims = AuthClaims(sub=str(uuid4()), email="jane.doe@lms.com", user_metadata={"full_name": "Jane Doe"})
        profile = await service.get_or_provision(claims)
        assert profile.company == "LMS Corp"
        assert profile.name == "Jane Doe"
        assert profile.role == "user"
        assert profile.team == "General"
        assert profile.points == 0 and profile.badges == [] and profile.progress == {}
        assert profile.avatar_url == "https://api.dicebear.com/8.x/initials/svg?seed=Jane%20Doe"
        no_publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_personal_email_and_name_fallback(self, service, no_publish):
        claims = AuthClaims(sub=str(uuid4()), email="sam@gmail.com")
        profile = await service.get_or_provision(claims)
        assert profile.company == "Personal Account"
        assert profile.name == "sam"

    @pytest.mark.asyncio
    async def test_non_uuid_subject_refused(self, service):
        with pytest.raises(PermissionDeniedError):
            await service.get_or_provision(AuthClaims(sub="abc"))

    def test_metadata_name_preferred_over_email(self):
        claims = AuthClaims(sub="x", email="a@b.c", user_metadata={"name": "Alice"})
        assert display_name_from_claims(claims) == "Alice"


class TestOrgScope:
    def test_admin_unrestricted(self, make_profile):
        org = uuid4()
        assert resolve_org_scope(make_profile(role="admin")) is None
        assert resolve_org_scope(make_profile(role="admin"), org) == org

    def test_ciso_pinned_to_own_org(self, make_profile):
        org = uuid4()
        assert resolve_org_scope(make_profile(role="ciso", organization_id=org)) == org

    def test_lead_cannot_request_other_org(self, make_profile):
        with pytest.raises(PermissionDeniedError):
            resolve_org_scope(make_profile(role="lead", organization_id=uuid4()), uuid4())

    def test_learner_refused(self, make_profile):
        with pytest.raises(PermissionDeniedError):
            resolve_org_scope(make_profile(role="user"))


class TestCatalogService:
    @pytest.fixture
    def service(self):
        svc = CatalogService(MagicMock(), get_app_settings())
        svc.content = MagicMock()
        svc.playlists = MagicMock()
        svc.assignments = MagicMock()
        svc.profiles = MagicMock()
        return svc

    @pytest.mark.asyncio
    async def test_assigned_content_merges_and_dedupes(self, service, make_content, make_profile):
        a, b, c = make_content(title="A"), make_content(title="B"), make_content(title="C")
        playlist = SimpleNamespace(id=uuid4(), content_ids=[b.id, a.id, c.id])
        service.assignments.list_for_user = AsyncMock(return_value=[
            SimpleNamespace(content_id=a.id, playlist_id=None),
            SimpleNamespace(content_id=None, playlist_id=playlist.id),
        ])
        service.playlists.list_by_ids = AsyncMock(return_value=[playlist])
        # c is not visible to the learner's organization
        service.content.list_by_ids = AsyncMock(return_value=[b, a])

        items = await service.assigned_content_for(make_profile(organization_id=uuid4()))

        assert [i.title for i in items] == ["A", "B"]
        ids_requested = service.content.list_by_ids.call_args.args[0]
        assert ids_requested == [a.id, b.id, c.id]
        assert service.content.list_by_ids.call_args.kwargs["restrict"] is True

    @pytest.mark.asyncio
    async def test_playlist_content_keeps_order(self, service, make_content, make_profile):
        a, b = make_content(title="A"), make_content(title="B")
        service.content.list_by_ids = AsyncMock(return_value=[a, b])
        playlist = SimpleNamespace(content_ids=[b.id, a.id])
        items = await service.playlist_content_for(make_profile(), playlist)
        assert [i.title for i in items] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_invisible_playlist_is_not_found(self, service, make_profile):
        service.playlists.get = AsyncMock(return_value=SimpleNamespace(assigned_org_ids=[uuid4()]))
        with pytest.raises(NotFoundError):
            await service.get_playlist_for(make_profile(organization_id=uuid4()), uuid4())

    @pytest.mark.asyncio
    async def test_update_checks_merged_quiz_rules(self, service, make_content):
        service.content.get = AsyncMock(return_value=make_content(type="video", questions=[]))
        with pytest.raises(ValidationFailedError):
            await service.update_content(uuid4(), ContentUpdate(type="quiz"))

    @pytest.mark.asyncio
    async def test_unknown_playlist_content_rejected(self, service, make_profile):
        service.content.list_by_ids = AsyncMock(return_value=[])
        with pytest.raises(ValidationFailedError) as exc:
            await service._check_content_ids([uuid4()])
        assert "missing" in exc.value.details

    @pytest.mark.asyncio
    async def test_delete_content_removes_it_from_playlists(self, service, make_content):
        doomed, kept = make_content(title="Doomed"), make_content(title="Kept")
        with_it = SimpleNamespace(id=uuid4(), content_ids=[kept.id, doomed.id])
        without_it = SimpleNamespace(id=uuid4(), content_ids=[kept.id])
        service.content.get = AsyncMock(return_value=doomed)
        service.content.remove = AsyncMock()
        service.playlists.list = AsyncMock(return_value=[with_it, without_it])

        async def _apply(entity, values):
            for key, value in values.items():
                setattr(entity, key, value)
            return entity

        service.playlists.apply = AsyncMock(side_effect=_apply)

        with patch("alleye.services.catalog.publish_safely", new=AsyncMock()) as publish, \
                patch("alleye.services.catalog.serialize_row", return_value={}):
            await service.delete_content(doomed.id)

        service.content.remove.assert_awaited_once_with(doomed)
        service.playlists.apply.assert_awaited_once_with(with_it, {"content_ids": [kept.id]})
        assert with_it.content_ids == [kept.id]
        assert without_it.content_ids == [kept.id]
        assert [c.args[:2] for c in publish.call_args_list] == [("playlists", "UPDATE"), ("content", "DELETE")]


class TestQAndA:
    @pytest.mark.asyncio
    async def test_pending_list_is_admin_only(self, make_profile):
        svc = QAndAService(MagicMock(), get_app_settings())
        with pytest.raises(PermissionDeniedError):
            await svc.list_for(make_profile(role="user"), pending_only=True)

    @pytest.mark.asyncio
    async def test_question_on_invisible_content_is_not_found(self, make_profile):
        svc = QAndAService(MagicMock(), get_app_settings())
        svc.catalog = MagicMock()
        svc.catalog.get_content_for = AsyncMock(side_effect=NotFoundError("Content not found"))
        svc.repo = MagicMock()
        svc.repo.create = AsyncMock()
        learner = make_profile(organization_id=uuid4())
        content_id = uuid4()

        with pytest.raises(NotFoundError):
            await svc.ask(learner, QuestionCreate(question="Is this phishing?", content_id=content_id))

        svc.catalog.get_content_for.assert_awaited_once_with(learner, content_id)
        svc.repo.create.assert_not_called()


def news_item(**overrides):
    values = dict(
        id=uuid4(), title="Credential stuffing wave", summary=None, body=None, category="Threats",
        severity="high", source_url=None, image_url=None, author_id=None, created_at=NOW, updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestNewsService:
    @pytest.fixture
    def service(self):
        svc = NewsService(MagicMock(), get_app_settings())
        svc.repo = MagicMock()
        svc.profiles = MagicMock()
        svc.analytics = MagicMock()
        return svc

    @pytest.mark.asyncio
    async def test_author_names_attached(self, service, make_profile):
        author = make_profile(name="Grace Admin", role="admin")
        known = news_item(author_id=author.id)
        orphan = news_item(author_id=uuid4())
        anonymous = news_item()
        service.repo.list = AsyncMock(return_value=[known, orphan, anonymous])
        service.profiles.get_many = AsyncMock(return_value=[author])

        items = await service.list(limit=10)

        assert [i.author_name for i in items] == ["Grace Admin", "Unknown", "Unknown"]
        assert set(service.profiles.get_many.call_args.args[0]) == {author.id, orphan.author_id}

    @pytest.mark.asyncio
    async def test_mark_read_records_statement(self, service, make_profile):
        profile = make_profile(organization_id=uuid4())
        item = news_item()
        service.repo.get = AsyncMock(return_value=item)
        service.analytics.record = AsyncMock(return_value=SimpleNamespace())

        with patch("alleye.services.community.publish_safely", new=AsyncMock()) as publish:
            await service.mark_read(profile, item.id)

        service.analytics.record.assert_awaited_once_with(
            user_id=profile.id, organization_id=profile.organization_id, news_id=item.id, event="read"
        )
        assert publish.call_args.args[:2] == ("analytics", "INSERT")

    @pytest.mark.asyncio
    async def test_mark_read_unknown_item(self, service, make_profile):
        service.repo.get = AsyncMock(return_value=None)
        service.analytics.record = AsyncMock()
        with pytest.raises(NotFoundError):
            await service.mark_read(make_profile(), uuid4())
        service.analytics.record.assert_not_called()
