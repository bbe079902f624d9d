"""
API tests with the database session and current profile overridden and
services patched at the route modules.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from alleye.api.main import app
from alleye.core.deps import get_current_profile, get_db_session
from alleye.core.errors import ExternalServiceError, NotFoundError
from alleye.schemas.auth import SessionTokens
from alleye.schemas.content import LearnerContentRead
from alleye.schemas.video import VideoUrlResponse

client = TestClient(app)


@pytest.fixture
def stub_session():
    async def _session():
        yield MagicMock()

    app.dependency_overrides[get_db_session] = _session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def as_profile(stub_session, make_profile):
    """Override the current profile; call with the fields to change."""

    def _use(**overrides):
        profile = make_profile(**overrides)
        app.dependency_overrides[get_current_profile] = lambda: profile
        return profile

    return _use


class TestSystemEndpoints:
    def test_health_check(self):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["message"] == "Healthy"
        assert response.headers["X-Correlation-ID"]

    def test_correlation_id_echoed(self):
        response = client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_websocket_info_lists_endpoints(self):
        paths = [e["path"] for e in client.get("/api/v1/websocket-info").json()["endpoints"]]
        assert paths == ["/ws/admin", "/ws/me"]


class TestErrorEnvelope:
    def test_missing_token_is_401_envelope(self):
        response = client.get("/api/v1/me")
        assert response.status_code == 401
        body = response.json()
        assert body["status"] == 401
        assert body["error"]["type"] == "http_error"
        assert body["path"] == "/api/v1/me"
        assert body["method"] == "GET"
        assert body["correlation_id"]

    def test_invalid_token_is_401(self, stub_session):
        response = client.get("/api/v1/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    def test_validation_error_envelope(self, as_profile):
        as_profile()
        response = client.post("/api/v1/videos/url", json={})
        assert response.status_code == 422
        assert response.json()["error"]["type"] == "validation_error"

    def test_domain_not_found_maps_to_404(self, as_profile):
        as_profile()
        with patch("alleye.api.routes.videos.VideoService") as svc:
            svc.return_value.resolve = AsyncMock(side_effect=NotFoundError("Content not found"))
            response = client.post("/api/v1/videos/url", json={"content_id": str(uuid4())})
        assert response.status_code == 404
        assert response.json()["error"] == {"type": "not_found", "message": "Content not found", "details": None}

    def test_storage_failure_maps_to_502(self, as_profile):
        as_profile()
        with patch("alleye.api.routes.videos.VideoService") as svc:
            svc.return_value.resolve = AsyncMock(
                side_effect=ExternalServiceError("storage", "Failed to generate signed URL")
            )
            response = client.post("/api/v1/videos/url", json={"content_id": str(uuid4())})
        assert response.status_code == 502
        assert response.json()["error"]["message"] == "Failed to generate signed URL"


class TestRoles:
    def test_learner_cannot_create_content(self, as_profile):
        as_profile(role="user")
        response = client.post("/api/v1/admin/content", json={"title": "Phishing 101"})
        assert response.status_code == 403

    def test_inactive_profile_rejected(self, as_profile):
        as_profile(is_active=False)
        assert client.get("/api/v1/me").status_code == 403

    def test_ciso_may_list_users(self, as_profile):
        as_profile(role="ciso", organization_id=uuid4())
        with patch("alleye.api.routes.users.ProfileService") as svc:
            svc.return_value.list_profiles = AsyncMock(return_value=[])
            response = client.get("/api/v1/users")
        assert response.status_code == 200
        assert response.json() == []

    def test_learner_cannot_list_users(self, as_profile):
        as_profile(role="user")
        assert client.get("/api/v1/users").status_code == 403


class TestAuthRoutes:
    def test_login_returns_tokens(self):
        with patch("alleye.api.routes.auth.AuthProviderService") as svc:
            svc.return_value.sign_in = AsyncMock(return_value=SessionTokens(access_token="a", refresh_token="r"))
            response = client.post("/api/v1/auth/login", json={"email": "a@b.com", "password": "secret1"})
        assert response.status_code == 200
        assert response.json()["access_token"] == "a"

    def test_change_own_password(self, as_profile):
        profile = as_profile()
        with patch("alleye.api.routes.auth.AuthProviderService") as svc:
            svc.return_value.change_password = AsyncMock()
            response = client.post("/api/v1/auth/password", json={"password": "n3w-secret"})
        assert response.status_code == 200
        assert response.json()["message"] == "Password updated"
        svc.return_value.change_password.assert_awaited_once_with(str(profile.id), "n3w-secret")

    def test_change_password_requires_min_length(self, as_profile):
        as_profile()
        assert client.post("/api/v1/auth/password", json={"password": "123"}).status_code == 422

    def test_change_password_requires_login(self):
        assert client.post("/api/v1/auth/password", json={"password": "n3w-secret"}).status_code == 401

    def test_oauth_provider_restricted(self):
        assert client.get("/api/v1/auth/oauth/github").status_code == 422

    def test_signup_password_length(self):
        response = client.post("/api/v1/auth/signup", json={"email": "a@b.com", "password": "123", "name": "A"})
        assert response.status_code == 422


class TestLearnerRoutes:
    def test_catalog_hides_answer_key(self, as_profile, make_content):
        as_profile()
        quiz = make_content(
            type="quiz",
            questions=[{"id": "q1", "question": "?", "options": ["a", "b", "c", "d"], "correct_answer": 2}],
        )
        with patch("alleye.api.routes.content.CatalogService") as svc:
            svc.return_value.catalog_for = AsyncMock(return_value=[quiz])
            response = client.get("/api/v1/content")
        assert response.status_code == 200
        assert "correct_answer" not in response.json()[0]["questions"][0]

    def test_video_url_resolution(self, as_profile, make_content):
        as_profile()
        content = make_content(hls_path="a/b.m3u8")
        resolved = VideoUrlResponse(
            content=LearnerContentRead.model_validate(content), signed_url="https://signed", expires_in=3600
        )
        with patch("alleye.api.routes.videos.VideoService") as svc:
            svc.return_value.resolve = AsyncMock(return_value=resolved)
            response = client.post("/api/v1/videos/url", json={"content_id": str(content.id)})
        assert response.status_code == 200
        assert response.json()["signed_url"] == "https://signed"

    def test_complete_without_body(self, as_profile):
        profile = as_profile()
        with patch("alleye.api.routes.progress.ProgressService") as svc:
            svc.return_value.complete = AsyncMock(return_value={
                "content_id": str(uuid4()),
                "entry": {"status": "completed"},
                "points_awarded": 10,
                "badges_granted": [],
                "profile": {**vars(profile), "points": 10},
            })
            response = client.post(f"/api/v1/progress/{uuid4()}/complete")
        assert response.status_code == 200
        assert svc.return_value.complete.call_args.kwargs == {"score": None, "duration_sec": None}

    def test_recommendation_failure_is_502(self, as_profile):
        as_profile()
        with patch("alleye.api.routes.recommendations.RecommendationService") as svc:
            svc.return_value.recommend = AsyncMock(
                side_effect=ExternalServiceError("recommender", "Could not fetch recommendations at this time.")
            )
            response = client.get("/api/v1/recommendations")
        assert response.status_code == 502
        assert response.json()["error"]["type"] == "external_service_error"


class TestReportRoutes:
    @pytest.fixture
    def report_frame(self):
        return pd.DataFrame([{"organization": "Acme", "members": 3, "completions": 5,
                              "average_quiz_score": 80, "pass_rate": 100}])

    @pytest.mark.parametrize(
        "fmt,media_type,extension",
        [
            ("csv", "text/csv", "csv"),
            ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
            ("pdf", "application/pdf", "pdf"),
        ],
    )
    def test_export_formats(self, as_profile, report_frame, fmt, media_type, extension):
        as_profile(role="admin")
        with patch("alleye.api.routes.reports.ReportService") as svc:
            svc.return_value.organization_summary = AsyncMock(return_value=report_frame)
            response = client.get(f"/api/v1/reports/organization-summary?format={fmt}")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(media_type)
        assert f'filename="organization_summary.{extension}"' in response.headers["content-disposition"]

    def test_csv_body(self, as_profile, report_frame):
        as_profile(role="admin")
        with patch("alleye.api.routes.reports.ReportService") as svc:
            svc.return_value.organization_summary = AsyncMock(return_value=report_frame)
            response = client.get("/api/v1/reports/organization-summary")
        assert response.text.splitlines()[0] == "organization,members,completions,average_quiz_score,pass_rate"

    def test_pdf_body(self, as_profile, report_frame):
        as_profile(role="admin")
        with patch("alleye.api.routes.reports.ReportService") as svc:
            svc.return_value.organization_summary = AsyncMock(return_value=report_frame)
            response = client.get("/api/v1/reports/organization-summary?format=pdf")
        assert response.content.startswith(b"%PDF")

    def test_unknown_format_rejected(self, as_profile):
        as_profile(role="admin")
        assert client.get("/api/v1/reports/training-results?format=docx").status_code == 422

    def test_learner_cannot_export(self, as_profile):
        as_profile(role="user")
        assert client.get("/api/v1/reports/learner-progress").status_code == 403
