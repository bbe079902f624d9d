"""
WebSocket endpoint tests: token checks, role checks and ping/pong.
"""

import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from starlette.websockets import WebSocketDisconnect

from alleye.api.main import app
from alleye.services.realtime import ADMIN_TABLES, broadcast_manager

SECRET = "test-jwt-secret-for-testing-only-32chars"

client = TestClient(app)


def make_token(sub):
    payload = {
        "sub": str(sub),
        "email": "learner@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    return jwt.encode(payload, SECRET, algorithm="HS256")


@pytest.fixture
def signed_in(make_profile):
    """Resolve socket tokens to a profile built from the given fields."""
    with patch("alleye.api.main.get_session_maker"), patch("alleye.api.main.ProfileService") as service:

        def _use(**overrides):
            profile = make_profile(**overrides)
            service.return_value.get_or_provision = AsyncMock(return_value=profile)
            return profile, make_token(profile.id)

        yield _use


def close_code(path):
    with client.websocket_connect(path) as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_text()
    return exc.value.code


class TestSocketAuth:
    def test_missing_token_closes_4401(self):
        assert close_code("/ws/me") == 4401

    def test_invalid_token_closes_4401(self):
        assert close_code("/ws/admin?token=garbage") == 4401

    def test_learner_on_admin_socket_closes_4403(self, signed_in):
        _, token = signed_in(role="user")
        assert close_code(f"/ws/admin?token={token}") == 4403

    def test_inactive_profile_closes_4403(self, signed_in):
        _, token = signed_in(is_active=False)
        assert close_code(f"/ws/me?token={token}") == 4403


class TestSocketSession:
    def test_me_answers_ping_and_subscribes_own_topic(self, signed_in):
        profile, token = signed_in()
        topic = broadcast_manager.profile_topic(profile.id)
        with client.websocket_connect(f"/ws/me?token={token}") as ws:
            ws.send_text("ping")
            assert ws.receive_text() == "pong"
            assert broadcast_manager.subscriber_count(topic) == 1

    def test_admin_answers_ping_and_subscribes_tables(self, signed_in):
        _, token = signed_in(role="admin")
        topics = [broadcast_manager.table_topic(t) for t in ADMIN_TABLES]
        with client.websocket_connect(f"/ws/admin?token={token}") as ws:
            ws.send_text(" PING ")
            assert ws.receive_text() == "pong"
            assert all(broadcast_manager.subscriber_count(t) == 1 for t in topics)
