"""
Tests for socket authentication and per-connection auth state.
"""
from datetime import timedelta

import pytest

from kr_portal.backend.models import AuthEvent
from kr_portal.core.security import decode_token_sync
from kr_portal.realtime.auth import SocketAuthGateway, authenticate_socket, extract_token


class TestTokens:
    def test_valid_token_decodes(self, make_token):
        payload = decode_token_sync(make_token("member-1", email="mia@example.com"))
        assert payload["sub"] == "member-1"
        assert payload["email"] == "mia@example.com"

    def test_expired_token_rejected(self, make_token):
        assert decode_token_sync(make_token("member-1", expires_delta=timedelta(minutes=-5))) is None

    def test_wrong_secret_rejected(self, make_token):
        assert decode_token_sync(make_token("member-1", secret="someone-else")) is None

    def test_wrong_audience_rejected(self, make_token):
        assert decode_token_sync(make_token("member-1", audience="anon")) is None

    def test_garbage_rejected(self):
        assert decode_token_sync("not-a-jwt") is None


class TestAuthenticateSocket:
    def test_token_from_auth_object(self, make_token):
        ok, session = authenticate_socket({"token": make_token("admin-1")}, {})
        assert ok
        assert session.user_id == "admin-1"

    def test_token_from_authorization_header(self, make_token):
        environ = {"HTTP_AUTHORIZATION": f"Bearer {make_token('manager-1')}"}
        ok, session = authenticate_socket(None, environ)
        assert ok
        assert session.user_id == "manager-1"

    def test_auth_object_preferred_over_header(self, make_token):
        token = extract_token({"token": "from-auth"}, {"HTTP_AUTHORIZATION": "Bearer from-header"})
        assert token == "from-auth"

    def test_missing_token(self):
        assert authenticate_socket({}, {}) == (False, None)

    def test_non_bearer_header_ignored(self):
        assert extract_token(None, {"HTTP_AUTHORIZATION": "Basic abc"}) is None

    def test_invalid_token(self):
        assert authenticate_socket({"token": "bad"}, None) == (False, None)


class TestSocketAuthGateway:
    @pytest.mark.anyio
    async def test_sign_out_clears_session_and_notifies(self, make_token):
        ok, session = authenticate_socket({"token": make_token("member-1")})
        gateway = SocketAuthGateway(session)
        seen = []
        gateway.on_auth_state_change(lambda event, s: seen.append((event, s)))

        assert await gateway.dispatch("SIGNED_OUT")

        assert await gateway.get_session() is None
        assert seen == [(AuthEvent.SIGNED_OUT, None)]

    @pytest.mark.anyio
    async def test_sign_in_requires_valid_token(self, make_token):
        gateway = SocketAuthGateway()
        seen = []

        async def listener(event, session):
            seen.append(event)

        gateway.on_auth_state_change(listener)

        assert not await gateway.dispatch("SIGNED_IN", "forged")
        assert await gateway.get_session() is None

        assert await gateway.dispatch("SIGNED_IN", make_token("admin-1"))
        assert (await gateway.get_session()).user_id == "admin-1"
        assert seen == [AuthEvent.SIGNED_IN]

    @pytest.mark.anyio
    async def test_unknown_event_rejected(self, make_token):
        gateway = SocketAuthGateway()
        assert not await gateway.dispatch("PASSWORD_RECOVERY_MAGIC", make_token("admin-1"))
        assert not await gateway.dispatch(None)

    @pytest.mark.anyio
    async def test_unsubscribe(self, make_token):
        gateway = SocketAuthGateway()
        seen = []
        sub = gateway.on_auth_state_change(lambda event, s: seen.append(event))
        assert gateway.listener_count == 1

        await sub.dispose()
        await gateway.dispatch("SIGNED_OUT")

        assert gateway.listener_count == 0
        assert seen == []
