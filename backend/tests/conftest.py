from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from jose import jwt

from kr_portal.backend.models import AnnouncementViewCount, AuthSession, MemberEmail, Profile
from kr_portal.core.config import settings
from kr_portal.core.exceptions import BackendError
from kr_portal.realtime.events import ChangeEvent
from kr_portal.realtime.subscription import Subscription


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def create_test_token(
    user_id: str,
    expires_delta: timedelta = None,
    secret: str = None,
    audience: str = "authenticated",
    email: str = None,
) -> str:
    """Create an access token shaped like the ones Supabase auth issues."""
    if expires_delta is None:
        expires_delta = timedelta(hours=1)
    payload = {
        "sub": user_id,
        "aud": audience,
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret or settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def make_token():
    return create_test_token


class FakeChangeFeed:
    """In-memory change feed: records subscriptions and lets tests push events."""

    def __init__(self):
        self.handlers: Dict[tuple, list] = {}
        self.fail_tables: set = set()

    async def subscribe(self, table, event, handler, row_filter=None):
        if table in self.fail_tables:
            raise BackendError("subscribe", f"{table} unavailable")
        key = (table, event)
        self.handlers.setdefault(key, []).append(handler)

        def _remove():
            self.handlers[key].remove(handler)

        return Subscription(f"{table}-{event}", _remove)

    def active(self, table: str = None, event: str = None) -> int:
        return sum(
            len(handlers)
            for (t, e), handlers in self.handlers.items()
            if (table is None or t == table) and (event is None or e == event)
        )

    async def push(self, table, event_type, new=None, old=None, commit_timestamp=None) -> list:
        change = ChangeEvent(
            table=table,
            event_type=event_type,
            new=new or {},
            old=old or {},
            commit_timestamp=commit_timestamp,
        )
        results = []
        for (t, e), handlers in list(self.handlers.items()):
            if t == table and e in (event_type, "*"):
                for handler in list(handlers):
                    results.append(await handler(change))
        return results


class FakeBackend(FakeChangeFeed):
    """Stands in for SupabaseBackend: profiles, RPCs, auth and the change feed."""

    def __init__(self):
        super().__init__()
        self.profiles: Dict[str, Profile] = {}
        self.emails: Dict[str, str] = {}
        self.view_counts: List[AnnouncementViewCount] = []
        self.fail_profiles = False
        self.fail_member_list = False
        self.fail_emails = False
        self.profile_gate = None
        self.profile_calls = 0
        self.signed_out: List[str] = []
        self.reset_requests: List[str] = []

    def add_profile(self, user_id: str, role: Optional[str], full_name: str = None, username: str = None) -> Profile:
        profile = Profile(id=user_id, role=role, full_name=full_name, username=username)
        self.profiles[user_id] = profile
        return profile

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        self.profile_calls += 1
        if self.profile_gate is not None:
            await self.profile_gate.wait()
        if self.fail_profiles:
            raise BackendError("get_profile", "service unavailable")
        return self.profiles.get(user_id)

    async def list_profiles(self) -> List[Profile]:
        if self.fail_member_list:
            raise BackendError("list_profiles", "service unavailable")
        return list(self.profiles.values())

    async def get_user_emails(self) -> List[MemberEmail]:
        if self.fail_emails:
            raise BackendError("get_user_emails", "permission denied for function get_user_emails")
        return [MemberEmail(id=k, email=v) for k, v in self.emails.items()]

    async def get_announcement_view_counts(self) -> List[AnnouncementViewCount]:
        return list(self.view_counts)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        if password != "correct-horse":
            raise BackendError("sign_in", "Invalid login credentials")
        user_id = f"user-{email.split('@')[0]}"
        return AuthSession(user_id=user_id, access_token=create_test_token(user_id), refresh_token="refresh")

    async def sign_up(self, email: str, password: str, metadata=None) -> Optional[AuthSession]:
        if email.startswith("taken"):
            raise BackendError("sign_up", "User already registered")
        if email.startswith("confirm"):
            return None
        user_id = f"user-{email.split('@')[0]}"
        return AuthSession(user_id=user_id, access_token=create_test_token(user_id))

    async def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)

    async def reset_password(self, email: str, redirect_to: str = None) -> None:
        if email.startswith("unknown"):
            raise BackendError("reset_password", "User not found")
        self.reset_requests.append(email)


@pytest.fixture
def feed():
    return FakeChangeFeed()


@pytest.fixture
def backend():
    fake = FakeBackend()
    fake.add_profile("admin-1", "kr_admin", full_name="Ava Admin")
    fake.add_profile("manager-1", "kr_manager", full_name="Max Manager")
    fake.add_profile("member-1", "kr_member", full_name="Mia Member", username="mia")
    return fake


@pytest.fixture
async def client(backend):
    from kr_portal.main import app

    app.state.backend = backend
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.backend = None
