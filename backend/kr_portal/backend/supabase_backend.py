"""
Supabase implementation of the backend interfaces.

A single service-role client serves profile reads, RPCs and change-feed
channels. Auth calls made on behalf of end users go through one shared
anon-key client that neither stores sessions nor refreshes tokens, so a
user sign-in never replaces the service credentials and nothing keeps
refreshing a token after the response is sent.
"""
import asyncio
import itertools
from typing import Any, Dict, List, Optional, Set

from supabase import AsyncClient, AsyncClientOptions, acreate_client

from kr_portal.backend.models import AnnouncementViewCount, AuthSession, MemberEmail, Profile
from kr_portal.backend.protocols import ChangeHandler
from kr_portal.core.config import settings
from kr_portal.core.exceptions import BackendError
from kr_portal.core.logging import backend_logger, log_operation
from kr_portal.realtime.events import ChangeEvent
from kr_portal.realtime.subscription import Subscription


# Stateless auth calls: no stored session, no background refresh timer
AUTH_CLIENT_OPTIONS = AsyncClientOptions(auto_refresh_token=False, persist_session=False)


def _to_auth_session(session) -> Optional[AuthSession]:
    if session is None or not getattr(session, "access_token", None):
        return None
    user = getattr(session, "user", None)
    return AuthSession(
        user_id=str(getattr(user, "id", "")),
        access_token=session.access_token,
        refresh_token=getattr(session, "refresh_token", None),
        email=getattr(user, "email", None),
        expires_at=getattr(session, "expires_at", None),
    )


class SupabaseBackend:
    def __init__(
        self,
        client: AsyncClient,
        auth_client: Optional[AsyncClient] = None,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
    ):
        self.client = client
        self.auth_client = auth_client
        self.url = url or settings.SUPABASE_URL
        self.anon_key = anon_key or settings.SUPABASE_ANON_KEY
        self._channel_ids = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    async def connect(cls) -> "SupabaseBackend":
        client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        auth_client = await acreate_client(
            settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=AUTH_CLIENT_OPTIONS
        )
        backend_logger.info("Connected to Supabase", url=settings.SUPABASE_URL)
        return cls(client, auth_client)

    async def close(self) -> None:
        try:
            await self.client.remove_all_channels()
        except Exception as e:
            backend_logger.warning("Failed to remove realtime channels on shutdown", error=e)
        for task in list(self._tasks):
            task.cancel()

    async def _public_client(self) -> AsyncClient:
        if self.auth_client is None:
            self.auth_client = await acreate_client(self.url, self.anon_key, options=AUTH_CLIENT_OPTIONS)
        return self.auth_client

    # ---------------- rows ----------------

    @log_operation("get_profile", backend_logger)
    async def get_profile(self, user_id: str) -> Optional[Profile]:
        try:
            response = await (
                self.client.table("profiles").select("*").eq("id", user_id).limit(1).execute()
            )
        except Exception as e:
            raise BackendError("get_profile", str(e)) from e
        rows = response.data or []
        return Profile.model_validate(rows[0]) if rows else None

    @log_operation("list_profiles", backend_logger)
    async def list_profiles(self) -> List[Profile]:
        try:
            response = await self.client.table("profiles").select("*").order("created_at").execute()
        except Exception as e:
            raise BackendError("list_profiles", str(e)) from e
        return [Profile.model_validate(row) for row in response.data or []]

    # ---------------- RPCs ----------------

    @log_operation("get_user_emails", backend_logger)
    async def get_user_emails(self) -> List[MemberEmail]:
        """Emails live in the auth schema, so they come from an RPC, not a table read."""
        try:
            response = await self.client.rpc("get_user_emails").execute()
        except Exception as e:
            raise BackendError("get_user_emails", str(e)) from e
        return [MemberEmail.model_validate(row) for row in response.data or []]

    @log_operation("get_announcement_view_counts", backend_logger)
    async def get_announcement_view_counts(self) -> List[AnnouncementViewCount]:
        try:
            response = await self.client.rpc("get_announcement_view_counts").execute()
        except Exception as e:
            raise BackendError("get_announcement_view_counts", str(e)) from e
        return [AnnouncementViewCount.model_validate(row) for row in response.data or []]

    # ---------------- auth ----------------

    async def sign_in(self, email: str, password: str) -> AuthSession:
        client = await self._public_client()
        try:
            response = await client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise BackendError("sign_in", str(e)) from e
        session = _to_auth_session(response.session)
        if session is None:
            raise BackendError("sign_in", "No session returned")
        return session

    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[AuthSession]:
        """Returns None when the project requires email confirmation first."""
        client = await self._public_client()
        payload: Dict[str, Any] = {"email": email, "password": password}
        if metadata:
            payload["options"] = {"data": metadata}
        try:
            response = await client.auth.sign_up(payload)
        except Exception as e:
            raise BackendError("sign_up", str(e)) from e
        return _to_auth_session(response.session)

    async def sign_out(self, access_token: str) -> None:
        try:
            await self.client.auth.admin.sign_out(access_token)
        except Exception as e:
            raise BackendError("sign_out", str(e)) from e

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        client = await self._public_client()
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            await client.auth.reset_password_for_email(email, options)
        except Exception as e:
            raise BackendError("reset_password", str(e)) from e

    # ---------------- change feed ----------------

    async def subscribe(
        self,
        table: str,
        event: str,
        handler: ChangeHandler,
        row_filter: Optional[str] = None,
    ) -> Subscription:
        suffix = "all" if event == "*" else event.lower()
        name = f"{table}-{suffix}-{next(self._channel_ids)}"
        channel = self.client.channel(name)

        def _on_payload(payload):
            change = ChangeEvent.from_payload(payload, table=table)
            task = asyncio.ensure_future(handler(change))
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

        channel.on_postgres_changes(
            event,
            callback=_on_payload,
            table=table,
            schema="public",
            filter=row_filter,
        )
        try:
            await channel.subscribe()
        except Exception as e:
            raise BackendError("subscribe", f"{name}: {e}") from e

        backend_logger.debug("Realtime channel subscribed", channel=name)

        async def _remove():
            await self.client.remove_channel(channel)

        return Subscription(name, _remove)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            backend_logger.error("Change handler failed", error=task.exception())
