"""
Dashboard sessions.

A DashboardSession is what a mounted dashboard view owns: its own role state,
its own change-feed subscriptions. Sessions are never shared between
connections, and `close()` releases every subscription they opened.
"""
from typing import Awaitable, Callable, Dict, Iterable, Optional

from kr_portal.backend.protocols import ChangeFeed, ProfileStore
from kr_portal.core.exceptions import BackendError
from kr_portal.core.logging import realtime_logger
from kr_portal.permissions.constants import Feature
from kr_portal.permissions.service import can_access
from kr_portal.realtime.auth import SocketAuthGateway
from kr_portal.realtime.notifications import Notification, Severity
from kr_portal.realtime.relay import NotificationRelay, ProfileFeedRelay
from kr_portal.session.context import RoleContext
from kr_portal.session.provider import RoleProvider

Emitter = Callable[[str, dict], Awaitable[None]]


class DashboardSession:
    def __init__(
        self,
        sid: str,
        auth: SocketAuthGateway,
        profiles: ProfileStore,
        feed: ChangeFeed,
        emit: Emitter,
    ):
        self.sid = sid
        self.auth = auth
        self.emit = emit
        self.context = RoleContext()
        self.provider = RoleProvider(self.context, auth, profiles)
        self.relay = NotificationRelay(feed, profiles, self._push_notification)
        self.member_relay = ProfileFeedRelay(feed, self._push_member_change)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        await self.provider.start()
        try:
            await self.relay.open()
        except BackendError as e:
            realtime_logger.error("Could not open notification relay", error=e, sid=self.sid)
            await self._push_error("Live updates are unavailable right now")
        await self.sync_member_feed()
        await self.emit_state()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.relay.close()
        await self.member_relay.close()
        await self.provider.stop()
        realtime_logger.info("Dashboard session closed", sid=self.sid)

    # ---------------- client requests ----------------

    async def handle_auth_event(self, event, access_token: Optional[str] = None) -> bool:
        ok = await self.auth.dispatch(event, access_token)
        if ok:
            await self.sync_member_feed()
            await self.emit_state()
        return ok

    async def refresh(self) -> dict:
        await self.provider.refresh()
        await self.sync_member_feed()
        await self.emit_state()
        return self.context.snapshot()

    async def set_role(self, value) -> dict:
        """View-as switch. Raises RoleOverrideDenied / InvalidRole."""
        self.context.set_active_role(value)
        await self.emit_state()
        return self.context.snapshot()

    def check(self, features: Iterable) -> Dict[str, bool]:
        return {str(getattr(f, "value", f)): self.context.can_access(f) for f in features}

    # ---------------- member feed ----------------

    async def sync_member_feed(self) -> None:
        """Member-list changes are only streamed to stored member managers."""
        allowed = self.context.is_ready and can_access(self.context.role, Feature.MANAGE_MEMBERS)
        if allowed and not self.member_relay.is_open:
            try:
                await self.member_relay.open()
            except BackendError as e:
                realtime_logger.error("Could not open member feed", error=e, sid=self.sid)
        elif not allowed and self.member_relay.is_open:
            await self.member_relay.close()

    # ---------------- outbound ----------------

    async def emit_state(self) -> None:
        state = self.context.snapshot()
        state["capabilities"] = self.check(Feature)
        await self.emit("session:state", state)

    async def _push_notification(self, notification: Notification) -> None:
        # Nothing is relayed while the session has no established role
        if self._closed or not self.context.is_ready:
            return
        await self.emit("notification:new", notification.model_dump(mode="json"))

    async def _push_member_change(self, change: dict) -> None:
        if self._closed or not self.context.is_ready:
            return
        await self.emit("members:changed", change)

    async def _push_error(self, message: str) -> None:
        notification = Notification(title="Connection problem", description=message, severity=Severity.ERROR)
        await self.emit("notification:new", notification.model_dump(mode="json"))


class SessionRegistry:
    """sid -> DashboardSession for every live socket connection."""

    def __init__(self):
        self._sessions: Dict[str, DashboardSession] = {}

    def add(self, session: DashboardSession) -> None:
        self._sessions[session.sid] = session

    def get(self, sid: str) -> Optional[DashboardSession]:
        return self._sessions.get(sid)

    def pop(self, sid: str) -> Optional[DashboardSession]:
        return self._sessions.pop(sid, None)

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            try:
                await session.close()
            except Exception as e:
                realtime_logger.error("Failed to close dashboard session", error=e, sid=session.sid)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, sid: str) -> bool:
        return sid in self._sessions
