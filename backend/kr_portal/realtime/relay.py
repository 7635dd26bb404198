"""
Realtime notification relay.

Turns change events on the attendance, leave and NOC tables into user-facing
notifications for one dashboard session. Each table gets its own subscription;
no ordering is assumed across tables.
"""
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional

from kr_portal.backend.protocols import ChangeFeed, ProfileStore
from kr_portal.core.config import settings
from kr_portal.core.exceptions import RelayAlreadyOpen
from kr_portal.core.logging import realtime_logger
from kr_portal.realtime.events import ChangeEvent
from kr_portal.realtime.notifications import Notification, Severity, severity_for_status
from kr_portal.realtime.subscription import SubscriptionGroup

NotificationSink = Callable[[Notification], Awaitable[None]]

PLACEHOLDER_NAME = "A team member"

ATTENDANCE_TABLE = "attendance"
LEAVE_TABLE = "leave_requests"
NOC_TABLE = "noc_requests"

# table -> (title prefix, wording used in descriptions)
REQUEST_LABELS: Dict[str, tuple] = {
    LEAVE_TABLE: ("Leave", "leave"),
    NOC_TABLE: ("NOC", "NOC"),
}


class NotificationRelay:
    def __init__(
        self,
        feed: ChangeFeed,
        profiles: ProfileStore,
        sink: NotificationSink,
        duration_ms: Optional[int] = None,
        dedup_window: Optional[int] = None,
    ):
        self.feed = feed
        self.profiles = profiles
        self.sink = sink
        self.duration_ms = duration_ms if duration_ms is not None else settings.NOTIFICATION_DURATION_MS
        self.dedup_window = dedup_window if dedup_window is not None else settings.NOTIFICATION_DEDUP_WINDOW
        self._recent: "OrderedDict[tuple, None]" = OrderedDict()
        self._group: Optional[SubscriptionGroup] = None

    @property
    def is_open(self) -> bool:
        return self._group is not None and not self._group.closed

    async def open(self) -> SubscriptionGroup:
        """
        Subscribe to every watched table. The returned group must be disposed
        (or `close()` called) when the owning session ends.
        """
        if self.is_open:
            raise RelayAlreadyOpen("Notification relay is already subscribed")

        group = SubscriptionGroup()
        try:
            group.add(await self.feed.subscribe(ATTENDANCE_TABLE, "INSERT", self.on_attendance_insert))
            group.add(await self.feed.subscribe(LEAVE_TABLE, "UPDATE", self.on_request_update))
            group.add(await self.feed.subscribe(NOC_TABLE, "UPDATE", self.on_request_update))
        except Exception:
            await group.dispose()
            raise

        self._group = group
        realtime_logger.info("Notification relay opened", subscriptions=len(group))
        return group

    async def close(self) -> None:
        group, self._group = self._group, None
        if group is not None:
            await group.dispose()
            realtime_logger.info("Notification relay closed")

    # ---------------- change handlers ----------------

    async def on_attendance_insert(self, event: ChangeEvent) -> Optional[Notification]:
        return await self._deliver(self.build_attendance_notification, event)

    async def on_request_update(self, event: ChangeEvent) -> Optional[Notification]:
        return await self._deliver(self.build_request_notification, event)

    # ---------------- builders ----------------

    async def build_attendance_notification(self, event: ChangeEvent) -> Optional[Notification]:
        name = await self.resolve_actor_name(event.new.get("user_id"))
        status = event.new.get("status") or "unknown"
        return Notification(
            title="New Attendance Update",
            description=f"{name} has marked attendance as {status}",
            severity=Severity.INFO,
            duration_ms=self.duration_ms,
            table=event.table or ATTENDANCE_TABLE,
            event_type=event.event_type,
            row_id=event.row_id,
        )

    async def build_request_notification(self, event: ChangeEvent) -> Optional[Notification]:
        # Updates to unrelated columns are not announced
        if not event.status_changed:
            return None

        prefix, wording = REQUEST_LABELS.get(event.table, ("Request", "request"))
        status = event.new.get("status")
        severity = severity_for_status(status)
        name = await self.resolve_actor_name(event.new.get("user_id"))

        if severity is Severity.SUCCESS:
            title = f"{prefix} Request Approved"
            if event.table == LEAVE_TABLE:
                days = len(event.new.get("requested_days") or [])
                description = f"{name}'s {wording} request for {days} day(s) has been approved"
            else:
                description = f"{name}'s {wording} request has been approved"
        elif severity is Severity.ERROR:
            title = f"{prefix} Request Rejected"
            description = f"{name}'s {wording} request has been rejected"
        else:
            title = f"{prefix} Request Updated"
            description = f"{name}'s {wording} request status changed to {status}"

        return Notification(
            title=title,
            description=description,
            severity=severity,
            duration_ms=self.duration_ms,
            table=event.table,
            event_type=event.event_type,
            row_id=event.row_id,
        )

    async def resolve_actor_name(self, user_id) -> str:
        if not user_id:
            return PLACEHOLDER_NAME
        try:
            profile = await self.profiles.get_profile(str(user_id))
        except Exception as e:
            realtime_logger.warning("Actor name lookup failed", error=e, user_id=user_id)
            return PLACEHOLDER_NAME
        if profile is None:
            return PLACEHOLDER_NAME
        name = (profile.full_name or "").strip()
        return name or PLACEHOLDER_NAME

    # ---------------- delivery ----------------

    def _is_duplicate(self, event: ChangeEvent) -> bool:
        """Drop exact re-deliveries seen within the recent window."""
        if not self.dedup_window or event.row_id is None or event.commit_timestamp is None:
            return False
        key = (event.table, event.event_type, event.row_id, event.commit_timestamp, event.new.get("status"))
        if key in self._recent:
            return True
        self._recent[key] = None
        while len(self._recent) > self.dedup_window:
            self._recent.popitem(last=False)
        return False

    async def _deliver(self, builder, event: ChangeEvent) -> Optional[Notification]:
        if self._is_duplicate(event):
            realtime_logger.debug("Duplicate change event dropped", table=event.table, row_id=event.row_id)
            return None
        try:
            notification = await builder(event)
        except Exception as e:
            realtime_logger.error("Failed to build notification", error=e, table=event.table)
            return None
        if notification is None:
            return None
        try:
            await self.sink(notification)
        except Exception as e:
            realtime_logger.error("Failed to deliver notification", error=e, table=event.table)
        return notification


MemberChangeSink = Callable[[Dict[str, Any]], Awaitable[None]]


class ProfileFeedRelay:
    """Forwards every profiles change so member lists can patch themselves in place."""

    TABLE = "profiles"

    def __init__(self, feed: ChangeFeed, sink: MemberChangeSink):
        self.feed = feed
        self.sink = sink
        self._group: Optional[SubscriptionGroup] = None

    async def open(self) -> SubscriptionGroup:
        if self.is_open:
            raise RelayAlreadyOpen("Profile relay is already subscribed")
        self._group = SubscriptionGroup([await self.feed.subscribe(self.TABLE, "*", self.on_change)])
        return self._group

    @property
    def is_open(self) -> bool:
        return self._group is not None and not self._group.closed

    async def close(self) -> None:
        group, self._group = self._group, None
        if group is not None:
            await group.dispose()

    async def on_change(self, event: ChangeEvent) -> None:
        change = {
            "event_type": event.event_type,
            "id": event.row_id,
            "new": event.new,
            "old": event.old,
        }
        try:
            await self.sink(change)
        except Exception as e:
            realtime_logger.error("Failed to forward member change", error=e, row_id=event.row_id)
