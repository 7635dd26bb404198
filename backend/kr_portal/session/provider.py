"""
Role provider: the single writer of a session's RoleContext.

Lifecycle:
    UNINITIALIZED --start()--> LOADING --profile--> READY
                                  |                   |
                                  +--fetch fails--> ERROR (refresh() retries)
    any state --SIGNED_OUT--> SIGNED_OUT --SIGNED_IN--> LOADING ...
"""
from typing import Optional

from kr_portal.backend.models import AuthEvent, AuthSession
from kr_portal.backend.protocols import AuthGateway, ProfileStore
from kr_portal.core.logging import auth_logger
from kr_portal.realtime.subscription import Subscription
from kr_portal.session.context import RoleContext, SessionStatus

RELOAD_EVENTS = {
    AuthEvent.INITIAL_SESSION,
    AuthEvent.SIGNED_IN,
    AuthEvent.TOKEN_REFRESHED,
    AuthEvent.USER_UPDATED,
}


class RoleProvider:
    def __init__(self, context: RoleContext, auth: AuthGateway, profiles: ProfileStore):
        self.context = context
        self.auth = auth
        self.profiles = profiles
        self._subscription: Optional[Subscription] = None
        self._session: Optional[AuthSession] = None
        self._generation = 0
        self._stopped = False

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    async def start(self) -> RoleContext:
        """Initial session check, then follow auth state changes."""
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_auth_event)

        self.context._begin_loading()
        try:
            session = await self.auth.get_session()
        except Exception as e:
            auth_logger.error("Session check failed", error=e)
            self.context._fail("Could not read the current session")
            return self.context

        if session is None:
            self._session = None
            self.context._clear()
            return self.context

        self._session = session
        await self._load(session.user_id)
        return self.context

    async def refresh(self) -> RoleContext:
        """Re-fetch the profile for the current session (retry after an error)."""
        if self._session is None:
            return await self.start()
        await self._load(self._session.user_id)
        return self.context

    async def stop(self) -> None:
        self._stopped = True
        # Invalidate any fetch still in flight
        self._generation += 1
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.dispose()

    async def _on_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        if self._stopped:
            return
        auth_logger.debug(f"Auth state changed: {event.value}", user_id=session.user_id if session else None)

        if event is AuthEvent.SIGNED_OUT:
            self._generation += 1
            self._session = None
            self.context._clear()
            return

        if event in RELOAD_EVENTS and session is not None:
            self._session = session
            await self._load(session.user_id)

    def _is_current(self, generation: int) -> bool:
        return not self._stopped and generation == self._generation

    async def _load(self, user_id: str) -> None:
        self._generation += 1
        generation = self._generation
        self.context._begin_loading()
        try:
            profile = await self.profiles.get_profile(user_id)
        except Exception as e:
            if self._is_current(generation):
                auth_logger.error("Profile fetch failed", error=e, user_id=user_id)
                self.context._fail("Could not load your profile")
            return
        else:
            if not self._is_current(generation):
                auth_logger.debug("Discarding stale profile fetch", user_id=user_id)
                return
            if profile is None:
                auth_logger.warning("Profile not found", user_id=user_id)
                self.context._fail("Profile not found")
                return
            self.context._apply_profile(profile)
            auth_logger.info(
                "Role loaded",
                user_id=user_id,
                role=profile.role.value if profile.role else None,
            )
        finally:
            # Cancellation must not leave the session stuck in LOADING
            if self._is_current(generation) and self.context.status is SessionStatus.LOADING:
                self.context._fail("Profile fetch was interrupted")
