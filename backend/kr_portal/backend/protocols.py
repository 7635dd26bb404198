"""
Interfaces the portal core needs from the hosted backend.

The production implementation is `SupabaseBackend`; tests pass in-memory fakes.
"""
from typing import Awaitable, Callable, Optional, Protocol

from kr_portal.backend.models import AuthEvent, AuthSession, Profile
from kr_portal.realtime.events import ChangeEvent
from kr_portal.realtime.subscription import Subscription

AuthListener = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]
ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class AuthGateway(Protocol):
    async def get_session(self) -> Optional[AuthSession]: ...

    def on_auth_state_change(self, listener: AuthListener) -> Subscription: ...


class ProfileStore(Protocol):
    async def get_profile(self, user_id: str) -> Optional[Profile]: ...


class ChangeFeed(Protocol):
    async def subscribe(
        self,
        table: str,
        event: str,
        handler: ChangeHandler,
        row_filter: Optional[str] = None,
    ) -> Subscription: ...
