"""
Disposable handles for realtime subscriptions.

Every open subscription is owned by exactly one dashboard session and must be
disposed when that session ends.
"""
import inspect
from typing import Awaitable, Callable, List, Optional, Union

from kr_portal.core.logging import realtime_logger

Disposer = Callable[[], Union[None, Awaitable[None]]]


class Subscription:
    """Handle returned by a subscribe call; `dispose()` is idempotent."""

    def __init__(self, name: str, disposer: Optional[Disposer] = None):
        self.name = name
        self._disposer = disposer
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def dispose(self) -> None:
        if self._closed:
            return
        self._closed = True
        disposer, self._disposer = self._disposer, None
        if disposer is None:
            return
        result = disposer()
        if inspect.isawaitable(result):
            await result
        realtime_logger.debug(f"Subscription disposed: {self.name}")

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Subscription {self.name} {state}>"


class SubscriptionGroup:
    """
    A set of subscriptions torn down together.

    Usage:
        async with await relay.open() as group:
            ...
    """

    def __init__(self, subscriptions: Optional[List[Subscription]] = None):
        self.subscriptions: List[Subscription] = list(subscriptions or [])

    def add(self, subscription: Subscription) -> None:
        self.subscriptions.append(subscription)

    @property
    def closed(self) -> bool:
        return all(s.closed for s in self.subscriptions)

    async def dispose(self) -> None:
        """Dispose every member; one failing teardown does not skip the rest."""
        for subscription in self.subscriptions:
            try:
                await subscription.dispose()
            except Exception as e:
                realtime_logger.error(
                    f"Failed to dispose subscription {subscription.name}",
                    error=e,
                )

    async def __aenter__(self) -> "SubscriptionGroup":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def __len__(self) -> int:
        return len(self.subscriptions)
