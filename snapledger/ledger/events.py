"""
Change notifications.

The ledger and the session publish a change object after every state
change. The presentation layer subscribes and re-renders; the core never
calls into it directly.
"""

from typing import Callable, Generic, Literal, Optional, TypeVar

import structlog
from pydantic import BaseModel

from snapledger.models.receipt import Expense


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class LedgerChange(BaseModel):
    """Published by LedgerStore after load, append and remove."""

    kind: Literal["loaded", "appended", "removed"]
    expense: Optional[Expense] = None
    count: int


class ChangeNotifier(Generic[T]):
    """
    Minimal subscribe-on-change hub.

    Subscribers are called synchronously, in subscription order, after
    the change has been applied and persisted. A failing subscriber is
    logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback. Returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, change: T) -> None:
        # Copy so a subscriber may unsubscribe while being notified
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception("subscriber_failed", callback=repr(callback))

    def __len__(self) -> int:
        return len(self._subscribers)
