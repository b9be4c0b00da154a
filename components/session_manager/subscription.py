# components/session_manager/subscription.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from .errors import SubscriptionSettledTwiceError

logger = logging.getLogger(__name__)

LoggedInCallback = Callable[[Any], Any]
LoggedOutCallback = Callable[[], Any]


class SubscriptionState(str, Enum):
    PENDING = 'pending'
    LOGGED_IN = 'logged_in'
    LOGGED_OUT = 'logged_out'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self is not SubscriptionState.PENDING


class Subscription:
    """
    One caller's interest in the session outcome.

    Starts ``pending`` and leaves it exactly once, for ``logged_in``,
    ``logged_out`` or ``cancelled``. Owns the fallback timer and the provider
    listener registration so tearing it down releases both.
    """

    def __init__(self, subscription_id: str, on_logged_in: LoggedInCallback, on_logged_out: LoggedOutCallback) -> None:
        self.subscription_id = subscription_id
        self.on_logged_in = on_logged_in
        self.on_logged_out = on_logged_out
        self.state = SubscriptionState.PENDING
        self.settled_at: Optional[datetime] = None
        self.timer: Optional[asyncio.TimerHandle] = None
        self.provider_unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_pending(self) -> bool:
        return self.state is SubscriptionState.PENDING

    @property
    def is_active(self) -> bool:
        return self.state is not SubscriptionState.CANCELLED

    def settle(self, new_state: SubscriptionState) -> None:
        if new_state is SubscriptionState.PENDING:
            raise ValueError('A subscription cannot be settled back to pending')
        if self.state.is_terminal:
            raise SubscriptionSettledTwiceError(self.subscription_id, self.state.value, new_state.value)
        self.state = new_state
        self.settled_at = datetime.now(timezone.utc)
        self.cancel_timer()
        logger.debug(f"Subscription '{self.subscription_id}' settled: {new_state.value}")

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def detach_provider(self) -> None:
        if self.provider_unsubscribe is not None:
            unsubscribe, self.provider_unsubscribe = self.provider_unsubscribe, None
            unsubscribe()

    def cancel(self) -> None:
        """Tear down: stop the timer, drop the provider listener, never fire a callback afterwards."""
        self.cancel_timer()
        self.detach_provider()
        if self.is_pending:
            self.settled_at = datetime.now(timezone.utc)
        self.state = SubscriptionState.CANCELLED

    def __repr__(self) -> str:
        return f'Subscription(id={self.subscription_id!r}, state={self.state.value})'
