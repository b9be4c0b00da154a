# infrastructure/identity/memory_provider.py
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, List, Optional

from domain.ports.identity_provider_port import AuthStateCallback, IdentityProviderPort
from domain.session import Identity

logger = logging.getLogger(__name__)


class InMemoryIdentityProvider(IdentityProviderPort):
    """
    Identity provider held entirely in process memory.

    Mirrors the timing of a hosted provider: a newly registered state-change
    callback receives the current identity ``initial_delay`` seconds later
    (on the next loop iteration when 0). With ``initial_delay=None`` the first
    callback never arrives, which is what a hung network looks like.
    """

    def __init__(
        self,
        current_user: Optional[Identity] = None,
        initial_delay: Optional[float] = 0.0,
        anonymous_sign_in_error: Optional[Exception] = None,
    ) -> None:
        self._current_user = current_user
        self._listeners: List[AuthStateCallback] = []
        self._initial_delay = initial_delay
        self._pending_initial: List[asyncio.Handle] = []
        self.anonymous_sign_in_error = anonymous_sign_in_error
        self.anonymous_sign_in_count = 0
        self.sign_out_count = 0

    @property
    def current_user(self) -> Optional[Identity]:
        return self._current_user

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._listeners.append(callback)
        if self._initial_delay is not None:
            loop = asyncio.get_running_loop()
            if self._initial_delay > 0:
                handle = loop.call_later(self._initial_delay, self._deliver_initial, callback)
            else:
                handle = loop.call_soon(self._deliver_initial, callback)
            self._pending_initial.append(handle)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def _deliver_initial(self, callback: AuthStateCallback) -> None:
        if callback in self._listeners:
            self._invoke(callback, self._current_user)

    async def sign_in_anonymously(self) -> Identity:
        self.anonymous_sign_in_count += 1
        await asyncio.sleep(0)
        if self.anonymous_sign_in_error is not None:
            raise self.anonymous_sign_in_error
        identity = Identity(uid=f'anon-{uuid.uuid4().hex[:12]}', is_anonymous=True)
        self.set_user(identity)
        return identity

    async def sign_out(self) -> None:
        self.sign_out_count += 1
        await asyncio.sleep(0)
        self.set_user(None)

    def set_user(self, identity: Optional[Identity]) -> None:
        """Change the signed-in identity and notify every listener."""
        self._current_user = identity
        logger.debug(f"InMemoryIdentityProvider: state changed -> {identity.uid if identity else None}")
        for callback in tuple(self._listeners):
            self._invoke(callback, identity)

    def _invoke(self, callback: AuthStateCallback, identity: Optional[Identity]) -> None:
        try:
            callback(identity)
        except Exception as e:
            logger.exception(f'InMemoryIdentityProvider: auth state callback failed: {e}')
