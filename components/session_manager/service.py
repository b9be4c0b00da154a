# components/session_manager/service.py
import asyncio
import functools
import inspect
import logging
from datetime import timedelta
from typing import Callable, Optional, Set

from configs.app_config import SessionConfig
from core.base_component import BaseComponent
from domain.page import PageLocation
from domain.ports.event_bus_port import EventBusPort
from domain.ports.identity_provider_port import IdentityProviderPort
from domain.ports.storage_port import KeyValueStoragePort
from domain.session import DemoSessionRecord, Identity, Session, SessionOrigin
from signals.app_signals import SESSION_CHANGED, SessionChangedPayload

from .errors import ProviderUnavailableError, SessionNotReadyError
from .subscription import LoggedInCallback, LoggedOutCallback, Subscription, SubscriptionState

logger = logging.getLogger(__name__)


class SessionManager(BaseComponent):
    """
    Keeps the one authoritative session for the page.

    A session comes from the identity provider (``real``), from an anonymous
    sign-in requested by a demo link (``demo-anonymous``), from a cached demo
    record (``demo-cached``) or, in development, from the ``dev=true&role=...``
    query string (``dev-forced``).

    Required collaborators:
        - provider (IdentityProviderPort): sign-in state and anonymous sign-in
        - storage (KeyValueStoragePort): durable home of the demo session record
        - event_bus (EventBusPort, optional): receives ``session:changed``
    """

    def __init__(
        self,
        provider: Optional[IdentityProviderPort],
        storage: KeyValueStoragePort,
        event_bus: Optional[EventBusPort] = None,
        location: Optional[PageLocation] = None,
        config: Optional[SessionConfig] = None,
    ) -> None:
        self.cfg = config or SessionConfig()
        super().__init__('session_manager', self.cfg.model_dump())
        self.provider = provider
        self.storage = storage
        self.event_bus = event_bus
        self.location = location or PageLocation()
        self._session: Optional[Session] = None
        self._subscription: Optional[Subscription] = None
        self._callback_tasks: Set[asyncio.Task] = set()

    async def _initialize_impl(self) -> None:
        if self.provider is None:
            raise ProviderUnavailableError('Identity provider is not available; cannot manage sessions')
        logger.info(f'[{self.component_name}] ready (timeout={self.cfg.subscription_timeout_seconds:g}s, '
                    f'dev sessions {"on" if self.cfg.allow_dev_sessions else "off"})')

    @property
    def current_session(self) -> Optional[Session]:
        return self._session

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    @property
    def demo_max_age(self) -> timedelta:
        return timedelta(hours=self.cfg.demo_max_age_hours)

    async def subscribe(
        self,
        on_logged_in: LoggedInCallback,
        on_logged_out: LoggedOutCallback,
        timeout: Optional[float] = None,
        subscription_id: str = 'default',
    ) -> Callable[[], None]:
        """
        Settle exactly one of ``on_logged_in(identity)`` / ``on_logged_out()``.

        Any previous subscription is torn down first. Returns the callable that
        tears this one down.
        """
        if not self.is_initialized:
            raise SessionNotReadyError('subscribe() called before the session manager was initialized')

        self._teardown_subscription()
        sub = Subscription(subscription_id, on_logged_in, on_logged_out)
        self._subscription = sub
        unsubscribe = functools.partial(self._unsubscribe, sub)

        if self.location.is_demo and self.location.requested_role:
            try:
                identity = await self.provider.sign_in_anonymously()
            except Exception as e:
                logger.warning(f'[{self.component_name}] Demo anonymous sign-in failed, falling back to provider state: {e}')
            else:
                if sub.is_pending:
                    self._set_session(Session(identity, SessionOrigin.DEMO_ANONYMOUS), publish=False)
                    self._settle(sub, SubscriptionState.LOGGED_IN, identity)
                return unsubscribe

        if not sub.is_pending:
            return unsubscribe

        budget = timeout if timeout is not None else self.cfg.subscription_timeout_seconds
        sub.timer = asyncio.get_running_loop().call_later(budget, self._on_timeout, sub, budget)
        sub.provider_unsubscribe = self.provider.on_auth_state_changed(
            lambda identity: self._on_provider_state(sub, identity)
        )
        return unsubscribe

    def _on_provider_state(self, sub: Subscription, identity: Optional[Identity]) -> None:
        if sub is not self._subscription or not sub.is_active:
            return

        if identity is not None:
            if sub.is_pending:
                self._set_session(Session(identity, SessionOrigin.REAL), publish=False)
                self._settle(sub, SubscriptionState.LOGGED_IN, identity)
            else:
                self._set_session(Session(identity, SessionOrigin.REAL))
            return

        if not sub.is_pending:
            self._set_session(None)
            return

        record = self.check_demo_auth()
        if record is not None:
            cached = record.to_identity()
            logger.info(f'[{self.component_name}] Provider reports no user; using cached demo session {cached.uid}')
            self._set_session(Session(cached, SessionOrigin.DEMO_CACHED), publish=False)
            self._settle(sub, SubscriptionState.LOGGED_IN, cached)
            return

        dev = self._dev_identity()
        if dev is not None:
            logger.info(f'[{self.component_name}] Using dev session for role {self.location.requested_role}')
            self._set_session(Session(dev, SessionOrigin.DEV_FORCED), publish=False)
            self._settle(sub, SubscriptionState.LOGGED_IN, dev)
            return

        logger.debug(f'[{self.component_name}] No user yet; waiting for the provider or the timeout')

    def _on_timeout(self, sub: Subscription, budget: float) -> None:
        sub.timer = None
        if sub is not self._subscription or not sub.is_pending:
            return
        logger.warning(f'[{self.component_name}] No session after {budget:g}s; treating the visitor as logged out')
        self._settle(sub, SubscriptionState.LOGGED_OUT, None)

    def _settle(self, sub: Subscription, state: SubscriptionState, identity: Optional[Identity]) -> None:
        sub.settle(state)
        try:
            if state is SubscriptionState.LOGGED_IN:
                result = sub.on_logged_in(identity)
            else:
                result = sub.on_logged_out()
        except Exception as e:
            logger.exception(f"[{self.component_name}] Subscriber callback for '{sub.subscription_id}' failed: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            exc = task.exception()
            logger.error(f'[{self.component_name}] Subscriber callback failed: {exc}',
                         exc_info=(type(exc), exc, exc.__traceback__))

    async def drain(self) -> None:
        """Wait for coroutine callbacks started by settled subscriptions."""
        while self._callback_tasks:
            await asyncio.gather(*tuple(self._callback_tasks), return_exceptions=True)

    def _unsubscribe(self, sub: Subscription) -> None:
        sub.cancel()
        if self._subscription is sub:
            self._subscription = None

    def _teardown_subscription(self) -> None:
        if self._subscription is not None:
            logger.debug(f'[{self.component_name}] Tearing down previous subscription {self._subscription!r}')
            self._unsubscribe(self._subscription)

    def _set_session(self, session: Optional[Session], publish: bool = True) -> None:
        previous = self._session
        self._session = session
        before = previous.identity.uid if previous and previous.identity else None
        after = session.identity.uid if session and session.identity else None
        if not publish or before == after or self.event_bus is None:
            return
        payload = SessionChangedPayload(
            user=session.identity if session else None,
            origin=session.origin.value if session else None,
        )
        logger.info(f'[{self.component_name}] Session changed: {before} -> {after}')
        self.event_bus.publish(SESSION_CHANGED, payload.as_event())

    def _dev_identity(self) -> Optional[Identity]:
        role = self.location.requested_role
        if not (self.cfg.allow_dev_sessions and self.location.is_dev and role):
            return None
        return Identity(uid=f'dev-{role}', email=None, is_anonymous=False, display_name=f'Dev {role}')

    def get_current_user(self) -> Optional[Identity]:
        """The identity of the settled session, else whatever the provider currently reports."""
        if self._session is not None:
            return self._session.identity
        return self.provider.current_user if self.provider is not None else None

    def is_authenticated(self) -> bool:
        return self.get_current_user() is not None

    def is_demo_user(self) -> bool:
        if self._session is None or self._session.identity is None:
            return False
        return self._session.origin.is_demo or self._session.identity.is_anonymous

    async def sign_out(self) -> None:
        """Sign out with the provider and forget the cached demo session. Subscribers are not called."""
        self.storage.remove(self.cfg.demo_storage_key)
        try:
            if self.provider is not None:
                await self.provider.sign_out()
        finally:
            self._set_session(None)
            logger.info(f'[{self.component_name}] Signed out')

    def check_demo_auth(self) -> Optional[DemoSessionRecord]:
        raw = self.storage.get(self.cfg.demo_storage_key)
        if raw is None:
            return None
        record = DemoSessionRecord.from_json(raw)
        if record is None:
            logger.warning(f'[{self.component_name}] Removing malformed demo session record')
            self.storage.remove(self.cfg.demo_storage_key)
            return None
        if record.is_expired(max_age=self.demo_max_age):
            logger.info(f'[{self.component_name}] Demo session for {record.email} expired; removing it')
            self.storage.remove(self.cfg.demo_storage_key)
            return None
        return record

    def remember_demo_session(self, identity: Identity, role: Optional[str] = None) -> DemoSessionRecord:
        record = DemoSessionRecord.create(identity, role=role)
        self.storage.set(self.cfg.demo_storage_key, record.to_json())
        logger.info(f'[{self.component_name}] Cached demo session for {record.email} (role={role})')
        return record

    def health(self) -> dict:
        report = super().health()
        report['authenticated'] = self.is_authenticated()
        report['origin'] = self._session.origin.value if self._session else None
        report['subscription'] = self._subscription.state.value if self._subscription else None
        return report
