# components/access_guard/service.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from components.session_manager.service import SessionManager
from core.base_component import BaseComponent
from domain.page import PageLocation
from domain.ports.event_bus_port import EventBusPort
from domain.ports.navigator_port import NavigatorPort
from domain.ports.profile_store_port import ProfileStorePort
from domain.session import Identity
from signals.app_signals import ROLE_CHANGED, SESSION_CHANGED, RoleChangedPayload

from .errors import ProfileFetchError
from .role_resolver import RoleResolver
from .route_table import RoleRouteTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    role: Optional[str]
    path: str
    reason: str
    redirect_to: Optional[str] = None

    @property
    def superseded(self) -> bool:
        return self.reason == 'superseded'


class AccessGuard(BaseComponent):
    """
    Decides, before a page renders, whether the visitor may see it.

    Runs once the session manager settles the page session and again on every
    ``session:changed`` event. A permitted visit records the effective role
    and publishes ``roleChanged``; anything else redirects to the root page
    unless the visitor is already there.

    Required collaborators:
        - session_manager (SessionManager): current identity and demo status
        - profile_store (ProfileStorePort): profile documents carrying the stored role
        - navigator (NavigatorPort): performs redirects
        - event_bus (EventBusPort): publishes ``roleChanged``, delivers ``session:changed``
    """

    def __init__(
        self,
        session_manager: SessionManager,
        profile_store: ProfileStorePort,
        navigator: NavigatorPort,
        event_bus: EventBusPort,
        table: RoleRouteTable,
        resolver: Optional[RoleResolver] = None,
        location: Optional[PageLocation] = None,
    ) -> None:
        super().__init__('access_guard')
        self.session_manager = session_manager
        self.profile_store = profile_store
        self.navigator = navigator
        self.event_bus = event_bus
        self.table = table
        self.resolver = resolver or RoleResolver(table)
        self.location = location or session_manager.location
        self.current_role: Optional[str] = None
        self.last_decision: Optional[AccessDecision] = None
        self.decisions: List[AccessDecision] = []
        self._generation = 0
        self._unsubscribe_session: Optional[Callable[[], None]] = None
        self._first_decision: Optional[asyncio.Future] = None

    async def _initialize_impl(self) -> None:
        self._first_decision = asyncio.get_running_loop().create_future()
        self.event_bus.subscribe(SESSION_CHANGED, self._on_session_changed)
        self._unsubscribe_session = await self.session_manager.subscribe(
            self._on_logged_in, self._on_logged_out, subscription_id=self.component_name,
        )
        logger.info(f'[{self.component_name}] guarding {self.location.path}')

    async def _on_logged_in(self, identity: Identity) -> None:
        await self.check_access()

    async def _on_logged_out(self) -> None:
        await self.check_access()

    async def _on_session_changed(self, payload: Any) -> None:
        logger.debug(f'[{self.component_name}] session changed, re-checking access')
        await self.check_access()

    def stop(self) -> None:
        """Stop reacting to session changes."""
        self.event_bus.unsubscribe(SESSION_CHANGED, self._on_session_changed)
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None

    async def wait_for_decision(self, timeout: Optional[float] = None) -> AccessDecision:
        """The first decision of this page load, once made."""
        if self._first_decision is None:
            raise RuntimeError('AccessGuard has not been initialized')
        return await asyncio.wait_for(asyncio.shield(self._first_decision), timeout=timeout)

    async def check_access(self, location: Optional[PageLocation] = None) -> AccessDecision:
        """
        Evaluate the current page for the current identity and act on the result.

        A check overtaken by a newer one while it was fetching the profile is
        discarded without side effects.
        """
        if location is not None:
            self.location = location
        self._generation += 1
        generation = self._generation
        location = self.location
        identity = self.session_manager.get_current_user()

        if identity is None:
            decision = self._check_visitor(location)
        else:
            profile = await self._fetch_profile(identity)
            if generation != self._generation:
                logger.debug(f'[{self.component_name}] discarding superseded check for {location.path}')
                return AccessDecision(False, None, location.path, 'superseded')
            decision = self._check_identity(identity, profile, location)

        self._apply(decision, location)
        return decision

    def _check_visitor(self, location: PageLocation) -> AccessDecision:
        path = location.path
        if self.table.is_public(path):
            return AccessDecision(True, None, path, 'public')

        role = self.table.normalize(location.forced_role)
        if role is not None:
            # relaxed check for demo and dev links opened before any sign-in
            if self.table.is_allowed(role, path) or role in path:
                return AccessDecision(True, role, path, 'demo-link')
        return self._deny(None, location, 'unauthenticated')

    def _check_identity(self, identity: Identity, profile: Optional[Dict[str, Any]], location: PageLocation) -> AccessDecision:
        resolved = self.resolver.resolve(identity, profile, location)
        path = location.path
        if self.table.is_allowed(resolved.role, path):
            return AccessDecision(True, resolved.role, path, f'route:{resolved.source}')
        if self.table.is_public(path):
            return AccessDecision(True, resolved.role, path, 'public')
        demo = self.session_manager.is_demo_user() or location.is_demo or location.is_dev
        if demo and self.table.is_dashboard_entry(path):
            return AccessDecision(True, resolved.role, path, 'demo-dashboard')
        return self._deny(resolved.role, location, f'role {resolved.role} may not open {path}')

    def _deny(self, role: Optional[str], location: PageLocation, reason: str) -> AccessDecision:
        redirect_to = None if location.is_root else self.table.root_path
        return AccessDecision(False, role, location.path, reason, redirect_to)

    async def load_profile(self, identity: Identity) -> Optional[Dict[str, Any]]:
        try:
            return await self.profile_store.get_profile(identity.uid)
        except Exception as e:
            raise ProfileFetchError(identity.uid, e) from e

    async def _fetch_profile(self, identity: Identity) -> Optional[Dict[str, Any]]:
        try:
            return await self.load_profile(identity)
        except ProfileFetchError as e:
            logger.warning(f'[{self.component_name}] {e}; resolving role without it')
            return None

    def _apply(self, decision: AccessDecision, location: PageLocation) -> None:
        self.last_decision = decision
        self.decisions.append(decision)
        if decision.allowed:
            if decision.role is not None:
                self.current_role = decision.role
                self.event_bus.publish(ROLE_CHANGED, RoleChangedPayload(role=decision.role, path=location.path).as_event())
            logger.info(f'[{self.component_name}] access to {location.path} granted ({decision.reason})')
        else:
            logger.warning(f'[{self.component_name}] access to {location.path} denied: {decision.reason}')
            if decision.redirect_to is not None:
                self.navigator.redirect(decision.redirect_to)

        if self._first_decision is not None and not self._first_decision.done():
            self._first_decision.set_result(decision)

    def has_role(self, role: str) -> bool:
        return self.current_role is not None and self.current_role == self.table.normalize(role)

    def has_any_role(self, roles: List[str]) -> bool:
        return any(self.has_role(r) for r in roles)

    def require_role(self, role: str, redirect_to: Optional[str] = None) -> bool:
        """
        Return True when the visitor holds ``role``.

        Otherwise redirect to ``redirect_to``, falling back to the visitor's own
        dashboard and then to the root page, and return False.
        """
        if self.has_role(role):
            return True
        target = redirect_to or (self.table.dashboard_for(self.current_role) if self.current_role else None)
        target = target or self.table.root_path
        logger.warning(f"[{self.component_name}] role '{role}' required, current role is {self.current_role!r}; redirecting to {target}")
        self.navigator.redirect(target)
        return False

    def is_demo_user(self) -> bool:
        return self.session_manager.is_demo_user()

    def health(self) -> Dict[str, Any]:
        report = super().health()
        report['current_role'] = self.current_role
        report['decisions'] = len(self.decisions)
        report['route_table'] = self.table.get_stats()
        return report
