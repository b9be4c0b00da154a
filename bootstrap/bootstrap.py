# Path: bootstrap/bootstrap.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from bootstrap.manifest import load_manifest
from bootstrap.orchestrator import BootstrapOrchestrator
from bootstrap.service_slots import ServiceSlots
from components.access_guard import AccessDecision, AccessGuard, RoleResolver, RoleRouteTable
from components.demo_login import DemoLoginService
from components.session_manager import SessionManager
from configs.app_config import AppConfig, load_app_config
from configs.config_loader import ConfigLoader
from core.registry import ComponentRegistry
from domain.page import PageLocation
from domain.ports.event_bus_port import EventBusPort
from domain.ports.identity_provider_port import IdentityProviderPort
from domain.ports.navigator_port import NavigatorPort
from domain.ports.profile_store_port import ProfileStorePort
from domain.ports.storage_port import KeyValueStoragePort
from domain.session import Identity
from infrastructure.event_bus.memory_event_bus import MemoryEventBus
from infrastructure.navigation.recording_navigator import RecordingNavigator
from infrastructure.storage.key_value_storage import MemoryKeyValueStorage

logger = logging.getLogger(__name__)

__all__ = ['ClientRuntime', 'bootstrap_client', 'load_config']


@dataclass
class ClientRuntime:
    """Everything a page needs after start-up, in one place instead of globals."""
    config: AppConfig
    location: PageLocation
    event_bus: EventBusPort
    orchestrator: BootstrapOrchestrator
    session_manager: Optional[SessionManager]
    access_guard: Optional[AccessGuard]
    demo_login: Optional[DemoLoginService]
    navigator: NavigatorPort
    error: Optional[BaseException] = None

    @property
    def registry(self) -> ComponentRegistry:
        return self.orchestrator.registry

    @property
    def ready(self) -> bool:
        return self.orchestrator.is_initialized and self.error is None

    @property
    def current_role(self) -> Optional[str]:
        return self.access_guard.current_role if self.access_guard else None

    def current_user(self) -> Optional[Identity]:
        return self.session_manager.get_current_user() if self.session_manager else None

    def is_authenticated(self) -> bool:
        return self.session_manager.is_authenticated() if self.session_manager else False

    @property
    def guard_ready(self) -> bool:
        return self.access_guard is not None and self.registry.is_ready('access_guard')

    async def wait_for_access_decision(self, timeout: Optional[float] = None) -> Optional[AccessDecision]:
        """The guard's first decision; None only when the guard itself never came up."""
        if not self.guard_ready:
            return None
        return await self.access_guard.wait_for_decision(timeout)

    async def shutdown(self) -> None:
        if self.access_guard is not None:
            self.access_guard.stop()
        if isinstance(self.event_bus, MemoryEventBus):
            await self.event_bus.drain(timeout=1.0)
        logger.info('Client runtime shut down')

    def summary(self) -> Dict[str, Any]:
        user = self.current_user()
        return {
            'path': self.location.path,
            'ready': self.ready,
            'degraded': self.error is not None and self.guard_ready,
            'error': str(self.error) if self.error else None,
            'user': user.uid if user else None,
            'authenticated': self.is_authenticated(),
            'role': self.current_role,
            'components': self.registry.snapshot(),
        }


def load_config(env: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None,
                package_root: Optional[Path] = None) -> AppConfig:
    raw = ConfigLoader(package_root).load_global_config(env=env, overrides=overrides)
    return load_app_config(raw)


async def bootstrap_client(
    url: str = '/',
    *,
    provider: Optional[IdentityProviderPort],
    profile_store: ProfileStorePort,
    storage: Optional[KeyValueStoragePort] = None,
    navigator: Optional[NavigatorPort] = None,
    event_bus: Optional[EventBusPort] = None,
    slots: Optional[ServiceSlots] = None,
    config: Optional[AppConfig] = None,
    env: Optional[str] = None,
    config_overrides: Optional[Dict[str, Any]] = None,
    package_root: Optional[Path] = None,
) -> ClientRuntime:
    """
    Start the client core for the page at ``url``.

    Builds the default components into any empty service slot, lets the
    orchestrator register and initialize them, and returns the runtime.
    Initialization failures are logged and reported on ``ClientRuntime.error``
    instead of being raised; configuration and manifest errors are raised.
    """
    loader = ConfigLoader(package_root)
    if config is None:
        config = load_app_config(loader.load_global_config(env=env, overrides=config_overrides))
    manifest = load_manifest(loader.resolve_path(config.bootstrap.manifest))

    location = PageLocation.from_url(url)
    event_bus = event_bus if event_bus is not None else MemoryEventBus()
    storage = storage if storage is not None else MemoryKeyValueStorage()
    navigator = navigator if navigator is not None else RecordingNavigator()
    slots = slots if slots is not None else ServiceSlots()

    table = RoleRouteTable.from_config(config.access)
    if slots.session_manager is None:
        slots.session_manager = SessionManager(provider, storage, event_bus, location, config.session)
    if slots.access_guard is None:
        slots.access_guard = AccessGuard(
            slots.session_manager, profile_store, navigator, event_bus, table,
            resolver=RoleResolver.from_config(config.access, table), location=location,
        )
    if slots.demo_login is None and config.demo.accounts:
        slots.demo_login = DemoLoginService(slots.session_manager, profile_store, table, config.demo.accounts, navigator)

    orchestrator = BootstrapOrchestrator(
        event_bus,
        init_order=config.bootstrap.init_order,
        component_timeout_seconds=config.bootstrap.component_timeout_seconds,
        manifest=manifest,
        slots=slots,
        location=location,
        storage=storage,
        demo_storage_key=config.session.demo_storage_key,
    )
    runtime = ClientRuntime(
        config=config,
        location=location,
        event_bus=event_bus,
        orchestrator=orchestrator,
        session_manager=slots.session_manager,
        access_guard=slots.access_guard,
        demo_login=slots.demo_login,
        navigator=navigator,
    )

    logger.info(f"Bootstrapping client for {location.to_url()} (env={config.env})")
    try:
        await orchestrator.initialize()
    except Exception as e:
        logger.exception(f'Client bootstrap failed: {e}')
        runtime.error = e
    return runtime
