import asyncio
import logging
from typing import Any, Optional

import pytest

from bootstrap.bootstrap import load_config
from components.access_guard import AccessGuard, RoleResolver, RoleRouteTable
from components.session_manager import SessionManager
from configs.app_config import AppConfig, SessionConfig
from domain.page import PageLocation
from domain.session import Identity
from infrastructure.event_bus.memory_event_bus import MemoryEventBus
from infrastructure.identity.memory_profile_store import InMemoryProfileStore
from infrastructure.identity.memory_provider import InMemoryIdentityProvider
from infrastructure.navigation.recording_navigator import RecordingNavigator
from infrastructure.storage.key_value_storage import MemoryKeyValueStorage

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


@pytest.fixture
def app_config() -> AppConfig:
    return load_config()


@pytest.fixture
def route_table(app_config) -> RoleRouteTable:
    return RoleRouteTable.from_config(app_config.access)


@pytest.fixture
def resolver(app_config, route_table) -> RoleResolver:
    return RoleResolver.from_config(app_config.access, route_table)


@pytest.fixture
def event_bus() -> MemoryEventBus:
    return MemoryEventBus()


@pytest.fixture
def storage() -> MemoryKeyValueStorage:
    return MemoryKeyValueStorage()


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def flush():
    """Let the loop run a few iterations so call_soon callbacks and short tasks complete."""
    async def _flush(iterations: int = 10) -> None:
        for _ in range(iterations):
            await asyncio.sleep(0)
    return _flush


@pytest.fixture
def make_session_manager(storage, event_bus):
    def _make(provider: Optional[InMemoryIdentityProvider], url: str = '/', **session_overrides: Any) -> SessionManager:
        cfg = SessionConfig(**session_overrides)
        return SessionManager(provider, storage, event_bus, PageLocation.from_url(url), cfg)
    return _make


@pytest.fixture
def make_access_guard(make_session_manager, profile_store, navigator, event_bus, route_table, resolver):
    def _make(provider: InMemoryIdentityProvider, url: str = '/', **session_overrides: Any) -> AccessGuard:
        session_manager = make_session_manager(provider, url, **session_overrides)
        return AccessGuard(session_manager, profile_store, navigator, event_bus, route_table,
                           resolver=resolver, location=session_manager.location)
    return _make


@pytest.fixture
def alice() -> Identity:
    return Identity(uid='alice', email='alice@example.com')
