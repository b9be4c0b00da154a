from __future__ import annotations
import asyncio
import inspect
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from bootstrap.exceptions import ComponentTimeoutError, DependencyCycleError
from bootstrap.manifest import ComponentManifest
from bootstrap.service_slots import ServiceSlots
from core.registry import ComponentRegistry
from domain.page import PageLocation
from domain.ports.event_bus_port import EventBusPort
from domain.ports.storage_port import KeyValueStoragePort
from signals.app_signals import (
    APP_ERROR, APP_READY, COMPONENT_READY, AppErrorPayload, ComponentReadyPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_COMPONENT_TIMEOUT_SECONDS = 120.0


class BootstrapOrchestrator:
    """
    Brings the page's components up in dependency order.

    Components register by name with their dependency names. ``initialize``
    auto-registers whatever the manifest names and the service slots hold,
    then walks the configured init order. Each component's own
    ``initialize()`` runs at most once; concurrent requests share one task.
    """

    def __init__(
        self,
        event_bus: EventBusPort,
        registry: Optional[ComponentRegistry] = None,
        *,
        init_order: Sequence[str] = (),
        component_timeout_seconds: float = DEFAULT_COMPONENT_TIMEOUT_SECONDS,
        manifest: Optional[ComponentManifest] = None,
        slots: Optional[ServiceSlots] = None,
        location: Optional[PageLocation] = None,
        storage: Optional[KeyValueStoragePort] = None,
        demo_storage_key: str = 'demoAuth',
    ) -> None:
        self.event_bus = event_bus
        self.registry = registry if registry is not None else ComponentRegistry(event_bus)
        self.init_order: List[str] = list(init_order)
        self.component_timeout_seconds = component_timeout_seconds
        self.manifest = manifest
        self.slots = slots
        self.location = location
        self.storage = storage
        self.demo_storage_key = demo_storage_key
        self._inflight: Dict[str, asyncio.Task] = {}
        self._init_task: Optional[asyncio.Task] = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def register(self, name: str, instance: Any, dependencies: Optional[Iterable[str]] = None,
                 timeout_seconds: Optional[float] = None) -> bool:
        return self.registry.register(name, instance, dependencies, timeout_seconds)

    def get_component(self, name: str) -> Any:
        return self.registry.get(name)

    def is_component_ready(self, name: str) -> bool:
        return self.registry.is_ready(name)

    async def init_component(self, name: str) -> Any:
        """
        Initialize ``name`` after its dependencies and return its instance.

        Registered dependencies are initialized recursively; unregistered ones
        are waited for until they report ready or their wait budget runs out.
        """
        record = self.registry.get_record(name)
        if record.ready:
            return record.instance

        task = self._inflight.get(name)
        if task is None:
            self._check_for_cycle(name)
            task = asyncio.get_running_loop().create_task(self._run_component(name), name=f'init:{name}')
            self._inflight[name] = task
        return await asyncio.shield(task)

    async def _run_component(self, name: str) -> Any:
        record = self.registry.get_record(name)
        self.registry.mark_started(name)
        try:
            for dep in record.dependencies:
                if self.registry.has_component(dep):
                    await self.init_component(dep)
                else:
                    logger.info(f"[{name}] waiting for unregistered dependency '{dep}'")
                    await self.wait_for_component(dep, timeout=record.timeout_seconds)

            if record.has_initializer:
                logger.info(f'Initializing component: {name}')
                result = record.instance.initialize()
                if inspect.isawaitable(result):
                    await result

            self.registry.mark_ready(name)
        except BaseException as e:
            self.registry.mark_failed(name)
            if isinstance(e, Exception):
                logger.error(f"Component '{name}' failed to initialize: {e}")
            raise
        finally:
            self._inflight.pop(name, None)

        logger.info(f"Component '{name}' is ready")
        self.event_bus.publish(COMPONENT_READY, ComponentReadyPayload(name=name, component=record.instance).as_event())
        return record.instance

    def _check_for_cycle(self, root: str) -> None:
        # only registered components take part; unregistered ones are awaited, not initialized
        path: List[str] = []
        visiting: set[str] = set()
        done: set[str] = set()

        def _visit(name: str) -> None:
            if name in done or self.registry.is_ready(name):
                return
            if name in visiting:
                raise DependencyCycleError(path[path.index(name):] + [name])
            visiting.add(name)
            path.append(name)
            for dep in self.registry.get_record(name).dependencies:
                if self.registry.has_component(dep):
                    _visit(dep)
            path.pop()
            visiting.discard(name)
            done.add(name)

        _visit(root)

    async def wait_for_component(self, name: str, timeout: Optional[float] = None) -> Any:
        """Return the instance of ``name`` once it is ready; raise ComponentTimeoutError otherwise."""
        if self.registry.is_ready(name):
            return self.registry.get(name)

        budget = timeout if timeout is not None else self.component_timeout_seconds
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def _on_ready(payload: Any) -> None:
            if isinstance(payload, dict) and payload.get('name') == name and not future.done():
                future.set_result(payload.get('component'))

        self.event_bus.subscribe(COMPONENT_READY, _on_ready)
        try:
            return await asyncio.wait_for(future, timeout=budget)
        except asyncio.TimeoutError:
            logger.warning(f"Gave up waiting for component '{name}' after {budget:g}s")
            raise ComponentTimeoutError(name, budget) from None
        finally:
            self.event_bus.unsubscribe(COMPONENT_READY, _on_ready)

    async def initialize(self) -> None:
        if self._initialized:
            logger.info('Application already initialized')
            return
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(self._run(), name='app:initialize')
        await asyncio.shield(self._init_task)

    async def _run(self) -> None:
        logger.info('=== Client bootstrap starting ===')
        current: Optional[str] = None
        try:
            self.clear_demo_cache_if_requested()
            self.auto_register_components()

            for name in self.init_order:
                if self.registry.has_component(name):
                    current = name
                    await self.init_component(name)
                else:
                    logger.debug(f"Skipping '{name}': not registered")
            current = None

            self._initialized = True
            logger.info(f'=== Client bootstrap complete: {self.registry.list_ready()} ===')
            self.event_bus.publish(APP_READY, {'components': self.registry.list_ready()})
        except Exception as e:
            logger.error(f'Application initialization failed: {e}')
            component = getattr(e, 'component_name', None) or current
            self.event_bus.publish(APP_ERROR, AppErrorPayload(error=e, component=component).as_event())
            raise

    def clear_demo_cache_if_requested(self) -> bool:
        if self.location is None or not self.location.clear_cache:
            return False
        if self.storage is None:
            logger.warning('clear-cache requested but no durable storage is attached')
            return False
        self.storage.remove(self.demo_storage_key)
        logger.info(f"Cleared cached demo session '{self.demo_storage_key}'")
        return True

    def auto_register_components(self) -> List[str]:
        """Register every manifest component whose slot is filled and that nobody registered yet."""
        if self.manifest is None or self.slots is None:
            return []
        registered: List[str] = []
        for entry in self.manifest.enabled_entries():
            instance = self.slots.get(entry.slot_name)
            if instance is None or self.registry.has_component(entry.name):
                continue
            if self.register(entry.name, instance, entry.dependencies, entry.timeout_seconds):
                logger.info(f"Auto-registered '{entry.name}' from slot '{entry.slot_name}'")
                registered.append(entry.name)
        return registered
