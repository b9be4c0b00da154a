import asyncio
import itertools
import logging
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from bootstrap.exceptions import ComponentTimeoutError, DependencyCycleError
from bootstrap.manifest import ComponentManifest
from bootstrap.orchestrator import BootstrapOrchestrator
from bootstrap.service_slots import ServiceSlots
from domain.page import PageLocation
from infrastructure.event_bus.memory_event_bus import MemoryEventBus
from infrastructure.storage.key_value_storage import MemoryKeyValueStorage
from signals.app_signals import APP_ERROR, APP_READY, COMPONENT_READY


class Recorder:
    def __init__(self, name: str, log: List[str], delay: float = 0.0, error: Optional[Exception] = None):
        self.name = name
        self.log = log
        self.delay = delay
        self.error = error
        self.calls = 0

    async def initialize(self) -> None:
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.log.append(self.name)


@pytest.fixture
def bus():
    return MemoryEventBus()


CHAIN = [
    ('jobs_manager', ['session_manager', 'access_guard']),
    ('access_guard', ['session_manager']),
    ('session_manager', []),
]


@pytest.mark.asyncio
@pytest.mark.parametrize('registrations', list(itertools.permutations(CHAIN)))
async def test_dependencies_initialize_before_dependents(bus, registrations):
    log: List[str] = []
    orch = BootstrapOrchestrator(bus)
    for name, deps in registrations:
        orch.register(name, Recorder(name, log), deps)

    await orch.init_component('jobs_manager')

    assert log == ['session_manager', 'access_guard', 'jobs_manager']
    assert all(orch.is_component_ready(n) for n in ('session_manager', 'access_guard', 'jobs_manager'))


@pytest.mark.asyncio
async def test_concurrent_init_runs_initialize_once(bus):
    log: List[str] = []
    sm = Recorder('session_manager', log, delay=0.01)
    orch = BootstrapOrchestrator(bus)
    orch.register('session_manager', sm)

    results = await asyncio.gather(*(orch.init_component('session_manager') for _ in range(5)))

    assert sm.calls == 1
    assert all(r is sm for r in results)
    await orch.init_component('session_manager')
    assert sm.calls == 1


@pytest.mark.asyncio
async def test_component_without_initialize_still_becomes_ready(bus):
    ready = MagicMock()
    bus.subscribe(COMPONENT_READY, ready)
    orch = BootstrapOrchestrator(bus)
    plain = object()
    orch.register('plain', plain)

    assert await orch.init_component('plain') is plain
    assert ready.call_args.args[0]['name'] == 'plain'
    assert ready.call_args.args[0]['component'] is plain


@pytest.mark.asyncio
async def test_wait_for_component_times_out(bus):
    orch = BootstrapOrchestrator(bus)
    with pytest.raises(ComponentTimeoutError) as exc_info:
        await orch.wait_for_component('chat_manager', timeout=0.05)
    assert exc_info.value.component_name == 'chat_manager'
    assert exc_info.value.timeout_seconds == 0.05
    assert bus.subscriber_count(COMPONENT_READY) == 0


@pytest.mark.asyncio
async def test_wait_for_component_resolves_on_ready_event(bus):
    log: List[str] = []
    orch = BootstrapOrchestrator(bus)
    waiter = asyncio.ensure_future(orch.wait_for_component('session_manager', timeout=1.0))
    await asyncio.sleep(0)

    sm = Recorder('session_manager', log)
    orch.register('session_manager', sm)
    await orch.init_component('session_manager')

    assert await waiter is sm
    assert await orch.wait_for_component('session_manager') is sm


@pytest.mark.asyncio
async def test_unregistered_dependency_is_awaited(bus):
    log: List[str] = []
    orch = BootstrapOrchestrator(bus)
    orch.register('jobs_manager', Recorder('jobs_manager', log), ['session_manager'], timeout_seconds=1.0)

    dependent = asyncio.ensure_future(orch.init_component('jobs_manager'))
    await asyncio.sleep(0.01)
    assert log == []

    orch.register('session_manager', Recorder('session_manager', log))
    await orch.init_component('session_manager')
    await dependent

    assert log == ['session_manager', 'jobs_manager']


@pytest.mark.asyncio
async def test_unregistered_dependency_times_out(bus):
    log: List[str] = []
    orch = BootstrapOrchestrator(bus)
    orch.register('jobs_manager', Recorder('jobs_manager', log), ['session_manager'], timeout_seconds=0.05)

    with pytest.raises(ComponentTimeoutError):
        await orch.init_component('jobs_manager')
    assert not orch.is_component_ready('jobs_manager')
    assert log == []


@pytest.mark.asyncio
async def test_dependency_cycle_is_rejected(bus):
    log: List[str] = []
    orch = BootstrapOrchestrator(bus)
    orch.register('a', Recorder('a', log), ['b'])
    orch.register('b', Recorder('b', log), ['c'])
    orch.register('c', Recorder('c', log), ['a'])

    with pytest.raises(DependencyCycleError) as exc_info:
        await orch.init_component('a')
    assert exc_info.value.cycle == ['a', 'b', 'c', 'a']
    assert log == []


@pytest.mark.asyncio
async def test_failure_propagates_and_leaves_component_not_ready(bus):
    log: List[str] = []
    orch = BootstrapOrchestrator(bus)
    orch.register('session_manager', Recorder('session_manager', log, error=RuntimeError('provider down')))
    orch.register('access_guard', Recorder('access_guard', log), ['session_manager'])

    with pytest.raises(RuntimeError, match='provider down'):
        await orch.init_component('access_guard')
    assert not orch.is_component_ready('session_manager')
    assert not orch.is_component_ready('access_guard')
    assert log == []


@pytest.mark.asyncio
async def test_initialize_walks_init_order_and_emits_ready_once(bus):
    log: List[str] = []
    ready = MagicMock()
    bus.subscribe(APP_READY, ready)
    orch = BootstrapOrchestrator(bus, init_order=['session_manager', 'access_guard', 'demo_login', 'jobs_manager'])
    orch.register('demo_login', Recorder('demo_login', log), ['session_manager'])
    orch.register('session_manager', Recorder('session_manager', log))

    await asyncio.gather(orch.initialize(), orch.initialize())
    await orch.initialize()

    assert log == ['session_manager', 'demo_login']
    assert orch.is_initialized
    ready.assert_called_once()


@pytest.mark.asyncio
async def test_initialize_failure_emits_app_error_and_stops(bus, caplog):
    log: List[str] = []
    errors = MagicMock()
    ready = MagicMock()
    bus.subscribe(APP_ERROR, errors)
    bus.subscribe(APP_READY, ready)
    orch = BootstrapOrchestrator(bus, init_order=['session_manager', 'access_guard', 'jobs_manager'])
    boom = RuntimeError('no provider')
    orch.register('session_manager', Recorder('session_manager', log))
    orch.register('access_guard', Recorder('access_guard', log, error=boom))
    jobs = Recorder('jobs_manager', log)
    orch.register('jobs_manager', jobs)

    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError, match='no provider'):
            await orch.initialize()

    payload = errors.call_args.args[0]
    assert payload['error'] is boom
    assert payload['component'] == 'access_guard'
    ready.assert_not_called()
    assert jobs.calls == 0
    assert not orch.is_initialized


@pytest.mark.asyncio
async def test_manifest_auto_registration_uses_filled_slots(bus):
    log: List[str] = []
    manifest = ComponentManifest.model_validate({'components': [
        {'name': 'session_manager'},
        {'name': 'access_guard', 'dependencies': ['session_manager']},
        {'name': 'jobs_manager', 'dependencies': ['session_manager']},
        {'name': 'chat_manager', 'dependencies': ['session_manager'], 'enabled': False},
    ]})
    explicit_guard = Recorder('explicit_guard', log)
    slots = ServiceSlots(
        session_manager=Recorder('session_manager', log),
        access_guard=Recorder('slot_guard', log),
        extras={'chat_manager': Recorder('chat_manager', log)},
    )
    orch = BootstrapOrchestrator(bus, init_order=['session_manager', 'access_guard', 'jobs_manager', 'chat_manager'],
                                 manifest=manifest, slots=slots)
    orch.register('access_guard', explicit_guard, ['session_manager'])

    await orch.initialize()

    assert orch.get_component('access_guard') is explicit_guard
    assert orch.registry.get_record('access_guard').dependencies == ('session_manager',)
    assert not orch.registry.has_component('jobs_manager')
    assert not orch.registry.has_component('chat_manager')
    assert log == ['session_manager', 'explicit_guard']


@pytest.mark.asyncio
async def test_clear_cache_flag_removes_cached_demo_session(bus):
    storage = MemoryKeyValueStorage({'demoAuth': '{"uid": "u1"}', 'other': 'kept'})
    orch = BootstrapOrchestrator(bus, location=PageLocation.from_url('/dashboard?clear-cache=true'),
                                 storage=storage, demo_storage_key='demoAuth')

    await orch.initialize()

    assert storage.get('demoAuth') is None
    assert storage.get('other') == 'kept'


@pytest.mark.asyncio
async def test_without_clear_cache_flag_storage_is_untouched(bus):
    storage = MemoryKeyValueStorage({'demoAuth': '{"uid": "u1"}'})
    orch = BootstrapOrchestrator(bus, location=PageLocation.from_url('/dashboard'), storage=storage)
    assert orch.clear_demo_cache_if_requested() is False
    assert storage.get('demoAuth') is not None
