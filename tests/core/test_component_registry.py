import logging
from unittest.mock import MagicMock

import pytest

from core.lifecycle import ComponentRecord, ComponentRegistryMissingError
from core.registry import ComponentRegistry
from infrastructure.event_bus.memory_event_bus import MemoryEventBus
from signals.app_signals import COMPONENT_REGISTERED


def test_register_and_lookup():
    registry = ComponentRegistry()
    sm = object()
    assert registry.register('session_manager', sm) is True
    assert registry.register('jobs_manager', object(), ['session_manager', 'session_manager'])

    assert registry.get('session_manager') is sm
    assert registry.get('missing', 'fallback') == 'fallback'
    assert 'jobs_manager' in registry
    assert registry.get_record('jobs_manager').dependencies == ('session_manager',)
    assert registry.get_registration_order() == ['session_manager', 'jobs_manager']
    assert len(registry) == 2


def test_reregistration_replaces_pending_record():
    registry = ComponentRegistry()
    first, second = object(), object()
    registry.register('access_guard', first, ['session_manager'])
    assert registry.register('access_guard', second) is True

    assert registry.get('access_guard') is second
    assert registry.get_record('access_guard').dependencies == ()
    assert registry.get_registration_order() == ['access_guard']


def test_reregistration_after_start_or_ready_is_ignored(caplog):
    registry = ComponentRegistry()
    original = object()
    registry.register('session_manager', original)
    registry.mark_started('session_manager')
    assert registry.is_started('session_manager')

    with caplog.at_level(logging.WARNING):
        assert registry.register('session_manager', object()) is False
    assert registry.get('session_manager') is original
    assert 'already initializing' in caplog.text

    registry.mark_ready('session_manager')
    assert registry.register('session_manager', object()) is False
    assert registry.is_ready('session_manager')


def test_failed_component_can_be_registered_again():
    registry = ComponentRegistry()
    registry.register('demo_login', object())
    registry.mark_started('demo_login')
    registry.mark_failed('demo_login')
    assert not registry.is_started('demo_login')

    replacement = object()
    assert registry.register('demo_login', replacement) is True
    assert registry.get('demo_login') is replacement


def test_ready_flips_once():
    record = ComponentRecord(name='jobs_manager', instance=MagicMock())
    assert not record.ready
    record.mark_ready()
    first_ready_at = record.ready_at
    record.mark_ready()
    assert record.ready and record.ready_at == first_ready_at


def test_invalid_records_rejected():
    with pytest.raises(ValueError):
        ComponentRecord(name='a', instance=None, dependencies=('a',))
    with pytest.raises(TypeError):
        ComponentRecord(name='a', instance=None, dependencies='session_manager')
    with pytest.raises(ValueError):
        ComponentRecord(name='a', instance=None, timeout_seconds=0)


def test_missing_component_error_lists_available():
    registry = ComponentRegistry()
    registry.register('session_manager', object())
    with pytest.raises(ComponentRegistryMissingError) as exc_info:
        registry.get_record('access_guard')
    assert exc_info.value.component_name == 'access_guard'
    assert 'session_manager' in str(exc_info.value)


def test_registration_is_published_on_the_bus():
    bus = MemoryEventBus()
    registry = ComponentRegistry(event_bus=bus)
    handler = MagicMock()
    bus.subscribe(COMPONENT_REGISTERED, handler)

    registry.register('access_guard', object(), ['session_manager'])

    payload = handler.call_args.args[0]
    assert payload['name'] == 'access_guard'
    assert payload['dependencies'] == ['session_manager']
