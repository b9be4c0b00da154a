import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from domain.page import PageLocation
from domain.session import Identity
from infrastructure.identity.memory_profile_store import InMemoryProfileStore
from infrastructure.identity.memory_provider import InMemoryIdentityProvider
from signals.app_signals import ROLE_CHANGED


async def _start(guard):
    await guard.session_manager.initialize()
    await guard.initialize()
    return await guard.wait_for_decision(timeout=1.0)


@pytest.mark.asyncio
async def test_demo_link_opens_agency_dashboard(make_access_guard, navigator, event_bus):
    role_changes = MagicMock()
    event_bus.subscribe(ROLE_CHANGED, role_changes)
    guard = make_access_guard(InMemoryIdentityProvider(initial_delay=None), '/agency-dashboard?demo=true&role=agency')

    decision = await _start(guard)

    assert decision.allowed
    assert decision.role == 'agency'
    assert guard.current_role == 'agency'
    assert guard.has_role('agency') and not guard.has_role('candidate')
    assert guard.is_demo_user()
    assert navigator.redirects == []
    assert role_changes.call_args.args[0]['role'] == 'agency'


@pytest.mark.asyncio
async def test_unauthenticated_visitor_is_sent_home(make_access_guard, navigator):
    guard = make_access_guard(InMemoryIdentityProvider(initial_delay=None), '/dashboard',
                              subscription_timeout_seconds=0.05)

    decision = await _start(guard)

    assert not decision.allowed
    assert decision.redirect_to == '/'
    assert navigator.redirects == ['/']
    assert guard.current_role is None


@pytest.mark.asyncio
async def test_unauthenticated_visitor_on_root_is_not_redirected(make_access_guard, navigator):
    guard = make_access_guard(InMemoryIdentityProvider(), '/index.html', subscription_timeout_seconds=0.05)

    decision = await _start(guard)

    assert decision.allowed
    assert decision.reason == 'public'
    assert navigator.redirects == []


@pytest.mark.asyncio
async def test_candidate_blocked_from_employer_pages(make_access_guard, profile_store, navigator):
    await profile_store.set_profile('alice', {'role': 'candidate'})
    guard = make_access_guard(InMemoryIdentityProvider(Identity(uid='alice', email='alice@example.com')), '/post-job')

    decision = await _start(guard)

    assert not decision.allowed
    assert decision.role == 'candidate'
    assert navigator.last_redirect == '/'


@pytest.mark.asyncio
async def test_profile_role_grants_employer_dashboard(make_access_guard, profile_store, navigator):
    await profile_store.set_profile('bob', {'role': 'employer'})
    guard = make_access_guard(InMemoryIdentityProvider(Identity(uid='bob', email='bob@example.com')),
                              '/employer-dashboard?demo=true&role=candidate')
    guard.session_manager.provider.anonymous_sign_in_error = ConnectionError('offline')

    decision = await _start(guard)

    assert decision.allowed
    assert decision.role == 'employer'
    assert navigator.redirects == []


@pytest.mark.asyncio
async def test_profile_fetch_failure_is_a_warning(make_access_guard, navigator, caplog):
    guard = make_access_guard(InMemoryIdentityProvider(Identity(uid='carol', email='carol@example.com')), '/dashboard')
    guard.profile_store = InMemoryProfileStore(fail_with=TimeoutError('profile store unreachable'))

    with caplog.at_level(logging.WARNING):
        decision = await _start(guard)

    assert decision.allowed
    assert decision.role == 'candidate'
    assert 'profile store unreachable' in caplog.text
    assert navigator.redirects == []


@pytest.mark.asyncio
async def test_demo_user_may_open_any_dashboard_entry_point(make_access_guard, storage, navigator):
    guard = make_access_guard(InMemoryIdentityProvider(), '/admin-dashboard')
    guard.session_manager.remember_demo_session(Identity(uid='demo-7', email='demo-candidate@jobboard.dev'), 'candidate')

    decision = await _start(guard)

    assert decision.allowed
    assert decision.reason == 'demo-dashboard'
    assert decision.role == 'candidate'
    assert navigator.redirects == []


@pytest.mark.asyncio
async def test_unauthenticated_demo_link_gets_relaxed_check(make_access_guard, navigator):
    provider = InMemoryIdentityProvider(anonymous_sign_in_error=ConnectionError('offline'))
    guard = make_access_guard(provider, '/agency-dashboard?demo=true&role=agency', allow_dev_sessions=False,
                              subscription_timeout_seconds=0.05)

    decision = await _start(guard)

    assert decision.allowed
    assert decision.reason == 'demo-link'
    assert guard.current_role == 'agency'
    assert navigator.redirects == []


@pytest.mark.asyncio
async def test_unauthenticated_demo_link_for_other_pages_is_redirected(make_access_guard, navigator):
    provider = InMemoryIdentityProvider(anonymous_sign_in_error=ConnectionError('offline'))
    guard = make_access_guard(provider, '/moderation?demo=true&role=agency', subscription_timeout_seconds=0.05)

    decision = await _start(guard)

    assert not decision.allowed
    assert navigator.redirects == ['/']


@pytest.mark.asyncio
async def test_superseded_check_is_discarded(make_access_guard, navigator):
    guard = make_access_guard(InMemoryIdentityProvider(Identity(uid='dave', email='dave@example.com')), '/dashboard')
    await _start(guard)
    guard.profile_store = InMemoryProfileStore(latency=0.02)

    stale, fresh = await asyncio.gather(
        guard.check_access(PageLocation.from_url('/employer-dashboard')),
        guard.check_access(PageLocation.from_url('/profile')),
    )

    assert stale.superseded
    assert fresh.allowed and fresh.path == '/profile'
    assert navigator.redirects == []
    assert guard.last_decision is fresh


@pytest.mark.asyncio
async def test_session_change_triggers_recheck(make_access_guard, profile_store, event_bus, navigator):
    provider = InMemoryIdentityProvider(Identity(uid='erin', email='erin@example.com'))
    guard = make_access_guard(provider, '/agency-dashboard')
    await profile_store.set_profile('erin', {'role': 'agency'})
    first = await _start(guard)
    assert first.allowed

    provider.set_user(Identity(uid='frank', email='frank@example.com'))
    await event_bus.drain(timeout=1.0)

    assert guard.last_decision.role == 'candidate'
    assert not guard.last_decision.allowed
    assert navigator.redirects == ['/']


@pytest.mark.asyncio
async def test_stop_detaches_from_session_changes(make_access_guard, event_bus):
    provider = InMemoryIdentityProvider(Identity(uid='gina'))
    guard = make_access_guard(provider, '/dashboard')
    await _start(guard)
    guard.stop()

    provider.set_user(None)
    await event_bus.drain(timeout=1.0)

    assert len(guard.decisions) == 1
    assert provider.listener_count == 0


@pytest.mark.asyncio
async def test_role_requirements_redirect_to_own_dashboard(make_access_guard, profile_store, navigator):
    await profile_store.set_profile('alice', {'role': 'candidate'})
    guard = make_access_guard(InMemoryIdentityProvider(Identity(uid='alice', email='alice@example.com')), '/dashboard')
    await _start(guard)

    assert guard.has_any_role(['employer', 'Candidate'])
    assert not guard.has_any_role(['client', 'agency'])
    assert guard.require_role('candidate')
    assert navigator.redirects == []

    assert guard.require_role('employer') is False
    assert navigator.last_redirect == '/dashboard'
    assert guard.require_role('admin', redirect_to='/login.html') is False
    assert navigator.last_redirect == '/login.html'


@pytest.mark.asyncio
async def test_role_requirement_without_role_goes_home(make_access_guard, navigator):
    guard = make_access_guard(InMemoryIdentityProvider(), '/index.html', subscription_timeout_seconds=0.05)
    await _start(guard)

    assert guard.current_role is None
    assert guard.require_role('candidate') is False
    assert navigator.redirects == ['/']
