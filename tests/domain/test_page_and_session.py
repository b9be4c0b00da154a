from datetime import timedelta

import pytest

from domain.page import PageLocation
from domain.session import DemoSessionRecord, Identity, SessionOrigin


@pytest.mark.parametrize('url,path,demo,dev,role', [
    ('/', '/', False, False, None),
    ('/agency-dashboard?demo=true&role=agency', '/agency-dashboard', True, False, 'agency'),
    ('/dashboard.html?dev=true&role=admin', '/dashboard.html', False, True, 'admin'),
    ('/dashboard?demo=1&role=', '/dashboard', False, False, None),
    ('', '/', False, False, None),
])
def test_location_parsing(url, path, demo, dev, role):
    loc = PageLocation.from_url(url)
    assert loc.path == path
    assert loc.is_demo is demo
    assert loc.is_dev is dev
    assert loc.requested_role == role


def test_repeated_parameter_keeps_first_value():
    loc = PageLocation.from_url('/x?role=agency&role=admin')
    assert loc.param('role') == 'agency'


def test_forced_role_needs_a_flag():
    assert PageLocation.from_url('/x?role=agency').forced_role is None
    assert PageLocation.from_url('/x?dev=true&role=agency').forced_role == 'agency'


def test_page_name_and_root():
    assert PageLocation(path='/agency-dashboard.html').page_name == 'agency-dashboard'
    assert PageLocation(path='applications/42/').page_name == 'applications/42'
    assert PageLocation(path='/index.html').is_root
    assert not PageLocation(path='/dashboard').is_root
    assert PageLocation.from_url('/?clear-cache=true').clear_cache


def test_to_url_round_trips_query():
    loc = PageLocation(path='/dashboard', query={'demo': 'true', 'role': 'candidate'})
    assert loc.to_url() == '/dashboard?demo=true&role=candidate'
    assert str(PageLocation()) == '/'


def test_identity_requires_uid():
    with pytest.raises(ValueError):
        Identity(uid='')


def test_demo_record_uses_stored_field_names():
    record = DemoSessionRecord.create(Identity(uid='anon-1'), role='agency', created_at=1000)
    assert record.email == 'anon-1@demo.local'
    assert record.to_json() == '{"uid":"anon-1","email":"anon-1@demo.local","timestamp":1000,"role":"agency"}'
    assert DemoSessionRecord.from_json(record.to_json()) == record


@pytest.mark.parametrize('raw', ['not json', '[]', '{"uid": "x"}', '{"uid": "", "email": "e", "timestamp": 1}', None])
def test_malformed_demo_records_parse_to_none(raw):
    assert DemoSessionRecord.from_json(raw) is None


def test_demo_record_expiry():
    record = DemoSessionRecord(uid='u', email='e@x', timestamp=0)
    hour = 60 * 60 * 1000
    assert not record.is_expired(now=23 * hour)
    assert record.is_expired(now=25 * hour)
    assert not record.is_expired(now=25 * hour, max_age=timedelta(hours=48))
    assert record.to_identity() == Identity(uid='u', email='e@x')


def test_only_real_sessions_are_not_demo():
    assert not SessionOrigin.REAL.is_demo
    assert all(o.is_demo for o in SessionOrigin if o is not SessionOrigin.REAL)
