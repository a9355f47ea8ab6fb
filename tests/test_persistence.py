"""
Tests for the SQL persistence adapter.
"""
import pytest

from meterwatch.database import build_engine, make_session_factory
from meterwatch.domain import Role
from meterwatch.errors import MalformedInputError, TransientIOError
from meterwatch.services.persistence import (
    ASSIGNMENTS,
    INDUSTRIES,
    READINGS,
    USERS,
    SqlPersistenceAdapter,
)
from tests.factories import DAY_MS, T0, make_industry, make_reading, make_user


class TestUpsertSemantics:
    def test_duplicate_reading_keeps_first(self, adapter):
        assert adapter.put(READINGS, make_reading('r-1', value=100, recorded_by='first'))
        assert not adapter.put(READINGS, make_reading('r-1', value=999, recorded_by='second'))

        [stored] = adapter.fetch_snapshot().readings
        assert stored.value == 100
        assert stored.recorded_by == 'first'

    def test_user_overwrites_all_fields(self, adapter):
        adapter.put(USERS, make_user('u-1', 'agent', full_name='Old', password='a'))
        adapter.put(USERS, make_user('u-1', 'agent2', full_name='New', password='b', role=Role.ADMIN))

        [user] = adapter.fetch_snapshot().users
        assert (user.username, user.full_name, user.password, user.role) == ('agent2', 'New', 'b', Role.ADMIN)

    def test_industry_overwrites_all_fields(self, adapter):
        adapter.put(INDUSTRIES, make_industry('IND-1', allowed=100, name='Old'))
        adapter.put(INDUSTRIES, make_industry('IND-1', allowed=250, name='New', meters=[]))

        [industry] = adapter.fetch_snapshot().industries
        assert industry.name == 'New'
        assert industry.allowed_daily_consumption == 250
        assert industry.meters == ()

    def test_duplicate_username_rejected(self, adapter):
        adapter.put(USERS, make_user('u-1', 'agent'))
        with pytest.raises(MalformedInputError):
            adapter.put(USERS, make_user('u-2', 'agent'))

    def test_unsupported_collection(self, adapter):
        with pytest.raises(ValueError):
            adapter.put(ASSIGNMENTS, make_user())


class TestFetchSnapshot:
    def test_readings_newest_first(self, adapter):
        adapter.put(READINGS, make_reading('old', timestamp=T0))
        adapter.put(READINGS, make_reading('new', timestamp=T0 + DAY_MS))
        adapter.put(READINGS, make_reading('mid', timestamp=T0 + 1000))
        assert [r.id for r in adapter.fetch_snapshot().readings] == ['new', 'mid', 'old']

    def test_meters_round_trip(self, adapter):
        industry = make_industry('IND-7')
        adapter.put(INDUSTRIES, industry)
        assert adapter.fetch_snapshot().industries == [industry]

    def test_dangling_reading_is_returned(self, adapter):
        adapter.put(READINGS, make_reading('r-1', industry_id='IND-deleted'))
        assert adapter.fetch_snapshot().readings[0].industry_id == 'IND-deleted'

    def test_optional_reading_fields(self, adapter):
        adapter.put(READINGS, make_reading('r-1', image_url='data:image/png;base64,AA', recorded_by='agent'))
        adapter.put(READINGS, make_reading('r-2', is_manual=True))
        readings = {r.id: r for r in adapter.fetch_snapshot().readings}
        assert readings['r-1'].image_url == 'data:image/png;base64,AA'
        assert readings['r-2'].image_url is None
        assert readings['r-2'].is_manual

    def test_unreachable_store(self):
        engine = build_engine('sqlite:////nonexistent-dir/meterwatch.db')
        broken = SqlPersistenceAdapter(make_session_factory(engine))
        with pytest.raises(TransientIOError):
            broken.fetch_snapshot()


class TestDelete:
    def test_delete_each_collection(self, adapter):
        adapter.put(USERS, make_user('u-1'))
        adapter.put(INDUSTRIES, make_industry('IND-1'))
        adapter.put(READINGS, make_reading('r-1'))
        adapter.save_assignment('agent', [make_industry('IND-1')])

        assert adapter.delete(USERS, 'u-1')
        assert adapter.delete(INDUSTRIES, 'IND-1')
        assert adapter.delete(READINGS, 'r-1')
        assert adapter.delete(ASSIGNMENTS, 'agent')

        snapshot = adapter.fetch_snapshot()
        assert snapshot.users == snapshot.industries == snapshot.readings == []
        assert snapshot.assignments == {}

    def test_missing_key_is_noop(self, adapter):
        assert not adapter.delete(READINGS, 'nope')

    def test_deleted_reading_id_can_be_reused(self, adapter):
        adapter.put(READINGS, make_reading('r-1', value=1))
        adapter.delete(READINGS, 'r-1')
        assert adapter.put(READINGS, make_reading('r-1', value=2))
        assert adapter.fetch_snapshot().readings[0].value == 2


class TestAssignmentsAndBulk:
    def test_save_assignment_replaces(self, adapter):
        adapter.save_assignment('agent', [make_industry('IND-1'), make_industry('IND-2')])
        adapter.save_assignment('agent', [make_industry('IND-3')])
        assert [i.id for i in adapter.fetch_snapshot().assignments['agent']] == ['IND-3']

    def test_bulk_put(self, adapter):
        count = adapter.bulk_put([make_industry('IND-1'), make_industry('IND-2')])
        assert count == 2
        assert {i.id for i in adapter.fetch_snapshot().industries} == {'IND-1', 'IND-2'}

    def test_bulk_put_partial_failure_keeps_applied(self, adapter, monkeypatch):
        original_put = adapter.put
        calls = []

        def flaky_put(collection, item):
            calls.append(item.id)
            if item.id == 'IND-2':
                raise TransientIOError("store went away")
            return original_put(collection, item)

        monkeypatch.setattr(adapter, 'put', flaky_put)
        with pytest.raises(TransientIOError):
            adapter.bulk_put([make_industry('IND-1'), make_industry('IND-2'), make_industry('IND-3')])

        assert calls == ['IND-1', 'IND-2']
        assert [i.id for i in adapter.fetch_snapshot().industries] == ['IND-1']


class TestSeed:
    def test_seeds_admin_once(self, adapter):
        assert adapter.seed_defaults('pw')
        assert not adapter.seed_defaults('pw')
        [admin] = adapter.fetch_snapshot().users
        assert admin.username == 'admin'
        assert admin.role == Role.ADMIN

    def test_no_seed_when_users_exist(self, adapter):
        adapter.put(USERS, make_user())
        assert not adapter.seed_defaults('pw')
