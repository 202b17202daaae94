"""
Session store tests.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from bazichart.errors import NotFoundError
from bazichart.sessions import BirthInfo, InMemorySessionStore

INFO = BirthInfo(gender="male", birth_date="1990-01-01T00:00:00.000Z",
                 birth_place="Singapore", nickname="Ah Boy")


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_round_trip(store, sample_chart):
    session_id = store.create(INFO, sample_chart)
    session = store.get(session_id)
    assert session.id == session_id
    assert session.birth_info == INFO
    assert session.chart is sample_chart


def test_unknown_id(store):
    with pytest.raises(NotFoundError):
        store.get("does-not-exist")


def test_ids_are_unique_and_opaque(store, sample_chart):
    ids = {store.create(INFO, sample_chart) for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) >= 16 for i in ids)


def test_birth_info_to_dict():
    assert INFO.to_dict() == {
        "nickname": "Ah Boy",
        "gender": "male",
        "birthDate": "1990-01-01T00:00:00.000Z",
        "birthPlace": "Singapore",
    }


class TestBounds:

    def test_ttl(self, sample_chart):
        clock = FakeClock()
        store = InMemorySessionStore(ttl_seconds=60, max_entries=None, clock=clock)
        session_id = store.create(INFO, sample_chart)
        clock.now = 59
        assert store.get(session_id)
        clock.now = 60
        with pytest.raises(NotFoundError):
            store.get(session_id)
        assert len(store) == 0

    def test_expired_entries_purged_on_write(self, sample_chart):
        clock = FakeClock()
        store = InMemorySessionStore(ttl_seconds=60, max_entries=None, clock=clock)
        store.create(INFO, sample_chart)
        clock.now = 120
        store.create(INFO, sample_chart)
        assert len(store._sessions) == 1

    def test_capacity_evicts_oldest(self, sample_chart):
        store = InMemorySessionStore(ttl_seconds=None, max_entries=2)
        first = store.create(INFO, sample_chart)
        second = store.create(INFO, sample_chart)
        third = store.create(INFO, sample_chart)
        with pytest.raises(NotFoundError):
            store.get(first)
        assert store.get(second).id == second
        assert store.get(third).id == third
        assert len(store) == 2

    @pytest.mark.parametrize("max_entries", [0, -1])
    def test_capacity_must_hold_a_session(self, max_entries):
        with pytest.raises(ValueError):
            InMemorySessionStore(max_entries=max_entries)


def test_concurrent_creates(sample_chart):
    store = InMemorySessionStore(ttl_seconds=None, max_entries=None)
    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda _: store.create(INFO, sample_chart), range(200)))
    assert len(set(ids)) == 200
    assert len(store) == 200
    assert all(store.get(i).chart is sample_chart for i in ids)
