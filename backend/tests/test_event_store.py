from dataclasses import fields
from datetime import datetime, timedelta

import pytest

from conftest import NOW, ago, make_event
from threatdesk.services.events.event_filter import EventFilter
from threatdesk.services.events.event_store_service import SqlEventStore
from threatdesk.services.memory_stores import InMemoryEventStore


@pytest.fixture(params=["sql", "memory"])
def store(request, session_factory):
    if request.param == "sql":
        return SqlEventStore(session_factory)
    return InMemoryEventStore()


def test_append_assigns_monotonic_ids_and_server_time(store):
    assert store.append([make_event(), make_event()]) == 2
    assert store.append([make_event()]) == 1

    events = store.list_events(limit=10)
    ids = sorted(e.id for e in events)
    assert ids == sorted(set(ids))
    assert len(ids) == 3
    assert all(e.created_at is not None for e in events)


def test_append_empty_batch(store):
    assert store.append([]) == 0
    assert store.count() == 0


def test_timestamp_kept_verbatim_and_normalized(store):
    store.append([make_event(timestamp="2025-10-15T14:00:00+02:00")])
    event = store.list_events()[0]

    assert event.timestamp == "2025-10-15T14:00:00+02:00"
    assert event.occurred_at == datetime(2025, 10, 15, 12, 0, 0)


def test_unparseable_timestamp_is_stored_but_outside_windows(store):
    store.append([make_event(timestamp="yesterday-ish", status="failed")])

    assert store.count() == 1
    flt = EventFilter(since=NOW - timedelta(days=365))
    assert list(store.query(flt)) == []


def test_query_status_tokens_case_insensitive(store):
    store.append([
        make_event(status="FAILED"),
        make_event(status="Access Denied"),
        make_event(status="invalid_password"),
        make_event(status="success"),
        make_event(status=None),
    ])

    flt = EventFilter(status_contains=("fail", "denied", "invalid"))
    statuses = sorted(e.status for e in store.query(flt))
    assert statuses == ["Access Denied", "FAILED", "invalid_password"]


def test_query_window_is_exclusive_of_older_events(store):
    store.append([
        make_event(timestamp=ago(seconds=10)),
        make_event(timestamp=ago(minutes=10)),
    ])

    flt = EventFilter(since=NOW - timedelta(minutes=5))
    assert len(list(store.query(flt))) == 1


def test_query_prefix_matches_literally(store):
    store.append([
        make_event(source_ip="192.168.1.5"),
        make_event(source_ip="192.1680.1.5"),
        make_event(source_ip="10.0.0.7"),
    ])

    flt = EventFilter(source_ip_prefix="192.168.")
    assert [e.source_ip for e in store.query(flt)] == ["192.168.1.5"]


def test_query_require_source_ip_drops_missing_addresses(store):
    store.append([make_event(source_ip=None), make_event(source_ip="10.0.0.7")])

    flt = EventFilter(source_ip_prefix="", require_source_ip=True)
    assert [e.source_ip for e in store.query(flt)] == ["10.0.0.7"]


def test_filter_exposes_only_translated_fields():
    assert {f.name for f in fields(EventFilter)} == {
        "since", "status_contains", "source_ip_prefix", "require_source_ip",
    }


def test_query_newest_first(store):
    store.append([
        make_event(timestamp=ago(minutes=3), username="b"),
        make_event(timestamp=ago(minutes=1), username="a"),
        make_event(timestamp=ago(minutes=2), username="c"),
    ])

    names = [e.username for e in store.query(EventFilter(), newest_first=True)]
    assert names == ["a", "c", "b"]


def test_list_events_paginates_newest_first(store):
    store.append([make_event(timestamp=ago(minutes=i), message=str(i)) for i in range(5)])

    first_page = store.list_events(limit=2)
    second_page = store.list_events(limit=2, offset=2)
    assert [e.message for e in first_page] == ["0", "1"]
    assert [e.message for e in second_page] == ["2", "3"]


def test_source_ip_activity(store):
    store.append([
        make_event(source_ip="198.51.100.1", timestamp=ago(hours=1)),
        make_event(source_ip="198.51.100.1", timestamp=ago(hours=2)),
        make_event(source_ip="198.51.100.2", timestamp=ago(hours=3)),
        make_event(source_ip=None),
        make_event(source_ip="198.51.100.3", timestamp=ago(hours=30)),
    ])

    activity = store.source_ip_activity(NOW - timedelta(hours=24))

    assert set(activity) == {"198.51.100.1", "198.51.100.2"}
    assert activity["198.51.100.1"].count == 2
    assert activity["198.51.100.1"].first_seen == NOW - timedelta(hours=2)
    assert activity["198.51.100.1"].last_seen == NOW - timedelta(hours=1)


def test_sql_append_is_all_or_nothing(session_factory):
    store = SqlEventStore(session_factory)
    good = make_event()
    # sets are not JSON serializable, so the flush fails mid-batch
    bad = make_event(raw_payload={"tags": {"a", "b"}})

    with pytest.raises(Exception):
        store.append([good, bad])

    assert store.count() == 0
