from __future__ import annotations
from datetime import timedelta

import pytest

from greenform_pipeline.infrastructure.adapters.token_store.memory_store import InMemoryTokenStore
from greenform_pipeline.infrastructure.adapters.token_store.sqlite_store import SQLiteTokenStore
from tests.unit._fakes_greenform import NOW, FixedClock


@pytest.fixture(params=["memory", "sqlite"])
def store_and_clock(request, tmp_path):
    clock = FixedClock()
    if request.param == "memory":
        yield InMemoryTokenStore(clock=clock), clock
    else:
        store = SQLiteTokenStore(db_path=str(tmp_path / "token.sqlite"), clock=clock)
        yield store, clock
        store.close()


def test_set_get_clear(store_and_clock):
    store, _ = store_and_clock
    store.set("apiToken", "blob-1", NOW + timedelta(hours=10))
    assert store.get("apiToken") == "blob-1"

    store.set("apiToken", "blob-2", NOW + timedelta(hours=10))
    assert store.get("apiToken") == "blob-2"

    store.clear("apiToken")
    assert store.get("apiToken") is None
    store.clear("apiToken")  # clearing twice is fine


def test_entry_inside_buffer_reads_as_absent(store_and_clock):
    store, clock = store_and_clock
    store.set("apiToken", "blob", NOW + timedelta(minutes=10))
    assert store.get("apiToken") == "blob"

    clock.advance(timedelta(minutes=5))
    assert store.get("apiToken") is None
    clock.current = NOW
    assert store.get("apiToken") is None  # evicted on the previous read


def test_sqlite_store_persists_across_instances(tmp_path):
    clock = FixedClock()
    path = str(tmp_path / "token.sqlite")
    first = SQLiteTokenStore(db_path=path, clock=clock)
    first.set("apiToken", "persisted", NOW + timedelta(hours=1))
    first.close()

    second = SQLiteTokenStore(db_path=path, clock=clock)
    assert second.get("apiToken") == "persisted"
    second.close()
