"""
Tests for the seen-set store: lazy loading, mutation and the single flush.
"""

from __future__ import annotations

import boto3
import pytest
from botocore.stub import Stubber

from realtor_watch.errors import StoreError
from realtor_watch.state import PARTITION_KEY_VALUE, SeenSet, SeenStore

from conftest import FakeTable


def test_absent_record_is_empty_set() -> None:
    absent = SeenStore(FakeTable(item=None))
    explicit_empty = SeenStore(FakeTable(item={"partition_key": PARTITION_KEY_VALUE, "seen_ids": []}))

    assert absent.is_seen("A") is False
    assert explicit_empty.is_seen("A") is False
    assert absent.seen_ids == explicit_empty.seen_ids == frozenset()


def test_load_reads_once() -> None:
    table = FakeTable(item={"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["A"]})
    store = SeenStore(table)

    store.load()
    store.load()
    assert store.is_seen("A")
    assert not store.is_seen("B")
    assert table.get_calls == 1


def test_load_failure_raises_and_stays_unloaded() -> None:
    table = FakeTable()
    table.fail_get = True
    store = SeenStore(table)

    with pytest.raises(StoreError):
        store.is_seen("A")
    assert not store.loaded


def test_malformed_record_raises() -> None:
    store = SeenStore(FakeTable(item={"partition_key": PARTITION_KEY_VALUE, "seen_ids": "A,B"}))
    with pytest.raises(StoreError, match="Malformed"):
        store.load()

    store = SeenStore(FakeTable(item={"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["A", 7]}))
    with pytest.raises(StoreError, match="non-string"):
        store.load()


def test_mark_seen_before_load_is_an_error() -> None:
    store = SeenStore(FakeTable())
    with pytest.raises(StoreError, match="not loaded"):
        store.mark_seen("A")


def test_mark_seen_duplicates_are_noops() -> None:
    table = FakeTable()
    store = SeenStore(table)
    store.load()
    store.mark_seen("B")
    store.mark_seen("B")
    store.flush()

    assert table.item == {"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["B"]}


def test_flush_overwrites_with_working_set() -> None:
    table = FakeTable(item={"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["A"]})
    store = SeenStore(table)
    store.load()
    store.mark_seen("C")
    store.mark_seen("B")
    store.flush()

    assert table.put_calls == 1
    assert table.item["seen_ids"] == ["A", "B", "C"]


def test_flush_without_load_writes_nothing() -> None:
    table = FakeTable(item={"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["A"]})
    SeenStore(table).flush()

    assert table.put_calls == 0
    assert table.stored_ids == {"A"}


def test_flush_failure_raises() -> None:
    table = FakeTable()
    table.fail_put = True
    store = SeenStore(table)
    store.load()
    with pytest.raises(StoreError, match="write"):
        store.flush()


def test_seen_set_item_echoes_partition_key() -> None:
    seen = SeenSet.from_item({"seen_ids": {"B", "A"}})
    assert seen.to_item() == {"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["A", "B"]}


def test_flush_always_writes_the_fixed_partition_key() -> None:
    table = FakeTable(item={"partition_key": "something-else", "seen_ids": ["A"]})
    store = SeenStore(table)
    store.load()
    store.flush()

    assert table.item == {"partition_key": PARTITION_KEY_VALUE, "seen_ids": ["A"]}


def test_store_against_dynamodb_wire_format() -> None:
    session = boto3.session.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="ca-central-1",
    )
    table = session.resource("dynamodb").Table("seen-listings-table")

    with Stubber(table.meta.client) as stubber:
        stubber.add_response(
            "get_item",
            {
                "Item": {
                    "partition_key": {"S": PARTITION_KEY_VALUE},
                    "seen_ids": {"L": [{"S": "A"}, {"S": "B"}]},
                }
            },
        )
        stubber.add_response("put_item", {})

        store = SeenStore(table)
        assert store.is_seen("A")
        assert not store.is_seen("C")
        store.mark_seen("C")
        store.flush()

        stubber.assert_no_pending_responses()
    assert store.seen_ids == {"A", "B", "C"}
