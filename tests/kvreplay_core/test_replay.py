from __future__ import annotations

import logging
from collections.abc import Sequence

import pytest

from kvreplay_core.compute.execution import temporary_connection
from kvreplay_core.domain.prefix_range import KeyRange
from kvreplay_core.errors import ConsistencyViolation, StoreRequestError
from kvreplay_core.models import Batch, Delete, DeletePrefix, Put, WriteOperation
from kvreplay_core.pipeline.replay import (
    BatchEngine,
    diff_snapshots,
    find_key_values_by_prefix,
    replay_batches,
)
from kvreplay_core.store.stores import DuckDBKeyValueStore
from kvreplay_core.testing.local_store import MemoryKeyValueStore


class DropDeletesStore(MemoryKeyValueStore):
    """Buggy store that silently ignores point deletes."""

    def write_batch(self, operations: Sequence[WriteOperation]) -> None:
        super().write_batch([op for op in operations if not isinstance(op, Delete)])


def _batch(*ops: WriteOperation) -> Batch:
    return Batch(ops)


def test_scenario_prefix_delete_empties_model() -> None:
    store = MemoryKeyValueStore()
    engine = BatchEngine(store)

    result = engine.run(
        [
            _batch(Put(key=b"\x01\x02", value=b"\x09"), Put(key=b"\x01\x03", value=b"\x09")),
            _batch(DeletePrefix(prefix=b"\x01")),
        ]
    )

    assert result.n_batches == 2
    assert result.n_keys == 0
    assert len(engine.model) == 0
    assert store.rows == {}


def test_scenario_all_ff_prefix_removes_extensions() -> None:
    store = MemoryKeyValueStore()
    engine = BatchEngine(store)

    engine.run(
        [
            _batch(Put(key=b"\xff", value=b"\x01")),
            _batch(
                Put(key=b"\xff\x00", value=b"\x01"),
                Put(key=b"\xff\xff", value=b"\x01"),
                Put(key=b"\x01", value=b"\x01"),
            ),
            _batch(DeletePrefix(prefix=b"\xff")),
        ]
    )

    assert engine.model.as_dict() == {b"\x01": b"\x01"}
    assert engine.first_bytes == {0x01, 0xFF}


def test_scenario_put_delete_put_on_duckdb() -> None:
    with temporary_connection() as connection:
        store = DuckDBKeyValueStore(connection)
        result = replay_batches(
            store,
            [
                _batch(
                    Put(key=b"\x05", value=b"\x01"),
                    Delete(key=b"\x05"),
                    Put(key=b"\x05", value=b"\x02"),
                )
            ],
        )
        assert store.scan_range(KeyRange(lower=b"")) == [(b"\x05", b"\x02")]

    assert result.n_keys == 1


def test_injected_key_in_touched_bucket_is_detected() -> None:
    store = MemoryKeyValueStore()
    engine = BatchEngine(store)
    engine.process(_batch(Put(key=b"\x01\x02", value=b"\x09")))

    store.insert_raw(b"\x01\x09", b"\xee")

    with pytest.raises(ConsistencyViolation) as exc_info:
        engine.process(_batch(Put(key=b"\x01\x03", value=b"\x09")), n_batches=2)

    exc = exc_info.value
    assert exc.pos == 1
    assert exc.n_batches == 2
    assert exc.diff.unexpected == [b"\x01\x09"]
    assert exc.diff.missing == []
    assert exc.report.n_puts == 1
    assert "Inconsistency at pos=1 n_batches=2" in str(exc)


def test_injected_key_on_duckdb_is_detected() -> None:
    with temporary_connection() as connection:
        store = DuckDBKeyValueStore(connection)
        engine = BatchEngine(store)
        engine.process(_batch(Put(key=b"\x07", value=b"\x01")))
        store.insert_raw(b"\x07\x07", b"\x01")

        with pytest.raises(ConsistencyViolation) as exc_info:
            engine.process(_batch(Delete(key=b"\x07")))

    assert exc_info.value.diff.unexpected == [b"\x07\x07"]
    assert exc_info.value.report.n_deletes == 1


def test_untouched_bucket_is_only_seen_by_full_scan() -> None:
    batches = [_batch(Put(key=b"\x01", value=b"\x01")), _batch(Put(key=b"\x01\x01", value=b"\x01"))]

    narrow = MemoryKeyValueStore()
    narrow.insert_raw(b"\x09", b"\x01")
    assert replay_batches(narrow, batches).n_keys == 2

    wide = MemoryKeyValueStore()
    wide.insert_raw(b"\x09", b"\x01")
    with pytest.raises(ConsistencyViolation) as exc_info:
        replay_batches(wide, batches, scan_mode="full")
    assert exc_info.value.pos == 0
    assert exc_info.value.diff.unexpected == [b"\x09"]


def test_buggy_store_fails_at_the_offending_batch(caplog) -> None:
    caplog.set_level(logging.INFO)
    store = DropDeletesStore()

    with pytest.raises(ConsistencyViolation) as exc_info:
        replay_batches(
            store,
            [
                _batch(Put(key=b"\x02", value=b"\x01")),
                _batch(Put(key=b"\x02\x01", value=b"\x01"), Delete(key=b"\x02")),
                _batch(Put(key=b"\x03", value=b"\x01")),
            ],
        )

    exc = exc_info.value
    assert exc.pos == 1
    assert exc.n_batches == 3
    assert exc.diff.unexpected == [b"\x02"]
    assert exc.report.n_deletes == 1
    assert exc.report.n_put_delete_overlap == 0
    # The third batch never reaches the store.
    assert sum(op.name == "write_batch" for op in store.ops) == 2

    errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].startswith("replay.inconsistency pos=1 n_batches=3")
    assert "collision=False" in errors[0]


def test_empty_key_switches_to_full_scan() -> None:
    store = MemoryKeyValueStore()
    engine = BatchEngine(store)

    result = engine.run(
        [
            _batch(Put(key=b"\x01", value=b"\x01")),
            _batch(Put(key=b"", value=b"\x02")),
            _batch(DeletePrefix(prefix=b"\x01")),
        ]
    )

    assert engine.full_scan
    assert result.scan_mode == "full"
    assert engine.model.as_dict() == {b"": b"\x02"}
    assert store.ops[-1].args == (KeyRange(lower=b"", upper=None),)


def test_first_byte_scans_use_one_byte_prefix_ranges() -> None:
    store = MemoryKeyValueStore()
    engine = BatchEngine(store)

    engine.process(_batch(Put(key=b"\x02\x05", value=b"\x01"), DeletePrefix(prefix=b"\xff\x01")))

    scans = [op.args[0] for op in store.ops if op.name == "scan_range"]
    assert scans == [KeyRange(lower=b"\x02", upper=b"\x03"), KeyRange(lower=b"\xff", upper=None)]


def test_store_failure_is_fatal_and_not_retried() -> None:
    store = MemoryKeyValueStore(fail_on="write_batch")
    engine = BatchEngine(store)

    with pytest.raises(StoreRequestError):
        engine.run([_batch(Put(key=b"\x01", value=b"\x01")), _batch(Delete(key=b"\x01"))])

    assert [op.name for op in store.ops] == ["write_batch"]
    assert engine.pos == 0


def test_empty_batch_still_verifies() -> None:
    store = MemoryKeyValueStore()
    engine = BatchEngine(store)
    engine.process(_batch(Put(key=b"\x01", value=b"\x01")))
    store.insert_raw(b"\x01\x01", b"\x01")

    with pytest.raises(ConsistencyViolation):
        engine.process(_batch())


def test_find_key_values_by_prefix_trims_prefix() -> None:
    store = MemoryKeyValueStore()
    store.write_batch(
        [
            Put(key=b"\x04", value=b"a"),
            Put(key=b"\x04\x01", value=b"b"),
            Put(key=b"\x05", value=b"c"),
        ]
    )

    assert find_key_values_by_prefix(store, b"\x04") == [(b"", b"a"), (b"\x01", b"b")]


def test_diff_snapshots() -> None:
    diff = diff_snapshots(
        {b"\x01": b"a", b"\x02": b"b", b"\x03": b"c"},
        {b"\x02": b"b", b"\x03": b"x", b"\x04": b"d"},
    )

    assert diff.missing == [b"\x01"]
    assert diff.unexpected == [b"\x04"]
    assert diff.changed == [b"\x03"]
    assert not diff.is_empty
    assert diff.lines() == [
        "missing from store: 1 key(s): [1]",
        "unexpected in store: 1 key(s): [4]",
        "value changed: 1 key(s): [3]",
    ]
    assert diff_snapshots({}, {}).is_empty


def test_engine_rejects_unknown_scan_mode() -> None:
    with pytest.raises(ValueError):
        BatchEngine(MemoryKeyValueStore(), scan_mode="sometimes")
