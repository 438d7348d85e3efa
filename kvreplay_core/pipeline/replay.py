"""Replay batches against a store and verify it against the reference model.

Strictly sequential: each batch is applied to the model, written to the store,
then the affected part of the store is re-read and compared. The first
divergence is fatal.

Scan strategies:

- ``first_byte``: re-read every one-byte bucket touched so far. Every key the
  model holds was written by some Put, whose first byte is in the touched set,
  so the model is fully covered and equality over the touched buckets is the
  same as equality of the two restricted keyspaces.
- ``full``: re-read the whole keyspace after every batch.

An empty key or prefix has no first byte; once one is seen the engine falls
back to ``full`` for the rest of the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from kvreplay_core.domain.diagnostics import CollisionReport, detect_collision
from kvreplay_core.domain.observability import batch_log_fields, log_event
from kvreplay_core.domain.prefix_range import FULL_RANGE, prefix_range
from kvreplay_core.domain.reference_model import ReferenceModel
from kvreplay_core.errors import ConsistencyViolation
from kvreplay_core.models import Batch
from kvreplay_core.store.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)

SCAN_FIRST_BYTE = "first_byte"
SCAN_FULL = "full"
SCAN_MODES = (SCAN_FIRST_BYTE, SCAN_FULL)


@dataclass(frozen=True)
class SnapshotDiff:
    missing: list[bytes] = field(default_factory=list)
    unexpected: list[bytes] = field(default_factory=list)
    changed: list[bytes] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.missing or self.unexpected or self.changed)

    def lines(self, limit: int = 10) -> list[str]:
        out: list[str] = []
        for label, keys in (
            ("missing from store", self.missing),
            ("unexpected in store", self.unexpected),
            ("value changed", self.changed),
        ):
            if not keys:
                continue
            shown = ", ".join(str(list(key)) for key in keys[:limit])
            more = f" (+{len(keys) - limit} more)" if len(keys) > limit else ""
            out.append(f"{label}: {len(keys)} key(s): {shown}{more}")
        return out


@dataclass(frozen=True)
class ReplayResult:
    n_batches: int
    n_keys: int
    n_buckets: int
    scan_mode: str


def diff_snapshots(
    expected: Mapping[bytes, bytes],
    actual: Mapping[bytes, bytes],
) -> SnapshotDiff:
    """Describe how ``actual`` (store) differs from ``expected`` (model)."""

    missing = sorted(key for key in expected if key not in actual)
    unexpected = sorted(key for key in actual if key not in expected)
    changed = sorted(key for key in expected if key in actual and expected[key] != actual[key])
    return SnapshotDiff(missing=missing, unexpected=unexpected, changed=changed)


def find_key_values_by_prefix(store: KeyValueStore, prefix: bytes) -> list[tuple[bytes, bytes]]:
    """Scan all keys starting with ``prefix``; returned keys have the prefix trimmed."""

    size = len(prefix)
    return [(key[size:], value) for key, value in store.scan_range(prefix_range(prefix))]


class BatchEngine:
    """Owns the reference model and the touched first-byte set for one run."""

    def __init__(self, store: KeyValueStore, *, scan_mode: str = SCAN_FIRST_BYTE) -> None:
        if scan_mode not in SCAN_MODES:
            raise ValueError(f"scan_mode must be one of {SCAN_MODES}, got {scan_mode!r}")
        self.store = store
        self.scan_mode = scan_mode
        self.model = ReferenceModel()
        self.first_bytes: set[int] = set()
        self.full_scan = scan_mode == SCAN_FULL
        self.pos = 0

    def update_first_bytes(self, batch: Batch) -> None:
        self.first_bytes |= batch.first_bytes()
        if not self.full_scan and batch.has_empty_key():
            log_event(logger, "replay.scan_widened", pos=self.pos, reason="empty_key")
            self.full_scan = True

    def read_snapshot(self) -> dict[bytes, bytes]:
        """Re-read the verified part of the store into a key -> value mapping."""

        if self.full_scan:
            return dict(self.store.scan_range(FULL_RANGE))
        snapshot: dict[bytes, bytes] = {}
        for first_byte in sorted(self.first_bytes):
            bucket = bytes([first_byte])
            for suffix, value in find_key_values_by_prefix(self.store, bucket):
                snapshot[bucket + suffix] = value
        return snapshot

    def expected_snapshot(self) -> dict[bytes, bytes]:
        if self.full_scan:
            return self.model.as_dict()
        return self.model.restrict_to_first_bytes(self.first_bytes)

    def process(self, batch: Batch, *, n_batches: int | None = None) -> None:
        """Apply one batch to model and store, then verify; raises on divergence."""

        self.update_first_bytes(batch)
        self.model.apply_batch(batch)
        self.store.write_batch(batch.operations)

        actual = self.read_snapshot()
        expected = self.expected_snapshot()
        if actual != expected:
            self._fail(batch, expected=expected, actual=actual, n_batches=n_batches)

        log_event(
            logger,
            "replay.batch",
            level=logging.DEBUG,
            pos=self.pos,
            n_keys=len(self.model),
            n_buckets=len(self.first_bytes),
            **batch_log_fields(batch),
        )
        self.pos += 1

    def run(self, batches: Iterable[Batch]) -> ReplayResult:
        batch_list: Sequence[Batch] = batches if isinstance(batches, Sequence) else list(batches)
        n_batches = len(batch_list)
        log_event(logger, "replay.start", n_batches=n_batches, scan_mode=self.scan_mode)
        for batch in batch_list:
            self.process(batch, n_batches=n_batches)
        result = ReplayResult(
            n_batches=self.pos,
            n_keys=len(self.model),
            n_buckets=len(self.first_bytes),
            scan_mode=SCAN_FULL if self.full_scan else SCAN_FIRST_BYTE,
        )
        log_event(
            logger,
            "replay.done",
            n_batches=result.n_batches,
            n_keys=result.n_keys,
            n_buckets=result.n_buckets,
            scan_mode=result.scan_mode,
        )
        return result

    def _fail(
        self,
        batch: Batch,
        *,
        expected: Mapping[bytes, bytes],
        actual: Mapping[bytes, bytes],
        n_batches: int | None,
    ) -> None:
        # Diagnostics run only after the mismatch is established.
        diff = diff_snapshots(expected, actual)
        report: CollisionReport = detect_collision(batch)
        log_event(
            logger,
            "replay.inconsistency",
            level=logging.ERROR,
            pos=self.pos,
            n_batches=n_batches,
            missing=len(diff.missing),
            unexpected=len(diff.unexpected),
            changed=len(diff.changed),
            collision=report.has_collision,
        )
        raise ConsistencyViolation(
            pos=self.pos,
            n_batches=n_batches,
            batch=batch,
            diff=diff,
            report=report,
        )


def replay_batches(
    store: KeyValueStore,
    batches: Iterable[Batch],
    *,
    scan_mode: str = SCAN_FIRST_BYTE,
) -> ReplayResult:
    """Convenience wrapper: run a fresh engine over ``batches``."""

    return BatchEngine(store, scan_mode=scan_mode).run(batches)
