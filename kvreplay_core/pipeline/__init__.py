"""Replay pipeline (apply, write, re-read, compare)."""

from kvreplay_core.pipeline.replay import (
    SCAN_FIRST_BYTE,
    SCAN_FULL,
    SCAN_MODES,
    BatchEngine,
    ReplayResult,
    SnapshotDiff,
    diff_snapshots,
    find_key_values_by_prefix,
    replay_batches,
)

__all__ = [
    "SCAN_FIRST_BYTE",
    "SCAN_FULL",
    "SCAN_MODES",
    "BatchEngine",
    "ReplayResult",
    "SnapshotDiff",
    "diff_snapshots",
    "find_key_values_by_prefix",
    "replay_batches",
]
