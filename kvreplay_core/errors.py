from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kvreplay_core.domain.diagnostics import CollisionReport
    from kvreplay_core.models import Batch
    from kvreplay_core.pipeline.replay import SnapshotDiff


class KvReplayError(Exception):
    """Base error for kvreplay_core."""


class ScriptFormatError(KvReplayError, ValueError):
    """Raised when a replay script line cannot be decoded."""

    def __init__(self, message: str, *, line_no: int | None = None) -> None:
        self.line_no = line_no
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)


class ConfigError(KvReplayError, ValueError):
    """Raised when replay settings are invalid."""


class StoreRequestError(KvReplayError):
    """Raised when the backing store fails a write or a read."""


class ConsistencyViolation(KvReplayError):
    """Raised when the store snapshot diverges from the reference model."""

    def __init__(
        self,
        *,
        pos: int,
        n_batches: int | None,
        batch: Batch,
        diff: SnapshotDiff,
        report: CollisionReport,
    ) -> None:
        self.pos = pos
        self.n_batches = n_batches
        self.batch = batch
        self.diff = diff
        self.report = report
        total = "?" if n_batches is None else str(n_batches)
        super().__init__(
            f"Inconsistency at pos={pos} n_batches={total}: "
            f"missing={len(diff.missing)} unexpected={len(diff.unexpected)} "
            f"changed={len(diff.changed)}"
        )
