"""Collision diagnostics for a batch that produced a divergence.

Advisory only: everything here is computed from the offending batch alone,
after the pass/fail decision has already been made.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field

from kvreplay_core.domain.prefix_range import prefix_range
from kvreplay_core.models import Batch, Delete, DeletePrefix, Put


@dataclass(frozen=True)
class PrefixHit:
    prefix: bytes
    n_covered_puts: int


@dataclass(frozen=True)
class CollisionReport:
    n_puts: int
    n_deletes: int
    n_prefix_deletes: int
    n_put_delete_overlap: int
    prefix_hits: list[PrefixHit] = field(default_factory=list)

    @property
    def n_prefix_covered_puts(self) -> int:
        return sum(hit.n_covered_puts for hit in self.prefix_hits)

    @property
    def has_collision(self) -> bool:
        return self.n_put_delete_overlap > 0 or self.n_prefix_covered_puts > 0

    def lines(self) -> list[str]:
        out = [
            f"|key_puts|={self.n_puts}",
            f"|key_deletes|={self.n_deletes}",
            f"|key_prefix_deletes|={self.n_prefix_deletes}",
            f"|key_puts int key_deletes|={self.n_put_delete_overlap}",
        ]
        for hit in self.prefix_hits:
            out.append(f"|key_prefix|={len(hit.prefix)} |key_list|={hit.n_covered_puts}")
        return out


def _count_in_range(sorted_keys: list[bytes], prefix: bytes) -> int:
    key_range = prefix_range(prefix)
    lo = bisect.bisect_left(sorted_keys, key_range.lower)
    if key_range.upper is None:
        return len(sorted_keys) - lo
    hi = bisect.bisect_left(sorted_keys, key_range.upper)
    return max(0, hi - lo)


def detect_collision(batch: Batch) -> CollisionReport:
    """Summarize same-batch interactions that make ordering matter."""

    key_puts: set[bytes] = set()
    key_deletes: set[bytes] = set()
    key_prefix_deletes: set[bytes] = set()
    for op in batch:
        if isinstance(op, Put):
            key_puts.add(op.key)
        elif isinstance(op, Delete):
            key_deletes.add(op.key)
        elif isinstance(op, DeletePrefix):
            key_prefix_deletes.add(op.prefix)

    sorted_puts = sorted(key_puts)
    hits = [
        PrefixHit(prefix=prefix, n_covered_puts=_count_in_range(sorted_puts, prefix))
        for prefix in sorted(key_prefix_deletes)
    ]
    return CollisionReport(
        n_puts=len(key_puts),
        n_deletes=len(key_deletes),
        n_prefix_deletes=len(key_prefix_deletes),
        n_put_delete_overlap=len(key_puts & key_deletes),
        prefix_hits=hits,
    )
