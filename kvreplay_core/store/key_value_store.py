from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from kvreplay_core.domain.prefix_range import KeyRange
from kvreplay_core.models import WriteOperation


class KeyValueStore(Protocol):
    """Flat byte-string keyed store under replay.

    A single logical table: no secondary indexes, no TTLs. Failures surface as
    ``StoreRequestError`` and are never retried by callers.
    """

    def write_batch(self, operations: Sequence[WriteOperation]) -> None:
        """Apply operations atomically (all-or-nothing) and strictly in order."""

    def scan_range(self, key_range: KeyRange) -> list[tuple[bytes, bytes]]:
        """Return every stored ``(key, value)`` whose key falls in ``key_range``."""
