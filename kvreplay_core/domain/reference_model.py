"""In-memory reference model of the key-value store.

Single-threaded oracle: a sorted key index kept with ``bisect`` plus a
key -> value dict, replayed with the same batches as the store.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator

from kvreplay_core.domain.prefix_range import KeyRange, prefix_range
from kvreplay_core.models import Batch, Delete, DeletePrefix, Put, WriteOperation


class ReferenceModel:
    """Ordered mapping from byte-string key to byte-string value."""

    __slots__ = ("_index", "_values")

    def __init__(self, items: Iterable[tuple[bytes, bytes]] | None = None) -> None:
        self._index: list[bytes] = []
        self._values: dict[bytes, bytes] = {}
        for key, value in items or ():
            self.put(key, value)

    def put(self, key: bytes, value: bytes) -> None:
        if key not in self._values:
            bisect.insort(self._index, key)
        self._values[key] = value

    def delete(self, key: bytes) -> bool:
        if key not in self._values:
            return False
        del self._values[key]
        pos = bisect.bisect_left(self._index, key)
        del self._index[pos]
        return True

    def _bounds(self, key_range: KeyRange) -> tuple[int, int]:
        lo = bisect.bisect_left(self._index, key_range.lower)
        if key_range.upper is None:
            return lo, len(self._index)
        hi = bisect.bisect_left(self._index, key_range.upper)
        return lo, max(lo, hi)

    def delete_range(self, key_range: KeyRange) -> int:
        lo, hi = self._bounds(key_range)
        removed = self._index[lo:hi]
        del self._index[lo:hi]
        for key in removed:
            del self._values[key]
        return len(removed)

    def delete_prefix(self, prefix: bytes) -> int:
        return self.delete_range(prefix_range(prefix))

    def apply(self, op: WriteOperation) -> None:
        if isinstance(op, Put):
            self.put(op.key, op.value)
        elif isinstance(op, Delete):
            self.delete(op.key)
        elif isinstance(op, DeletePrefix):
            self.delete_prefix(op.prefix)
        else:
            raise TypeError(f"Unsupported write operation: {op!r}")

    def apply_batch(self, batch: Batch) -> None:
        """Apply operations in order against the current state."""

        for op in batch:
            self.apply(op)

    def scan(self, key_range: KeyRange) -> list[tuple[bytes, bytes]]:
        lo, hi = self._bounds(key_range)
        return [(key, self._values[key]) for key in self._index[lo:hi]]

    def restrict_to_first_bytes(self, first_bytes: Iterable[int]) -> dict[bytes, bytes]:
        out: dict[bytes, bytes] = {}
        for first in sorted(set(first_bytes)):
            out.update(self.scan(prefix_range(bytes([first]))))
        return out

    def get(self, key: bytes, default: bytes | None = None) -> bytes | None:
        return self._values.get(key, default)

    def keys(self) -> list[bytes]:
        return list(self._index)

    def as_dict(self) -> dict[bytes, bytes]:
        return {key: self._values[key] for key in self._index}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[bytes]:
        return iter(list(self._index))

    def __len__(self) -> int:
        return len(self._index)
