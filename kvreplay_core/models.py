from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Union


def to_bytes(value: object, *, name: str) -> bytes:
    """Coerce ``value`` into immutable ``bytes``.

    Accepts bytes-like objects or an iterable of ints in ``0..255``.
    """

    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        raise TypeError(f"{name} must be bytes, not str")
    if not isinstance(value, Iterable):
        raise TypeError(f"{name} must be bytes or an iterable of ints, got {type(value).__name__}")
    items = list(value)
    for item in items:
        if not isinstance(item, int) or isinstance(item, bool):
            raise TypeError(f"{name} must contain ints, got {type(item).__name__}")
        if not 0 <= item <= 255:
            raise ValueError(f"{name} byte out of range: {item}")
    return bytes(items)


@dataclass(frozen=True)
class Put:
    """Upsert a single key."""

    key: bytes
    value: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", to_bytes(self.key, name="Put.key"))
        object.__setattr__(self, "value", to_bytes(self.value, name="Put.value"))

    @property
    def leading_key(self) -> bytes:
        return self.key


@dataclass(frozen=True)
class Delete:
    """Remove a single key; a no-op when the key is absent."""

    key: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", to_bytes(self.key, name="Delete.key"))

    @property
    def leading_key(self) -> bytes:
        return self.key


@dataclass(frozen=True)
class DeletePrefix:
    """Remove every key starting with ``prefix`` (including ``prefix`` itself)."""

    prefix: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "prefix", to_bytes(self.prefix, name="DeletePrefix.prefix"))

    @property
    def leading_key(self) -> bytes:
        return self.prefix


WriteOperation = Union[Put, Delete, DeletePrefix]


@dataclass(frozen=True)
class Batch:
    """Ordered write operations applied together.

    Later operations may overwrite or delete keys written earlier in the same batch.
    """

    operations: tuple[WriteOperation, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        operations = tuple(self.operations)
        for op in operations:
            if not isinstance(op, (Put, Delete, DeletePrefix)):
                raise TypeError(f"Unsupported write operation: {op!r}")
        object.__setattr__(self, "operations", operations)

    def __iter__(self) -> Iterator[WriteOperation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def first_bytes(self) -> set[int]:
        """Return the first byte of every non-empty key or prefix in the batch."""

        return {op.leading_key[0] for op in self.operations if op.leading_key}

    def has_empty_key(self) -> bool:
        return any(not op.leading_key for op in self.operations)
