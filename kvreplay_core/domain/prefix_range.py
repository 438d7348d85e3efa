"""Prefix to half-open key range conversion.

Keys are ordered lexicographically by unsigned byte value, with a proper prefix
sorting before any of its extensions. Python ``bytes`` comparison follows the
same order, so ranges built here can be checked with plain ``<``/``>=``.
"""

from __future__ import annotations

from dataclasses import dataclass

_MAX_BYTE = 0xFF


@dataclass(frozen=True)
class KeyRange:
    """Half-open range ``[lower, upper)``; ``upper=None`` means unbounded above.

    The lower bound is always inclusive and always applied, even when the
    range is unbounded above.
    """

    lower: bytes
    upper: bytes | None = None

    @property
    def is_bounded(self) -> bool:
        return self.upper is not None

    def contains(self, key: bytes) -> bool:
        if key < self.lower:
            return False
        return self.upper is None or key < self.upper

    def __contains__(self, key: object) -> bool:
        return isinstance(key, bytes) and self.contains(key)


FULL_RANGE = KeyRange(lower=b"")


def get_upper_bound(prefix: bytes) -> bytes | None:
    """Return the smallest key greater than every key starting with ``prefix``.

    Increments the right-most byte below 0xFF and drops everything after it.
    Returns ``None`` when ``prefix`` is empty or made only of 0xFF bytes.
    """

    for index in range(len(prefix) - 1, -1, -1):
        value = prefix[index]
        if value < _MAX_BYTE:
            return prefix[:index] + bytes([value + 1])
    return None


def prefix_range(prefix: bytes) -> KeyRange:
    """Return the range of every key that starts with ``prefix``."""

    prefix = bytes(prefix)
    return KeyRange(lower=prefix, upper=get_upper_bound(prefix))


def has_prefix(key: bytes, prefix: bytes) -> bool:
    return key[: len(prefix)] == prefix
