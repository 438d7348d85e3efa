"""Test doubles for replay collaborators."""

from kvreplay_core.testing.local_store import MemoryKeyValueStore, StoreOp

__all__ = ["MemoryKeyValueStore", "StoreOp"]
