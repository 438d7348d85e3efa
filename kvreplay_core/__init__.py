"""Stable public imports for `kvreplay_core`.

Prefer importing from these symbols when wiring scripts or tests.
Lower-level utilities should be imported from their submodules explicitly.
"""

from kvreplay_core.domain import (
    CollisionReport,
    KeyRange,
    ReferenceModel,
    detect_collision,
    get_upper_bound,
    prefix_range,
)
from kvreplay_core.errors import (
    ConfigError,
    ConsistencyViolation,
    KvReplayError,
    ScriptFormatError,
    StoreRequestError,
)
from kvreplay_core.io import format_batch, parse_script, read_script
from kvreplay_core.models import Batch, Delete, DeletePrefix, Put, WriteOperation
from kvreplay_core.pipeline import BatchEngine, ReplayResult, replay_batches
from kvreplay_core.settings import ReplaySettings, resolve_settings
from kvreplay_core.store import DuckDBKeyValueStore, KeyValueStore

__all__ = [
    "Batch",
    "BatchEngine",
    "CollisionReport",
    "ConfigError",
    "ConsistencyViolation",
    "Delete",
    "DeletePrefix",
    "DuckDBKeyValueStore",
    "KeyRange",
    "KeyValueStore",
    "KvReplayError",
    "Put",
    "ReferenceModel",
    "ReplayResult",
    "ReplaySettings",
    "ScriptFormatError",
    "StoreRequestError",
    "WriteOperation",
    "detect_collision",
    "format_batch",
    "get_upper_bound",
    "parse_script",
    "prefix_range",
    "read_script",
    "replay_batches",
    "resolve_settings",
]
