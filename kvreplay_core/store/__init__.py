"""Key-value store abstractions and implementations."""

from kvreplay_core.store.key_value_store import KeyValueStore
from kvreplay_core.store.stores import DuckDBKeyValueStore, operation_statement, split_table_name

__all__ = ["DuckDBKeyValueStore", "KeyValueStore", "operation_statement", "split_table_name"]
