"""Compute/execution helpers (DuckDB)."""

from kvreplay_core.compute.execution import (
    MEMORY_DATABASE,
    create_temporary_connection,
    execute_sql,
    temporary_connection,
)

__all__ = [
    "MEMORY_DATABASE",
    "create_temporary_connection",
    "execute_sql",
    "temporary_connection",
]
