"""DuckDB connection helpers."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

import duckdb

MEMORY_DATABASE = ":memory:"


def create_temporary_connection(database: str | Path | None = None) -> duckdb.DuckDBPyConnection:
    """Create an isolated DuckDB connection.

    Args:
        database: Optional database path. Defaults to an in-memory connection.

    Returns:
        A connected ``DuckDBPyConnection`` instance.
    """

    db_path = MEMORY_DATABASE if database is None else str(database)
    if db_path != MEMORY_DATABASE:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(database=db_path, read_only=False)


@contextmanager
def temporary_connection(
    database: str | Path | None = None,
) -> Iterator[duckdb.DuckDBPyConnection]:
    """Context manager for an isolated DuckDB connection that always closes."""

    connection = create_temporary_connection(database=database)
    try:
        yield connection
    finally:
        connection.close()


def execute_sql(
    connection: duckdb.DuckDBPyConnection,
    sql: str,
    parameters: Sequence[object] | None = None,
) -> duckdb.DuckDBPyConnection:
    """Execute a SQL statement with optional positional parameters."""

    if not sql.strip():
        raise ValueError("SQL must not be empty")
    if parameters is None:
        return connection.execute(sql)
    return connection.execute(sql, list(parameters))
