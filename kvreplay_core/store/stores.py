from __future__ import annotations

import logging
import re
from collections.abc import Sequence

import duckdb

from kvreplay_core.compute.execution import execute_sql
from kvreplay_core.domain.observability import log_event
from kvreplay_core.domain.prefix_range import KeyRange, prefix_range
from kvreplay_core.errors import StoreRequestError
from kvreplay_core.models import Delete, DeletePrefix, Put, WriteOperation

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def split_table_name(table: str) -> tuple[str | None, str]:
    """Split ``schema.table`` (or a bare ``table``) into validated identifiers."""

    value = (table or "").strip()
    if not value:
        raise ValueError("table is required")
    parts = value.split(".")
    if len(parts) > 2 or not all(_IDENTIFIER_RE.match(part) for part in parts):
        raise ValueError(f"Invalid table name: {table!r}")
    if len(parts) == 1:
        return None, parts[0]
    return parts[0], parts[1]


def _range_predicate(key_range: KeyRange) -> tuple[str, list[object]]:
    # The lower bound applies even when the range is unbounded above.
    if key_range.upper is None:
        return "k >= ?", [key_range.lower]
    return "k >= ? AND k < ?", [key_range.lower, key_range.upper]


def operation_statement(table: str, op: WriteOperation) -> list[tuple[str, list[object]]]:
    """Translate one write operation into parameterized SQL statements."""

    if isinstance(op, Put):
        # Delete-then-insert keeps the table constraint-free, so a key may be
        # written, deleted and rewritten inside one transaction.
        return [
            (f"DELETE FROM {table} WHERE k = ?", [op.key]),
            (f"INSERT INTO {table} (k, v) VALUES (?, ?)", [op.key, op.value]),
        ]
    if isinstance(op, Delete):
        return [(f"DELETE FROM {table} WHERE k = ?", [op.key])]
    if isinstance(op, DeletePrefix):
        predicate, values = _range_predicate(prefix_range(op.prefix))
        return [(f"DELETE FROM {table} WHERE {predicate}", values)]
    raise TypeError(f"Unsupported write operation: {op!r}")


class DuckDBKeyValueStore:
    """Key-value store backed by a DuckDB table ``(k BLOB, v BLOB)``.

    DuckDB compares BLOBs as unsigned bytes with shorter-prefix-first ordering,
    which matches Python ``bytes`` ordering.
    """

    def __init__(
        self,
        connection: duckdb.DuckDBPyConnection,
        *,
        table: str = "kv.pairs",
        recreate: bool = True,
    ) -> None:
        self.connection = connection
        self.schema, self.table_name = split_table_name(table)
        self.table = f"{self.schema}.{self.table_name}" if self.schema else self.table_name
        self.provision(recreate=recreate)

    def _execute(self, sql: str, parameters: Sequence[object] | None = None):  # noqa: ANN202
        try:
            return execute_sql(self.connection, sql, parameters)
        except duckdb.Error as exc:
            raise StoreRequestError(f"Store request failed: {exc}") from exc

    def provision(self, *, recreate: bool = True) -> None:
        if self.schema:
            self._execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
        if recreate:
            self._execute(f"DROP TABLE IF EXISTS {self.table}")
        self._execute(f"CREATE TABLE IF NOT EXISTS {self.table} (k BLOB, v BLOB)")
        log_event(logger, "store.provision", table=self.table, recreate=recreate)

    def write_batch(self, operations: Sequence[WriteOperation]) -> None:
        statements: list[tuple[str, list[object]]] = []
        for op in operations:
            statements.extend(operation_statement(self.table, op))

        self._execute("BEGIN TRANSACTION")
        try:
            for sql, values in statements:
                execute_sql(self.connection, sql, values)
            execute_sql(self.connection, "COMMIT")
        except duckdb.Error as exc:
            try:
                execute_sql(self.connection, "ROLLBACK")
            except duckdb.Error as rollback_exc:
                logger.warning("Rollback failed after write error: %s", rollback_exc)
            raise StoreRequestError(f"Batch write failed: {exc}") from exc
        log_event(
            logger,
            "store.write_batch",
            level=logging.DEBUG,
            table=self.table,
            n_operation=len(operations),
            n_statement=len(statements),
        )

    def scan_range(self, key_range: KeyRange) -> list[tuple[bytes, bytes]]:
        predicate, values = _range_predicate(key_range)
        rows = self._execute(
            f"SELECT k, v FROM {self.table} WHERE {predicate} ORDER BY k", values
        ).fetchall()
        return [(bytes(key), bytes(value)) for key, value in rows]

    def insert_raw(self, key: bytes, value: bytes) -> None:
        """Write a row directly, bypassing replay (used to simulate faults)."""

        self._execute(f"INSERT INTO {self.table} (k, v) VALUES (?, ?)", [bytes(key), bytes(value)])

    def count(self) -> int:
        row = self._execute(f"SELECT count(*) FROM {self.table}").fetchone()
        return int(row[0]) if row else 0
