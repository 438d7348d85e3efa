"""Script IO helpers (decode/encode replay scripts)."""

from kvreplay_core.io.script import (
    BATCH_HEADER,
    format_batch,
    format_byte_list,
    format_operation,
    iter_batches,
    parse_byte_list,
    parse_n_operation,
    parse_operation,
    parse_script,
    read_script,
    write_script,
)

__all__ = [
    "BATCH_HEADER",
    "format_batch",
    "format_byte_list",
    "format_operation",
    "iter_batches",
    "parse_byte_list",
    "parse_n_operation",
    "parse_operation",
    "parse_script",
    "read_script",
    "write_script",
]
