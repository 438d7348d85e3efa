"""Line-oriented replay script codec.

A script is a sequence of blocks::

    write_batch n_operation=2
    0: Put key=[1, 2] value=[9]
    1: DeletePrefix key_prefix=[1]

Lines outside a block that are not block headers are skipped, so scripts can
be cut straight out of a log. Inside a block every line must decode, and an
indexed operation line found outside a block is rejected.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from kvreplay_core.errors import ScriptFormatError
from kvreplay_core.models import Batch, Delete, DeletePrefix, Put, WriteOperation

logger = logging.getLogger(__name__)

BATCH_HEADER = "write_batch n_operation="
# Upper limit for the zero-filled `|value|=N` form.
MAX_VALUE_LENGTH = 1 << 20

_INDEX_RE = re.compile(r"^\s*(\d+):\s(.*)$")
_PUT_RE = re.compile(r"^Put key=\[([^\]]*)\] value=\[([^\]]*)\]$")
_PUT_LEN_RE = re.compile(r"^Put key=\[([^\]]*)\] \|value\|=(\d+)$")
_DELETE_RE = re.compile(r"^Delete key=\[([^\]]*)\]$")
_DELETE_PREFIX_RE = re.compile(r"^DeletePrefix key_prefix=\[([^\]]*)\]$")
_STRAY_OP_RE = re.compile(r"^\s*\d+:\s(?:Put|Delete|DeletePrefix)\s")


def parse_byte_list(text: str, *, line_no: int | None = None) -> bytes:
    """Decode ``"1, 2, 255"`` into bytes; an empty list is the empty string."""

    body = text.strip()
    if not body:
        return b""
    values: list[int] = []
    for raw in body.split(","):
        item = raw.strip()
        if not (item.isascii() and item.isdigit()):
            raise ScriptFormatError(f"Invalid byte {raw!r} in list [{text}]", line_no=line_no)
        value = int(item)
        if value > 255:
            raise ScriptFormatError(f"Byte out of range {value} in list [{text}]", line_no=line_no)
        values.append(value)
    return bytes(values)


def format_byte_list(data: bytes) -> str:
    return "[" + ", ".join(str(b) for b in data) + "]"


def parse_n_operation(line: str, *, line_no: int | None = None) -> int:
    parts = line.strip().split("=")
    if len(parts) != 2 or not parts[1].strip().isdigit():
        raise ScriptFormatError(f"Malformed batch header: {line!r}", line_no=line_no)
    return int(parts[1].strip())


def parse_operation(i_operation: int, line: str, *, line_no: int | None = None) -> WriteOperation:
    """Decode one ``"<i>: <Op> ..."`` line, checking its position in the block."""

    match = _INDEX_RE.match(line.rstrip("\r\n"))
    if not match:
        raise ScriptFormatError(f"Missing operation index: {line!r}", line_no=line_no)
    j_operation = int(match.group(1))
    if j_operation != i_operation:
        raise ScriptFormatError(
            f"Wrong operation index: expected {i_operation}, got {j_operation}",
            line_no=line_no,
        )
    body = match.group(2).strip()

    put = _PUT_RE.match(body)
    if put:
        return Put(
            key=parse_byte_list(put.group(1), line_no=line_no),
            value=parse_byte_list(put.group(2), line_no=line_no),
        )
    put_len = _PUT_LEN_RE.match(body)
    if put_len:
        length = int(put_len.group(2))
        if length > MAX_VALUE_LENGTH:
            raise ScriptFormatError(
                f"Value length {length} exceeds {MAX_VALUE_LENGTH} bytes", line_no=line_no
            )
        return Put(
            key=parse_byte_list(put_len.group(1), line_no=line_no),
            value=bytes(length),
        )
    delete = _DELETE_RE.match(body)
    if delete:
        return Delete(key=parse_byte_list(delete.group(1), line_no=line_no))
    delete_prefix = _DELETE_PREFIX_RE.match(body)
    if delete_prefix:
        return DeletePrefix(prefix=parse_byte_list(delete_prefix.group(1), line_no=line_no))
    raise ScriptFormatError(f"Unrecognized operation: {body!r}", line_no=line_no)


def iter_batches(lines: Iterable[str]) -> Iterator[Batch]:
    """Yield batches in script order; raises ``ScriptFormatError`` on bad input."""

    numbered = enumerate(lines, start=1)
    i_batch = 0
    for line_no, line in numbered:
        if not line.startswith(BATCH_HEADER):
            if _STRAY_OP_RE.match(line):
                raise ScriptFormatError(
                    f"Operation outside a batch (header count too low?): {line.rstrip()!r}",
                    line_no=line_no,
                )
            if line.strip():
                logger.debug("Skipping line %d outside batch: %s", line_no, line.rstrip())
            continue
        n_operation = parse_n_operation(line, line_no=line_no)
        operations: list[WriteOperation] = []
        for i_operation in range(n_operation):
            entry = next(numbered, None)
            if entry is None:
                raise ScriptFormatError(
                    f"Batch {i_batch} declares {n_operation} operations, found {i_operation}",
                    line_no=line_no,
                )
            op_line_no, op_line = entry
            operations.append(parse_operation(i_operation, op_line, line_no=op_line_no))
        logger.debug("Parsed batch %d with %d operations", i_batch, n_operation)
        yield Batch(tuple(operations))
        i_batch += 1


def parse_script(lines: Iterable[str]) -> list[Batch]:
    return list(iter_batches(lines))


def read_script(path: str | Path) -> list[Batch]:
    """Load and decode a replay script file."""

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Script file not found: {file_path}")
    if not file_path.is_file():
        raise ScriptFormatError(f"Script path is not a file: {file_path}")
    with file_path.open("rb") as handle:
        return parse_script(_decode_lines(handle))


def _decode_lines(handle: Iterable[bytes]) -> Iterator[str]:
    for line_no, raw in enumerate(handle, start=1):
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ScriptFormatError(f"Invalid UTF-8: {exc.reason}", line_no=line_no) from exc


def format_operation(pos: int, op: WriteOperation) -> str:
    if isinstance(op, Put):
        return f"{pos}: Put key={format_byte_list(op.key)} value={format_byte_list(op.value)}"
    if isinstance(op, Delete):
        return f"{pos}: Delete key={format_byte_list(op.key)}"
    if isinstance(op, DeletePrefix):
        return f"{pos}: DeletePrefix key_prefix={format_byte_list(op.prefix)}"
    raise TypeError(f"Unsupported write operation: {op!r}")


def format_batch(batch: Batch) -> list[str]:
    """Render a batch in script format (parseable by ``parse_script``)."""

    out = [f"{BATCH_HEADER}{len(batch)}"]
    out.extend(format_operation(pos, op) for pos, op in enumerate(batch))
    return out


def write_script(path: str | Path, batches: Iterable[Batch]) -> None:
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = []
    for batch in batches:
        lines.extend(format_batch(batch))
    file_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
