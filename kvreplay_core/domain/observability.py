from __future__ import annotations

import logging
from collections.abc import Mapping


def _kv_pairs(fields: Mapping[str, object]) -> str:
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        parts.append(f"{key}={text}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    message: str,
    *,
    level: int = logging.INFO,
    **fields: object,
) -> None:
    """Emit a stable, grep-friendly structured log line.

    Fields are appended as ``k=v`` tokens; ``None`` and blank values are dropped.
    """

    suffix = _kv_pairs(fields)
    if suffix:
        logger.log(level, "%s %s", message, suffix)
    else:
        logger.log(level, "%s", message)


def batch_log_fields(batch: object) -> dict[str, object]:
    """Extract standard fields from a batch-like object."""

    operations = getattr(batch, "operations", ())
    counts: dict[str, int] = {}
    for op in operations:
        name = type(op).__name__
        counts[name] = counts.get(name, 0) + 1
    return {
        "n_operation": len(operations),
        "n_put": counts.get("Put", 0),
        "n_delete": counts.get("Delete", 0),
        "n_delete_prefix": counts.get("DeletePrefix", 0),
    }
