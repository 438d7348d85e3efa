from __future__ import annotations

import argparse
import logging
from pathlib import Path

from kvreplay_core.compute.execution import temporary_connection
from kvreplay_core.errors import ConsistencyViolation, KvReplayError
from kvreplay_core.io.script import format_batch, read_script, write_script
from kvreplay_core.pipeline.replay import SCAN_MODES, BatchEngine
from kvreplay_core.settings import ReplaySettings, resolve_settings
from kvreplay_core.store import DuckDBKeyValueStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run_replay",
        description="Replay a write-batch script against a store and verify every batch.",
    )
    parser.add_argument("script", type=Path, help="replay script (write_batch blocks)")
    parser.add_argument("--config", type=Path, default=None, help="optional YAML settings file")
    parser.add_argument("--database", type=str, default=None, help="DuckDB path or :memory:")
    parser.add_argument("--table", type=str, default=None, help="target table, e.g. kv.pairs")
    parser.add_argument("--scan-mode", choices=list(SCAN_MODES), default=None)
    parser.add_argument(
        "--keep-table",
        action="store_true",
        default=False,
        help="do not drop/recreate the table before replay",
    )
    parser.add_argument("--dump-batch", type=Path, default=None, help="write a failing batch here")
    parser.add_argument("--verbose", action="store_true", help="log every batch")
    return parser


def _settings_from_args(args: argparse.Namespace) -> ReplaySettings:
    overrides = {
        "database": args.database,
        "table": args.table,
        "scan_mode": args.scan_mode,
        "recreate_table": False if args.keep_table else None,
    }
    return resolve_settings(config_path=args.config, overrides=overrides)


def _report_violation(exc: ConsistencyViolation, dump_path: Path | None) -> None:
    total = "?" if exc.n_batches is None else exc.n_batches
    print("              ---------------------")
    print(f"Inconsistency at pos={exc.pos} n_batches={total}")
    for line in format_batch(exc.batch):
        print(line)
    for line in exc.report.lines():
        print(line)
    for line in exc.diff.lines():
        print(line)
    if dump_path is not None:
        write_script(dump_path, [exc.batch])
        print(f"Offending batch written to {dump_path}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        settings = _settings_from_args(args)
        batches = read_script(args.script)
        logger.info("Loaded %d batches from %s", len(batches), args.script)
        with temporary_connection(settings.database) as connection:
            store = DuckDBKeyValueStore(
                connection, table=settings.table, recreate=settings.recreate_table
            )
            result = BatchEngine(store, scan_mode=settings.scan_mode).run(batches)
    except ConsistencyViolation as exc:
        _report_violation(exc, args.dump_batch)
        return 1
    except (KvReplayError, OSError) as exc:
        logger.error("Replay aborted: %s", exc)
        return 1

    print(
        f"OK n_batches={result.n_batches} n_keys={result.n_keys} "
        f"n_buckets={result.n_buckets} scan_mode={result.scan_mode}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
