"""Replay configuration (CLI args > env > optional YAML file > defaults)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from kvreplay_core.compute.execution import MEMORY_DATABASE
from kvreplay_core.errors import ConfigError
from kvreplay_core.pipeline.replay import SCAN_FIRST_BYTE, SCAN_MODES
from kvreplay_core.store.stores import split_table_name

ENV_PREFIX = "KVREPLAY_"
_FIELDS = ("database", "table", "scan_mode", "recreate_table")


@dataclass(frozen=True)
class ReplaySettings:
    database: str = MEMORY_DATABASE
    table: str = "kv.pairs"
    scan_mode: str = SCAN_FIRST_BYTE
    recreate_table: bool = True

    def __post_init__(self) -> None:
        if self.scan_mode not in SCAN_MODES:
            raise ConfigError(f"scan_mode must be one of {SCAN_MODES}, got {self.scan_mode!r}")
        if not str(self.database or "").strip():
            raise ConfigError("database is required")
        try:
            split_table_name(self.table)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc


def _parse_bool(value: object, *, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def load_config_file(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        payload = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config {config_path} must contain a mapping")
    unknown = sorted(set(payload) - set(_FIELDS))
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")
    return payload


def _from_env(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name in _FIELDS:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return values


def resolve_settings(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ReplaySettings:
    """Merge settings sources; later sources win over earlier ones."""

    env = dict(os.environ) if env is None else env
    merged: dict[str, Any] = {}
    if config_path is not None:
        merged.update(load_config_file(config_path))
    merged.update(_from_env(env))
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if "recreate_table" in merged:
        merged["recreate_table"] = _parse_bool(merged["recreate_table"], name="recreate_table")
    for name in ("database", "table", "scan_mode"):
        if name in merged:
            merged[name] = str(merged[name]).strip()
    return ReplaySettings(**merged)
