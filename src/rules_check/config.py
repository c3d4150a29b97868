from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rules_check.engine import DEFAULT_MAX_FILE_SIZE_BYTES
from rules_check.errors import ConfigError
from rules_check.files import DEFAULT_READ_TIMEOUT_SECONDS
from rules_check.models import Severity
from rules_check.reporting import OutputFormat
from rules_check.scope import DEFAULT_EXCLUDE_DIRS


CONCURRENCY_ENV = "RULES_CHECK_CONCURRENCY"
CONFIG_KEYS = {
    "concurrency",
    "exclude_dirs",
    "format",
    "max_file_size_bytes",
    "read_timeout_seconds",
    "severity_threshold",
}


@dataclass(frozen=True)
class Settings:
    target_dir: str
    rules_dir: str
    severity_threshold: Severity = Severity.WARNING
    output_format: OutputFormat = OutputFormat.TEXT
    concurrency: int = 1
    read_timeout_seconds: float = DEFAULT_READ_TIMEOUT_SECONDS
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    exclude_dirs: tuple[str, ...] = tuple(sorted(DEFAULT_EXCLUDE_DIRS))
    output_path: str | None = None


def load_settings(
    target_dir: str | Path,
    rules_dir: str | Path,
    *,
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings from defaults, a JSON config file, the environment and CLI overrides.

    Later sources win, except that ``RULES_CHECK_CONCURRENCY`` caps whatever
    worker count was requested.
    """
    target = Path(target_dir)
    rules = Path(rules_dir)
    if not target.is_dir():
        raise ConfigError(f"Target directory not found: {target}")
    if not rules.is_dir():
        raise ConfigError(f"Rules directory not found: {rules}")

    merged: dict[str, Any] = {}
    if config_path is not None:
        merged.update(_read_config_file(config_path))
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    env = os.environ if environ is None else environ
    requested = _positive_int(merged.get("concurrency", os.cpu_count() or 1), "concurrency")
    cap = _env_concurrency_cap(env)
    workers = min(requested, cap) if cap is not None else requested

    return Settings(
        target_dir=str(target),
        rules_dir=str(rules),
        severity_threshold=_enum_value(Severity, merged.get("severity_threshold", Severity.WARNING), "severity_threshold"),
        output_format=_enum_value(OutputFormat, merged.get("format", OutputFormat.TEXT), "format"),
        concurrency=workers,
        read_timeout_seconds=_positive_float(
            merged.get("read_timeout_seconds", DEFAULT_READ_TIMEOUT_SECONDS),
            "read_timeout_seconds",
        ),
        max_file_size_bytes=_positive_int(
            merged.get("max_file_size_bytes", DEFAULT_MAX_FILE_SIZE_BYTES),
            "max_file_size_bytes",
        ),
        exclude_dirs=tuple(_ensure_string_list(merged.get("exclude_dirs", sorted(DEFAULT_EXCLUDE_DIRS)))),
        output_path=_optional_str(merged.get("output_path")),
    )


def _read_config_file(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a JSON object")

    unknown = sorted(set(raw) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    return raw


def _env_concurrency_cap(environ: Mapping[str, str]) -> int | None:
    value = (environ.get(CONCURRENCY_ENV) or "").strip()
    if not value:
        return None
    return _positive_int(value, CONCURRENCY_ENV)


def _enum_value(enum_cls, value: object, name: str):
    try:
        return enum_cls(str(getattr(value, "value", value)).strip().lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in enum_cls)
        raise ConfigError(f"{name} must be one of: {choices}") from exc


def _positive_int(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a positive integer")
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a positive integer") from exc
    if number < 1:
        raise ConfigError(f"{name} must be a positive integer")
    return number


def _positive_float(value: object, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a positive number") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be a positive number")
    return number


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ensure_string_list(value: object) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ConfigError("Expected a list of strings")
    return [str(item) for item in value]
