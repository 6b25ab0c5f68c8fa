from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .model import MigrationConfig


class ConfigError(RuntimeError):
    pass


# Environment variable -> dotted config field.
ENV_FIELDS = {
    "POSTGRES_TO_REDSHIFT_SOURCE_URI": "source_uri",
    "POSTGRES_TO_REDSHIFT_TARGET_URI": "target_uri",
    "SOURCE_SCHEMA": "source_schema",
    "TARGET_SCHEMA": "target_schema",
    "TABLES_TO_EXPORT": "tables_to_export",
    "REDSHIFT_IAM_ROLE": "iam_role",
    "LOG_DIR": "log_dir",
    "S3_DATABASE_EXPORT_BUCKET": "storage.bucket",
    "S3_DATABASE_EXPORT_ID": "storage.access_key_id",
    "S3_DATABASE_EXPORT_KEY": "storage.secret_access_key",
    "S3_DATABASE_EXPORT_ENDPOINT": "storage.endpoint",
    "S3_DATABASE_EXPORT_REGION": "storage.region",
    "S3_DATABASE_EXPORT_SECURE": "storage.secure",
    "EXPORT_CHUNK_SIZE": "export.chunk_size",
    "EXPORT_SPOOL_MAX_BYTES": "export.spool_max_bytes",
}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        import yaml
    except ImportError as exc:
        raise ConfigError("PyYAML is required to load YAML config") from exc
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def _load_json(path: Path) -> Dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return _load_yaml(path)
    if path.suffix.lower() == ".json":
        return _load_json(path)
    raise ConfigError("Config must be .json or .yaml")


def _set_dotted(target: Dict[str, Any], dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    for parent in parents:
        target = target.setdefault(parent, {})
    target[leaf] = value


def _merge(base: Dict[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_values(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    raw: Dict[str, Any] = {}
    for name, dotted in ENV_FIELDS.items():
        value = environ.get(name, "").strip()
        if value:
            _set_dotted(raw, dotted, value)
    return raw


def load_config(
    path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> MigrationConfig:
    """Build the run configuration from the environment, overlaid by an optional file."""
    raw = env_values(environ)
    if path is not None:
        raw = _merge(raw, _load_file(Path(path)))
    try:
        return MigrationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
