"""Configuration utilities for formflow.

This module loads application configuration with the following rules:
- Primary source: `formflow_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("formflow_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _flag(text: Optional[str]) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class StorageConfig(BaseModel):
    backend: str = Field(default="sql")  # one of: sql, memory

    @field_validator("backend")
    @classmethod
    def backend_must_be_allowed(cls, v: str) -> str:
        allowed = {"sql", "memory"}
        if v not in allowed:
            raise ValueError(f"storage.backend must be one of {sorted(allowed)}")
        return v


class PublishConfig(BaseModel):
    token_length: int = Field(default=10, ge=6, le=32)


class ExportConfig(BaseModel):
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    missing_placeholder: str = Field(default="-")
    filename_filler: str = Field(default="_", min_length=1)

    @field_validator("delimiter")
    @classmethod
    def delimiter_must_not_be_quote(cls, v: str) -> str:
        if v in {'"', "\n", "\r"}:
            raise ValueError("export.delimiter cannot be a quote or newline character")
        return v


class AppConfig(BaseModel):
    database: DatabaseConfig
    storage: StorageConfig
    publish: PublishConfig
    export: ExportConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) formflow_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("database.dsn") or DEFAULT_DSN
    auto_migrate_text = (
        _env("AUTO_APPLY_MIGRATIONS")
        or _read_config_file("database.auto_apply_migrations")
        or _base("database.auto_apply_migrations", "true")
    )

    # Storage backend
    backend = (_env("STORAGE_BACKEND") or _read_config_file("storage.backend") or _base("storage.backend", "sql")).strip()

    # Publication
    token_length_text = _env("PUBLIC_TOKEN_LENGTH") or _read_config_file("publish.token_length") or _base("publish.token_length", "10")

    # Export; the delimiter is not stripped so that a tab survives
    delimiter = _env("EXPORT_DELIMITER") or _read_config_file("export.delimiter") or _base("export.delimiter", ",")
    placeholder = _env("EXPORT_MISSING_PLACEHOLDER")
    if placeholder is None:
        placeholder = _read_config_file("export.missing_placeholder")
    if placeholder is None:
        placeholder = _base("export.missing_placeholder", "-")
    filler = _env("EXPORT_FILENAME_FILLER") or _read_config_file("export.filename_filler") or _base("export.filename_filler", "_")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_flag(auto_migrate_text)),
            storage=StorageConfig(backend=backend),
            publish=PublishConfig(token_length=int(str(token_length_text).strip())),
            export=ExportConfig(
                delimiter=delimiter,
                missing_placeholder=placeholder,
                filename_filler=filler,
            ),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "StorageConfig",
    "PublishConfig",
    "ExportConfig",
    "load_config",
]
