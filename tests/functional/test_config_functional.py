"""Functional tests for configuration loading and precedence."""

from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from formflow.config import DEFAULT_DSN, load_config
from formflow.logging_setup import _DICT_CONFIG, configure_logging

_ENV_KEYS = (
    "DATABASE_URL",
    "AUTO_APPLY_MIGRATIONS",
    "STORAGE_BACKEND",
    "PUBLIC_TOKEN_LENGTH",
    "EXPORT_DELIMITER",
    "EXPORT_MISSING_PLACEHOLDER",
    "EXPORT_FILENAME_FILLER",
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults(workdir):
    cfg = load_config()

    assert cfg.database.dsn == DEFAULT_DSN
    assert cfg.database.auto_apply_migrations is True
    assert cfg.storage.backend == "sql"
    assert cfg.publish.token_length == 10
    assert (cfg.export.delimiter, cfg.export.missing_placeholder, cfg.export.filename_filler) == (",", "-", "_")


def test_precedence_env_over_files_over_json(workdir, monkeypatch):
    (workdir / "formflow_config.json").write_text(
        json.dumps(
            {
                "database": {"dsn": "sqlite:///from-json.db"},
                "storage": {"backend": "memory"},
                "publish": {"token_length": 12},
            }
        ),
        encoding="utf-8",
    )
    (workdir / "config").mkdir()
    (workdir / "config" / "publish.token_length").write_text("16\n", encoding="utf-8")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///from-env.db")

    cfg = load_config()

    assert cfg.database.dsn == "sqlite:///from-env.db"
    assert cfg.storage.backend == "memory"
    assert cfg.publish.token_length == 16


def test_auto_apply_migrations_flag(workdir, monkeypatch):
    monkeypatch.setenv("AUTO_APPLY_MIGRATIONS", "0")
    assert load_config().database.auto_apply_migrations is False


def test_tab_delimiter_and_empty_placeholder(workdir, monkeypatch):
    monkeypatch.setenv("EXPORT_DELIMITER", "\t")
    monkeypatch.setenv("EXPORT_MISSING_PLACEHOLDER", "")

    cfg = load_config()

    assert cfg.export.delimiter == "\t"
    assert cfg.export.missing_placeholder == ""


@pytest.mark.parametrize(
    "key, value",
    [
        ("STORAGE_BACKEND", "mongo"),
        ("PUBLIC_TOKEN_LENGTH", "4"),
        ("EXPORT_DELIMITER", '"'),
        ("EXPORT_DELIMITER", ";;"),
    ],
)
def test_invalid_values_are_rejected(workdir, monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(PydanticValidationError):
        load_config()


def test_unreadable_json_falls_back_to_defaults(workdir):
    (workdir / "formflow_config.json").write_text("{not json", encoding="utf-8")
    assert load_config().storage.backend == "sql"


def test_configure_logging_leaves_existing_handlers_alone():
    root = logging.getLogger()
    marker = logging.NullHandler()
    root.addHandler(marker)
    try:
        before = list(root.handlers)
        configure_logging()
        assert root.handlers == before
    finally:
        root.removeHandler(marker)


def test_logging_config_routes_formflow_and_uvicorn_to_stdout():
    loggers = _DICT_CONFIG["loggers"]
    assert loggers["formflow"]["propagate"] is True
    assert all(loggers[name]["propagate"] is False for name in ("uvicorn", "uvicorn.error", "uvicorn.access"))
    assert _DICT_CONFIG["handlers"]["console"]["stream"] == "ext://sys.stdout"
