"""Unit tests for configuration loading and validation."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from exam_authoring import config as config_module
from exam_authoring.config import SyncConfig, load_config

_ENV_KEYS = [
    "DATABASE_URL",
    "AUTO_APPLY_MIGRATIONS",
    "AUTH_USER_HEADER",
    "SYNC_EPHEMERAL_PREFIX",
    "SYNC_MAX_SECTIONS",
    "SYNC_MAX_QUESTIONS_PER_SECTION",
    "SYNC_MAX_OPTIONS_PER_QUESTION",
]


@pytest.fixture()
def isolated(tmp_path, monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(config_module, "ROOT_CONFIG_FILE", tmp_path / "exam_authoring.json")
    return tmp_path


def test_defaults_when_nothing_is_configured(isolated):
    cfg = load_config()

    assert cfg.database.dsn == "sqlite+pysqlite:///:memory:"
    assert cfg.database.auto_apply_migrations is True
    assert cfg.auth.user_header == "X-User-Id"
    assert cfg.sync == SyncConfig()


def test_json_file_is_the_base(isolated):
    (isolated / "exam_authoring.json").write_text(
        json.dumps({"database": {"dsn": "sqlite:///x.db", "auto_apply_migrations": False}, "sync": {"max_sections": 7}}),
        encoding="utf-8",
    )

    cfg = load_config()

    assert cfg.database.dsn == "sqlite:///x.db"
    assert cfg.database.auto_apply_migrations is False
    assert cfg.sync.max_sections == 7


def test_env_overrides_config_dir_overrides_json(isolated, monkeypatch):
    (isolated / "exam_authoring.json").write_text(json.dumps({"auth": {"user_header": "X-From-Json"}}), encoding="utf-8")
    (isolated / "config").mkdir()
    (isolated / "config" / "auth.user_header").write_text("X-From-File\n", encoding="utf-8")

    assert load_config().auth.user_header == "X-From-File"

    monkeypatch.setenv("AUTH_USER_HEADER", "X-From-Env")
    assert load_config().auth.user_header == "X-From-Env"


def test_hex_only_prefix_is_rejected(isolated, monkeypatch):
    monkeypatch.setenv("SYNC_EPHEMERAL_PREFIX", "abc-")
    with pytest.raises(PydanticValidationError):
        load_config()


def test_non_positive_limits_are_rejected():
    with pytest.raises(PydanticValidationError):
        SyncConfig(max_options_per_question=0)
