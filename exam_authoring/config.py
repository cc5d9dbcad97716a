"""Configuration utilities for the exam authoring service.

This module loads application configuration with the following rules:
- Primary source: `exam_authoring.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG_FILE = Path("exam_authoring.json")
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


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AuthConfig(BaseModel):
    user_header: str = Field(default="X-User-Id", min_length=1)


class SyncConfig(BaseModel):
    ephemeral_prefix: str = Field(default="temp-", min_length=1)
    max_sections: int = Field(default=200, gt=0)
    max_questions_per_section: int = Field(default=500, gt=0)
    max_options_per_question: int = Field(default=50, gt=0)

    @field_validator("ephemeral_prefix")
    @classmethod
    def prefix_must_not_look_like_uuid(cls, v: str) -> str:
        # Storage ids are UUID4 hex groups; a prefix made only of hex digits
        # and dashes could collide with a real identifier.
        if all(ch in "0123456789abcdefABCDEF-" for ch in v):
            raise ValueError("sync.ephemeral_prefix must contain a non-hex character")
        return v


class AppConfig(BaseModel):
    database: DatabaseConfig
    auth: AuthConfig
    sync: SyncConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def _truthy(value: object) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) exam_authoring.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG_FILE)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: str) -> str:
        value = _env(env_key) or _read_config_file(file_key) or _base(base_key) or default
        return str(value).strip()

    dsn = _pick("DATABASE_URL", "database.url", "database.dsn", "sqlite+pysqlite:///:memory:")
    auto_apply = _pick("AUTO_APPLY_MIGRATIONS", "database.auto_apply_migrations", "database.auto_apply_migrations", "true")
    user_header = _pick("AUTH_USER_HEADER", "auth.user_header", "auth.user_header", "X-User-Id")
    prefix = _pick("SYNC_EPHEMERAL_PREFIX", "sync.ephemeral_prefix", "sync.ephemeral_prefix", "temp-")
    max_sections = _pick("SYNC_MAX_SECTIONS", "sync.max_sections", "sync.max_sections", "200")
    max_questions = _pick("SYNC_MAX_QUESTIONS_PER_SECTION", "sync.max_questions_per_section", "sync.max_questions_per_section", "500")
    max_options = _pick("SYNC_MAX_OPTIONS_PER_QUESTION", "sync.max_options_per_question", "sync.max_options_per_question", "50")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_truthy(auto_apply)),
            auth=AuthConfig(user_header=user_header),
            sync=SyncConfig(
                ephemeral_prefix=prefix,
                max_sections=int(max_sections),
                max_questions_per_section=int(max_questions),
                max_options_per_question=int(max_options),
            ),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loaded once."""
    return load_config()


__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "SyncConfig",
    "get_config",
    "load_config",
]
