"""Configuration utilities for the form builder service.

This module loads application configuration with the following rules:
- Primary source: `formbuilder_config.json` in the working directory.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG_FILE = Path("formbuilder_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
DEV_JWT_SECRET = "formbuilder-development-only-signing-key"
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


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_migrate: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AuthConfig(BaseModel):
    jwt_secret: str
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: Optional[str] = None

    @field_validator("jwt_secret")
    @classmethod
    def secret_must_be_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("auth.jwt_secret must be a non-empty string")
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def algorithm_must_be_allowed(cls, v: str) -> str:
        allowed = {"HS256", "HS384", "HS512"}
        if v not in allowed:
            raise ValueError(f"auth.jwt_algorithm must be one of {sorted(allowed)}")
        return v


class CorsConfig(BaseModel):
    origins: List[str] = Field(default_factory=lambda: ["*"])


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)


class PaginationConfig(BaseModel):
    default_page_size: int = Field(default=10, gt=0)
    max_page_size: int = Field(default=100, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    auth: AuthConfig
    cors: CorsConfig
    server: ServerConfig
    pagination: PaginationConfig


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
    3) formbuilder_config.json in the working directory
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

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or DEFAULT_DSN
    )
    auto_migrate_text = (
        _env("FORMBUILDER_AUTO_MIGRATE")
        or _read_config_file("database.auto_migrate")
        or _base("database.auto_migrate", "true")
    )

    # Identity provider tokens
    jwt_secret = _env("FORMBUILDER_JWT_SECRET") or _read_config_file("auth.jwt_secret") or _base("auth.jwt_secret")
    if not jwt_secret:
        logger.warning("No JWT secret configured; using the development secret")
        jwt_secret = DEV_JWT_SECRET
    jwt_algorithm = _env("FORMBUILDER_JWT_ALGORITHM") or _read_config_file("auth.jwt_algorithm") or _base("auth.jwt_algorithm", "HS256")
    jwt_audience = _env("FORMBUILDER_JWT_AUDIENCE") or _read_config_file("auth.jwt_audience") or _base("auth.jwt_audience")

    # HTTP surface
    origins_text = _env("FORMBUILDER_CORS_ORIGINS") or _read_config_file("cors.origins") or _base("cors.origins", "*")
    host = _env("FORMBUILDER_HOST") or _base("server.host", "127.0.0.1")
    port_text = _env("FORMBUILDER_PORT") or _base("server.port", "8000")
    default_page_text = _env("FORMBUILDER_DEFAULT_PAGE_SIZE") or _base("pagination.default_page_size", "10")
    max_page_text = _env("FORMBUILDER_MAX_PAGE_SIZE") or _base("pagination.max_page_size", "100")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_migrate=_truthy(auto_migrate_text)),
            auth=AuthConfig(
                jwt_secret=jwt_secret,
                jwt_algorithm=str(jwt_algorithm).strip(),
                jwt_audience=jwt_audience or None,
            ),
            cors=CorsConfig(origins=[o.strip() for o in str(origins_text).split(",") if o.strip()]),
            server=ServerConfig(host=host, port=int(str(port_text).strip())),
            pagination=PaginationConfig(
                default_page_size=int(str(default_page_text).strip()),
                max_page_size=int(str(max_page_text).strip()),
            ),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "AuthConfig",
    "CorsConfig",
    "DatabaseConfig",
    "PaginationConfig",
    "ServerConfig",
    "load_config",
]
