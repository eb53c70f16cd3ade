"""
Configuration Management.

Two sources, nothing hardcoded:

    config/.env              secrets only: DB_PASSWORD, REDIS_PASSWORD, TOKEN_SECRET
                             (environment variables take precedence)
    config/settings/*.yaml   everything else, one validated schema per file

    application.yaml   identity, server, CORS origins, API prefix
    database.yaml      PostgreSQL pool and the Redis instance behind taskiq
    logging.yaml       level, format, handlers
    features.yaml      feature flags
    security.yaml      capability token signing, secret policy, CORS enforcement
    notes.yaml         passphrase/title/lifetime bounds, identifiers, search, sweeper
    concurrency.yaml   thread pool size, shutdown timing

Both are read once and cached; tests call cache_clear() on the accessors.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from notevault.backend.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    DatabaseSchema,
    FeaturesSchema,
    LoggingSchema,
    NotesSchema,
    SecuritySchema,
)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

PROJECT_MARKER = ".project_root"


def find_project_root() -> Path:
    """Walk up from the working directory to the directory holding .project_root."""
    current = Path.cwd()
    while current != current.parent:
        if (current / PROJECT_MARKER).exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Read config/settings/<filename>; an empty file yields {}."""
    config_path = find_project_root() / "config" / "settings" / filename
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Secrets. Never logged and never printed by `run.py --action config`."""

    db_password: str
    redis_password: str = ""
    token_secret: str

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type[SchemaT], filename: str) -> SchemaT:
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {filename}:\n{e}") from e


SECTION_FILES: dict[str, str] = {
    "application": "application.yaml",
    "database": "database.yaml",
    "logging": "logging.yaml",
    "features": "features.yaml",
    "security": "security.yaml",
    "notes": "notes.yaml",
    "concurrency": "concurrency.yaml",
}


class AppConfig(BaseModel):
    """
    Validated YAML configuration, one attribute per settings file.

    load() reads and checks every file up front, so a bad file fails at
    startup rather than on first use.
    """

    application: ApplicationSchema
    database: DatabaseSchema
    logging: LoggingSchema
    features: FeaturesSchema
    security: SecuritySchema
    notes: NotesSchema
    concurrency: ConcurrencySchema

    @classmethod
    def load(cls) -> "AppConfig":
        sections = {
            name: _load_validated(cls.model_fields[name].annotation, filename)
            for name, filename in SECTION_FILES.items()
        }
        return cls(**sections)


@lru_cache
def get_settings() -> Settings:
    """Cached secrets; config/.env is optional when the environment provides them."""
    return Settings(_env_file=str(find_project_root() / "config" / ".env"))


@lru_cache
def get_app_config() -> AppConfig:
    """Cached YAML configuration."""
    return AppConfig.load()


def get_database_url(async_driver: bool = True) -> str:
    """
    PostgreSQL URL for the note store.

    Args:
        async_driver: asyncpg URL for the application, driverless postgresql:// for external tools
    """
    db = get_app_config().database
    password = get_settings().db_password
    driver = "postgresql+asyncpg" if async_driver else "postgresql"
    return f"{driver}://{db.user}:{password}@{db.host}:{db.port}/{db.name}"


def get_redis_url() -> str:
    """Redis URL for the taskiq broker and result backend."""
    redis = get_app_config().database.redis
    password = get_settings().redis_password
    return f"redis://:{password}@{redis.host}:{redis.port}/{redis.db}"
