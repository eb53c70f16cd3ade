"""
Configuration Schemas.

One pydantic model per file in config/settings/, validated when AppConfig
loads. Unknown keys, missing keys and out-of-range values fail at startup
with the offending file named.

    application.yaml  -> ApplicationSchema
    database.yaml     -> DatabaseSchema
    logging.yaml      -> LoggingSchema
    features.yaml     -> FeaturesSchema
    security.yaml     -> SecuritySchema
    notes.yaml        -> NotesSchema
    concurrency.yaml  -> ConcurrencySchema

The note policy models carry defaults so tests and tools can build them
without a YAML file.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

Port = Annotated[int, Field(ge=1, le=65535)]
PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]

Environment = Literal["development", "staging", "production", "test"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class _StrictBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


# --- application.yaml --------------------------------------------------------


class ServerSchema(_StrictBase):
    host: str
    port: Port


class CorsSchema(_StrictBase):
    origins: list[str]


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: Environment
    debug: bool
    api_prefix: str = Field(pattern=r"^/")
    docs_enabled: bool
    server: ServerSchema
    cors: CorsSchema


# --- database.yaml -----------------------------------------------------------


class BrokerSchema(_StrictBase):
    queue_name: str
    result_expiry_seconds: PositiveInt


class RedisSchema(_StrictBase):
    host: str
    port: Port
    db: NonNegativeInt
    broker: BrokerSchema


class DatabaseSchema(_StrictBase):
    """PostgreSQL pool settings; the password is the DB_PASSWORD secret."""

    host: str
    port: Port
    name: str
    user: str
    pool_size: PositiveInt
    max_overflow: NonNegativeInt
    pool_timeout: PositiveInt
    pool_recycle: int
    echo: bool
    echo_pool: bool
    redis: RedisSchema


# --- logging.yaml ------------------------------------------------------------


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: PositiveInt
    backup_count: NonNegativeInt


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: LogLevel
    format: Literal["json", "console"]
    handlers: HandlersSchema


# --- features.yaml -----------------------------------------------------------


class FeaturesSchema(_StrictBase):
    expiry_sweeper_enabled: bool
    note_search_enabled: bool
    security_startup_checks_enabled: bool
    api_detailed_errors: bool


# --- security.yaml -----------------------------------------------------------


class CapabilityTokenSchema(_StrictBase):
    """Capability tokens never expire unless token_lifetime_minutes is set."""

    algorithm: str
    token_lifetime_minutes: PositiveInt | None = None


class SecretsValidationSchema(_StrictBase):
    token_secret_min_length: PositiveInt


class CorsEnforcementSchema(_StrictBase):
    enforce_in_production: bool
    allow_methods: list[str]
    allow_headers: list[str]


class SecuritySchema(_StrictBase):
    capability: CapabilityTokenSchema
    secrets_validation: SecretsValidationSchema
    cors: CorsEnforcementSchema


# --- notes.yaml --------------------------------------------------------------


class PassphrasePolicySchema(_StrictBase):
    min_length: PositiveInt = 4
    max_length: PositiveInt = 1024


class TitlePolicySchema(_StrictBase):
    min_length: PositiveInt = 4
    max_length: PositiveInt = 255


class LifetimePolicySchema(_StrictBase):
    min_seconds: PositiveInt = 31
    max_seconds: PositiveInt = 4294967295


class IdentifierSchema(_StrictBase):
    length: PositiveInt = 6
    # No 0/O, 1/l/I
    alphabet: str = Field(
        default="23456789abcdefghijkmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ",
        min_length=2,
    )
    custom_max_length: PositiveInt = 64
    max_attempts: PositiveInt = 32


class SearchSchema(_StrictBase):
    default_limit: PositiveInt = 5
    max_limit: PositiveInt = 50


class SweeperSchema(_StrictBase):
    interval_seconds: PositiveInt = 2700
    cron: str = "*/45 * * * *"


class NotesSchema(_StrictBase):
    passphrase: PassphrasePolicySchema
    title: TitlePolicySchema
    lifetime: LifetimePolicySchema
    identifiers: IdentifierSchema
    search: SearchSchema
    sweeper: SweeperSchema


# --- concurrency.yaml --------------------------------------------------------


class ThreadPoolSchema(_StrictBase):
    max_workers: PositiveInt


class ShutdownSchema(_StrictBase):
    drain_seconds: NonNegativeInt


class ConcurrencySchema(_StrictBase):
    thread_pool: ThreadPoolSchema
    shutdown: ShutdownSchema
