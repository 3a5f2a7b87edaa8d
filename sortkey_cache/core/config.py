"""Cache configuration (settings and per-instance options).

Single source of truth for configuration. Uses pydantic-settings with
.env support. Settings describe the environment (where Redis lives,
default namespace and retention); CacheOptions describe one cache
instance and can be built from Settings or directly in code.
"""

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sortkey_cache.core.constants import (
    DEFAULT_MAX_RETAINED,
    DEFAULT_MIN_RETAINED,
    DEFAULT_SEPARATOR,
)


class DeletePolicy(str, Enum):
    """What delete(key) does to the history of a key."""

    # Write a tombstone at the genesis sort key; older reads stay answerable.
    TOMBSTONE = "tombstone"
    # Physically remove every version of the key.
    DESTRUCTIVE = "destructive"


def _check_separator(value: str) -> str:
    """Raise ValueError unless value is a single ASCII character below DEL."""
    if len(value) != 1 or ord(value) >= 0x7F:
        raise ValueError(
            f"Separator must be a single ASCII character, got: {value!r}"
        )
    return value


class Settings(BaseSettings):
    """Settings loaded from environment and .env.

    All fields have defaults; connection details are only consulted when
    a RedisStore is built from settings.
    """

    debug: bool = False

    # Redis: redis_url wins over host/port/db when set.
    redis_url: str | None = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_socket_timeout: float | None = 5.0

    # Cache
    cache_namespace: str = "sortkey-cache"
    cache_separator: str = DEFAULT_SEPARATOR
    cache_min_retained: int = DEFAULT_MIN_RETAINED
    cache_max_retained: int = DEFAULT_MAX_RETAINED
    cache_delete_policy: DeletePolicy = DeletePolicy.TOMBSTONE
    # Disable AOF and RDB snapshots on an owned connection (ephemeral caches).
    cache_in_memory: bool = False

    # OpenTelemetry spans around cache operations
    tracing_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("cache_separator")
    @classmethod
    def validate_separator(cls, value: str) -> str:
        return _check_separator(value)


class CacheOptions(BaseModel):
    """Options for one SortKeyCache instance.

    The min/max retention ordering is checked by SortKeyCache itself so
    the violation surfaces as ConfigurationError rather than a pydantic
    ValidationError.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(min_length=1)
    separator: str = DEFAULT_SEPARATOR
    min_retained: int = Field(default=DEFAULT_MIN_RETAINED, ge=1)
    max_retained: int = Field(default=DEFAULT_MAX_RETAINED, ge=1)
    delete_policy: DeletePolicy = DeletePolicy.TOMBSTONE
    in_memory: bool = False

    @field_validator("separator")
    @classmethod
    def validate_separator(cls, value: str) -> str:
        return _check_separator(value)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CacheOptions":
        """Build options from Settings (defaults to get_settings())."""
        settings = settings or get_settings()
        return cls(
            namespace=settings.cache_namespace,
            separator=settings.cache_separator,
            min_retained=settings.cache_min_retained,
            max_retained=settings.cache_max_retained,
            delete_policy=settings.cache_delete_policy,
            in_memory=settings.cache_in_memory,
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
