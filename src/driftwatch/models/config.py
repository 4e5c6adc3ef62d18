"""Configuration models for Driftwatch.

All settings are read from the environment with the DRIFTWATCH_ prefix,
e.g. DRIFTWATCH_DATABASE_URL, DRIFTWATCH_CACHE__TTL_SEC.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class CacheSettings(BaseModel):
    """TTL cache sizing for threshold lookups."""

    ttl_sec: float = Field(
        default=60.0,
        gt=0,
        description="Seconds an entry stays valid after it is written",
    )
    max_entries: int = Field(
        default=1000,
        ge=1,
        description="Entries kept before the soonest-expiring one is evicted",
    )


class PoolSettings(BaseModel):
    """asyncpg pool sizing."""

    min_size: int = Field(default=2, ge=0)
    max_size: int = Field(default=5, ge=1)


class DriftwatchConfig(BaseSettings):
    """Main configuration for the Driftwatch API and CLI."""

    database_url: str | None = Field(
        default=None,
        description="PostgreSQL DSN; when unset the API serves from an in-memory store",
    )
    api_url: str = Field(
        default="http://localhost:4000",
        description="Base URL used by the CLI to submit reports",
    )
    default_min_sample_size: int = Field(
        default=2,
        ge=1,
        description="min_sample_size applied when a new threshold omits it",
    )
    host: str = Field(default="127.0.0.1", description="Bind address for `driftwatch serve`")
    port: int = Field(default=4000, ge=1, le=65535, description="Bind port for `driftwatch serve`")
    log_level: str = Field(default="INFO", description="Root log level")

    cache: CacheSettings = Field(default_factory=CacheSettings)
    pool: PoolSettings = Field(default_factory=PoolSettings)

    model_config = {"env_prefix": "DRIFTWATCH_", "env_nested_delimiter": "__"}
