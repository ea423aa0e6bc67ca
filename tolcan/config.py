"""
Configuration settings for tolcan.

Uses Pydantic Settings to load the database connection parameters and
logging preferences from the environment (or a `.env` file). A `Database`
is always constructed from an explicit `DatabaseSettings` instance; the
cached `get_settings()` accessor exists for the CLI and scripts.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    # Connection
    host: str = Field("localhost", alias="DB_HOST")
    port: int = Field(5432, alias="DB_PORT")
    database: str = Field(..., alias="DB_NAME")
    user: str = Field(..., alias="DB_USER")
    password: SecretStr = Field(..., alias="DB_PASSWORD")
    ssl: bool = Field(False, alias="DB_SSL")

    # Pool
    pool_min: int = Field(1, alias="DB_POOL_MIN")
    pool_max: int = Field(20, alias="DB_POOL_MAX")
    idle_timeout_ms: int = Field(30_000, alias="DB_IDLE_TIMEOUT_MS")
    connect_timeout_ms: int = Field(2_000, alias="DB_CONNECT_TIMEOUT_MS")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def dsn(self) -> str:
        """Compose a DSN string from the connection fields."""
        return (
            f"postgresql://{self.user}:{self.password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    def pool_kwargs(self) -> dict:
        """
        Keyword arguments for `asyncpg.create_pool`.

        Millisecond timeouts are converted to the seconds asyncpg expects, and
        the minimum pool size is capped by the maximum.
        """
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password.get_secret_value(),
            "ssl": True if self.ssl else None,
            "min_size": min(self.pool_min, self.pool_max),
            "max_size": self.pool_max,
            "max_inactive_connection_lifetime": self.idle_timeout_ms / 1000,
            "timeout": self.connect_timeout_ms / 1000,
        }


@lru_cache(maxsize=1)
def get_settings() -> DatabaseSettings:
    """
    Retrieve a cached instance of DatabaseSettings to avoid repeated env parsing.
    """
    return DatabaseSettings()


__all__ = ["DatabaseSettings", "get_settings"]
