"""
Connection settings for the active record layer.

Settings can be given explicitly (keyword arguments or a mapping passed to
``create_instance``) or loaded from the environment, e.g.::

    DB_DRIVER=postgres
    DB_CONNECTION__HOST=localhost
    DB_CONNECTION__USER=postgres
    DB_CONNECTION__DATABASE=app
    DB_POOL__SIZE=10
"""
from functools import lru_cache
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


Driver = Literal["sqlite", "postgres", "mysql"]


class ConnectionSettings(BaseModel):
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None


class PoolSettings(BaseModel):
    size: Optional[int] = Field(None, ge=0)
    max_overflow: Optional[int] = None
    timeout: Optional[float] = Field(None, gt=0)
    recycle: Optional[int] = None
    pre_ping: bool = False

    def engine_options(self) -> Dict[str, Any]:
        options = {
            "pool_size": self.size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.timeout,
            "pool_recycle": self.recycle,
        }
        options = {key: value for key, value in options.items() if value is not None}
        if self.pre_ping:
            options["pool_pre_ping"] = True
        return options


class DatabaseSettings(BaseSettings):
    driver: Driver = "sqlite"
    # SQLite file path, database name, full URL or host/user/... mapping
    connection: Optional[Union[str, ConnectionSettings]] = None
    pool: PoolSettings = Field(default_factory=PoolSettings)
    echo: bool = False

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> DatabaseSettings:
    return DatabaseSettings()


__all__ = ["ConnectionSettings", "DatabaseSettings", "PoolSettings", "get_settings"]
