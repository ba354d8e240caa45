import re
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.settings import DEFAULT_PATHS_FILE, DEFAULT_TIME_COLUMN, ENV_FILE_PATH


TABLE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$")
COLUMN_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class HttpConfig(BaseModel):
    bind_addr: str = "127.0.0.1:8080"
    max_json_payload_size: int = Field(default=64 * 1024, gt=0)

    username: str | None = None
    password: str | None = None
    token: str | None = None

    @property
    def host(self) -> str:
        return self.bind_addr.rsplit(":", 1)[0]

    @property
    def port(self) -> int:
        return int(self.bind_addr.rsplit(":", 1)[1])

    @field_validator("bind_addr")
    @classmethod
    def validate_bind_addr(cls, bind_addr: str) -> str:
        host, sep, port = bind_addr.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"bind_addr must look like <host>:<port>, got '{bind_addr}'")
        return bind_addr


class ConnectionConfig(BaseModel):
    dsn: str | None = None
    host: str = "localhost"
    port: int = 5432
    user: str | None = None
    password: str | None = None
    dbname: str | None = None

    min_size: int = Field(default=0, ge=0)
    max_size: int = Field(default=10, gt=0)
    acquire_timeout: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def validate_pool_sizes(self) -> Self:
        if self.min_size > self.max_size:
            raise ValueError(f"min_size ({self.min_size}) cannot exceed max_size ({self.max_size})")
        return self

    def pool_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"min_size": self.min_size, "max_size": self.max_size}
        if self.dsn:
            kwargs["dsn"] = self.dsn
            return kwargs

        kwargs.update(host=self.host, port=self.port)
        if self.user is not None:
            kwargs["user"] = self.user
        if self.password is not None:
            kwargs["password"] = self.password
        if self.dbname is not None:
            kwargs["database"] = self.dbname
        return kwargs


class PostgresConfig(BaseModel):
    table: str
    time_column: str = DEFAULT_TIME_COLUMN
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)

    @field_validator("table")
    @classmethod
    def validate_table(cls, table: str) -> str:
        if not TABLE_NAME_RE.match(table):
            raise ValueError(f"Invalid table name '{table}'. Expected <table> or <schema>.<table>.")
        return table

    @field_validator("time_column")
    @classmethod
    def validate_time_column(cls, time_column: str) -> str:
        if not COLUMN_NAME_RE.match(time_column):
            raise ValueError(f"Invalid time column name '{time_column}'.")
        return time_column


class ServiceConfig(BaseSettings):
    """
    Process configuration from environment variables (and .env, when present).

    Nested keys use a double underscore, e.g. POSTGRESQL__TABLE or
    POSTGRESQL__CONNECTION__DSN.
    """
    http: HttpConfig = Field(default_factory=HttpConfig)
    postgresql: PostgresConfig
    disable_try_parse: bool = False
    paths_file: Path = DEFAULT_PATHS_FILE

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH) if ENV_FILE_PATH.is_file() else None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
