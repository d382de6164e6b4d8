from __future__ import annotations

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_DB_PATH = "data/guestbook.db"
DEFAULT_POOL_SIZE = 10
DEFAULT_CACHE_TTL = 3600


class Settings(BaseSettings):
    db_path: str = Field(default=DEFAULT_DB_PATH, alias="GUESTBOOK_DB_PATH")
    db_pool_size: int = Field(default=DEFAULT_POOL_SIZE, ge=1, alias="GUESTBOOK_DB_POOL_SIZE")

    redis_host: str | None = Field(default=None, alias="REDIS_HOST")
    redis_port: int | None = Field(default=None, ge=1, le=65535, alias="REDIS_PORT")
    redis_password: SecretStr | None = Field(default=None, alias="REDIS_PASSWORD")

    cache_backend: str | None = Field(default=None, alias="GUESTBOOK_CACHE", description="'memory' without Redis")
    cache_ttl: int = Field(default=DEFAULT_CACHE_TTL, ge=1, alias="GUESTBOOK_CACHE_TTL")

    cors_origins: str = Field(default="*", alias="GUESTBOOK_CORS_ORIGINS", description="Comma separated")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("db_path", mode="before")
    @classmethod
    def _require_db_path(cls, value):
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("GUESTBOOK_DB_PATH is set but empty.")
        return value

    @field_validator("redis_host", "redis_port", "redis_password", "cache_backend", mode="before")
    @classmethod
    def _blank_as_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("cache_backend", "log_level")
    @classmethod
    def _normalize_case(cls, value, info):
        if value is None:
            return value
        return value.strip().upper() if info.field_name == "log_level" else value.strip().lower()

    @classmethod
    def from_env(cls) -> "Settings":
        try:
            return cls()
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid guestbook configuration: {exc}") from exc

    @property
    def redis_configured(self) -> bool:
        return bool(self.redis_host and self.redis_port)

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
