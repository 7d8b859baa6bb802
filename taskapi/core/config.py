from functools import lru_cache
from typing import Literal

from fastapi import Depends, Request
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Annotated


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: Literal["development", "production", "test"] = "development"
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]

    database_url: str = "sqlite+aiosqlite:///./taskapi.db"
    database_echo: bool = False
    create_tables_on_startup: bool = True

    cache_backend: Literal["redis", "memory"] = "redis"
    redis_dsn: str = "redis://localhost:6379/0"
    redis_pool_size: int = 5
    redis_socket_timeout: float = 5.0
    cache_namespace: str = ""
    memory_cache_maxsize: int = 4096
    task_list_ttl_seconds: int = 3600  # task list entries

    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 30

    default_page_limit: int = 10
    max_page_limit: int = 100

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
