from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load project-root .env early so both pydantic-settings and any direct os.getenv access
# see consistent values, even if the process CWD is not the repo root.
_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
_IN_TEST = (os.getenv("ENVIRONMENT") or "").lower() == "test" or bool(os.getenv("PYTEST_CURRENT_TEST"))
if _ENV_PATH.exists() and not _IN_TEST:
    load_dotenv(dotenv_path=_ENV_PATH, override=True)


def _parse_str_list(raw: Any) -> list[str]:
    if raw is None:
        return []

    items: list[Any]
    if isinstance(raw, (list, tuple, set)):
        items = list(raw)
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            return []

        # Support JSON array string or comma-separated string.
        if s.startswith("["):
            try:
                parsed = json.loads(s)
                items = parsed if isinstance(parsed, list) else [parsed]
            except ValueError:
                items = [p.strip() for p in s.strip("[]").split(",")]
        else:
            items = [p.strip() for p in s.split(",")]
    else:
        items = [raw]

    values: list[str] = []
    for item in items:
        if item is None:
            continue
        value = str(item).strip().strip('"').strip()
        if value:
            values.append(value)
    return values


class Settings(BaseSettings):
    app_name: str = Field(default="EduPath Recommendation Engine")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=True)

    # Database configuration
    # DB_URL / ORM_DB_URL take precedence over the discrete MySQL components.
    db_url: str | None = Field(default=None, validation_alias="DB_URL")
    orm_db_url: str | None = Field(default=None, validation_alias="ORM_DB_URL")
    orm_use_mysql: bool = Field(default=False, validation_alias="ORM_USE_MYSQL")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=3306, validation_alias="DB_PORT")
    db_name: str = Field(default="edupath", validation_alias="DB_NAME")
    db_user: str = Field(default="root", validation_alias="DB_USER")
    db_password: str = Field(default="password", validation_alias="DB_PASSWORD")
    db_charset: str = Field(default="utf8mb4", validation_alias="DB_CHARSET")
    # Applied as driver-level read/write timeouts for catalog queries and link inserts.
    db_timeout_seconds: int = Field(default=10, validation_alias="DB_TIMEOUT_SECONDS")

    # Tokens are issued by the platform's auth service; we only verify them.
    jwt_secret: str = Field(default="change-me")
    jwt_algorithm: str = Field(default="HS256")

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        validation_alias="CORS_ORIGINS",
    )

    # Generative model
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_base_url: str | None = Field(default=None, validation_alias="OPENAI_BASE_URL")
    llm_timeout_seconds: float = Field(default=60.0, validation_alias="LLM_TIMEOUT_SECONDS")
    llm_max_retries: int = Field(default=2, validation_alias="LLM_MAX_RETRIES")

    # Clarify endpoint
    clarify_language: str = Field(default="English", validation_alias="CLARIFY_LANGUAGE")
    clarify_max_words: int = Field(default=250, ge=20, validation_alias="CLARIFY_MAX_WORDS")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _validate_cors_origins(cls, v: Any) -> list[str]:
        return _parse_str_list(v)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def build_sqlalchemy_db_url(settings: Settings) -> str:
    if settings.orm_db_url:
        return settings.orm_db_url

    if settings.db_url:
        return settings.db_url

    # In development, default ORM to sqlite unless explicitly configured.
    if settings.environment.lower() == "development" and not settings.orm_use_mysql:
        return "sqlite:///./dev.db"

    # NOTE: password may include special chars; safest is to rely on DB_URL for complex passwords.
    return (
        f"mysql+pymysql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        f"?charset={settings.db_charset}"
    )
