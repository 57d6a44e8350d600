"""
Centralised settings loader.

Every value can be overridden through the environment or a local `.env`
file; unknown variables are ignored so the same `.env` can be shared with
the frontend build.
"""

from __future__ import annotations
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ───────────────────────────────────────────────
    env_name: str = Field("local", validation_alias="ENV_NAME")
    database_url: str = Field(
        "sqlite+aiosqlite:///./mess.db", validation_alias="DATABASE_URL"
    )
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    # comma separated: CORS_ORIGINS=https://a.org,https://b.org
    cors_origins: Annotated[list[str], NoDecode] = Field(
        ["*"], validation_alias="CORS_ORIGINS"
    )

    # ─── auth ───────────────────────────────────────────────────────
    jwt_secret: str = Field("changeme", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")

    # ─── mess / tokens ──────────────────────────────────────────────
    mess_timezone: str = Field("UTC", validation_alias="MESS_TIMEZONE")
    default_college: str = Field("default", validation_alias="DEFAULT_COLLEGE")
    token_code_prefix: str = Field("MT", validation_alias="TOKEN_CODE_PREFIX")
    token_code_attempts: int = Field(3, validation_alias="TOKEN_CODE_ATTEMPTS")

    model_config = SettingsConfigDict(
        extra="ignore", env_file=".env", env_file_encoding="utf-8"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
