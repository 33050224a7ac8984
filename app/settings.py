from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3001, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    user_agent: str = Field(
        default="disaster-watch/0.1", validation_alias="USER_AGENT"
    )

    reddit_client_id: str | None = Field(
        default=None, validation_alias="REDDIT_CLIENT_ID"
    )
    reddit_client_secret: str | None = Field(
        default=None, validation_alias="REDDIT_CLIENT_SECRET"
    )
    reddit_username: str | None = Field(
        default=None, validation_alias="REDDIT_USERNAME"
    )
    reddit_pace_seconds: float = Field(
        default=0.3, validation_alias="REDDIT_PACE_SECONDS"
    )

    cache_ttl_seconds: float = Field(
        default=180.0, validation_alias="CACHE_TTL_SECONDS"
    )
    source_timeout_seconds: float = Field(
        default=10.0, validation_alias="SOURCE_TIMEOUT_SECONDS"
    )
