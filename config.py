import json
from functools import lru_cache
from typing import Annotated, List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="HudumaTech Backend")
    supabase_url: str = Field(default="")
    supabase_key: str = Field(default="")
    expo_access_token: str | None = Field(default=None)
    # NoDecode keeps the raw env string so both comma and JSON forms reach the validator
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    catalog_cache_ttl: float = Field(default=300.0)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
