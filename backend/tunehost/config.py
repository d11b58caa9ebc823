"""TuneHost configuration: Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "TuneHost"
    debug: bool = False
    log_level: str = "INFO"

    # Network
    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = "/api"
    cors_origins: list[str] = ["*"]

    # Storage paths (relative resolved from backend/ at runtime)
    music_dir: str = "./music"
    public_dir: str = "./public"

    # Shared secret for destructive catalog operations
    admin_password: str = "admin"

    # Metadata cache
    cache_ttl_seconds: int = 7200
    cache_max_entries: int = 500
    cache_check_period_seconds: int = 120

    # Streaming
    stream_chunk_size: int = 64 * 1024

    # Remote ingestion
    download_timeout_seconds: float = 300.0
    reject_duplicate_downloads: bool = True

    uvicorn_workers: int = 1

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="TUNEHOST_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["*"]

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure storage directories are absolute."""
        base = Path(__file__).resolve().parent.parent  # backend/
        for field in ("music_dir", "public_dir"):
            val = getattr(self, field)
            if not Path(val).is_absolute():
                setattr(self, field, str(base / val))
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
