from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The runtime assets directory must contain one sub-directory per runtime
    flavor (``release/`` and ``compat/``), each holding ``love.js``,
    ``love.wasm`` and a ``theme/`` folder. The release flavor additionally
    ships ``love.worker.js``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Runtime
    runtime_assets_dir: Path = Path("runtime")

    # Job staging. None uses the platform temp directory.
    temp_dir: Optional[Path] = None

    # Remote inputs
    max_redirects: int = 5
    download_timeout_seconds: float = 30.0
    max_download_bytes: int = 256 * 1024 * 1024
    allow_private_networks: bool = False

    # String references that are neither URLs nor data URIs are treated as
    # server-local paths. Off by default: only trusted deployments enable it.
    allow_local_paths: bool = False

    # Packaging defaults
    default_title: str = "Love Game"
    default_memory: int = 67108864

    # CORS - comma-separated list of allowed origins.
    cors_origins: list[str] = ["*"]

    # Rate limiting - SlowAPI format, e.g. "10/minute", "100/hour".
    compile_rate_limit: str = "30/minute"
    publish_rate_limit: str = "5/minute"

    # Share links and publishing
    shared_link_ttl_seconds: int = 3600
    public_base_url: str = ""
    delivery_upload_url: str = ""
    delivery_api_key: str = ""

    # Sentry - leave blank to disable error capture.
    sentry_dsn: str = ""

    # App
    debug: bool = True

    @field_validator("max_redirects")
    @classmethod
    def non_negative_redirects(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_redirects must be >= 0")
        return v

    @field_validator("public_base_url", "delivery_upload_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


def get_settings() -> Settings:
    return Settings()
