"""Provider configuration contract."""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_VERSION = "v16.0"
DEFAULT_GRAPH_URL = "https://graph.facebook.com"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    meta_jwt_token: str = Field(alias="META_JWT_TOKEN", default="")
    meta_number_id: str = Field(alias="META_NUMBER_ID", default="")
    meta_verify_token: str = Field(alias="META_VERIFY_TOKEN", default="")
    meta_api_version: str = Field(alias="META_API_VERSION", default=DEFAULT_API_VERSION)
    meta_graph_url: str = Field(alias="META_GRAPH_URL", default=DEFAULT_GRAPH_URL)

    # Webhook listener
    port: int = Field(alias="PORT", default=3000)
    bind_host: str = Field(alias="BIND_HOST", default="0.0.0.0")
    webhook_path: str = Field(alias="WEBHOOK_PATH", default="/webhook")

    queue_interval_ms: int = Field(alias="QUEUE_INTERVAL_MS", default=100)
    http_timeout_seconds: float = Field(alias="HTTP_TIMEOUT_SECONDS", default=20.0)

    media_dir: str = Field(
        alias="MEDIA_DIR",
        default=str(Path(tempfile.gettempdir()) / "metaprovider"),
    )
    media_max_bytes: int = Field(alias="MEDIA_MAX_BYTES", default=100 * 1024 * 1024)
    ffmpeg_binary: str = Field(alias="FFMPEG_BINARY", default="ffmpeg")
    audio_bitrate: str = Field(alias="AUDIO_BITRATE", default="64k")


def validate_settings_for_env(settings: Settings) -> None:
    if settings.queue_interval_ms < 0:
        raise ValueError("invalid configuration: QUEUE_INTERVAL_MS must be >= 0")
    if not settings.webhook_path.startswith("/"):
        raise ValueError("invalid configuration: WEBHOOK_PATH must start with '/'")

    if settings.app_env != "prod":
        return

    missing: list[str] = []
    required_non_empty = {
        "META_JWT_TOKEN": settings.meta_jwt_token,
        "META_NUMBER_ID": settings.meta_number_id,
        "META_VERIFY_TOKEN": settings.meta_verify_token,
        "META_API_VERSION": settings.meta_api_version,
    }
    for key, value in required_non_empty.items():
        if not value.strip():
            missing.append(key)
    if not settings.meta_graph_url.startswith("https://"):
        missing.append("META_GRAPH_URL(https required)")

    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ValueError(f"invalid production configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
