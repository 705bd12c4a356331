"""Global configuration using Pydantic settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application wide settings loaded from environment variables."""

    base_dir: Path = Field(default_factory=lambda: Path("recordings"))
    database_path: Path = Field(default_factory=lambda: Path("pinnote.db"))
    session_prefix: str = "session"
    log_key: str = "SESSION_LOGS"

    sample_rate: int = 16_000
    channels: int = 1
    block_size: int = 1024
    input_device: Optional[str] = None

    ffmpeg_binary: str = "ffmpeg"
    window_seconds: float = 15.0

    proxy_url: str = "http://localhost:8787"
    whisper_route: str = "/whisper"
    chat_route: str = "/chat"
    request_timeout: float = 60.0

    transcription_backend: str = "proxy"
    transcription_model: str = "whisper-1"
    transcription_language: Optional[str] = "en"
    transcription_prompt: str = "This audio might contain no speech.$"

    correction_backend: str = "proxy"
    correction_model: str = "o3-mini-2025-01-31"
    correction_fallback_model: Optional[str] = "gpt-4"
    correction_max_tokens: int = 100
    correction_temperature: float = 0.7

    speech_backend: str = "openai"
    speech_model: str = "gpt-4o-mini-tts"
    speech_voice: str = "alloy"

    openai_api_key: Optional[str] = None

    pin_notice_seconds: float = 1.0
    clip_playback_limit: Optional[float] = 16.0

    model_config = SettingsConfigDict(
        env_prefix="PINNOTE_",
        env_file=".env",
        case_sensitive=False,
    )

    @property
    def proxy_base_url(self) -> str:
        return self.proxy_url.rstrip("/")


_settings: Optional[Settings] = None

_ENV_PREFIX: str = (Settings.model_config.get("env_prefix") or "").upper()


@dataclass
class EnvironmentSetting:
    """A configuration option together with the variable that overrides it."""

    field: str
    env_name: str
    value: Any
    default: Any


def _field_default(field_info) -> Any:
    if field_info.default_factory is not None:  # type: ignore[truthy-function]
        return field_info.default_factory()
    return field_info.default


def list_environment_settings(settings: Optional[Settings] = None) -> Iterable[EnvironmentSetting]:
    """Yield every setting with its environment variable, value and default."""

    settings = settings or get_settings()
    for name, field in Settings.model_fields.items():
        yield EnvironmentSetting(
            field=name,
            env_name=f"{_ENV_PREFIX}{name}".upper(),
            value=getattr(settings, name),
            default=_field_default(field),
        )


def get_settings() -> Settings:
    """Return a singleton instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""

    global _settings
    _settings = None


__all__ = [
    "EnvironmentSetting",
    "Settings",
    "get_settings",
    "list_environment_settings",
    "reset_settings",
]
