"""Application settings loaded from the environment, a .env file and a secrets directory."""

from __future__ import annotations

import os
import pathlib
import tempfile
from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from voicebot.core.errors import ConfigurationError

DEFAULT_SECRETS_DIR = "/run/secrets"

CREDENTIALS_MISSING_MESSAGE = "Credentials are not configured properly."
_CREDENTIAL_FIELDS = {"TELEGRAM_TOKEN", "OPENAI_API_KEY"}


def _default_download_dir() -> str:
    return str(pathlib.Path(tempfile.gettempdir()) / "voicebot")


class Settings(BaseSettings):
    """
    Configuration resolved once at startup.

    Precedence: init kwargs, environment, .env file, secrets directory.
    Only credentials and deployment-specific values belong here; fixed
    provider parameters live next to the client that uses them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------------------------------------------------------------------------
    # Credentials (required secrets)
    # ---------------------------------------------------------------------------
    telegram_token: str = Field(..., min_length=1, validation_alias="TELEGRAM_TOKEN")
    openai_api_key: str = Field(..., min_length=1, validation_alias="OPENAI_API_KEY")

    # ---------------------------------------------------------------------------
    # Endpoints and models (optional)
    # ---------------------------------------------------------------------------
    telegram_api_url: str = Field(default="https://api.telegram.org", validation_alias="TELEGRAM_API_URL")
    openai_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
    transcription_model: str = Field(default="whisper-1", validation_alias="TRANSCRIPTION_MODEL")
    summary_model: str = Field(default="gpt-3.5-turbo", validation_alias="SUMMARY_MODEL")

    # ---------------------------------------------------------------------------
    # Runtime config (optional)
    # ---------------------------------------------------------------------------
    download_dir: str = Field(default_factory=_default_download_dir, validation_alias="DOWNLOAD_DIR")
    http_timeout_seconds: float = Field(default=60.0, validation_alias="HTTP_TIMEOUT_SECONDS")
    stage_timeout_seconds: float | None = Field(default=120.0, validation_alias="STAGE_TIMEOUT_SECONDS")
    poll_timeout_seconds: int = Field(default=30, validation_alias="POLL_TIMEOUT_SECONDS")
    max_concurrent_updates: int = Field(default=8, validation_alias="MAX_CONCURRENT_UPDATES")
    shutdown_grace_seconds: float = Field(default=30.0, validation_alias="SHUTDOWN_GRACE_SECONDS")

    # ---------------------------------------------------------------------------
    # Webhook mode (optional)
    # ---------------------------------------------------------------------------
    webhook_url: str | None = Field(default=None, validation_alias="WEBHOOK_URL")
    webhook_secret: str | None = Field(default=None, validation_alias="WEBHOOK_SECRET")
    max_request_bytes: int = Field(default=1_048_576, validation_alias="MAX_REQUEST_BYTES")

    @field_validator(
        "telegram_token",
        "openai_api_key",
        "telegram_api_url",
        "openai_base_url",
        "transcription_model",
        "summary_model",
        "download_dir",
        mode="before",
    )
    @classmethod
    def _strip_strings(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("telegram_api_url", "openai_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("webhook_url", "webhook_secret", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("stage_timeout_seconds", mode="after")
    @classmethod
    def _disable_zero_timeout(cls, value: float | None) -> float | None:
        if value is None or value <= 0:
            return None
        return value

    @field_validator("max_concurrent_updates", mode="after")
    @classmethod
    def _clamp_concurrency(cls, value: int) -> int:
        return max(1, value)

    @field_validator("poll_timeout_seconds", mode="after")
    @classmethod
    def _clamp_poll_timeout(cls, value: int) -> int:
        return max(0, value)


def _existing_secrets_dir() -> str | None:
    raw = os.getenv("SECRETS_DIR", DEFAULT_SECRETS_DIR).strip()
    if raw and os.path.isdir(raw):
        return raw
    return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    try:
        return Settings(_secrets_dir=_existing_secrets_dir())  # type: ignore[call-arg]
    except ValidationError as exc:
        fields = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
        if fields & _CREDENTIAL_FIELDS:
            raise ConfigurationError(CREDENTIALS_MISSING_MESSAGE) from exc
        raise ConfigurationError(f"Invalid configuration: {', '.join(sorted(fields))}.") from exc
