"""
Environment configuration for the lessons API.

Values come from the process environment, with a ``.env`` file in the
working directory as fallback.

Dependencies: pydantic, pydantic_settings
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_IMAGES_DIR = Path(__file__).resolve().parent / "images"


class ConfigError(RuntimeError):
    pass


class Settings(BaseSettings):
    """Service settings; ``MONGO_URI`` is the only required variable."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    mongo_uri: str = Field(..., description="MongoDB connection string")
    db_name: str = Field(default="woloo", description="Database holding lesson/order")
    port: int = Field(default=3000, description="HTTP port for python main.py")
    tls_insecure: bool = Field(default=False, description="Accept invalid TLS certificates")
    images_dir: Path = Field(default=DEFAULT_IMAGES_DIR, description="Directory served under /images")
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("mongo_uri")
    @classmethod
    def _require_uri(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("MONGO_URI is empty")
        return value

    @field_validator("db_name", mode="before")
    @classmethod
    def _default_db_name(cls, value):
        return value or "woloo"

    @field_validator("images_dir", mode="before")
    @classmethod
    def _default_images_dir(cls, value):
        return value or DEFAULT_IMAGES_DIR

    @field_validator("tls_insecure", mode="before")
    @classmethod
    def _only_literal_true(cls, value) -> bool:
        # "1" or "yes" do not count
        return str(value).strip().lower() == "true"


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """Read ``Settings``; any missing or malformed value raises ``ConfigError``."""
    try:
        return Settings(_env_file=env_file)
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]).upper() for err in exc.errors() if err["loc"])
        raise ConfigError(f"Invalid or missing configuration: {fields or exc}") from exc
