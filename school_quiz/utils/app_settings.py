"""Environment-driven runtime settings."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from school_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


class AppSettings(BaseSettings):
    """Service settings read from ``SCHOOL_QUIZ_*`` variables."""

    model_config = SettingsConfigDict(env_prefix="SCHOOL_QUIZ_", frozen=True, extra="ignore")

    host: str = Field(default=DEFAULT_HOST)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    background_dispatch: bool = Field(default=True)

    @field_validator("host", "log_level", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppSettings:
        """Load from the process environment, or only from ``environ`` when given."""
        if environ is None:
            return cls()
        prefix = cls.model_config["env_prefix"]
        values = {
            key[len(prefix):].lower(): value
            for key, value in environ.items()
            if key.startswith(prefix) and value.strip()
        }
        return cls.model_validate(values)
