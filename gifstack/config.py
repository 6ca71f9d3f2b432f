"""Package configuration."""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseSettings):
    """Runtime settings, overridable via ``GIFSTACK_*`` environment variables."""

    # Logging
    LOG_LEVEL: LogLevel = "WARNING"

    # CLI
    ALLOW_TTY_OUTPUT: bool = False  # Write image bytes even if stdout is a terminal

    # Encoder
    INTERLACE: bool = False  # Store output frames interlaced

    model_config = {"env_prefix": "GIFSTACK_"}

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value


settings = Settings()
