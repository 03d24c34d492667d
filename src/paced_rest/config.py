"""Configuration settings for paced-rest."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PacingConfig(BaseModel):
    """Configuration for request pacing, pagination and rate-limit retries.

    Controls spacing between dispatches, the queue drain cadence, the
    per-request page size and the 429 fallback delay.
    """

    # Timing
    min_request_interval_ms: int = Field(
        default=600,
        ge=0,
        description="Minimum milliseconds between dispatches (also the queue drain cadence)",
    )
    request_timeout_s: float = Field(
        default=30.0,
        gt=0.0,
        description="Fixed timeout applied to every individual network call",
    )

    # Pagination
    page_size: int = Field(
        default=100,
        ge=1,
        description="Items requested from the server on each paged round trip",
    )
    cap_param: str = Field(
        default="max",
        min_length=1,
        description="Query parameter (case-insensitive) carrying the requested cap",
    )
    items_key: str = Field(
        default="items",
        min_length=1,
        description="Body key holding the items of a collection page",
    )

    # Rate limiting
    default_retry_after_s: float = Field(
        default=15.0,
        ge=0.0,
        description="Delay used when a 429 response carries no retry-after header",
    )

    # Optional ceilings (unbounded when None)
    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Maximum pages fetched for one chain (None = unbounded)",
    )
    max_rate_limit_retries: int | None = Field(
        default=None,
        ge=0,
        description="Maximum 429 resubmissions for one chain (None = unbounded)",
    )

    @property
    def min_request_interval(self) -> float:
        """Minimum spacing in seconds."""
        return self.min_request_interval_ms / 1000


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Remote API
    # --------------------------------------------------------------------------
    api_token: str = Field(
        default="",
        description="Bearer token attached to every request",
    )
    api_base_url: str | None = Field(
        default=None,
        description="Base URL that relative request paths are resolved against",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Pacing & Pagination
    # --------------------------------------------------------------------------
    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="Request pacing configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
